"""Tunable parsing constants and their environment overrides.

The defaults were tuned against real weekly statements. Every value can be
overridden through an environment variable (typically from a local ``.env``
loaded by the CLI) via :meth:`ParserSettings.from_env`.

=================================  =========================  =======
Setting                            Environment variable       Default
=================================  =========================  =======
``row_tolerance``                  RIDESHARE_ROW_TOLERANCE    5.0
``left_margin``                    RIDESHARE_LEFT_MARGIN      40.0
``max_transaction_rows``           RIDESHARE_MAX_TX_ROWS      15
``footer_signature``               RIDESHARE_FOOTER_SIGNATURE (unset)
``collapse_equal_toll``            RIDESHARE_COLLAPSE_TOLL    true
``repair_orphan_amounts``          RIDESHARE_REPAIR_ORPHANS   true
=================================  =========================  =======
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .logging_setup import get_logger

_logger = get_logger("rideshare_statements.settings")

# Vertical distance under which two fragments belong to the same printed line.
# Too small splits one line in two; too large merges adjacent lines.
ROW_Y_TOLERANCE: float = 5.0
# Known left edge of the "Processed" date column; anchors sit left of it.
LEFT_MARGIN: float = 40.0
# A single mis-detected anchor must not swallow the rest of the page.
MAX_TRANSACTION_ROWS: int = 15


@dataclass(frozen=True, slots=True)
class AmountPolicy:
    """Heuristics inferred from observed PDF extraction artifacts.

    ``collapse_equal_toll``: on six-column statements, an earnings value equal
    to the toll value is treated as a text-merge duplicate and reported as no
    toll. ``repair_orphan_amounts``: run the FIFO pass that reunites
    descriptions and amounts split into separate segments.
    """

    collapse_equal_toll: bool = True
    repair_orphan_amounts: bool = True


@dataclass(frozen=True, slots=True)
class ParserSettings:
    row_tolerance: float = ROW_Y_TOLERANCE
    left_margin: float = LEFT_MARGIN
    max_transaction_rows: int = MAX_TRANSACTION_ROWS
    # Account holder name printed in the page footer, when known.
    footer_signature: str | None = None
    amount_policy: AmountPolicy = field(default_factory=AmountPolicy)

    @classmethod
    def from_env(cls) -> ParserSettings:
        policy = AmountPolicy(
            collapse_equal_toll=_env_bool("RIDESHARE_COLLAPSE_TOLL", True),
            repair_orphan_amounts=_env_bool("RIDESHARE_REPAIR_ORPHANS", True),
        )
        signature = (os.getenv("RIDESHARE_FOOTER_SIGNATURE") or "").strip() or None
        return cls(
            row_tolerance=_env_float("RIDESHARE_ROW_TOLERANCE", ROW_Y_TOLERANCE),
            left_margin=_env_float("RIDESHARE_LEFT_MARGIN", LEFT_MARGIN),
            max_transaction_rows=_env_int("RIDESHARE_MAX_TX_ROWS", MAX_TRANSACTION_ROWS),
            footer_signature=signature,
            amount_policy=policy,
        )


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        _logger.warning("Ignoring non-numeric %s=%r", name, raw)
        return default
    if value <= 0:
        _logger.warning("Ignoring non-positive %s=%r", name, raw)
        return default
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        _logger.warning("Ignoring non-integer %s=%r", name, raw)
        return default
    return value if value > 0 else default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


__all__ = [
    "ROW_Y_TOLERANCE",
    "LEFT_MARGIN",
    "MAX_TRANSACTION_ROWS",
    "AmountPolicy",
    "ParserSettings",
]
