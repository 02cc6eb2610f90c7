"""Pytest configuration for test isolation.

The workspace is not necessarily installed when tests run, so the package
directories are put on ``sys.path`` here: ``packages/`` for
``rideshare_statements``, ``libs/db/src`` for ``db``, and the repo root for
``tests.helpers``.

Parser settings and the database URL are read from the environment (and from
a developer's local ``.env`` through the CLI). An autouse fixture strips every
``RIDESHARE_*`` variable and ``DATABASE_URL`` so local configuration never
leaks into assertions.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

_ROOT = Path(__file__).resolve().parents[1]
sys.path[:0] = [
    p
    for p in [str(_ROOT / "packages"), str(_ROOT / "libs" / "db" / "src"), str(_ROOT)]
    if p not in sys.path
]


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith("RIDESHARE_") or name == "DATABASE_URL":
            monkeypatch.delenv(name, raising=False)
