"""Adapter reading statement pages out of a PDF with ``pdfplumber``.

Contract
--------
- Words are extracted with ``keep_blank_chars=True`` so multi-word cells such
  as ``"Sat, Aug 9"`` or ``"Aug 9 12:10 AM"`` come back as one fragment; only
  the wider gaps between table columns split fragments.
- pdfplumber measures ``top``/``bottom`` from the top edge of the page. The
  adapter converts to bottom-left origin (``y = page.height - bottom``) so a
  larger ``y`` is higher on the page, as the row reconstructor expects.

Failure mode
------------
A file that cannot be opened or is not a PDF raises
:class:`~rideshare_statements.errors.StatementSourceError`. A page whose text
layer cannot be read is yielded with no elements; the parser then skips it
with a warning.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pdfplumber

from ...errors import StatementSourceError
from ...logging_setup import get_logger
from ...models import PositionedTextElement
from ..pages import StatementPage

_logger = get_logger("rideshare_statements.ingest.pdfplumber")

# Horizontal gap (points) that still joins two characters into one fragment.
X_TOLERANCE = 3.0


class PdfPageSource:
    def __init__(self, path: str | Path, *, x_tolerance: float = X_TOLERANCE) -> None:
        self.path = Path(path)
        self.x_tolerance = x_tolerance

    def pages(self) -> Iterator[StatementPage]:
        if not self.path.is_file():
            raise StatementSourceError(f"statement file not found: {self.path}")
        try:
            pdf = pdfplumber.open(self.path)
        except Exception as e:  # pdfminer raises several unrelated types
            raise StatementSourceError(f"cannot open statement {self.path}: {e}") from e

        with pdf:
            for number, page in enumerate(pdf.pages, start=1):
                yield self._read_page(number, page)

    def _read_page(self, number: int, page) -> StatementPage:
        try:
            words = page.extract_words(keep_blank_chars=True, x_tolerance=self.x_tolerance)
            text = page.extract_text() or ""
        except Exception as e:  # pragma: no cover - depends on malformed PDFs
            _logger.warning("Page %d of %s has no readable text layer: %s", number, self.path, e)
            return StatementPage(number=number, elements=(), text="")

        height = float(page.height)
        elements = tuple(
            PositionedTextElement(
                text=str(w["text"]),
                x=float(w["x0"]),
                y=height - float(w["bottom"]),
            )
            for w in words
            if str(w.get("text", "")).strip()
        )
        return StatementPage(number=number, elements=elements, text=text)


__all__ = ["PdfPageSource", "X_TOLERANCE"]
