"""Page sources: where positioned statement text comes from.

A :class:`PageSource` yields :class:`StatementPage` values in page order. The
parser never touches PDF libraries directly; the pdfplumber adapter lives in
:mod:`rideshare_statements.ingest.adapters.pdfplumber_pages` and tests feed
pages through :class:`InMemoryPageSource`.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from ..models import PositionedTextElement
from ..rows import group_into_rows


@dataclass(frozen=True, slots=True)
class StatementPage:
    """One page: its 1-based number, positioned fragments, and plain text.

    ``text`` may be empty; :meth:`plain_text` then rebuilds it from rows.
    """

    number: int
    elements: tuple[PositionedTextElement, ...]
    text: str = ""

    def plain_text(self) -> str:
        if self.text.strip():
            return self.text
        return "\n".join(row.text for row in group_into_rows(self.elements))


@runtime_checkable
class PageSource(Protocol):
    def pages(self) -> Iterator[StatementPage]: ...


class InMemoryPageSource:
    """Serve pages built from element lists (one list per page)."""

    def __init__(
        self,
        pages: Iterable[Sequence[PositionedTextElement]],
        *,
        texts: Sequence[str] | None = None,
    ) -> None:
        self._pages = [tuple(p) for p in pages]
        self._texts = list(texts) if texts is not None else []

    def pages(self) -> Iterator[StatementPage]:
        for i, elements in enumerate(self._pages):
            text = self._texts[i] if i < len(self._texts) else ""
            yield StatementPage(number=i + 1, elements=elements, text=text)


__all__ = ["StatementPage", "PageSource", "InMemoryPageSource"]
