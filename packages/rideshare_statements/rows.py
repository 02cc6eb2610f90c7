"""Row reconstruction: cluster positioned fragments into printed lines."""

from __future__ import annotations

from collections.abc import Iterable

from .models import PositionedTextElement, Row
from .settings import ROW_Y_TOLERANCE


def group_into_rows(
    elements: Iterable[PositionedTextElement],
    *,
    tolerance: float = ROW_Y_TOLERANCE,
) -> list[Row]:
    """Group ``elements`` into rows in reading order.

    Elements are scanned top-down (descending Y, then ascending X), so the
    result does not depend on the order they were extracted in. Each element
    joins the first row whose anchor Y (the Y of the element that opened it)
    lies strictly within ``tolerance``; otherwise it opens a new row. Rows come
    back top of page first and elements within a row left to right. Blank
    fragments are ignored.
    """

    anchors: list[float] = []
    buckets: list[list[PositionedTextElement]] = []

    for el in sorted(elements, key=lambda e: (-e.y, e.x)):
        text = el.text.strip()
        if not text:
            continue
        if text != el.text:
            el = PositionedTextElement(text=text, x=el.x, y=el.y)
        for i, anchor in enumerate(anchors):
            if abs(anchor - el.y) < tolerance:
                buckets[i].append(el)
                break
        else:
            anchors.append(el.y)
            buckets.append([el])

    rows = [
        Row(y=anchor, elements=tuple(sorted(bucket, key=lambda e: e.x)))
        for anchor, bucket in zip(anchors, buckets, strict=True)
    ]
    # Anchors were opened top-down, so rows are already in reading order.
    return rows


__all__ = ["group_into_rows"]
