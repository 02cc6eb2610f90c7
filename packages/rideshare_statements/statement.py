"""Whole-statement parsing: page source in, transaction records out.

Per page the stages run in order: row reconstruction, layout detection,
segmentation, cluster parsing. The orphan-amount repair pass then runs once
over the whole statement, and every surviving record is stamped with the
statement period and import date.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from .classifier import parse_transaction_cluster
from .dates import parse_statement_period
from .errors import StatementSourceError
from .ingest.pages import PageSource, StatementPage
from .logging_setup import get_logger
from .models import (
    ColumnLayout,
    ParseWarning,
    StatementPeriod,
    TransactionRecord,
    WarningKind,
)
from .repair import repair_orphan_amounts
from .rows import group_into_rows
from .segmenter import SegmentRules, detect_column_layout, is_header_row, segment_transactions
from .settings import ParserSettings

_logger = get_logger("rideshare_statements.statement")


@dataclass(slots=True)
class ParseReport:
    period: StatementPeriod | None
    transactions: list[TransactionRecord] = field(default_factory=list)
    warnings: list[ParseWarning] = field(default_factory=list)
    pages: int = 0


def _as_source(source: PageSource | str | Path) -> PageSource:
    if isinstance(source, (str, Path)):
        from .ingest.adapters.pdfplumber_pages import PdfPageSource

        return PdfPageSource(source)
    return source


class StatementParser:
    """Parse weekly statements with one set of :class:`ParserSettings`."""

    def __init__(self, settings: ParserSettings | None = None) -> None:
        self.settings = settings or ParserSettings()
        self._rules = SegmentRules(
            left_margin=self.settings.left_margin,
            max_rows=self.settings.max_transaction_rows,
            footer_signature=self.settings.footer_signature,
        )

    def parse(
        self,
        source: PageSource | str | Path,
        *,
        import_date: datetime | None = None,
    ) -> ParseReport:
        """Parse every page of ``source``.

        Raises :class:`StatementSourceError` when the source cannot be read.
        Everything else that goes wrong is recorded on ``report.warnings``.
        """

        import_date = import_date or datetime.now()
        src = _as_source(source)
        try:
            pages = list(src.pages())
        except StatementSourceError:
            raise
        except OSError as e:
            raise StatementSourceError(f"cannot read statement pages: {e}") from e

        report = ParseReport(period=None, pages=len(pages))
        if pages:
            report.period = parse_statement_period(pages[0].plain_text())
        if report.period is None:
            report.warnings.append(
                ParseWarning(WarningKind.PERIOD_MISSING, "no statement period on page one", page=1)
            )
        period_label = report.period.display if report.period is not None else ""

        records: list[TransactionRecord] = []
        layout = ColumnLayout.FIVE_COLUMN
        for page in pages:
            layout = self._parse_page(page, layout, report, records, import_date, period_label)

        if self.settings.amount_policy.repair_orphan_amounts:
            repaired = repair_orphan_amounts(records)
            records = repaired.records
            for tx in repaired.dropped:
                report.warnings.append(
                    ParseWarning(
                        WarningKind.ORPHAN_DROPPED,
                        f"{tx.event_type!r} at {tx.transaction_date:%Y-%m-%d %H:%M} has no amount",
                        row=tx.source_row,
                    )
                )

        report.transactions = records
        _logger.info(
            "Parsed %d transaction(s) from %d page(s) for %r (%d warning(s))",
            len(records),
            len(pages),
            period_label,
            len(report.warnings),
        )
        return report

    def _parse_page(
        self,
        page: StatementPage,
        layout: ColumnLayout,
        report: ParseReport,
        records: list[TransactionRecord],
        import_date: datetime,
        period_label: str,
    ) -> ColumnLayout:
        if not page.elements:
            report.warnings.append(
                ParseWarning(
                    WarningKind.PAGE_UNEXTRACTABLE, "page has no text elements", page=page.number
                )
            )
            return layout

        rows = group_into_rows(page.elements, tolerance=self.settings.row_tolerance)
        # Continuation pages without a header keep the previous page's layout.
        header = next((r for r in rows if is_header_row(r)), None)
        if header is not None:
            layout = detect_column_layout(header.text)

        index_of = {id(row): i for i, row in enumerate(rows)}
        for cluster in segment_transactions(rows, self._rules):
            result = parse_transaction_cluster(
                cluster,
                layout,
                period=report.period,
                policy=self.settings.amount_policy,
                import_date=import_date,
                statement_period=period_label,
                page=page.number,
                source_row=index_of[id(cluster[0])],
                tolerance=self.settings.row_tolerance,
            )
            report.warnings.extend(result.warnings)
            if result.record is not None:
                records.append(result.record)
        return layout


def parse_statement(
    source: PageSource | str | Path,
    settings: ParserSettings | None = None,
    *,
    import_date: datetime | None = None,
) -> list[TransactionRecord]:
    """Parse ``source`` and return only its transactions."""

    return StatementParser(settings).parse(source, import_date=import_date).transactions


__all__ = [
    "ParseReport",
    "StatementParser",
    "parse_statement",
    "parse_statement_period",
]
