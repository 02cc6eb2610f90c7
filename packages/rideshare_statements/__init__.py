"""Public interface for the ``rideshare_statements`` package.

Parse weekly rideshare earnings statements (positioned PDF text) into
transaction records, match them to recorded shifts, store them without
duplicates, and synthesize rows for shifts that were never recorded.
"""

from .categories import categorize, compute_totals, compute_totals_between
from .classifier import classify_text, disambiguate_amounts, parse_transaction_cluster
from .dates import parse_statement_period, settlement_day, settlement_window
from .errors import (
    RideshareStatementsError,
    StatementAlreadyImportedError,
    StatementPeriodNotFoundError,
    StatementSourceError,
    StoreWriteError,
)
from .ingest.pages import InMemoryPageSource, PageSource, StatementPage
from .matching import find_matching_shift, match_transactions_to_shifts
from .missing_shifts import calculate_shift_times, generate_missing_shifts_csv
from .models import (
    ColumnLayout,
    MatchResult,
    ParseWarning,
    PositionedTextElement,
    Row,
    Shift,
    ShiftMatch,
    StatementPeriod,
    TransactionCategory,
    TransactionRecord,
    TransactionTotals,
    WarningKind,
)
from .repair import RepairResult, repair_orphan_amounts
from .rows import group_into_rows
from .segmenter import detect_column_layout, segment_transactions
from .settings import AmountPolicy, ParserSettings
from .statement import ParseReport, StatementParser, parse_statement

__all__ = [
    # Parsing
    "group_into_rows",
    "detect_column_layout",
    "segment_transactions",
    "classify_text",
    "disambiguate_amounts",
    "parse_transaction_cluster",
    "repair_orphan_amounts",
    "RepairResult",
    "parse_statement_period",
    "parse_statement",
    "StatementParser",
    "ParseReport",
    "AmountPolicy",
    "ParserSettings",
    # Page sources
    "PageSource",
    "StatementPage",
    "InMemoryPageSource",
    # Matching, totals and synthesis
    "settlement_window",
    "settlement_day",
    "find_matching_shift",
    "match_transactions_to_shifts",
    "categorize",
    "compute_totals",
    "compute_totals_between",
    "calculate_shift_times",
    "generate_missing_shifts_csv",
    # Models / types
    "PositionedTextElement",
    "Row",
    "ColumnLayout",
    "StatementPeriod",
    "TransactionRecord",
    "TransactionCategory",
    "TransactionTotals",
    "Shift",
    "ShiftMatch",
    "MatchResult",
    "WarningKind",
    "ParseWarning",
    # Errors
    "RideshareStatementsError",
    "StatementSourceError",
    "StatementPeriodNotFoundError",
    "StatementAlreadyImportedError",
    "StoreWriteError",
]
