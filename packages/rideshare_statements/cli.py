# ruff: noqa: I001
"""CLI for the ``rideshare_statements`` package.

Typer-based console interface over the parser, the transaction store and the
import workflow. Environment variables (``DATABASE_URL`` and the
``RIDESHARE_*`` parser overrides) are loaded from a local ``.env`` using
``python-dotenv`` before any command runs. Business logic lives in the
library modules; commands only parse options, call them, and print.
"""

from __future__ import annotations

import sys
from contextlib import closing
from datetime import datetime
from pathlib import Path

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from typer.models import ArgumentInfo

from .errors import RideshareStatementsError
from .logging_setup import configure_logging
from .models import Shift, ShiftFile, TransactionOut
from .settings import ParserSettings


# ---- Small module-level helpers used by CLI commands -------------------------


def _fail(message: str) -> typer.Exit:
    typer.echo(f"Error: {message}", err=True)
    return typer.Exit(1)


def _open_store(database_url: str | None):
    from .store import TransactionStore

    try:
        return TransactionStore.from_url(database_url, create_schema=True)
    except RuntimeError as e:
        # DATABASE_URL missing
        raise _fail(str(e)) from e


def _load_shifts(path: Path | None) -> list[Shift]:
    if path is None:
        return []
    try:
        payload = ShiftFile.model_validate_json(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise _fail(f"shift file not found: {path}") from e
    except ValidationError as e:
        raise _fail(f"invalid shift file {path}: {e}") from e
    return [s.to_shift() for s in payload.shifts]


def _write_or_echo(text: str, out: Path | None) -> None:
    if out is None:
        typer.echo(text, nl=False)
    else:
        out.write_text(text, encoding="utf-8")
        typer.echo(f"Wrote {out}", err=True)


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Parse weekly rideshare earnings statements, match transactions to shifts, "
        "and keep a deduplicated transaction store. Loads DATABASE_URL from a local .env."
    ),
)

# Module-level argument object to satisfy ruff B008 (no calls in parameter
# defaults). Typer will inspect this when used as a default value below.
PDF_ARGUMENT: ArgumentInfo = typer.Argument(
    ...,
    help="Path to a weekly statement PDF.",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the parser reports missing files with a clear error
)


@app.command("parse")
def parse_cmd(
    pdf_path: Path = PDF_ARGUMENT,
    *,
    out: Path | None = typer.Option(None, help="Write JSON lines here instead of stdout."),
    show_warnings: bool = typer.Option(True, help="Print parse warnings to stderr."),
) -> None:
    """Parse a statement and print one JSON object per transaction."""

    from .statement import StatementParser

    try:
        report = StatementParser(ParserSettings.from_env()).parse(pdf_path)
    except RideshareStatementsError as e:
        raise _fail(str(e)) from e

    lines = [TransactionOut.from_record(tx).model_dump_json() for tx in report.transactions]
    _write_or_echo("".join(line + "\n" for line in lines), out)
    if show_warnings:
        for w in report.warnings:
            typer.echo(f"warning: {w}", err=True)


@app.command("period")
def period_cmd(pdf_path: Path = PDF_ARGUMENT) -> None:
    """Print the statement period printed on page one."""

    from .ingest.adapters.pdfplumber_pages import PdfPageSource
    from .dates import parse_statement_period

    try:
        with closing(PdfPageSource(pdf_path).pages()) as pages:
            first = next(pages, None)
    except RideshareStatementsError as e:
        raise _fail(str(e)) from e
    period = parse_statement_period(first.plain_text()) if first is not None else None
    if period is None:
        raise _fail("no statement period found on page one")
    typer.echo(period.display)


@app.command("import")
def import_cmd(
    pdf_path: Path = PDF_ARGUMENT,
    *,
    shifts: Path | None = typer.Option(
        None, help='JSON file {"shifts": [{"id", "start_date", "end_date"}]} to match against.'
    ),
    replace: bool = typer.Option(False, help="Replace the period when it is already stored."),
    missing_csv: Path | None = typer.Option(
        None, help="Write the missing-shifts CSV here (default: stdout)."
    ),
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
) -> None:
    """Import a statement: store its transactions and report unmatched days."""

    from .statement import StatementParser
    from .workflows.import_flow import import_statement

    shift_list = _load_shifts(shifts)
    store = _open_store(database_url)
    try:
        result = import_statement(
            pdf_path,
            store,
            shift_list,
            replace=replace,
            parser=StatementParser(ParserSettings.from_env()),
            on_progress=lambda msg: typer.echo(msg, err=True),
        )
    except RideshareStatementsError as e:
        raise _fail(str(e)) from e
    finally:
        store.close()

    for update in result.updated_shifts:
        if update.totals is None:
            typer.echo(f"shift {update.shift_id}: cleared", err=True)
        else:
            t = update.totals
            typer.echo(
                f"shift {update.shift_id}: {t.count} tx, tips {t.tips:.2f}, "
                f"tolls {t.tolls_reimbursed:.2f}",
                err=True,
            )
    if result.missing_shifts_csv is not None:
        _write_or_echo(result.missing_shifts_csv, missing_csv)


@app.command("periods")
def periods_cmd(
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
) -> None:
    """List stored statement periods with their transaction counts."""

    store = _open_store(database_url)
    try:
        for period in store.get_all_statement_periods():
            count = len(store.get_transactions_for_statement_period(period))
            typer.echo(f"{period}\t{count}")
    finally:
        store.close()


@app.command("orphans")
def orphans_cmd(
    start: datetime | None = typer.Option(None, help="Only activity on or after this time."),
    end: datetime | None = typer.Option(None, help="Only activity before this time."),
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
) -> None:
    """Print stored transactions that belong to no shift, as JSON lines."""

    store = _open_store(database_url)
    try:
        for tx in store.get_orphaned_transactions(start, end):
            typer.echo(TransactionOut.from_record(tx).model_dump_json())
    finally:
        store.close()


@app.command("missing-shifts")
def missing_shifts_cmd(
    period: str | None = typer.Option(None, help="Restrict to one stored statement period."),
    out: Path | None = typer.Option(None, help="Write the CSV here instead of stdout."),
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
) -> None:
    """Build the missing-shifts CSV from stored orphan transactions."""

    from .categories import categorize
    from .missing_shifts import generate_missing_shifts_csv
    from .models import TransactionCategory

    store = _open_store(database_url)
    try:
        orphans = store.get_orphaned_transactions()
    finally:
        store.close()
    if period is not None:
        orphans = [tx for tx in orphans if tx.statement_period == period]
    orphans = [tx for tx in orphans if categorize(tx) is not TransactionCategory.IGNORE]
    _write_or_echo(generate_missing_shifts_csv(orphans, period or ""), out)


@app.callback(invoke_without_command=True)
def _root(ctx: typer.Context) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures package logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(stream=sys.stderr)

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m rideshare_statements.cli`
    app()
