"""Workflow orchestrators composing parsing, matching and storage."""

from .import_flow import ImportResult, ShiftRepository, ShiftUpdate, import_statement

__all__ = ["ImportResult", "ShiftRepository", "ShiftUpdate", "import_statement"]
