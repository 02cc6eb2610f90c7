"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the statement transaction model used by
``rideshare_statements``.
"""

from .statements import Base, RsTransaction

__all__ = [
    "Base",
    "RsTransaction",
]
