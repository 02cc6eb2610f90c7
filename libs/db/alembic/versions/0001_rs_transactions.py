# ruff: noqa: I001
"""Statement transactions table.

Revision ID: 0001_rs_transactions
Revises: None
Create Date: 2025-11-14
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_rs_transactions"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "rs_transactions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("transaction_date", sa.DateTime(), nullable=False),
        sa.Column("event_date", sa.DateTime(), nullable=True),
        sa.Column("event_type", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column(
            "amount",
            sa.Numeric(18, 2, asdecimal=False),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column("tolls_reimbursed", sa.Numeric(18, 2, asdecimal=False), nullable=True),
        sa.Column("statement_period", sa.String(), nullable=False),
        sa.Column("shift_id", sa.String(36), nullable=True),
        sa.Column("import_date", sa.DateTime(), nullable=False),
        sa.Column(
            "needs_manual_verification",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("source_row", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "tolls_reimbursed IS NULL OR tolls_reimbursed >= 0",
            name="ck_rs_tx_tolls_non_negative",
        ),
    )

    op.create_index("ix_rs_tx_statement_period", "rs_transactions", ["statement_period"])
    op.create_index("ix_rs_tx_shift_id", "rs_transactions", ["shift_id"])
    op.create_index(
        "ix_rs_tx_date_event_type", "rs_transactions", ["transaction_date", "event_type"]
    )
    op.create_index("uq_rs_tx_seq", "rs_transactions", ["seq"], unique=True)


def downgrade() -> None:
    op.drop_index("uq_rs_tx_seq", table_name="rs_transactions")
    op.drop_index("ix_rs_tx_date_event_type", table_name="rs_transactions")
    op.drop_index("ix_rs_tx_shift_id", table_name="rs_transactions")
    op.drop_index("ix_rs_tx_statement_period", table_name="rs_transactions")
    op.drop_table("rs_transactions")
