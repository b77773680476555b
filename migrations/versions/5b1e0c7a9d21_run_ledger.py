"""run ledger

Revision ID: 5b1e0c7a9d21
Revises:
Create Date: 2026-10-18 09:12:44.318204

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5b1e0c7a9d21"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create run records and per-wallet totals."""
    op.create_table(
        "run_record",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("wallet", sa.Text(), nullable=False),
        sa.Column("score", sa.BigInteger(), nullable=False),
        sa.Column("timestamp_ms", sa.BigInteger(), nullable=False),
        sa.Column("tx_reference", sa.Text(), nullable=False),
        sa.Column("username", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_run_record_wallet_id", "run_record", ["wallet", "id"])

    op.create_table(
        "wallet_total",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("wallet", sa.Text(), nullable=False),
        sa.Column("total_score", sa.BigInteger(), nullable=False),
        sa.Column("username", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("wallet"),
    )


def downgrade() -> None:
    """Drop run ledger tables."""
    op.drop_table("wallet_total")
    op.drop_index("ix_run_record_wallet_id", table_name="run_record")
    op.drop_table("run_record")
