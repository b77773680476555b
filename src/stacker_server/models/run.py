# src/stacker_server/models/run.py
"""SQLAlchemy models backing the SQL run ledger."""

from sqlalchemy import BigInteger, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from stacker_server.db.session import Base


class Run(Base):
    """One confirmed run: a score delta written on-chain for a wallet.

    Rows are append-only; the only deletion is the per-wallet retention trim.
    """

    __tablename__ = "run_record"
    __table_args__ = (Index("ix_run_record_wallet_id", "wallet", "id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    wallet: Mapped[str] = mapped_column(Text, nullable=False)
    score: Mapped[int] = mapped_column(BigInteger, nullable=False)
    timestamp_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)
    tx_reference: Mapped[str] = mapped_column(Text, nullable=False)
    username: Mapped[str | None] = mapped_column(Text, nullable=True)


class WalletTotal(Base):
    """Lifetime score aggregate per wallet.

    ``id`` is assigned on the wallet's first run and never changes, so it
    doubles as the first-seen order used to break leaderboard ties.
    """

    __tablename__ = "wallet_total"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    wallet: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    total_score: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    username: Mapped[str | None] = mapped_column(Text, nullable=True)
