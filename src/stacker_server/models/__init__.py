# src/stacker_server/models/__init__.py
"""SQLAlchemy models for the Stacker server."""

from .run import Run, WalletTotal

__all__ = ["Run", "WalletTotal"]
