# src/stacker_server/db/time.py
"""Time utilities for session timing and run timestamps."""

import time


def epoch_ms() -> int:
    """Return the current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000
