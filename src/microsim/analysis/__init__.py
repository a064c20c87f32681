# src/microsim/analysis/__init__.py

"""Post-run analysis of monitor output."""

from .transient import (
    calculate_transient_data,
    find_transient_end,
    is_stationary
)

__all__ = [
    "calculate_transient_data",
    "find_transient_end",
    "is_stationary"
]
