"""
Analysis tools for the risk register.

This package contains pure functions that derive views from a project's
risks: the 5×5 probability/impact matrix with its aggregated score, and
the per-status severity timeline reconstructed from status history.
Each result can easily be serialised as JSON in API responses.
"""

from .risk_matrix import (
    aggregated_score,
    build_matrix,
    dashboard,
    filter_by_cell,
    matrix_counts,
    severity_band,
    toggle_filter,
)
from .risk_timeline import Timeline, build_timeline, status_at

__all__ = [
    "aggregated_score",
    "build_matrix",
    "dashboard",
    "filter_by_cell",
    "matrix_counts",
    "severity_band",
    "toggle_filter",
    "Timeline",
    "build_timeline",
    "status_at",
]
