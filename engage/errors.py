"""
engage.errors — Analytics Failure Taxonomy
===========================================

Every failure aborts the analysis run and propagates to the caller with a
message an officer can act on.  Nothing here is ever swallowed into a
partial result.
"""

from __future__ import annotations


class AnalyticsError(Exception):
    """Base class for all analysis failures."""


class DataUnavailable(AnalyticsError):
    """No event posts exist for the organization in the selected window."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message
            or "No events found in the selected time window. "
            "Try a longer window (90 days or all time)."
        )


class InsufficientMembers(AnalyticsError):
    """The organization has no active members."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message
            or "This organization has no active members to analyze. "
            "Approve pending members before running analytics."
        )


class InsufficientActivity(AnalyticsError):
    """Fewer distinct members with recorded activity than training needs."""

    def __init__(self, count: int, required: int = 10) -> None:
        self.count = count
        self.required = required
        super().__init__(
            f"Insufficient data for training: found {count} active user(s), "
            f"need at least {required}. Try a longer time window or "
            "encourage more member interaction."
        )


class TrainingFailure(AnalyticsError):
    """Numerical failure while fitting a model (NaN / inf loss or weights)."""
