"""
engage.engine.records — Row Envelopes & Feature Records
========================================================

Plain dataclasses passed between the data-access layer and the engine.
Rows coming in from the platform are frozen; nothing in the engine mutates
fetched data.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

__all__ = [
    "EventFeatureRecord",
    "EventRow",
    "InteractionRow",
    "MemberRow",
    "RsvpRow",
    "TimeWindow",
    "UserAggregate",
    "UserPrediction",
    "WindowKind",
]


# ---------------------------------------------------------------------------
# Time window selector
# ---------------------------------------------------------------------------
class WindowKind(enum.StrEnum):
    LAST_30_DAYS = "30d"
    LAST_90_DAYS = "90d"
    ALL_TIME = "all"
    CUSTOM = "custom"


@dataclass(frozen=True, slots=True)
class TimeWindow:
    """Analysis window.  ``start`` / ``end`` belong to CUSTOM only; naive values are read as UTC."""

    kind: WindowKind = WindowKind.ALL_TIME
    start: datetime | None = None
    end: datetime | None = None

    def __post_init__(self) -> None:
        if self.kind != WindowKind.CUSTOM:
            if self.start is not None or self.end is not None:
                raise ValueError(f"Start and end dates only apply to a custom window, not {self.kind}")
            return
        if self.start is None or self.end is None:
            raise ValueError("A custom window needs both a start and an end date")
        # Naive bounds are taken as UTC, matching the rolling windows.
        for name in ("start", "end"):
            value = getattr(self, name)
            if value.tzinfo is None:
                object.__setattr__(self, name, value.replace(tzinfo=UTC))
        if self.start > self.end:
            raise ValueError("Custom window start must not be after its end")

    @classmethod
    def parse(
        cls,
        value: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> TimeWindow:
        """Build a window from its selector string (``30d``, ``90d``, ``all``, ``custom``)."""
        return cls(WindowKind(value), start, end)

    def resolve(self, now: datetime | None = None) -> tuple[datetime | None, datetime | None]:
        """Return the concrete ``(start, end)`` bounds; ``None`` means unbounded."""
        now = now or datetime.now(UTC)
        if self.kind == WindowKind.LAST_30_DAYS:
            return now - timedelta(days=30), None
        if self.kind == WindowKind.LAST_90_DAYS:
            return now - timedelta(days=90), None
        if self.kind == WindowKind.CUSTOM:
            return self.start, self.end
        return None, None


# ---------------------------------------------------------------------------
# Rows consumed from the data-access layer
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class EventRow:
    id: str
    title: str | None
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class RsvpRow:
    user_id: str
    post_id: str
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class MemberRow:
    user_id: str
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class InteractionRow:
    """One raw interaction event (view, like, poll, rsvp, register, feedback, evaluate)."""

    user_id: str
    action: str
    org_id: str
    created_at: datetime | None = None


# ---------------------------------------------------------------------------
# Derived per-run structures
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class UserAggregate:
    """Per-member interaction totals inside the analysis window."""

    user_id: str
    total_views: int = 0
    total_likes: int = 0
    total_polls: int = 0
    total_feedbacks: int = 0
    total_rsvps: int = 0
    total_registers: int = 0
    total_evaluations: int = 0
    rsvp_rate: float = 0.0
    engagement_score: int = 0

    @property
    def total_interactions(self) -> int:
        return (
            self.total_views
            + self.total_likes
            + self.total_polls
            + self.total_feedbacks
            + self.total_rsvps
            + self.total_registers
            + self.total_evaluations
        )


@dataclass(frozen=True, slots=True)
class EventFeatureRecord:
    """One row per (event, member) pair.

    ``cluster`` and ``predicted_rsvp_probability`` stay ``None`` until the
    models have been trained.
    """

    anonymized_user_id: str
    event_id: str
    event_name: str
    total_views: int
    total_likes: int
    total_polls: int
    total_feedbacks: int
    total_rsvps: int
    total_registers: int
    total_evaluations: int
    rsvp_rate: float
    engagement_score: int
    has_rsvp: int
    cluster: int | None = None
    predicted_rsvp_probability: float | None = None


@dataclass(frozen=True, slots=True)
class UserPrediction:
    """Per-member summary after modeling."""

    anonymized_user_id: str
    predicted_probability: float
    cluster: int | None
    engagement_score: int
    rsvp_rate: float
    likelihood: str = "low"  # high / medium / low relative to dynamic thresholds
