"""
engage.engine.aggregator — Feature Table Builder
=================================================

Builds the per-(event, member) feature table for one organization and
window.

Pipeline stages:
  events → active members → RSVPs → interaction counters → activity floor
  → derived features → (event × member) cross join → anonymized ids

The aggregator only reads from its :class:`AnalyticsSource`; every output
is a fresh, transient structure.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from engage.constants import ACTION_COUNTERS, ANONYMIZED_PREFIX, ENGAGEMENT_WEIGHTS
from engage.engine.records import (
    EventFeatureRecord,
    EventRow,
    InteractionRow,
    TimeWindow,
    UserAggregate,
)
from engage.errors import DataUnavailable, InsufficientActivity, InsufficientMembers

if TYPE_CHECKING:
    from engage.database.source import AnalyticsSource

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Derived features
# ---------------------------------------------------------------------------
def engagement_score(aggregate: UserAggregate) -> int:
    """Fixed-weight sum of a member's interaction counts."""
    return sum(
        getattr(aggregate, field_name) * weight
        for field_name, weight in ENGAGEMENT_WEIGHTS.items()
    )


def rsvp_rate(total_rsvps: int, total_events: int) -> float:
    """Percentage of events in the window the member RSVPed to (0 when no events)."""
    if total_events <= 0:
        return 0.0
    return total_rsvps / total_events * 100


def aggregate_interactions(
    interactions: list[InteractionRow], member_ids: set[str]
) -> dict[str, UserAggregate]:
    """Count each action kind per member.

    Rows from non-members and unknown action kinds are ignored.  The result
    only contains members with at least one counted interaction.
    """
    aggregates: dict[str, UserAggregate] = {}
    for row in interactions:
        if row.user_id not in member_ids:
            continue
        counter = ACTION_COUNTERS.get(row.action)
        if counter is None:
            logger.debug("Ignoring unknown interaction action %r", row.action)
            continue
        aggregate = aggregates.get(row.user_id)
        if aggregate is None:
            aggregate = aggregates[row.user_id] = UserAggregate(user_id=row.user_id)
        setattr(aggregate, counter, getattr(aggregate, counter) + 1)
    return aggregates


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class FeatureTable:
    """Output of :func:`build_feature_table`."""

    records: list[EventFeatureRecord]
    aggregates: dict[str, UserAggregate]  # anonymized id → aggregate
    events: list[EventRow]
    active_user_count: int
    total_interactions: int

    @property
    def user_count(self) -> int:
        return len(self.aggregates)


# ---------------------------------------------------------------------------
# Full aggregation pipeline
# ---------------------------------------------------------------------------
def build_feature_table(
    source: AnalyticsSource,
    org_id: str,
    window: TimeWindow,
    *,
    min_active_users: int = 10,
    now: datetime | None = None,
) -> FeatureTable:
    """Fetch platform rows for *org_id* and build the feature table.

    Raises
    ------
    DataUnavailable
        No event posts in the window.
    InsufficientMembers
        The organization has no active members.
    InsufficientActivity
        Fewer than *min_active_users* members have any recorded activity.
    """
    start, end = window.resolve(now)

    # 1. Events
    events = source.fetch_events(org_id, start, end)
    if not events:
        raise DataUnavailable()

    # 2. Active members (enumeration order drives the anonymized ids)
    members = [m for m in source.fetch_active_members(org_id) if m.is_active]
    if not members:
        raise InsufficientMembers()
    member_ids: list[str] = list(dict.fromkeys(m.user_id for m in members))
    member_set = set(member_ids)

    # 3. RSVPs, restricted to active members: event id → member ids
    rsvp_map: dict[str, set[str]] = defaultdict(set)
    for rsvp in source.fetch_rsvps([e.id for e in events], start, end):
        if rsvp.user_id in member_set:
            rsvp_map[rsvp.post_id].add(rsvp.user_id)

    # 4. Interaction counters
    interactions = source.fetch_interactions(org_id, start, end)
    counted = aggregate_interactions(interactions, member_set)

    # 5. Activity floor
    if len(counted) < min_active_users:
        raise InsufficientActivity(len(counted), min_active_users)

    # 6–8. Derived features, cross join, anonymization
    total_events = len(events)
    records: list[EventFeatureRecord] = []
    aggregates: dict[str, UserAggregate] = {}
    for index, user_id in enumerate(member_ids, start=1):
        anonymized_id = f"{ANONYMIZED_PREFIX}{index}"
        aggregate = counted.get(user_id) or UserAggregate(user_id=user_id)
        aggregate.rsvp_rate = rsvp_rate(aggregate.total_rsvps, total_events)
        aggregate.engagement_score = engagement_score(aggregate)
        aggregates[anonymized_id] = aggregate

        for event in events:
            records.append(
                EventFeatureRecord(
                    anonymized_user_id=anonymized_id,
                    event_id=event.id,
                    event_name=event.title or f"Event {event.id}",
                    total_views=aggregate.total_views,
                    total_likes=aggregate.total_likes,
                    total_polls=aggregate.total_polls,
                    total_feedbacks=aggregate.total_feedbacks,
                    total_rsvps=aggregate.total_rsvps,
                    total_registers=aggregate.total_registers,
                    total_evaluations=aggregate.total_evaluations,
                    rsvp_rate=aggregate.rsvp_rate,
                    engagement_score=aggregate.engagement_score,
                    has_rsvp=1 if user_id in rsvp_map.get(event.id, ()) else 0,
                )
            )

    total_interactions = sum(a.total_interactions for a in counted.values())
    logger.info(
        "Feature table built for org %s — %d events × %d members = %d rows "
        "(%d active, %d interactions)",
        org_id, total_events, len(member_ids), len(records),
        len(counted), total_interactions,
    )
    return FeatureTable(
        records=records,
        aggregates=aggregates,
        events=list(events),
        active_user_count=len(counted),
        total_interactions=total_interactions,
    )
