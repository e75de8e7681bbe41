"""
engage.database.source — Data-Access Adapter
=============================================

The aggregator talks to the platform through the small
:class:`AnalyticsSource` protocol.  :class:`SqlAnalyticsSource` implements
it with SQLAlchemy queries against the read models; tests may pass any
object with the same four methods.

All queries are read-only and scoped to one organization.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from sqlalchemy import Engine, select

from engage.database.engine import get_session
from engage.database.models import OrgMember, Post, RewardLog, Rsvp
from engage.engine.records import EventRow, InteractionRow, MemberRow, RsvpRow

logger = logging.getLogger(__name__)


class AnalyticsSource(Protocol):
    """Collaborator interface consumed by the Data Aggregator."""

    def fetch_events(
        self, org_id: str, start: datetime | None, end: datetime | None
    ) -> list[EventRow]: ...

    def fetch_active_members(self, org_id: str) -> list[MemberRow]: ...

    def fetch_rsvps(
        self, event_ids: Sequence[str], start: datetime | None, end: datetime | None
    ) -> list[RsvpRow]: ...

    def fetch_interactions(
        self, org_id: str, start: datetime | None, end: datetime | None
    ) -> list[InteractionRow]: ...


def _within(stmt, column, start: datetime | None, end: datetime | None):
    """Apply optional inclusive window bounds to *stmt*."""
    if start is not None:
        stmt = stmt.where(column >= start)
    if end is not None:
        stmt = stmt.where(column <= end)
    return stmt


class SqlAnalyticsSource:
    """:class:`AnalyticsSource` backed by the platform database."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def fetch_events(
        self, org_id: str, start: datetime | None, end: datetime | None
    ) -> list[EventRow]:
        stmt = _within(
            select(Post.id, Post.title, Post.created_at).where(
                Post.org_id == org_id, Post.post_type == "event"
            ),
            Post.created_at,
            start,
            end,
        ).order_by(Post.created_at, Post.id)
        with get_session(self._engine) as session:
            rows = session.execute(stmt).all()
        logger.debug("Fetched %d event posts for org %s", len(rows), org_id)
        return [EventRow(id=r.id, title=r.title, created_at=r.created_at) for r in rows]

    def fetch_active_members(self, org_id: str) -> list[MemberRow]:
        stmt = (
            select(OrgMember.user_id, OrgMember.is_active)
            .where(OrgMember.org_id == org_id, OrgMember.is_active.is_(True))
            .order_by(OrgMember.joined_at, OrgMember.user_id)
        )
        with get_session(self._engine) as session:
            rows = session.execute(stmt).all()
        logger.debug("Fetched %d active members for org %s", len(rows), org_id)
        return [MemberRow(user_id=r.user_id, is_active=r.is_active) for r in rows]

    def fetch_rsvps(
        self, event_ids: Sequence[str], start: datetime | None, end: datetime | None
    ) -> list[RsvpRow]:
        if not event_ids:
            return []
        stmt = _within(
            select(Rsvp.user_id, Rsvp.post_id, Rsvp.created_at).where(
                Rsvp.post_id.in_(list(event_ids))
            ),
            Rsvp.created_at,
            start,
            end,
        )
        with get_session(self._engine) as session:
            rows = session.execute(stmt).all()
        return [
            RsvpRow(user_id=r.user_id, post_id=r.post_id, created_at=r.created_at)
            for r in rows
        ]

    def fetch_interactions(
        self, org_id: str, start: datetime | None, end: datetime | None
    ) -> list[InteractionRow]:
        stmt = _within(
            select(RewardLog.user_id, RewardLog.action, Post.org_id, RewardLog.created_at)
            .join(Post, Post.id == RewardLog.post_id)
            .where(Post.org_id == org_id),
            RewardLog.created_at,
            start,
            end,
        ).order_by(RewardLog.created_at, RewardLog.id)
        with get_session(self._engine) as session:
            rows = session.execute(stmt).all()
        logger.debug("Fetched %d interaction rows for org %s", len(rows), org_id)
        return [
            InteractionRow(
                user_id=r.user_id, action=r.action, org_id=r.org_id, created_at=r.created_at
            )
            for r in rows
        ]
