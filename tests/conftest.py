"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from engage.database.models import Base, OrgMember, Post, RewardLog, Rsvp
from engage.engine.records import EventRow, InteractionRow, MemberRow, RsvpRow

ORG_ID = "org-1"
NOW = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)


# ---------------------------------------------------------------------------
# In-memory collaborator
# ---------------------------------------------------------------------------
@dataclass
class FakeSource:
    """In-memory :class:`AnalyticsSource` that records every call."""

    events: list[EventRow] = field(default_factory=list)
    members: list[MemberRow] = field(default_factory=list)
    rsvps: list[RsvpRow] = field(default_factory=list)
    interactions: list[InteractionRow] = field(default_factory=list)
    calls: list[str] = field(default_factory=list)

    def fetch_events(self, org_id, start, end):
        self.calls.append("events")
        return list(self.events)

    def fetch_active_members(self, org_id):
        self.calls.append("members")
        return list(self.members)

    def fetch_rsvps(self, event_ids, start, end):
        self.calls.append("rsvps")
        return [r for r in self.rsvps if r.post_id in set(event_ids)]

    def fetch_interactions(self, org_id, start, end):
        self.calls.append("interactions")
        return list(self.interactions)


def make_source(
    n_members: int = 12,
    n_events: int = 2,
    actions: tuple[str, ...] = ("view", "like", "poll", "feedback", "rsvp", "register", "evaluate"),
    rsvp_every: int = 2,
) -> FakeSource:
    """Build a source where member *i* performs ``i`` interactions.

    Members whose index is a multiple of ``rsvp_every`` RSVP to every event.
    """
    source = FakeSource()
    source.events = [EventRow(id=f"e{j}", title=f"Meetup {j}") for j in range(1, n_events + 1)]
    source.members = [MemberRow(user_id=f"u{i:02d}") for i in range(1, n_members + 1)]
    for i in range(1, n_members + 1):
        for k in range(i):
            source.interactions.append(
                InteractionRow(user_id=f"u{i:02d}", action=actions[k % len(actions)], org_id=ORG_ID)
            )
        if i % rsvp_every == 0:
            for event in source.events:
                source.rsvps.append(RsvpRow(user_id=f"u{i:02d}", post_id=event.id))
    return source


@pytest.fixture
def fake_source() -> FakeSource:
    return make_source()


# ---------------------------------------------------------------------------
# SQLite-backed platform database
# ---------------------------------------------------------------------------
@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with the platform read-model tables.

    Uses StaticPool so every session shares the same in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def seeded_engine(db_engine: Engine) -> Engine:
    """Org with 12 active members, 2 events, 15 interaction rows and 6 RSVPs.

    Also contains noise the engine must ignore: an inactive member, a second
    organization, a non-event post in the window and an old event.
    """
    created = NOW - timedelta(days=5)
    with Session(db_engine) as session:
        session.add_all([
            Post(id="e1", org_id=ORG_ID, title="Kickoff", post_type="event", created_at=created),
            Post(id="e2", org_id=ORG_ID, title=None, post_type="event", created_at=created),
            Post(id="p1", org_id=ORG_ID, title="Lunch poll", post_type="poll", created_at=created),
            Post(id="old", org_id=ORG_ID, title="Old", post_type="event",
                 created_at=NOW - timedelta(days=200)),
            Post(id="x1", org_id="org-2", title="Elsewhere", post_type="event", created_at=created),
        ])
        for i in range(1, 13):
            session.add(OrgMember(org_id=ORG_ID, user_id=f"u{i:02d}", is_active=True,
                                  joined_at=NOW - timedelta(days=100 - i)))
        session.add(OrgMember(org_id=ORG_ID, user_id="ghost", is_active=False,
                              joined_at=NOW - timedelta(days=300)))

        # 15 interaction rows: one per member plus three extras
        actions = ["view", "like", "poll", "feedback", "register", "evaluate"]
        for i in range(1, 13):
            session.add(RewardLog(user_id=f"u{i:02d}", post_id="e1" if i % 2 else "p1",
                                  action=actions[i % len(actions)], created_at=created))
        session.add_all([
            RewardLog(user_id="u01", post_id="e1", action="rsvp", created_at=created),
            RewardLog(user_id="u02", post_id="e2", action="rsvp", created_at=created),
            RewardLog(user_id="u03", post_id="e2", action="evaluate", created_at=created),
            RewardLog(user_id="u04", post_id="x1", action="view", created_at=created),
        ])

        # 6 RSVPs
        for user_id, post_id in [("u01", "e1"), ("u02", "e1"), ("u02", "e2"),
                                 ("u03", "e1"), ("u05", "e2"), ("u07", "e2")]:
            session.add(Rsvp(user_id=user_id, post_id=post_id, created_at=created))
        session.commit()
    return db_engine
