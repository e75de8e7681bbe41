"""
engage.database.models — SQLAlchemy 2.0 Read Models
====================================================

Read-only mirror of the community platform tables the analytics engine
consumes.  The platform owns the schema and every write; these mappings
exist so the engine can issue typed ``select()`` queries.

Tables:
- posts        — Organization posts (only ``post_type='event'`` is analyzed)
- rsvps        — Member RSVPs to event posts
- org_members  — Organization membership with an active flag
- reward_log   — Append-only interaction journal (view, like, poll, …)
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all platform read models."""


# ---------------------------------------------------------------------------
# Posts — events, polls, forms … (UUID string keys)
# ---------------------------------------------------------------------------
class Post(Base):
    __tablename__ = "posts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    org_id: Mapped[str] = mapped_column(String(36), nullable=False)
    title: Mapped[str | None] = mapped_column(String(255), default=None)
    post_type: Mapped[str] = mapped_column(String(20), nullable=False)  # event, poll, form …
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_posts_org_type_created", "org_id", "post_type", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Post id={self.id} type={self.post_type} title={self.title!r}>"


# ---------------------------------------------------------------------------
# RSVPs — one row per (member, event post)
# ---------------------------------------------------------------------------
class Rsvp(Base):
    __tablename__ = "rsvps"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Rsvp user={self.user_id} post={self.post_id}>"


# ---------------------------------------------------------------------------
# OrgMember — membership rows; only ``is_active`` members are analyzed
# ---------------------------------------------------------------------------
class OrgMember(Base):
    __tablename__ = "org_members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[str] = mapped_column(String(36), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_org_members_org_active", "org_id", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<OrgMember org={self.org_id} user={self.user_id} active={self.is_active}>"


# ---------------------------------------------------------------------------
# RewardLog — the interaction journal; org scoping goes through the post
# ---------------------------------------------------------------------------
class RewardLog(Base):
    __tablename__ = "reward_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_reward_log_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<RewardLog user={self.user_id} action={self.action}>"
