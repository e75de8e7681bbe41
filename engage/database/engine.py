"""
engage.database.engine — Database Connection & Session Helper
==============================================================

**Why this file exists:**
The schema belongs to the platform, and analytics must never write to it.
Every session handed out here is rolled back on exit, so a stray
``session.add()`` in a query helper cannot leak into the database.

The analytics engine is a read-only consumer of the platform database.
This module builds the SQLAlchemy engine from ``DATABASE_URL`` and hands
out short-lived sessions; it never creates or migrates tables (the
platform owns the schema).

Usage::

    from engage.database.engine import create_db_engine, get_session

    engine = create_db_engine()          # reads DATABASE_URL from .env

    with get_session(engine) as session:
        rows = session.execute(select(Post)).scalars().all()
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine(url: str | None = None) -> Engine:
    """Build a SQLAlchemy :class:`Engine` for the platform database.

    *url* defaults to the ``DATABASE_URL`` environment variable.  The pool
    is small: one analysis runs a handful of queries and exits.

    Raises
    ------
    RuntimeError
        If no URL is given and ``DATABASE_URL`` is not set.
    """
    url = url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and set a valid PostgreSQL URL."
        )

    engine = create_engine(
        url,
        echo=False,
        pool_pre_ping=True,   # Reconnect stale connections automatically
        pool_recycle=3600,    # Recycle connections after 1 hour
    )
    logger.info("Database engine created → %s", engine.url.host or engine.url.drivername)
    return engine


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine) -> Iterator[Session]:
    """Yield a read-only :class:`Session`.

    The session is always rolled back on exit: analytics never writes, so
    there is nothing to commit and any accidental mutation is discarded.
    """
    session = Session(engine)
    try:
        yield session
    finally:
        session.rollback()
        session.close()
