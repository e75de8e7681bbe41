"""
engage.services.export — Feature Table CSV Export
==================================================

Serializes the feature table to comma-separated text with every field
quoted.  An empty table produces a placeholder string instead of an empty
file so downloads are never blank.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable

from engage.constants import CSV_HEADER, EMPTY_EXPORT_PLACEHOLDER
from engage.engine.records import EventFeatureRecord


def _row(record: EventFeatureRecord) -> list[str]:
    return [
        record.anonymized_user_id,
        record.event_id,
        record.event_name,
        str(record.total_views),
        str(record.total_likes),
        str(record.total_polls),
        str(record.total_feedbacks),
        str(record.total_rsvps),
        str(record.total_registers),
        str(record.total_evaluations),
        f"{record.rsvp_rate:.2f}",
        str(record.engagement_score),
        str(record.has_rsvp),
    ]


def export_to_csv(records: Iterable[EventFeatureRecord]) -> str:
    """Return the header plus one line per record, joined by ``\\n``."""
    rows = [_row(r) for r in records]
    if not rows:
        return EMPTY_EXPORT_PLACEHOLDER

    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    writer.writerows(rows)
    return buf.getvalue().rstrip("\n")
