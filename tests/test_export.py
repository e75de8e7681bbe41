"""
tests/test_export.py — CSV Export Tests
========================================
"""

from __future__ import annotations

import csv
import io

from engage.constants import CSV_HEADER, EMPTY_EXPORT_PLACEHOLDER
from engage.engine.records import EventFeatureRecord
from engage.services.export import export_to_csv


def _record(user: str, event: str, name: str = "Meetup", rate: float = 50.0) -> EventFeatureRecord:
    return EventFeatureRecord(
        anonymized_user_id=user,
        event_id=event,
        event_name=name,
        total_views=3,
        total_likes=2,
        total_polls=1,
        total_feedbacks=0,
        total_rsvps=1,
        total_registers=0,
        total_evaluations=1,
        rsvp_rate=rate,
        engagement_score=73,
        has_rsvp=1,
    )


class TestExportToCsv:
    def test_three_rows_give_four_lines(self):
        text = export_to_csv([_record("User_1", "e1"), _record("User_1", "e2"), _record("User_2", "e1")])
        lines = text.split("\n")
        assert len(lines) == 4
        for line in lines:
            fields = line.split('","')
            assert len(fields) == 13
            assert line.startswith('"') and line.endswith('"')

    def test_header(self):
        text = export_to_csv([_record("User_1", "e1")])
        header = next(csv.reader(io.StringIO(text)))
        assert tuple(header) == CSV_HEADER
        assert len(header) == 13

    def test_rate_has_two_decimals(self):
        text = export_to_csv([_record("User_1", "e1", rate=100 / 3)])
        row = list(csv.reader(io.StringIO(text)))[1]
        assert row[10] == "33.33"
        assert row[0] == "User_1"
        assert row[-1] == "1"

    def test_quotes_in_event_name_are_escaped(self):
        text = export_to_csv([_record("User_1", "e1", name='Say "hi" night')])
        row = list(csv.reader(io.StringIO(text)))[1]
        assert row[2] == 'Say "hi" night'

    def test_empty_dataset_placeholder(self):
        assert export_to_csv([]) == EMPTY_EXPORT_PLACEHOLDER
