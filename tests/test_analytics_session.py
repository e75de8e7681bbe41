"""
tests/test_analytics_session.py — End-to-End Analysis Run
==========================================================

Drives :class:`AnalyticsSession` over the seeded SQLite organization and
over in-memory sources.
"""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import patch

import pytest
from conftest import NOW, ORG_ID, make_source

from engage.config import AnalyticsConfig
from engage.database.source import SqlAnalyticsSource
from engage.engine.records import InteractionRow, TimeWindow
from engage.errors import DataUnavailable, InsufficientActivity, TrainingFailure
from engage.services.analytics_session import AnalyticsSession

CONFIG = AnalyticsConfig(seed=0)


@pytest.fixture
def sql_session(seeded_engine) -> AnalyticsSession:
    return AnalyticsSession(
        SqlAnalyticsSource(seeded_engine), ORG_ID, TimeWindow.parse("90d"), CONFIG
    )


@pytest.fixture
def trained(sql_session) -> AnalyticsSession:
    sql_session.train_models(now=NOW)
    return sql_session


# ---------------------------------------------------------------------------
# Scenario: 12 members, 2 events, 15 interaction rows, 6 RSVPs
# ---------------------------------------------------------------------------
class TestSeededOrganization:
    def test_feature_table_size(self, sql_session):
        records = sql_session.fetch_user_data(now=NOW)
        assert len(records) == 24
        assert sum(r.has_rsvp for r in records) == 6
        assert all(r.predicted_rsvp_probability is None for r in records)

    def test_user_features(self, sql_session):
        records = sql_session.fetch_user_data(now=NOW)
        first = [r for r in records if r.anonymized_user_id == "User_1"]
        assert {r.event_name for r in first} == {"Kickoff", "Event e2"}
        assert first[0].total_likes == 1
        assert first[0].total_rsvps == 1
        assert first[0].rsvp_rate == pytest.approx(50.0)
        assert first[0].engagement_score == 5

    def test_predictions(self, trained):
        predictions = trained.get_user_predictions()
        assert len(predictions) == 12
        probs = [p.predicted_probability for p in predictions]
        assert all(0.0 <= p <= 1.0 for p in probs)
        assert probs == sorted(probs, reverse=True)
        assert {p.anonymized_user_id for p in predictions} == {f"User_{i}" for i in range(1, 13)}

    def test_records_are_populated(self, trained):
        records = trained.get_all_user_features()
        assert len(records) == 24
        assert all(r.cluster in (0, 1, 2) for r in records)
        assert all(0.0 <= r.predicted_rsvp_probability <= 1.0 for r in records)

    def test_prediction_is_average_of_event_rows(self, trained):
        records = trained.get_all_user_features()
        by_user = {p.anonymized_user_id: p.predicted_probability for p in trained.get_user_predictions()}
        rows = [r.predicted_rsvp_probability for r in records if r.anonymized_user_id == "User_3"]
        assert by_user["User_3"] == pytest.approx(sum(rows) / len(rows))

    def test_thresholds_and_bands(self, trained):
        thresholds = trained.get_dynamic_thresholds()
        assert thresholds.high >= thresholds.medium
        for prediction in trained.get_user_predictions():
            if prediction.predicted_probability >= thresholds.high:
                assert prediction.likelihood == "high"
            elif prediction.predicted_probability < thresholds.medium:
                assert prediction.likelihood == "low"

    def test_clustered_users(self, trained):
        clusters = trained.get_clustered_users()
        assert set(clusters) == {0, 1, 2}
        assert sum(len(members) for members in clusters.values()) == 12
        for cluster, members in clusters.items():
            assert all(m.cluster == cluster for m in members)

    def test_cluster_summaries(self, trained):
        summaries = trained.get_cluster_summaries()
        assert [s.cluster for s in summaries] == [0, 1, 2]
        assert sum(s.member_count for s in summaries) == 12
        assert isinstance(trained.cluster_order_consistent, bool)

    def test_data_quality(self, trained):
        report = trained.get_data_quality_report()
        assert report.quality == "poor"  # 15 interactions / 12 users
        assert report.user_count == 12

    def test_export(self, trained):
        lines = trained.export_to_csv().split("\n")
        assert len(lines) == 25
        assert lines[0].startswith('"User ID"')

    def test_insights_are_static(self, trained):
        assert set(trained.get_cluster_insights()) == {0, 1, 2}


# ---------------------------------------------------------------------------
# Progress reporting
# ---------------------------------------------------------------------------
class TestProgress:
    def test_callback_covers_whole_run(self, sql_session):
        updates: list[tuple[float, str]] = []
        sql_session.train_models(lambda f, m: updates.append((f, m)), now=NOW)
        fractions = [f for f, _ in updates]
        assert fractions[0] == 0.0
        assert fractions[-1] == 1.0
        assert fractions == sorted(fractions)
        assert updates[-1][1] == "Training complete!"
        epochs = [m for _, m in updates if m.startswith("Logistic regression epoch")]
        assert len(epochs) == 100
        assert epochs[-1] == "Logistic regression epoch 100/100"


# ---------------------------------------------------------------------------
# Failures leave state untouched
# ---------------------------------------------------------------------------
class TestFailures:
    def test_no_events_raises_before_training(self):
        source = make_source()
        source.events = []
        session = AnalyticsSession(source, ORG_ID, config=CONFIG)
        with pytest.raises(DataUnavailable):
            session.train_models()
        assert not session.is_trained
        assert session.get_user_predictions() == []
        assert source.calls == ["events"]

    def test_failed_retrain_keeps_previous_generation(self, trained):
        before = trained.get_user_predictions()
        with pytest.raises(DataUnavailable):
            trained.train_models(now=NOW + timedelta(days=1000))
        assert trained.is_trained
        assert trained.get_user_predictions() == before
        assert len(trained.get_all_user_features()) == 24

    def test_training_failure_keeps_previous_generation(self, trained):
        before = trained.get_user_predictions()
        records = trained.get_all_user_features()
        with patch(
            "engage.services.analytics_session.train_logistic",
            side_effect=TrainingFailure("Logistic regression diverged at epoch 3"),
        ):
            with pytest.raises(TrainingFailure, match="diverged"):
                trained.train_models(now=NOW)
        assert trained.is_trained
        assert trained.get_user_predictions() == before
        assert trained.get_all_user_features() == records

    def test_insufficient_activity_count(self):
        session = AnalyticsSession(make_source(n_members=9), ORG_ID, config=CONFIG)
        with pytest.raises(InsufficientActivity, match="found 9 active"):
            session.train_models()
        assert not session.has_enough_data()

    def test_defaults_before_training(self):
        session = AnalyticsSession(make_source(), ORG_ID)
        assert session.get_dynamic_thresholds().to_dict() == {"high": 0.7, "medium": 0.4}
        assert session.get_clustered_users() == {0: [], 1: [], 2: []}
        assert session.get_cluster_summaries() == []
        assert session.cluster_order_consistent is None
        assert session.export_to_csv() == "No data available"
        assert session.get_data_quality_report().quality == "poor"


# ---------------------------------------------------------------------------
# Session lifecycle
# ---------------------------------------------------------------------------
class TestLifecycle:
    def test_fetch_discards_trained_models(self, trained):
        trained.fetch_user_data(now=NOW)
        assert not trained.is_trained
        assert trained.has_enough_data()
        assert trained.get_user_predictions() == []

    def test_sessions_are_independent(self):
        a = AnalyticsSession(make_source(n_members=12), ORG_ID, config=CONFIG)
        b = AnalyticsSession(make_source(n_members=15), ORG_ID, config=CONFIG)
        a.train_models()
        b.train_models()
        assert len(a.get_user_predictions()) == 12
        assert len(b.get_user_predictions()) == 15

    def test_seeded_runs_match(self):
        a = AnalyticsSession(make_source(), ORG_ID, config=CONFIG)
        b = AnalyticsSession(make_source(), ORG_ID, config=CONFIG)
        a.train_models()
        b.train_models()
        assert a.get_user_predictions() == b.get_user_predictions()

    def test_well_separated_tiers_follow_seed_order(self):
        source = make_source(n_members=30, n_events=4, rsvp_every=1)
        # Three tiers of activity: 1, 15 and 30 evaluations
        source.interactions = [
            InteractionRow(user_id=f"u{i:02d}", action="evaluate", org_id=ORG_ID)
            for i in range(1, 31)
            for _ in range(1 if i <= 10 else 15 if i <= 20 else 30)
        ]
        session = AnalyticsSession(source, ORG_ID, config=CONFIG)
        session.train_models()
        clusters = session.get_clustered_users()
        assert [len(clusters[c]) for c in (0, 1, 2)] == [10, 10, 10]
        assert session.cluster_order_consistent is True
