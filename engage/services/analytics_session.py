"""
engage.services.analytics_session — One Analysis Run, End to End
=================================================================

**Why this file exists:**
Two dashboards analysing different organizations, or different windows,
must not see each other's models.  A process-wide singleton would make the
last request win.  Each request builds its own session instead.

An :class:`AnalyticsSession` is created per analysis request and owns its
own feature table, scaler params and trained models.  There is no shared
module-level state, so independent sessions never interfere.

Lifecycle::

    session = AnalyticsSession(SqlAnalyticsSource(engine), org_id, TimeWindow.parse("90d"))
    session.train_models(lambda fraction, msg: print(f"{fraction:.0%} {msg}"))

    session.get_user_predictions()
    session.get_dynamic_thresholds()
    session.get_clustered_users()
    session.export_to_csv()

A run either completes and replaces the session's state in one step, or
raises and leaves the previous state exactly as it was.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import TYPE_CHECKING

import numpy as np

from engage.config import AnalyticsConfig
from engage.constants import CLASSIFIER_FEATURES, CLUSTER_FEATURES, CLUSTER_NAMES, N_CLUSTERS
from engage.engine.aggregator import FeatureTable, build_feature_table
from engage.engine.classifier import ClassifierModel, train_logistic
from engage.engine.clustering import ClusterModel, kmeans
from engage.engine.insights import (
    CLUSTER_INSIGHTS,
    DataQualityReport,
    Thresholds,
    cluster_order_consistent,
    data_quality_report,
    dynamic_thresholds,
    likelihood_band,
)
from engage.engine.records import EventFeatureRecord, TimeWindow, UserPrediction
from engage.engine.scaler import ScalerParams, fit_transform
from engage.services.export import export_to_csv

if TYPE_CHECKING:
    from engage.database.source import AnalyticsSource

logger = logging.getLogger(__name__)

# (overall fraction 0..1, status message) → None
ProgressCallback = Callable[[float, str], None]


@dataclass(frozen=True, slots=True)
class ClusterSummary:
    """Per-tier statistics in raw units (for charts and the report)."""

    cluster: int
    name: str
    member_count: int
    avg_engagement_score: float
    avg_rsvp_rate: float
    centroid_engagement_score: float
    centroid_rsvp_rate: float


@dataclass(slots=True)
class _TrainedState:
    classifier: ClassifierModel
    classifier_scaler: ScalerParams
    clusters: ClusterModel
    cluster_scaler: ScalerParams
    predictions: list[UserPrediction]
    thresholds: Thresholds
    order_consistent: bool
    raw_centroids: np.ndarray = field(repr=False)


class AnalyticsSession:
    """Per-request owner of one analytics pipeline generation."""

    def __init__(
        self,
        source: AnalyticsSource,
        org_id: str,
        window: TimeWindow | None = None,
        config: AnalyticsConfig | None = None,
    ) -> None:
        self._source = source
        self._org_id = org_id
        self._window = window or TimeWindow()
        self._config = config or AnalyticsConfig()

        self._table: FeatureTable | None = None
        self._records: list[EventFeatureRecord] = []
        self._trained: _TrainedState | None = None

    # ------------------------------------------------------------------
    # Data loading
    # ------------------------------------------------------------------
    def _build_table(self, now: datetime | None) -> FeatureTable:
        return build_feature_table(
            self._source,
            self._org_id,
            self._window,
            min_active_users=self._config.min_active_users,
            now=now,
        )

    def fetch_user_data(self, *, now: datetime | None = None) -> list[EventFeatureRecord]:
        """Load a fresh feature table without training.

        On success the previous table and models are discarded; on failure
        the session is left untouched.
        """
        table = self._build_table(now)
        self._table = table
        self._records = list(table.records)
        self._trained = None
        return list(self._records)

    def has_enough_data(self) -> bool:
        return (
            self._table is not None
            and self._table.active_user_count >= self._config.min_active_users
        )

    def get_all_user_features(self) -> list[EventFeatureRecord]:
        return list(self._records)

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------
    def train_models(
        self,
        progress_callback: ProgressCallback | None = None,
        *,
        now: datetime | None = None,
    ) -> None:
        """Aggregate, standardize, fit both models and derive predictions.

        Raises
        ------
        DataUnavailable, InsufficientMembers, InsufficientActivity
            From the aggregation step, before any model work starts.
        TrainingFailure
            If the classifier diverges.
        """
        def report(fraction: float, message: str) -> None:
            if progress_callback is not None:
                progress_callback(round(fraction, 4), message)

        cfg = self._config
        table = self._build_table(now)

        report(0.0, "Preparing data...")

        # Logistic regression — event-level rows
        raw_x = np.array(
            [[getattr(r, name) for name in CLASSIFIER_FEATURES] for r in table.records],
            dtype=np.float64,
        )
        labels = np.array([r.has_rsvp for r in table.records], dtype=np.float64)
        classifier_scaler, scaled_x = fit_transform(raw_x)

        report(0.2, "Training logistic regression...")
        classifier = train_logistic(
            scaled_x,
            labels,
            epochs=cfg.epochs,
            learning_rate=cfg.learning_rate,
            batch_size=cfg.batch_size,
            seed=cfg.seed,
            on_epoch=lambda frac, _loss: report(
                0.2 + 0.4 * frac,
                f"Logistic regression epoch {round(frac * cfg.epochs)}/{cfg.epochs}",
            ),
        )

        # K-means — one point per member, in anonymized-id order
        report(0.6, "Preparing K-means data...")
        user_ids = list(table.aggregates)
        raw_points = np.array(
            [
                [getattr(table.aggregates[uid], name) for name in CLUSTER_FEATURES]
                for uid in user_ids
            ],
            dtype=np.float64,
        )
        cluster_scaler, scaled_points = fit_transform(raw_points)

        report(0.7, "Training K-means...")
        clusters = kmeans(
            scaled_points,
            iterations=cfg.kmeans_iterations,
            on_iteration=lambda frac: report(0.7 + 0.2 * frac, "Clustering members..."),
        )

        report(0.9, "Assigning predictions and clusters...")
        user_cluster = {uid: int(label) for uid, label in zip(user_ids, clusters.labels)}
        probabilities = classifier.predict_proba(classifier_scaler.transform(raw_x))
        records = [
            replace(
                record,
                cluster=user_cluster[record.anonymized_user_id],
                predicted_rsvp_probability=float(prob),
            )
            for record, prob in zip(table.records, probabilities)
        ]
        predictions, thresholds = self._aggregate_predictions(records, table)

        raw_centroids = cluster_scaler.inverse_transform(clusters.centroids)
        consistent = cluster_order_consistent(raw_centroids)
        if not consistent:
            logger.warning(
                "Cluster centroids are not ordered by engagement score (%s); "
                "tier narratives may describe the wrong group for org %s",
                np.round(raw_centroids[:, 0], 2).tolist(), self._org_id,
            )

        # Commit the new generation in one step
        self._table = table
        self._records = records
        self._trained = _TrainedState(
            classifier=classifier,
            classifier_scaler=classifier_scaler,
            clusters=clusters,
            cluster_scaler=cluster_scaler,
            predictions=predictions,
            thresholds=thresholds,
            order_consistent=consistent,
            raw_centroids=raw_centroids,
        )
        report(1.0, "Training complete!")
        logger.info(
            "Analysis complete for org %s — %d members, %d rows",
            self._org_id, len(user_ids), len(records),
        )

    def _aggregate_predictions(
        self, records: list[EventFeatureRecord], table: FeatureTable
    ) -> tuple[list[UserPrediction], Thresholds]:
        """Average each member's event-level probabilities."""
        per_user: dict[str, list[float]] = {}
        clusters: dict[str, int | None] = {}
        for record in records:
            if record.predicted_rsvp_probability is None:
                continue
            per_user.setdefault(record.anonymized_user_id, []).append(
                record.predicted_rsvp_probability
            )
            clusters[record.anonymized_user_id] = record.cluster

        averaged = {uid: sum(ps) / len(ps) for uid, ps in per_user.items()}
        thresholds = dynamic_thresholds(
            list(averaged.values()),
            fallback_high=self._config.fallback_high_threshold,
            fallback_medium=self._config.fallback_medium_threshold,
        )
        predictions = [
            UserPrediction(
                anonymized_user_id=uid,
                predicted_probability=prob,
                cluster=clusters[uid],
                engagement_score=table.aggregates[uid].engagement_score,
                rsvp_rate=table.aggregates[uid].rsvp_rate,
                likelihood=likelihood_band(prob, thresholds),
            )
            for uid, prob in averaged.items()
        ]
        predictions.sort(key=lambda p: p.predicted_probability, reverse=True)
        return predictions, thresholds

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------
    @property
    def is_trained(self) -> bool:
        return self._trained is not None

    @property
    def cluster_order_consistent(self) -> bool | None:
        """``None`` before training; see :func:`cluster_order_consistent`."""
        return self._trained.order_consistent if self._trained else None

    def get_user_predictions(self) -> list[UserPrediction]:
        """Per-member averaged probabilities, highest first."""
        return list(self._trained.predictions) if self._trained else []

    def get_dynamic_thresholds(self) -> Thresholds:
        if self._trained is None:
            return dynamic_thresholds(
                [],
                fallback_high=self._config.fallback_high_threshold,
                fallback_medium=self._config.fallback_medium_threshold,
            )
        return self._trained.thresholds

    def get_clustered_users(self) -> dict[int, list[UserPrediction]]:
        grouped: dict[int, list[UserPrediction]] = {c: [] for c in range(N_CLUSTERS)}
        for prediction in self.get_user_predictions():
            if prediction.cluster is not None:
                grouped[prediction.cluster].append(prediction)
        return grouped

    def get_cluster_insights(self) -> dict[int, dict]:
        return {cluster: insight.to_dict() for cluster, insight in CLUSTER_INSIGHTS.items()}

    def get_cluster_summaries(self) -> list[ClusterSummary]:
        if self._trained is None:
            return []
        summaries = []
        for cluster, members in self.get_clustered_users().items():
            centroid = self._trained.raw_centroids[cluster]
            summaries.append(
                ClusterSummary(
                    cluster=cluster,
                    name=CLUSTER_NAMES[cluster],
                    member_count=len(members),
                    avg_engagement_score=(
                        float(np.mean([m.engagement_score for m in members])) if members else 0.0
                    ),
                    avg_rsvp_rate=(
                        float(np.mean([m.rsvp_rate for m in members])) if members else 0.0
                    ),
                    centroid_engagement_score=float(centroid[0]),
                    centroid_rsvp_rate=float(centroid[1]),
                )
            )
        return summaries

    def get_data_quality_report(self) -> DataQualityReport:
        if self._table is None:
            return data_quality_report(0, 0)
        return data_quality_report(
            self._table.active_user_count, self._table.total_interactions
        )

    def export_to_csv(self) -> str:
        return export_to_csv(self._records)
