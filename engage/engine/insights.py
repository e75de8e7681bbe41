"""
engage.engine.insights — Thresholds, Narratives & Data Quality
===============================================================

Presentation-side derivations over model output:

* dynamic likelihood thresholds from the per-member prediction spread,
* the canned narrative for each behavior tier,
* a coarse data-quality grade with suggestions for officers.

The tier narratives are a static lookup keyed by cluster id.  They rely on
the seed-centroid convention (0 = low, 1 = medium, 2 = high engagement),
which :func:`cluster_order_consistent` can check against trained centroids.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field

import numpy as np

from engage.constants import CLUSTER_NAMES, HIGH_PERCENTILE, MEDIUM_PERCENTILE

__all__ = [
    "CLUSTER_INSIGHTS",
    "ClusterInsight",
    "DataQualityReport",
    "Thresholds",
    "cluster_order_consistent",
    "data_quality_report",
    "dynamic_thresholds",
    "likelihood_band",
]


# ---------------------------------------------------------------------------
# Dynamic thresholds
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Thresholds:
    high: float
    medium: float

    def to_dict(self) -> dict[str, float]:
        return {"high": self.high, "medium": self.medium}


def _percentile_value(sorted_values: Sequence[float], fraction: float) -> float:
    index = min(int(math.floor(len(sorted_values) * fraction)), len(sorted_values) - 1)
    return float(sorted_values[index])


def dynamic_thresholds(
    probabilities: Sequence[float],
    *,
    fallback_high: float = 0.7,
    fallback_medium: float = 0.4,
) -> Thresholds:
    """``high`` = 67th-percentile value, ``medium`` = 33rd-percentile value.

    Falls back to ``(fallback_high, fallback_medium)`` when there are no
    predictions.
    """
    if len(probabilities) == 0:
        return Thresholds(high=fallback_high, medium=fallback_medium)
    ordered = sorted(float(p) for p in probabilities)
    return Thresholds(
        high=_percentile_value(ordered, HIGH_PERCENTILE),
        medium=_percentile_value(ordered, MEDIUM_PERCENTILE),
    )


def likelihood_band(probability: float, thresholds: Thresholds) -> str:
    """Bucket a probability into ``high`` / ``medium`` / ``low``."""
    if probability >= thresholds.high:
        return "high"
    if probability >= thresholds.medium:
        return "medium"
    return "low"


# ---------------------------------------------------------------------------
# Cluster narratives (static, not learned from data)
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ClusterInsight:
    name: str
    description: str
    characteristics: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


CLUSTER_INSIGHTS: dict[int, ClusterInsight] = {
    0: ClusterInsight(
        name=CLUSTER_NAMES[0],
        description=(
            "Members who drop by occasionally. They see announcements but "
            "rarely act on them."
        ),
        characteristics=[
            "Low engagement score, mostly post views",
            "Rarely RSVP to events",
            "Seldom answer polls or leave feedback",
        ],
        recommendations=[
            "Send short, personal event reminders",
            "Host low-commitment activities such as quick polls",
            "Pair them with an active member as a buddy",
        ],
    ),
    1: ClusterInsight(
        name=CLUSTER_NAMES[1],
        description=(
            "Steady members who show up to a fair share of events and "
            "interact with posts from time to time."
        ),
        characteristics=[
            "Moderate engagement score",
            "RSVP to some events",
            "Like and answer polls now and then",
        ],
        recommendations=[
            "Invite them to help plan upcoming events",
            "Ask for feedback after each event they attend",
            "Recognize consistent attendance publicly",
        ],
    ),
    2: ClusterInsight(
        name=CLUSTER_NAMES[2],
        description=(
            "The core of the organization. They attend, register, evaluate "
            "and give feedback more than anyone else."
        ),
        characteristics=[
            "High engagement score across every interaction type",
            "RSVP to most events",
            "Frequently submit evaluations and feedback",
        ],
        recommendations=[
            "Offer officer or committee roles",
            "Ask them to mentor newer members",
            "Reward them with early access or special recognition",
        ],
    ),
}


def cluster_order_consistent(raw_centroids: np.ndarray) -> bool:
    """True when centroid engagement scores rise with the cluster id.

    *raw_centroids* is the ``(3, 2)`` centroid matrix de-standardized back to
    (engagement score, RSVP rate).  A ``False`` result means the narrative
    labels may describe the wrong group for this data.
    """
    scores = np.asarray(raw_centroids, dtype=np.float64)[:, 0]
    return bool(np.all(np.diff(scores) >= 0))


# ---------------------------------------------------------------------------
# Data quality
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class DataQualityReport:
    quality: str  # good / fair / poor
    message: str
    suggestions: list[str] = field(default_factory=list)
    user_count: int = 0
    avg_interactions_per_user: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def data_quality_report(user_count: int, total_interactions: int) -> DataQualityReport:
    """Grade the dataset behind a run.

    good — ≥ 20 users and ≥ 5 interactions per user on average
    fair — ≥ 10 users and ≥ 2 interactions per user on average
    poor — anything else
    """
    avg = total_interactions / user_count if user_count > 0 else 0.0

    if user_count >= 20 and avg >= 5:
        return DataQualityReport(
            quality="good",
            message=(
                f"Good data quality: {user_count} active users averaging "
                f"{avg:.1f} interactions each. Predictions should be reliable."
            ),
            suggestions=[
                "Re-run the analysis after major events to track changes",
            ],
            user_count=user_count,
            avg_interactions_per_user=avg,
        )
    if user_count >= 10 and avg >= 2:
        return DataQualityReport(
            quality="fair",
            message=(
                f"Fair data quality: {user_count} active users averaging "
                f"{avg:.1f} interactions each. Treat predictions as indicative."
            ),
            suggestions=[
                "Use a longer time window to include more activity",
                "Encourage members to RSVP and leave feedback on events",
            ],
            user_count=user_count,
            avg_interactions_per_user=avg,
        )
    return DataQualityReport(
        quality="poor",
        message=(
            f"Poor data quality: only {user_count} active users averaging "
            f"{avg:.1f} interactions each. Predictions may be unreliable."
        ),
        suggestions=[
            "Select the all-time window",
            "Post more events and polls to generate activity",
            "Wait until more members have interacted before re-running",
        ],
        user_count=user_count,
        avg_interactions_per_user=avg,
    )
