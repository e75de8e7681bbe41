"""
engage.constants — Shared Constants
====================================

Single source of truth for action weights, feature column order and the
export header.  Import from here instead of duplicating in the engine and
services.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Interaction actions (reward_log.action) → counter field on UserAggregate
# ---------------------------------------------------------------------------
ACTION_COUNTERS: dict[str, str] = {
    "view": "total_views",
    "like": "total_likes",
    "poll": "total_polls",
    "feedback": "total_feedbacks",
    "rsvp": "total_rsvps",
    "register": "total_registers",
    "evaluate": "total_evaluations",
}

# Engagement score weights.  RSVPs are deliberately absent: they are the
# label the classifier learns.
ENGAGEMENT_WEIGHTS: dict[str, int] = {
    "total_views": 1,
    "total_likes": 5,
    "total_polls": 10,
    "total_feedbacks": 20,
    "total_registers": 20,
    "total_evaluations": 50,
}

# ---------------------------------------------------------------------------
# Feature spaces (order matters — it is the column order of the matrices)
# ---------------------------------------------------------------------------
CLASSIFIER_FEATURES: tuple[str, ...] = (
    "total_views",
    "total_likes",
    "total_polls",
    "total_feedbacks",
    "total_rsvps",
    "total_registers",
    "total_evaluations",
)

CLUSTER_FEATURES: tuple[str, ...] = ("engagement_score", "rsvp_rate")

# Guard added to every std before division
EPSILON = 1e-8

# ---------------------------------------------------------------------------
# Clustering
# ---------------------------------------------------------------------------
N_CLUSTERS = 3

# Seed centroids in standardized space: low / medium / high engagement
SEED_CENTROIDS: tuple[tuple[float, float], ...] = (
    (-1.0, -1.0),
    (0.0, 0.0),
    (1.0, 1.0),
)

CLUSTER_NAMES: dict[int, str] = {
    0: "Casual Participants",
    1: "Regular Attendees",
    2: "Super Engaged Members",
}

# ---------------------------------------------------------------------------
# Thresholds & data quality
# ---------------------------------------------------------------------------
HIGH_PERCENTILE = 0.67
MEDIUM_PERCENTILE = 0.33

ANONYMIZED_PREFIX = "User_"

# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------
CSV_HEADER: tuple[str, ...] = (
    "User ID",
    "Event ID",
    "Event Name",
    "Total Views",
    "Total Likes",
    "Total Polls",
    "Total Feedbacks",
    "Total RSVPs",
    "Total Registers",
    "Total Evaluations",
    "RSVP Rate (%)",
    "Engagement Score",
    "Has RSVP",
)

EMPTY_EXPORT_PLACEHOLDER = "No data available"
