"""
Engage — Engagement Analytics Engine for Community Organizations
=================================================================
Turns raw per-member interaction logs into engagement features, trains a
small RSVP-likelihood classifier, clusters members into behavior tiers, and
derives insights and export data for organization officers.

Package layout::

    engage/
    ├── config.py          # YAML → typed analytics config
    ├── constants.py       # Action weights, feature columns, CSV header
    ├── errors.py          # AnalyticsError hierarchy
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + session helper
    │   ├── models.py      # Read-only mirror of the platform tables
    │   └── source.py      # AnalyticsSource protocol + SQL adapter
    ├── engine/
    │   ├── records.py     # Row + feature dataclasses, TimeWindow
    │   ├── aggregator.py  # Per-(event, member) feature table
    │   ├── scaler.py      # Standardization (mean / std + ε)
    │   ├── classifier.py  # Logistic regression (Adam, BCE)
    │   ├── clustering.py  # Fixed-seed k-means, k = 3
    │   └── insights.py    # Thresholds, narratives, data quality
    └── services/
        ├── analytics_session.py  # Per-request pipeline owner
        └── export.py             # Quoted CSV export
"""

__version__ = "0.1.0"
