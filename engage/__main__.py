"""
engage.__main__ — Entry point for ``python -m engage``
=======================================================

Wiring:
1. Load .env (``DATABASE_URL``).
2. Load analytics.yaml (tuning), falling back to defaults when absent.
3. Create the SQLAlchemy engine.
4. Run one analysis for the organization and window given on the command line.
5. Print predictions, tiers and the data-quality report; optionally write the CSV.

Run with::

    python -m engage <org-id> --window 90d --csv features.csv
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

from engage.config import AnalyticsConfig, load_config
from engage.database.engine import create_db_engine
from engage.database.source import SqlAnalyticsSource
from engage.engine.records import TimeWindow, WindowKind
from engage.errors import AnalyticsError
from engage.services.analytics_session import AnalyticsSession

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("engage")


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="python -m engage",
        description="Run the engagement analytics pipeline for one organization.",
    )
    parser.add_argument("org_id", help="Organization id to analyze")
    parser.add_argument(
        "--window",
        choices=[k.value for k in WindowKind],
        default=WindowKind.ALL_TIME.value,
        help="Analysis window (default: all)",
    )
    parser.add_argument("--start", type=datetime.fromisoformat, help="Custom window start (ISO date)")
    parser.add_argument("--end", type=datetime.fromisoformat, help="Custom window end (ISO date)")
    parser.add_argument("--config", default="analytics.yaml", help="Path to analytics.yaml")
    parser.add_argument("--csv", type=Path, help="Write the feature table to this file")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Bootstrap and run one analysis.  Returns the process exit code."""
    args = _parse_args(argv)

    # 1. Environment variables (secrets).
    load_dotenv()

    # 2. Tuning.
    if Path(args.config).exists():
        cfg = load_config(args.config)
    else:
        logger.info("No %s found — using default analytics settings", args.config)
        cfg = AnalyticsConfig()

    # 3. Database.
    engine = create_db_engine()

    # 4. Analysis.
    try:
        window = TimeWindow.parse(args.window, args.start, args.end)
    except ValueError as exc:
        logger.error("Invalid window: %s", exc)
        return 2

    session = AnalyticsSession(SqlAnalyticsSource(engine), args.org_id, window, cfg)
    try:
        session.train_models(
            lambda fraction, message: logger.debug("[%3.0f%%] %s", fraction * 100, message)
        )
    except AnalyticsError as exc:
        logger.error("Analysis failed: %s", exc)
        return 1

    # 5. Report.
    thresholds = session.get_dynamic_thresholds()
    print(f"Thresholds: high={thresholds.high:.3f} medium={thresholds.medium:.3f}")
    for prediction in session.get_user_predictions():
        print(
            f"  {prediction.anonymized_user_id:<10} "
            f"{prediction.predicted_probability:6.3f}  {prediction.likelihood:<6} "
            f"cluster={prediction.cluster}"
        )
    insights = session.get_cluster_insights()
    for summary in session.get_cluster_summaries():
        print(
            f"[{summary.cluster}] {summary.name}: {summary.member_count} members — "
            f"{insights[summary.cluster]['description']}"
        )
    if session.cluster_order_consistent is False:
        print("Note: tier labels may not match centroid engagement ordering for this data.")

    quality = session.get_data_quality_report()
    print(f"Data quality: {quality.quality} — {quality.message}")
    for suggestion in quality.suggestions:
        print(f"  • {suggestion}")

    if args.csv:
        args.csv.write_text(session.export_to_csv(), encoding="utf-8")
        logger.info("Feature table written to %s", args.csv)
    return 0


if __name__ == "__main__":
    sys.exit(main())
