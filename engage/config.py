"""
engage.config — YAML Configuration Loader
==========================================

Reads ``analytics.yaml`` for the tuning knobs of one analysis run
(activity floor, optimizer settings, iteration counts, fallback
thresholds).  Secrets such as ``DATABASE_URL`` stay in the environment.

Every key is optional; a missing key keeps the default shown on
:class:`AnalyticsConfig`.

Usage::

    from engage.config import load_config

    cfg = load_config()          # reads ./analytics.yaml by default
    print(cfg.epochs)            # 100
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class AnalyticsConfig:
    """Immutable analysis settings.

    The defaults are the production values; tests override ``seed`` (and
    occasionally ``epochs``) to keep runs fast and reproducible.
    """

    # Data floor
    min_active_users: int = 10

    # Logistic regression
    epochs: int = 100
    learning_rate: float = 0.01
    batch_size: int = 32
    seed: int | None = None

    # K-means
    kmeans_iterations: int = 100

    # Thresholds used when no predictions exist
    fallback_high_threshold: float = 0.7
    fallback_medium_threshold: float = 0.4

    def __post_init__(self) -> None:
        if self.min_active_users < 1:
            raise ValueError("min_active_users must be >= 1")
        if self.epochs < 1 or self.kmeans_iterations < 1:
            raise ValueError("epochs and kmeans_iterations must be >= 1")
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if self.learning_rate <= 0:
            raise ValueError("learning_rate must be positive")
        if self.fallback_high_threshold < self.fallback_medium_threshold:
            raise ValueError(
                "fallback_high_threshold must be >= fallback_medium_threshold"
            )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "analytics.yaml") -> AnalyticsConfig:
    """Read *path* and return an :class:`AnalyticsConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    ValueError
        If a value cannot be coerced or violates a constraint.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy analytics.yaml.example → analytics.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    defaults = AnalyticsConfig()
    seed = raw.get("seed")
    return AnalyticsConfig(
        min_active_users=int(raw.get("min_active_users", defaults.min_active_users)),
        epochs=int(raw.get("epochs", defaults.epochs)),
        learning_rate=float(raw.get("learning_rate", defaults.learning_rate)),
        batch_size=int(raw.get("batch_size", defaults.batch_size)),
        seed=int(seed) if seed is not None else None,
        kmeans_iterations=int(raw.get("kmeans_iterations", defaults.kmeans_iterations)),
        fallback_high_threshold=float(
            raw.get("fallback_high_threshold", defaults.fallback_high_threshold)
        ),
        fallback_medium_threshold=float(
            raw.get("fallback_medium_threshold", defaults.fallback_medium_threshold)
        ),
    )
