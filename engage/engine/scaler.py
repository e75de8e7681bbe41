"""
engage.engine.scaler — Feature Standardization
===============================================

Per-feature centering and scaling: ``(raw - mean) / (std + ε)``.
The epsilon guard is applied on every division, so zero-variance
features map to 0 instead of NaN.  Params fitted for a model are kept
and reused for every later inference within the same run.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from engage.constants import EPSILON


@dataclass(frozen=True, slots=True)
class ScalerParams:
    """Mean and (population) standard deviation of one feature space."""

    mean: np.ndarray
    std: np.ndarray

    @property
    def n_features(self) -> int:
        return int(self.mean.shape[0])

    def transform(self, raw: np.ndarray) -> np.ndarray:
        raw = np.asarray(raw, dtype=np.float64)
        self._check_width(raw)
        return (raw - self.mean) / (self.std + EPSILON)

    def inverse_transform(self, standardized: np.ndarray) -> np.ndarray:
        standardized = np.asarray(standardized, dtype=np.float64)
        self._check_width(standardized)
        return standardized * (self.std + EPSILON) + self.mean

    def _check_width(self, values: np.ndarray) -> None:
        if values.shape[-1] != self.n_features:
            raise ValueError(
                f"Expected {self.n_features} features, got {values.shape[-1]}"
            )


def fit_scaler(matrix: np.ndarray) -> ScalerParams:
    """Compute column means and standard deviations of a 2-D *matrix*."""
    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.ndim != 2 or matrix.shape[0] == 0:
        raise ValueError("fit_scaler needs a non-empty 2-D matrix")
    return ScalerParams(mean=matrix.mean(axis=0), std=matrix.std(axis=0))


def fit_transform(matrix: np.ndarray) -> tuple[ScalerParams, np.ndarray]:
    """Fit params on *matrix* and return them with the standardized matrix."""
    params = fit_scaler(matrix)
    return params, params.transform(matrix)
