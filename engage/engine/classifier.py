"""
engage.engine.classifier — RSVP Likelihood Classifier
======================================================

Logistic regression: one linear unit followed by a sigmoid, trained on
standardized 7-feature rows with binary cross-entropy and the Adam
optimizer.  Training always runs the full epoch count (no early stopping)
and reports progress once per epoch through a cooperative callback.

Pure numpy — no DB I/O and no state outside the returned model.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

import numpy as np

from engage.errors import TrainingFailure

logger = logging.getLogger(__name__)

# (fraction complete, mean epoch loss) → None
EpochCallback = Callable[[float, float], None]

_PROB_CLIP = 1e-7
_ADAM_BETA1 = 0.9
_ADAM_BETA2 = 0.999
_ADAM_EPS = 1e-8


def sigmoid(z: np.ndarray) -> np.ndarray:
    """Numerically stable logistic function."""
    z = np.asarray(z, dtype=np.float64)
    out = np.empty_like(z)
    pos = z >= 0
    out[pos] = 1.0 / (1.0 + np.exp(-z[pos]))
    exp_z = np.exp(z[~pos])
    out[~pos] = exp_z / (1.0 + exp_z)
    return out


def binary_cross_entropy(probabilities: np.ndarray, labels: np.ndarray) -> float:
    p = np.clip(probabilities, _PROB_CLIP, 1.0 - _PROB_CLIP)
    return float(-np.mean(labels * np.log(p) + (1.0 - labels) * np.log(1.0 - p)))


@dataclass(frozen=True, slots=True)
class ClassifierModel:
    """Trained weights + bias.  Inputs must be standardized with the same scaler."""

    weights: np.ndarray
    bias: float
    final_loss: float

    def predict_proba(self, standardized: np.ndarray) -> np.ndarray:
        """Probability of RSVP for each standardized row, in [0, 1]."""
        standardized = np.atleast_2d(np.asarray(standardized, dtype=np.float64))
        if standardized.shape[1] != self.weights.shape[0]:
            raise ValueError(
                f"Expected {self.weights.shape[0]} features, got {standardized.shape[1]}"
            )
        return sigmoid(standardized @ self.weights + self.bias)


def train_logistic(
    features: np.ndarray,
    labels: np.ndarray,
    *,
    epochs: int = 100,
    learning_rate: float = 0.01,
    batch_size: int = 32,
    seed: int | None = None,
    on_epoch: EpochCallback | None = None,
) -> ClassifierModel:
    """Fit a logistic-regression model.

    Parameters
    ----------
    features : standardized ``(n, d)`` matrix
    labels : ``(n,)`` array of 0 / 1
    epochs : full passes over the data; always run to completion
    learning_rate, batch_size : Adam step size and mini-batch size
    seed : fixes weight initialization and shuffling for reproducible runs
    on_epoch : called after every epoch with ``(epoch / epochs, loss)``

    Raises
    ------
    TrainingFailure
        If the loss or the weights stop being finite.
    ValueError
        On empty input or mismatched shapes.
    """
    x = np.asarray(features, dtype=np.float64)
    y = np.asarray(labels, dtype=np.float64).reshape(-1)
    if x.ndim != 2 or x.shape[0] == 0:
        raise ValueError("train_logistic needs a non-empty 2-D feature matrix")
    if x.shape[0] != y.shape[0]:
        raise ValueError(f"{x.shape[0]} feature rows but {y.shape[0]} labels")

    n_rows, n_features = x.shape
    rng = np.random.default_rng(seed)

    # Glorot-uniform weights, zero bias
    limit = np.sqrt(6.0 / (n_features + 1))
    weights = rng.uniform(-limit, limit, size=n_features)
    bias = 0.0

    m_w = np.zeros(n_features)
    v_w = np.zeros(n_features)
    m_b = 0.0
    v_b = 0.0
    step = 0
    loss = float("nan")

    for epoch in range(1, epochs + 1):
        order = rng.permutation(n_rows)
        batch_losses: list[float] = []
        for begin in range(0, n_rows, batch_size):
            idx = order[begin:begin + batch_size]
            xb, yb = x[idx], y[idx]
            probs = sigmoid(xb @ weights + bias)
            batch_losses.append(binary_cross_entropy(probs, yb) * len(idx))

            residual = probs - yb
            grad_w = xb.T @ residual / len(idx)
            grad_b = float(residual.mean())

            step += 1
            m_w = _ADAM_BETA1 * m_w + (1 - _ADAM_BETA1) * grad_w
            v_w = _ADAM_BETA2 * v_w + (1 - _ADAM_BETA2) * grad_w**2
            m_b = _ADAM_BETA1 * m_b + (1 - _ADAM_BETA1) * grad_b
            v_b = _ADAM_BETA2 * v_b + (1 - _ADAM_BETA2) * grad_b**2
            correction1 = 1 - _ADAM_BETA1**step
            correction2 = 1 - _ADAM_BETA2**step
            weights = weights - learning_rate * (m_w / correction1) / (
                np.sqrt(v_w / correction2) + _ADAM_EPS
            )
            bias -= learning_rate * (m_b / correction1) / (
                np.sqrt(v_b / correction2) + _ADAM_EPS
            )
            del xb, yb, probs, residual, grad_w

        loss = sum(batch_losses) / n_rows
        if not np.isfinite(loss) or not np.all(np.isfinite(weights)) or not np.isfinite(bias):
            raise TrainingFailure(
                f"Logistic regression diverged at epoch {epoch}/{epochs} "
                f"(loss={loss}). Check the input data for extreme values."
            )

        logger.debug("Logistic regression epoch %d/%d — loss %.5f", epoch, epochs, loss)
        if on_epoch is not None:
            on_epoch(epoch / epochs, loss)

    logger.info("Logistic regression trained — %d epochs, final loss %.5f", epochs, loss)
    return ClassifierModel(weights=weights, bias=float(bias), final_loss=loss)
