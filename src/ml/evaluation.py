"""Evaluation metrics for each algorithm family.

The metric functions are pure: they take plain arrays of predictions and
ground truth and return a frozen metrics record. ``evaluate`` pulls those
arrays out of a dataset produced by ``Model.transform``.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence, Union

import numpy as np
import structlog
from sklearn.metrics import (
    davies_bouldin_score,
    normalized_mutual_info_score,
    roc_auc_score,
)

from .data import Dataset
from .errors import EvaluationError
from .schema import ColumnKind
from .trainers import PROBABILITY, SCORE, TaskKind

logger = structlog.get_logger(__name__)

PROBABILITY_FLOOR = 1e-15

_LABEL_KINDS = {
    TaskKind.REGRESSION: ColumnKind.NUMERIC,
    TaskKind.BINARY_CLASSIFICATION: ColumnKind.BOOLEAN,
    TaskKind.MULTICLASS_CLASSIFICATION: ColumnKind.KEY,
}


@dataclass(frozen=True)
class ClusteringMetrics:
    average_distance: float
    davies_bouldin_index: float
    normalized_mutual_information: Optional[float] = None


@dataclass(frozen=True)
class RegressionMetrics:
    rmse: float
    r_squared: float
    mae: float
    mse: float


@dataclass(frozen=True)
class BinaryClassificationMetrics:
    accuracy: float
    auc: float
    f1_score: float
    precision: float
    recall: float
    log_loss: float


@dataclass(frozen=True)
class MulticlassClassificationMetrics:
    micro_accuracy: float
    macro_accuracy: float
    log_loss: float
    log_loss_reduction: float


Metrics = Union[
    ClusteringMetrics,
    RegressionMetrics,
    BinaryClassificationMetrics,
    MulticlassClassificationMetrics,
]


def _check_lengths(*arrays):
    lengths = {len(a) for a in arrays}
    if len(lengths) != 1:
        raise EvaluationError(f"Mismatched input lengths: {sorted(lengths)}")
    if 0 in lengths:
        raise EvaluationError("Cannot evaluate an empty set of predictions")


def clustering_metrics(
    features: np.ndarray,
    distances: np.ndarray,
    labels: Optional[Sequence] = None,
) -> ClusteringMetrics:
    """Metrics from per-row distances to each centroid.

    The assigned cluster of a row is the arg-min of its distances.
    """
    distances = np.asarray(distances, dtype=np.float64)
    _check_lengths(features, distances)
    assigned = np.argmin(distances, axis=1)
    n_assigned = np.unique(assigned).size
    if 2 <= n_assigned <= len(assigned) - 1:
        dbi = float(davies_bouldin_score(features, assigned))
    else:
        dbi = float("nan")
    nmi = None
    if labels is not None:
        _check_lengths(labels, assigned)
        nmi = float(normalized_mutual_info_score(list(labels), assigned))
    return ClusteringMetrics(
        average_distance=float(distances.min(axis=1).mean()),
        davies_bouldin_index=dbi,
        normalized_mutual_information=nmi,
    )


def regression_metrics(predicted: Sequence[float], actual: Sequence[float]) -> RegressionMetrics:
    """RMSE, R-squared, MAE and MSE.

    R-squared is ``1 - SS_res / SS_tot``; with constant ground truth it is
    1.0 for a perfect fit and 0.0 otherwise.
    """
    predicted = np.asarray(predicted, dtype=np.float64)
    actual = np.asarray(actual, dtype=np.float64)
    _check_lengths(predicted, actual)
    residuals = predicted - actual
    mse = float(np.mean(residuals ** 2))
    ss_res = float(np.sum(residuals ** 2))
    ss_tot = float(np.sum((actual - actual.mean()) ** 2))
    if ss_tot == 0.0:
        r_squared = 1.0 if ss_res == 0.0 else 0.0
    else:
        r_squared = 1.0 - ss_res / ss_tot
    return RegressionMetrics(
        rmse=math.sqrt(mse),
        r_squared=r_squared,
        mae=float(np.mean(np.abs(residuals))),
        mse=mse,
    )


def binary_metrics(
    probabilities: Sequence[float], labels: Sequence[bool], threshold: float = 0.5
) -> BinaryClassificationMetrics:
    """Accuracy, precision, recall and F1 at ``threshold``; AUC over the ranking."""
    probabilities = np.asarray(probabilities, dtype=np.float64)
    labels = np.asarray(labels, dtype=bool)
    _check_lengths(probabilities, labels)
    if np.unique(labels).size < 2:
        raise EvaluationError("AUC is undefined when only one class is present")

    predicted = probabilities >= threshold
    tp = int(np.sum(predicted & labels))
    fp = int(np.sum(predicted & ~labels))
    fn = int(np.sum(~predicted & labels))
    precision = tp / (tp + fp) if tp + fp else 0.0
    recall = tp / (tp + fn) if tp + fn else 0.0
    f1 = 2 * precision * recall / (precision + recall) if precision + recall else 0.0

    p_true = np.where(labels, probabilities, 1.0 - probabilities)
    return BinaryClassificationMetrics(
        accuracy=float(np.mean(predicted == labels)),
        auc=float(roc_auc_score(labels, probabilities)),
        f1_score=f1,
        precision=precision,
        recall=recall,
        log_loss=_log_loss(p_true),
    )


def _log_loss(p_true: np.ndarray) -> float:
    return float(-np.mean(np.log(np.maximum(p_true, PROBABILITY_FLOOR))))


def multiclass_metrics(
    probabilities: np.ndarray, labels: Sequence[int]
) -> MulticlassClassificationMetrics:
    """Micro/macro accuracy, log-loss and log-loss reduction.

    ``probabilities`` has one column per class; ``labels`` are class indices.
    Rows labelled ``-1`` (a class unknown to the model) are skipped. The
    log-loss reduction is measured against a uniform prior over all classes.
    """
    probabilities = np.asarray(probabilities, dtype=np.float64)
    labels = np.asarray(labels, dtype=np.int64)
    _check_lengths(probabilities, labels)
    known = labels >= 0
    if not known.all():
        logger.warning("Rows with unknown labels skipped", rows=int((~known).sum()))
        probabilities, labels = probabilities[known], labels[known]
    if labels.size == 0:
        raise EvaluationError("No rows with a known label to evaluate")
    n_classes = probabilities.shape[1]
    if labels.max() >= n_classes:
        raise EvaluationError(
            f"Label index {labels.max()} outside {n_classes} predicted classes"
        )

    predicted = np.argmax(probabilities, axis=1)
    correct = predicted == labels
    per_class = [correct[labels == c].mean() for c in np.unique(labels)]
    log_loss = _log_loss(probabilities[np.arange(labels.size), labels])
    prior = math.log(n_classes) if n_classes > 1 else 0.0
    reduction = (prior - log_loss) / prior if prior > 0 else 0.0
    return MulticlassClassificationMetrics(
        micro_accuracy=float(correct.mean()),
        macro_accuracy=float(np.mean(per_class)),
        log_loss=log_loss,
        log_loss_reduction=float(reduction),
    )


def evaluate(
    task: TaskKind,
    predictions: Dataset,
    label_column: Optional[str] = "Label",
    features_column: str = "Features",
    threshold: float = 0.5,
) -> Metrics:
    """Compute the metrics matching ``task`` from a transformed dataset."""
    schema = predictions.schema
    if task == TaskKind.CLUSTERING:
        labels = None
        if label_column is not None and label_column in schema:
            labels = predictions.column(label_column)
        return clustering_metrics(
            predictions.dense(features_column), predictions.dense(SCORE), labels
        )

    schema.require(label_column, (_LABEL_KINDS[task],), stage="evaluate")
    actual = predictions.column(label_column)
    if task == TaskKind.REGRESSION:
        known = ~np.isnan(actual)
        return regression_metrics(predictions.column(SCORE)[known], actual[known])
    if task == TaskKind.BINARY_CLASSIFICATION:
        return binary_metrics(predictions.column(PROBABILITY), actual, threshold)
    if task == TaskKind.MULTICLASS_CLASSIFICATION:
        return multiclass_metrics(predictions.dense(SCORE), actual)
    raise ValueError(f"Unknown task: {task}")
