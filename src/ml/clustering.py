"""K-means clustering trainer backed by sklearn KMeans."""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import numpy as np
import structlog
from sklearn.cluster import KMeans

from .errors import PipelineError
from .model import ClusterPrediction
from .schema import Column, Schema, key, vector
from .trainers import (
    PREDICTED_LABEL,
    SCORE,
    FittedPredictor,
    KMeansConfig,
    TaskKind,
    Trainer,
)

logger = structlog.get_logger(__name__)


class KMeansTrainer(Trainer):
    """k-means++ clustering on a feature vector column."""

    task = TaskKind.CLUSTERING

    def __init__(self, config: KMeansConfig = KMeansConfig()):
        super().__init__(config)

    def prediction_columns(self, schema: Schema) -> Tuple[Column, ...]:
        return _cluster_columns(self.config.n_clusters)

    def _fit(self, X, y, schema: Schema, seed: Optional[int]) -> FittedPredictor:
        if X.shape[0] < self.config.n_clusters:
            raise PipelineError(
                f"Cannot form {self.config.n_clusters} clusters from "
                f"{X.shape[0]} rows"
            )
        model = KMeans(
            n_clusters=self.config.n_clusters,
            init="k-means++",
            n_init=self.config.n_init,
            max_iter=self.config.max_iter,
            random_state=seed,
        )
        labels = model.fit_predict(X)
        unique, counts = np.unique(labels, return_counts=True)
        sizes = dict(zip(unique.tolist(), counts.tolist()))
        return FittedKMeans(
            features=self.config.features,
            model=model,
            cluster_sizes=tuple(sizes.get(i, 0) for i in range(self.config.n_clusters)),
        )


def _cluster_columns(n_clusters: int) -> Tuple[Column, ...]:
    return (
        key(PREDICTED_LABEL, range(n_clusters)),
        vector(SCORE, width=n_clusters),
    )


@dataclass(frozen=True)
class FittedKMeans(FittedPredictor):
    features: str
    model: KMeans
    cluster_sizes: Tuple[int, ...]
    task: TaskKind = TaskKind.CLUSTERING

    @property
    def n_clusters(self) -> int:
        return len(self.cluster_sizes)

    @property
    def centroids(self) -> np.ndarray:
        return self.model.cluster_centers_

    def prediction_columns(self) -> Tuple[Column, ...]:
        return _cluster_columns(self.n_clusters)

    def predict_columns(self, X) -> Dict[str, Any]:
        distances = self.model.transform(X)
        return {
            PREDICTED_LABEL: np.argmin(distances, axis=1).astype(np.int64),
            SCORE: distances,
        }

    def to_prediction(self, row: Dict[str, Any]) -> ClusterPrediction:
        return ClusterPrediction(
            cluster_id=int(row[PREDICTED_LABEL]),
            distances=tuple(float(d) for d in row[SCORE]),
        )

    def cluster_summary(self) -> Dict[int, Dict[str, float]]:
        """Size and share of training rows per cluster."""
        total = sum(self.cluster_sizes)
        return {
            cid: {"size": size, "pct": (size / total * 100) if total > 0 else 0.0}
            for cid, size in enumerate(self.cluster_sizes)
        }
