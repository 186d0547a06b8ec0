"""Binary and multiclass classifiers using sklearn logistic regression."""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import numpy as np
from sklearn.linear_model import LogisticRegression

from .errors import PipelineError
from .model import BinaryPrediction, MulticlassPrediction
from .schema import Column, ColumnKind, Schema, boolean, key, numeric, vector
from .trainers import (
    PREDICTED_LABEL,
    PROBABILITY,
    SCORE,
    FittedPredictor,
    LogisticRegressionConfig,
    MaximumEntropyConfig,
    TaskKind,
    Trainer,
    drop_missing_labels,
)


def _fit_logistic(X, y, C: float, max_iter: int, seed: Optional[int], name: str):
    if np.unique(y).size < 2:
        raise PipelineError(f"{name} needs at least two label classes to train")
    model = LogisticRegression(C=C, max_iter=max_iter, random_state=seed)
    model.fit(X, y)
    return model


class LogisticRegressionTrainer(Trainer):
    """Binary classifier over a boolean label."""

    task = TaskKind.BINARY_CLASSIFICATION
    label_kinds = (ColumnKind.BOOLEAN,)

    def __init__(self, config: LogisticRegressionConfig = LogisticRegressionConfig()):
        super().__init__(config)

    def prediction_columns(self, schema: Schema) -> Tuple[Column, ...]:
        return _binary_columns()

    def _fit(self, X, y, schema: Schema, seed: Optional[int]) -> FittedPredictor:
        model = _fit_logistic(
            X, y, self.config.C, self.config.max_iter, seed, self.describe()
        )
        return FittedLogisticRegression(
            features=self.config.features,
            model=model,
            threshold=self.config.threshold,
        )


def _binary_columns() -> Tuple[Column, ...]:
    return (boolean(PREDICTED_LABEL), numeric(SCORE), numeric(PROBABILITY))


@dataclass(frozen=True)
class FittedLogisticRegression(FittedPredictor):
    features: str
    model: LogisticRegression
    threshold: float = 0.5
    task: TaskKind = TaskKind.BINARY_CLASSIFICATION

    def prediction_columns(self) -> Tuple[Column, ...]:
        return _binary_columns()

    def predict_columns(self, X) -> Dict[str, Any]:
        positive = list(self.model.classes_).index(True)
        probability = self.model.predict_proba(X)[:, positive]
        return {
            PREDICTED_LABEL: probability >= self.threshold,
            SCORE: self.model.decision_function(X),
            PROBABILITY: probability,
        }

    def to_prediction(self, row: Dict[str, Any]) -> BinaryPrediction:
        return BinaryPrediction(
            predicted_label=bool(row[PREDICTED_LABEL]),
            probability=float(row[PROBABILITY]),
            score=float(row[SCORE]),
        )


class MaximumEntropyTrainer(Trainer):
    """Multinomial logistic regression over a key label."""

    task = TaskKind.MULTICLASS_CLASSIFICATION
    label_kinds = (ColumnKind.KEY,)

    def __init__(self, config: MaximumEntropyConfig = MaximumEntropyConfig()):
        super().__init__(config)

    def prediction_columns(self, schema: Schema) -> Tuple[Column, ...]:
        vocabulary = schema[self.label].vocabulary
        width = len(vocabulary) if vocabulary is not None else None
        return (key(PREDICTED_LABEL, vocabulary), vector(SCORE, width=width))

    def _fit(self, X, y, schema: Schema, seed: Optional[int]) -> FittedPredictor:
        X, y = drop_missing_labels(X, y, y >= 0, self.describe())
        vocabulary = schema[self.label].vocabulary
        if vocabulary is None:
            vocabulary = tuple(range(int(y.max()) + 1)) if y.size else ()
        model = _fit_logistic(
            X, y, self.config.C, self.config.max_iter, seed, self.describe()
        )
        return FittedMaximumEntropy(
            features=self.config.features, model=model, vocabulary=tuple(vocabulary)
        )


@dataclass(frozen=True)
class FittedMaximumEntropy(FittedPredictor):
    features: str
    model: LogisticRegression
    vocabulary: Tuple[Any, ...]
    task: TaskKind = TaskKind.MULTICLASS_CLASSIFICATION

    def prediction_columns(self) -> Tuple[Column, ...]:
        return (
            key(PREDICTED_LABEL, self.vocabulary),
            vector(SCORE, width=len(self.vocabulary)),
        )

    def predict_columns(self, X) -> Dict[str, Any]:
        scores = np.zeros((X.shape[0], len(self.vocabulary)), dtype=np.float64)
        scores[:, self.model.classes_] = self.model.predict_proba(X)
        return {
            PREDICTED_LABEL: np.argmax(scores, axis=1).astype(np.int64),
            SCORE: scores,
        }

    def to_prediction(self, row: Dict[str, Any]) -> MulticlassPrediction:
        label = row[PREDICTED_LABEL]
        if not isinstance(label, str):
            label = self.vocabulary[int(label)]
        return MulticlassPrediction(
            predicted_label=label,
            scores=tuple(float(s) for s in row[SCORE]),
        )
