"""Regression trainer using sklearn gradient-boosted trees."""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import numpy as np
from sklearn.ensemble import GradientBoostingRegressor

from .errors import PipelineError
from .model import RegressionPrediction
from .schema import Column, ColumnKind, Schema, numeric
from .trainers import (
    SCORE,
    FittedPredictor,
    GradientBoostingConfig,
    TaskKind,
    Trainer,
    drop_missing_labels,
)


class GradientBoostingTrainer(Trainer):
    """Boosted regression trees predicting a numeric label."""

    task = TaskKind.REGRESSION
    label_kinds = (ColumnKind.NUMERIC,)

    def __init__(self, config: GradientBoostingConfig = GradientBoostingConfig()):
        super().__init__(config)

    def prediction_columns(self, schema: Schema) -> Tuple[Column, ...]:
        return (numeric(SCORE),)

    def _fit(self, X, y, schema: Schema, seed: Optional[int]) -> FittedPredictor:
        X, y = drop_missing_labels(X, y, ~np.isnan(y), self.describe())
        if X.shape[0] == 0:
            raise PipelineError("No labelled rows to train the regressor on")
        model = GradientBoostingRegressor(
            n_estimators=self.config.n_estimators,
            max_leaf_nodes=self.config.max_leaf_nodes,
            learning_rate=self.config.learning_rate,
            min_samples_leaf=self.config.min_samples_leaf,
            random_state=seed,
        )
        model.fit(X, y)
        return FittedGradientBoosting(features=self.config.features, model=model)


@dataclass(frozen=True)
class FittedGradientBoosting(FittedPredictor):
    features: str
    model: GradientBoostingRegressor
    task: TaskKind = TaskKind.REGRESSION

    def prediction_columns(self) -> Tuple[Column, ...]:
        return (numeric(SCORE),)

    def predict_columns(self, X) -> Dict[str, Any]:
        return {SCORE: self.model.predict(X)}

    def to_prediction(self, row: Dict[str, Any]) -> RegressionPrediction:
        return RegressionPrediction(score=float(row[SCORE]))
