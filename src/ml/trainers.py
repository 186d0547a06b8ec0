"""Trainer contract, per-family configuration and the trainer factory.

The algorithm family is a tagged variant: each config model carries a
``task`` literal and pydantic picks the right model from it when parsing.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Annotated, Any, Callable, Dict, Literal, Optional, Tuple, Union

import numpy as np
import structlog
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from scipy import sparse

from .data import Dataset
from .errors import TrainerConfigError
from .schema import Column, ColumnKind, Schema

logger = structlog.get_logger(__name__)


class TaskKind(str, Enum):
    CLUSTERING = "clustering"
    REGRESSION = "regression"
    BINARY_CLASSIFICATION = "binary_classification"
    MULTICLASS_CLASSIFICATION = "multiclass_classification"


PREDICTED_LABEL = "PredictedLabel"
SCORE = "Score"
PROBABILITY = "Probability"

FEATURE_KINDS = (ColumnKind.VECTOR, ColumnKind.NUMERIC)


class TrainerConfig(BaseModel):
    """Settings shared by every trainer."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    features: str = "Features"
    seed: Optional[int] = None


class KMeansConfig(TrainerConfig):
    task: Literal["clustering"] = "clustering"
    n_clusters: int = Field(default=3, ge=1)
    max_iter: int = Field(default=300, ge=1)
    n_init: int = Field(default=10, ge=1)


class GradientBoostingConfig(TrainerConfig):
    task: Literal["regression"] = "regression"
    label: str = "Label"
    n_estimators: int = Field(default=100, ge=1)
    max_leaf_nodes: int = Field(default=20, ge=2)
    learning_rate: float = Field(default=0.2, gt=0)
    min_samples_leaf: int = Field(default=10, ge=1)


class LogisticRegressionConfig(TrainerConfig):
    task: Literal["binary_classification"] = "binary_classification"
    label: str = "Label"
    C: float = Field(default=1.0, gt=0)
    max_iter: int = Field(default=1000, ge=1)
    threshold: float = Field(default=0.5, gt=0, lt=1)


class MaximumEntropyConfig(TrainerConfig):
    task: Literal["multiclass_classification"] = "multiclass_classification"
    label: str = "Label"
    C: float = Field(default=1.0, gt=0)
    max_iter: int = Field(default=1000, ge=1)


AnyTrainerConfig = Annotated[
    Union[
        KMeansConfig,
        GradientBoostingConfig,
        LogisticRegressionConfig,
        MaximumEntropyConfig,
    ],
    Field(discriminator="task"),
]

_config_adapter = TypeAdapter(AnyTrainerConfig)


def parse_trainer_config(data: Dict[str, Any]) -> TrainerConfig:
    """Build the family-specific config selected by ``data["task"]``."""
    return _config_adapter.validate_python(data)


def feature_matrix(dataset: Dataset, name: str):
    values = dataset.column(name)
    if sparse.issparse(values) or values.ndim == 2:
        return values
    return values.reshape(-1, 1)


class FittedPredictor(ABC):
    """A trained estimator that appends prediction columns to a dataset."""

    task: TaskKind
    features: str

    @abstractmethod
    def prediction_columns(self) -> Tuple[Column, ...]:
        ...

    @abstractmethod
    def predict_columns(self, X) -> Dict[str, Any]:
        """Prediction column values for feature matrix ``X``."""

    @abstractmethod
    def to_prediction(self, row: Dict[str, Any]):
        """Family-specific prediction record for one transformed row."""

    def output_schema(self, schema: Schema) -> Schema:
        for column in self.prediction_columns():
            schema = schema.with_column(column)
        return schema

    def apply(self, dataset: Dataset) -> Dataset:
        dataset.schema.require(
            self.features, FEATURE_KINDS, stage=type(self).__name__
        )
        values = self.predict_columns(feature_matrix(dataset, self.features))
        for column in self.prediction_columns():
            dataset = dataset.with_column(column, values[column.name])
        return dataset


class Trainer(ABC):
    """An unfit learning algorithm bound to its configuration."""

    task: TaskKind
    label_kinds: Tuple[ColumnKind, ...] = ()

    def __init__(self, config: TrainerConfig):
        self.config = config

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.config!r})"

    def describe(self) -> str:
        return type(self).__name__

    @property
    def label(self) -> Optional[str]:
        return getattr(self.config, "label", None)

    @abstractmethod
    def prediction_columns(self, schema: Schema) -> Tuple[Column, ...]:
        ...

    @abstractmethod
    def _fit(self, X, y, schema: Schema, seed: Optional[int]) -> FittedPredictor:
        ...

    def output_schema(self, schema: Schema) -> Schema:
        """Check feature and label columns, then add the prediction columns."""
        schema.require(
            self.config.features,
            FEATURE_KINDS,
            stage=self.describe(),
            error=TrainerConfigError,
        )
        if self.label is not None:
            schema.require(
                self.label,
                self.label_kinds,
                stage=self.describe(),
                error=TrainerConfigError,
            )
        for column in self.prediction_columns(schema):
            schema = schema.with_column(column)
        return schema

    def fit(
        self,
        dataset: Dataset,
        seed: Optional[int] = None,
        progress_callback: Optional[Callable] = None,
    ) -> FittedPredictor:
        self.output_schema(dataset.schema)
        if self.config.seed is not None:
            seed = self.config.seed
        if progress_callback:
            progress_callback(0.1, f"Training {self.describe()}")
        X = feature_matrix(dataset, self.config.features)
        y = dataset.column(self.label) if self.label is not None else None
        fitted = self._fit(X, y, dataset.schema, seed)
        if progress_callback:
            progress_callback(1.0, f"{self.describe()} trained")
        logger.info(
            "Trainer fitted",
            trainer=self.describe(),
            task=self.task.value,
            n_samples=X.shape[0],
            n_features=X.shape[1],
            seed=seed,
        )
        return fitted


def drop_missing_labels(X, y: np.ndarray, mask: np.ndarray, trainer: str):
    """Keep rows where ``mask`` is true, logging how many were skipped."""
    skipped = int((~mask).sum())
    if skipped:
        logger.warning("Rows with missing labels skipped", trainer=trainer, rows=skipped)
        return X[np.flatnonzero(mask)], y[mask]
    return X, y


def create_trainer(config: Union[TrainerConfig, Dict[str, Any]]) -> Trainer:
    """Build the trainer for a family config (or its dict form)."""
    if isinstance(config, dict):
        config = parse_trainer_config(config)

    if isinstance(config, KMeansConfig):
        from .clustering import KMeansTrainer

        return KMeansTrainer(config)
    if isinstance(config, GradientBoostingConfig):
        from .regressor import GradientBoostingTrainer

        return GradientBoostingTrainer(config)
    if isinstance(config, LogisticRegressionConfig):
        from .classifier import LogisticRegressionTrainer

        return LogisticRegressionTrainer(config)
    if isinstance(config, MaximumEntropyConfig):
        from .classifier import MaximumEntropyTrainer

        return MaximumEntropyTrainer(config)
    raise ValueError(f"Unknown trainer config: {type(config).__name__}")
