"""Fitted models and the prediction records they produce."""

from dataclasses import dataclass
from typing import Any, List, Tuple

from .data import Dataset
from .errors import SchemaMismatchError
from .schema import Schema
from .trainers import FittedPredictor, TaskKind
from .transforms import FittedStage


@dataclass(frozen=True)
class ClusterPrediction:
    cluster_id: int
    distances: Tuple[float, ...]


@dataclass(frozen=True)
class RegressionPrediction:
    score: float


@dataclass(frozen=True)
class BinaryPrediction:
    predicted_label: bool
    probability: float
    score: float


@dataclass(frozen=True)
class MulticlassPrediction:
    predicted_label: Any
    scores: Tuple[float, ...]

    @property
    def confidence(self) -> float:
        return max(self.scores) if self.scores else 0.0


@dataclass(frozen=True)
class Model:
    """Fitted transform stages, a fitted predictor and trailing output stages.

    Never mutated after creation, so one instance can serve concurrent
    ``transform``/``predict`` calls.
    """

    input_schema: Schema
    stages: Tuple[FittedStage, ...]
    predictor: FittedPredictor
    output_stages: Tuple[FittedStage, ...] = ()

    @property
    def task(self) -> TaskKind:
        return self.predictor.task

    @property
    def output_schema(self) -> Schema:
        schema = self.input_schema
        for stage in self.stages:
            schema = stage.output_schema(schema)
        schema = self.predictor.output_schema(schema)
        for stage in self.output_stages:
            schema = stage.output_schema(schema)
        return schema

    def _check_input(self, schema: Schema):
        for column in self.input_schema:
            if column.name not in schema:
                raise SchemaMismatchError(
                    f"Input is missing column {column.name!r} required by the model",
                    column=column.name,
                )
            if schema[column.name].kind != column.kind:
                raise SchemaMismatchError(
                    f"Input column {column.name!r} has kind "
                    f"{schema[column.name].kind.value}, model expects {column.kind.value}",
                    column=column.name,
                )

    def transform(self, dataset: Dataset) -> Dataset:
        """Append feature and prediction columns to every row of ``dataset``."""
        self._check_input(dataset.schema)
        for stage in self.stages:
            dataset = stage.apply(dataset)
        dataset = self.predictor.apply(dataset)
        for stage in self.output_stages:
            dataset = stage.apply(dataset)
        return dataset

    def predict(self, row: Any):
        """Predict one row given as a mapping or pydantic model."""
        dataset = Dataset.from_records([row], self.input_schema)
        return self.predictor.to_prediction(self.transform(dataset).row(0))

    def predict_many(self, dataset: Dataset) -> List[Any]:
        transformed = self.transform(dataset)
        return [self.predictor.to_prediction(row) for row in transformed.rows()]
