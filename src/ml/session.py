"""Explicit pipeline session passed to every load/fit/evaluate/store call."""

from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Tuple, Union

import structlog

from ..config import Settings, settings as default_settings
from . import store
from .data import Dataset, TrainTestData, load_data, train_test_split
from .evaluation import Metrics, evaluate
from .model import Model
from .pipeline import Pipeline
from .schema import Schema

logger = structlog.get_logger(__name__)


class PipelineSession:
    """Holds the seed and settings shared by one run of a pipeline.

    Nothing here is global: two sessions never see each other's state.
    """

    def __init__(self, seed: Optional[int] = None, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self.seed = self.settings.pipeline.seed if seed is None else seed

    def __repr__(self) -> str:
        return f"PipelineSession(seed={self.seed})"

    def load_data(
        self,
        path: Union[str, Path],
        schema: Schema,
        has_header: bool = False,
        separator: str = ",",
        allow_quoting: bool = True,
    ) -> Dataset:
        return load_data(
            path,
            schema,
            has_header=has_header,
            separator=separator,
            allow_quoting=allow_quoting,
        )

    def load_from_records(self, records: Iterable[Any], schema: Schema) -> Dataset:
        return Dataset.from_records(records, schema)

    def train_test_split(
        self, dataset: Dataset, test_fraction: Optional[float] = None
    ) -> TrainTestData:
        if test_fraction is None:
            test_fraction = self.settings.pipeline.test_fraction
        return train_test_split(dataset, test_fraction=test_fraction, seed=self.seed)

    def fit(
        self,
        pipeline: Pipeline,
        dataset: Dataset,
        progress_callback: Optional[Callable] = None,
    ) -> Model:
        return pipeline.fit(dataset, seed=self.seed, progress_callback=progress_callback)

    def evaluate(
        self, model: Model, dataset: Dataset, label_column: Optional[str] = "Label"
    ) -> Metrics:
        predictions = model.transform(dataset)
        threshold = getattr(model.predictor, "threshold", 0.5)
        metrics = evaluate(
            model.task,
            predictions,
            label_column=label_column,
            features_column=model.predictor.features,
            threshold=threshold,
        )
        logger.info("Model evaluated", task=model.task.value, rows=len(dataset))
        return metrics

    def save_model(self, model: Model, path: Union[str, Path]) -> None:
        store.save_model(model, path)

    def load_model(self, path: Union[str, Path]) -> Tuple[Model, Schema]:
        return store.load_model(path)
