"""Transform-stage chains ending in a trainer."""

from typing import Callable, Optional, Sequence

import structlog

from .data import Dataset
from .model import Model
from .schema import Schema
from .trainers import Trainer
from .transforms import Stage

logger = structlog.get_logger(__name__)


class Pipeline:
    """Ordered transform stages, one trainer, then optional output stages.

    Output stages run on the predictor's output, e.g. mapping a predicted
    key back to its label value.
    """

    def __init__(
        self,
        stages: Sequence[Stage] = (),
        trainer: Optional[Trainer] = None,
        output_stages: Sequence[Stage] = (),
    ):
        if output_stages and trainer is None:
            raise ValueError("Output stages need a trainer before them")
        self.stages = tuple(stages)
        self.trainer = trainer
        self.output_stages = tuple(output_stages)

    def __repr__(self) -> str:
        parts = [s.describe() for s in self.stages]
        if self.trainer is not None:
            parts.append(self.trainer.describe())
        parts.extend(s.describe() for s in self.output_stages)
        return f"Pipeline({' -> '.join(parts)})"

    def append(self, step) -> "Pipeline":
        """Return a new pipeline with a stage or trainer appended."""
        if isinstance(step, Trainer):
            if self.trainer is not None:
                raise ValueError("Pipeline already has a trainer")
            return Pipeline(self.stages, step)
        if self.trainer is None:
            return Pipeline(self.stages + (step,))
        return Pipeline(self.stages, self.trainer, self.output_stages + (step,))

    def validate(self, schema: Schema) -> Schema:
        """Check every stage against the schema flowing into it.

        Raises ``SchemaMismatchError`` naming the first offending stage and
        column; returns the schema the fitted pipeline will produce.
        """
        for stage in self.stages:
            schema = stage.output_schema(schema)
        if self.trainer is not None:
            schema = self.trainer.output_schema(schema)
        for stage in self.output_stages:
            schema = stage.output_schema(schema)
        return schema

    def fit(
        self,
        dataset: Dataset,
        seed: Optional[int] = None,
        progress_callback: Optional[Callable] = None,
    ) -> Model:
        """Fit stages in order on ``dataset`` and then the trainer."""
        if self.trainer is None:
            raise ValueError("Cannot fit a pipeline without a trainer")

        def _cb(pct, msg):
            if progress_callback:
                progress_callback(pct, msg)

        self.validate(dataset.schema)
        input_schema = dataset.schema

        fitted_stages = []
        total = len(self.stages) or 1
        for i, stage in enumerate(self.stages):
            _cb(0.6 * i / total, f"Fitting {stage.describe()}")
            fitted = stage.fit(dataset)
            dataset = fitted.apply(dataset)
            fitted_stages.append(fitted)

        _cb(0.6, f"Training {self.trainer.describe()}")
        predictor = self.trainer.fit(dataset, seed=seed)

        fitted_outputs = []
        if self.output_stages:
            _cb(0.9, "Fitting output stages")
            predicted = predictor.apply(dataset)
            for stage in self.output_stages:
                fitted = stage.fit(predicted)
                predicted = fitted.apply(predicted)
                fitted_outputs.append(fitted)

        _cb(1.0, "Pipeline fitted")
        logger.info("Pipeline fitted", pipeline=repr(self), rows=len(dataset))
        return Model(
            input_schema=input_schema,
            stages=tuple(fitted_stages),
            predictor=predictor,
            output_stages=tuple(fitted_outputs),
        )
