"""Ready-made schemas, pipelines and sample rows for the bundled datasets."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple, Type, Union

import structlog
from pydantic import BaseModel

from ...config import PipelineSettings
from ..data import Dataset
from ..evaluation import Metrics
from ..model import Model
from ..pipeline import Pipeline
from ..schema import Schema
from ..trainers import TaskKind

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Recipe:
    """One dataset plus the pipeline trained on it.

    Evaluation data comes from ``test_file`` when set, otherwise from a
    ``test_fraction`` split of the training file, otherwise from the
    training file itself.
    """

    name: str
    task: TaskKind
    description: str
    schema: Schema
    row_model: Type[BaseModel]
    build_pipeline: Callable[[PipelineSettings], Pipeline]
    train_file: str
    test_file: Optional[str] = None
    test_fraction: Optional[float] = None
    has_header: bool = False
    separator: str = ","
    allow_quoting: bool = True
    label_column: Optional[str] = "Label"
    samples: Tuple[BaseModel, ...] = field(default=())

    def data_path(self, data_dir: Union[str, Path]) -> Path:
        return Path(data_dir) / self.train_file

    def test_path(self, data_dir: Union[str, Path]) -> Optional[Path]:
        return Path(data_dir) / self.test_file if self.test_file else None

    def load(self, session, path: Union[str, Path]) -> Dataset:
        return session.load_data(
            path,
            self.schema,
            has_header=self.has_header,
            separator=self.separator,
            allow_quoting=self.allow_quoting,
        )


@dataclass(frozen=True)
class RecipeRun:
    model: Model
    metrics: Metrics
    train_rows: int
    test_rows: int


def run_recipe(
    recipe: Recipe,
    session,
    data_path: Optional[Union[str, Path]] = None,
    test_path: Optional[Union[str, Path]] = None,
    progress_callback: Optional[Callable] = None,
) -> RecipeRun:
    """Load, fit and evaluate ``recipe`` within ``session``.

    The pipeline is validated against the recipe schema before any file is
    read.
    """
    pipeline = recipe.build_pipeline(session.settings.pipeline)
    pipeline.validate(recipe.schema)

    data_dir = session.settings.pipeline.data_dir
    train = recipe.load(session, data_path or recipe.data_path(data_dir))

    if test_path is None:
        test_path = recipe.test_path(data_dir)
    if test_path is not None:
        test = recipe.load(session, test_path)
    elif recipe.test_fraction is not None:
        split = session.train_test_split(train, recipe.test_fraction)
        train, test = split.train, split.test
    else:
        test = train

    model = session.fit(pipeline, train, progress_callback=progress_callback)
    metrics = session.evaluate(model, test, label_column=recipe.label_column)
    logger.info(
        "Recipe finished",
        recipe=recipe.name,
        train_rows=len(train),
        test_rows=len(test),
    )
    return RecipeRun(
        model=model, metrics=metrics, train_rows=len(train), test_rows=len(test)
    )


def _registry() -> Dict[str, Recipe]:
    from .iris import IRIS
    from .issues import ISSUES
    from .sentiment import SENTIMENT
    from .taxi_fare import TAXI_FARE

    return {r.name: r for r in (IRIS, TAXI_FARE, SENTIMENT, ISSUES)}


RECIPES: Dict[str, Recipe] = _registry()


def get_recipe(name: str) -> Recipe:
    try:
        return RECIPES[name]
    except KeyError:
        raise ValueError(
            f"Unknown recipe {name!r}; available: {sorted(RECIPES)}"
        ) from None


__all__ = ["RECIPES", "Recipe", "RecipeRun", "get_recipe", "run_recipe"]
