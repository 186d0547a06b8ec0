"""Iris flowers clustered by their four measurements."""

from pydantic import BaseModel

from ...config import PipelineSettings
from ..pipeline import Pipeline
from ..schema import Schema, numeric, text
from ..trainers import KMeansConfig, TaskKind, create_trainer
from ..transforms import Concatenate
from . import Recipe


class IrisData(BaseModel):
    SepalLength: float
    SepalWidth: float
    PetalLength: float
    PetalWidth: float
    Label: str = ""


IRIS_SCHEMA = Schema.of(
    numeric("SepalLength", 0),
    numeric("SepalWidth", 1),
    numeric("PetalLength", 2),
    numeric("PetalWidth", 3),
    text("Label", 4),
)

SETOSA = IrisData(SepalLength=5.1, SepalWidth=3.5, PetalLength=1.4, PetalWidth=0.2)


def build_pipeline(settings: PipelineSettings) -> Pipeline:
    return Pipeline(
        stages=[
            Concatenate(
                "Features", "SepalLength", "SepalWidth", "PetalLength", "PetalWidth"
            )
        ],
        trainer=create_trainer(KMeansConfig(n_clusters=settings.n_clusters)),
    )


IRIS = Recipe(
    name="iris",
    task=TaskKind.CLUSTERING,
    description="k-means clustering of iris measurements",
    schema=IRIS_SCHEMA,
    row_model=IrisData,
    build_pipeline=build_pipeline,
    train_file="iris.data",
    samples=(SETOSA,),
)
