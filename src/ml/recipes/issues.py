"""GitHub issues routed to an area label from their title and description."""

from pydantic import BaseModel

from ...config import PipelineSettings
from ..pipeline import Pipeline
from ..schema import Schema, text
from ..trainers import PREDICTED_LABEL, MaximumEntropyConfig, TaskKind, create_trainer
from ..transforms import Concatenate, FeaturizeText, MapKeyToValue, MapValueToKey
from . import Recipe


class IssueData(BaseModel):
    ID: str = ""
    Area: str = ""
    Title: str
    Description: str


ISSUE_SCHEMA = Schema.of(
    text("ID", 0),
    text("Area", 1),
    text("Title", 2),
    text("Description", 3),
)

SAMPLE_ISSUES = (
    IssueData(
        Title="WebSockets communication is slow in my machine",
        Description=(
            "The WebSockets communication used under the covers by SignalR "
            "looks like is going slow in my development machine.."
        ),
    ),
    IssueData(
        Title="Entity Framework crashes",
        Description="When connecting to the database, EF is crashing",
    ),
)


def build_pipeline(settings: PipelineSettings) -> Pipeline:
    return Pipeline(
        stages=[
            MapValueToKey("Label", "Area"),
            FeaturizeText(
                "TitleFeaturized", "Title", max_features=settings.max_text_features
            ),
            FeaturizeText(
                "DescriptionFeaturized",
                "Description",
                max_features=settings.max_text_features,
            ),
            Concatenate("Features", "TitleFeaturized", "DescriptionFeaturized"),
        ],
        trainer=create_trainer(MaximumEntropyConfig()),
        output_stages=[MapKeyToValue(PREDICTED_LABEL, PREDICTED_LABEL)],
    )


ISSUES = Recipe(
    name="issues",
    task=TaskKind.MULTICLASS_CLASSIFICATION,
    description="Multiclass area labelling of GitHub issues",
    schema=ISSUE_SCHEMA,
    row_model=IssueData,
    build_pipeline=build_pipeline,
    train_file="issues_train.tsv",
    test_file="issues_test.tsv",
    has_header=True,
    separator="\t",
    allow_quoting=False,
    samples=SAMPLE_ISSUES,
)
