"""Yelp review sentiment as binary classification over featurized text."""

from pydantic import BaseModel

from ...config import PipelineSettings
from ..pipeline import Pipeline
from ..schema import Schema, boolean, text
from ..trainers import LogisticRegressionConfig, TaskKind, create_trainer
from ..transforms import FeaturizeText
from . import Recipe


class SentimentData(BaseModel):
    SentimentText: str
    Label: bool = False


SENTIMENT_SCHEMA = Schema.of(text("SentimentText", 0), boolean("Label", 1))

SAMPLE_STATEMENTS = (
    "This was a very bad steak",
    "This was a horrible meal",
    "I love this spaghetti.",
    "Was a  terrible lasagne.",
    "Meal was shit.",
    "Pizza was moldy and old.",
    "Pizza was so terribly good!",
    "Cheese was crusty and it smelled nice.",
    "Matej is young but not that good looking.",
    "Good, bad.",
    "Bad, good.",
)


def build_pipeline(settings: PipelineSettings) -> Pipeline:
    return Pipeline(
        stages=[
            FeaturizeText(
                "Features", "SentimentText", max_features=settings.max_text_features
            )
        ],
        trainer=create_trainer(LogisticRegressionConfig()),
    )


SENTIMENT = Recipe(
    name="sentiment",
    task=TaskKind.BINARY_CLASSIFICATION,
    description="Binary sentiment of restaurant reviews",
    schema=SENTIMENT_SCHEMA,
    row_model=SentimentData,
    build_pipeline=build_pipeline,
    train_file="yelp_labelled.txt",
    test_fraction=0.2,
    separator="\t",
    allow_quoting=False,
    samples=tuple(SentimentData(SentimentText=s) for s in SAMPLE_STATEMENTS),
)
