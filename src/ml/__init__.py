"""Tabular learning pipelines: load, transform, fit, evaluate, predict and persist."""

from .data import Dataset, TrainTestData, load_data, train_test_split
from .errors import (
    DataSourceError,
    EvaluationError,
    PipelineError,
    SchemaMismatchError,
    SerializationError,
    TrainerConfigError,
)
from .evaluation import evaluate
from .model import Model
from .pipeline import Pipeline
from .schema import Column, ColumnKind, Schema
from .session import PipelineSession
from .store import load_model, save_model
from .trainers import TaskKind, create_trainer

__all__ = [
    "Column",
    "ColumnKind",
    "DataSourceError",
    "Dataset",
    "EvaluationError",
    "Model",
    "Pipeline",
    "PipelineError",
    "PipelineSession",
    "Schema",
    "SchemaMismatchError",
    "SerializationError",
    "TaskKind",
    "TrainTestData",
    "TrainerConfigError",
    "create_trainer",
    "evaluate",
    "load_data",
    "load_model",
    "save_model",
    "train_test_split",
]
