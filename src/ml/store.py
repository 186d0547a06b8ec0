"""Persist fitted models and their input schema with joblib."""

import pickle
from pathlib import Path
from typing import IO, Tuple, Union

import joblib
import structlog

from .errors import DataSourceError, SerializationError
from .model import Model
from .schema import Schema

logger = structlog.get_logger(__name__)

ARTIFACT_FORMAT = "tabml-model"
ARTIFACT_VERSION = 1

Target = Union[str, Path, IO[bytes]]


def save_model(model: Model, sink: Target) -> None:
    """Write ``model`` and its input schema to a path or binary stream."""
    artifact = {
        "format": ARTIFACT_FORMAT,
        "version": ARTIFACT_VERSION,
        "task": model.task.value,
        "schema": model.input_schema,
        "model": model,
    }
    if isinstance(sink, (str, Path)):
        path = Path(sink)
        path.parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(artifact, path)
        logger.info("Model saved", path=str(path), task=model.task.value)
    else:
        joblib.dump(artifact, sink)


def load_model(source: Target) -> Tuple[Model, Schema]:
    """Read a model saved by ``save_model``; returns ``(model, input_schema)``."""
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.is_file():
            raise DataSourceError(f"Model file not found: {path}", path=str(path))
        where = str(path)
    else:
        path = source
        where = getattr(source, "name", "<stream>")

    try:
        artifact = joblib.load(path)
    except (
        pickle.UnpicklingError,
        EOFError,
        ValueError,
        TypeError,
        KeyError,
        AttributeError,
        ImportError,
        IndexError,
    ) as e:
        raise SerializationError(f"Corrupt model artifact {where}: {e}") from e

    if not isinstance(artifact, dict) or artifact.get("format") != ARTIFACT_FORMAT:
        raise SerializationError(f"{where} is not a model artifact")
    if artifact.get("version") != ARTIFACT_VERSION:
        raise SerializationError(
            f"Unsupported model artifact version {artifact.get('version')!r} "
            f"in {where}; expected {ARTIFACT_VERSION}"
        )
    model = artifact.get("model")
    if not isinstance(model, Model):
        raise SerializationError(f"{where} does not contain a fitted model")
    logger.info("Model loaded", path=where, task=model.task.value)
    return model, artifact["schema"]
