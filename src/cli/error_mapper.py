"""Centralized exception mapping for consistent command-line errors."""

from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from ..ml.errors import (
    DataSourceError,
    EvaluationError,
    PipelineError,
    SchemaMismatchError,
    SerializationError,
    TrainerConfigError,
)

EXIT_FAILURE = 1
EXIT_SCHEMA = 2
EXIT_DATA_SOURCE = 3
EXIT_SERIALIZATION = 4


@dataclass(frozen=True)
class ErrorMapping:
    """Normalized user-facing error payload printed by the CLI."""

    code: str
    message: str
    exit_code: int
    hint: str = ""


def map_exception(error: Any) -> ErrorMapping:
    """Map raised exceptions into stable codes, messages and exit codes."""
    message = str(error).strip()

    if isinstance(error, DataSourceError):
        return ErrorMapping(
            code="data_source_error",
            message=message,
            exit_code=EXIT_DATA_SOURCE,
            hint="Check --data/--test-data or PIPELINE_DATA_DIR.",
        )

    if isinstance(error, TrainerConfigError):
        return ErrorMapping(
            code="trainer_config_error",
            message=message,
            exit_code=EXIT_SCHEMA,
            hint="The trainer's feature or label column is missing or mistyped.",
        )

    if isinstance(error, SchemaMismatchError):
        hint = f"Check column {error.column!r}." if error.column else ""
        return ErrorMapping(
            code="schema_mismatch",
            message=message,
            exit_code=EXIT_SCHEMA,
            hint=hint,
        )

    if isinstance(error, ValidationError):
        return ErrorMapping(
            code="invalid_config",
            message=message,
            exit_code=EXIT_SCHEMA,
            hint="Row or configuration fields do not match the expected model.",
        )

    if isinstance(error, SerializationError):
        return ErrorMapping(
            code="serialization_error",
            message=message,
            exit_code=EXIT_SERIALIZATION,
            hint="Retrain the model; the artifact is unreadable or incompatible.",
        )

    if isinstance(error, EvaluationError):
        return ErrorMapping(
            code="evaluation_error",
            message=message,
            exit_code=EXIT_FAILURE,
            hint="The evaluation data needs labels covering every class.",
        )

    if isinstance(error, PipelineError):
        return ErrorMapping(
            code="pipeline_error",
            message=message,
            exit_code=EXIT_FAILURE,
        )

    if isinstance(error, ValueError):
        return ErrorMapping(
            code="invalid_argument",
            message=message or "Invalid argument",
            exit_code=EXIT_SCHEMA,
        )

    return ErrorMapping(
        code="internal_error",
        message="Internal error",
        exit_code=EXIT_FAILURE,
    )
