"""Exceptions raised by the ML pipeline package."""

from typing import Optional


class PipelineError(Exception):
    """Base class for pipeline load/fit/evaluate/persist failures."""


class DataSourceError(PipelineError):
    """Raised when a delimited source or model artifact cannot be read."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class SchemaMismatchError(PipelineError):
    """Raised when a required column is missing or has the wrong kind."""

    def __init__(
        self,
        message: str,
        column: Optional[str] = None,
        stage: Optional[str] = None,
    ):
        super().__init__(message)
        self.column = column
        self.stage = stage


class TrainerConfigError(SchemaMismatchError):
    """Raised when a trainer cannot be configured against a schema."""


class SerializationError(PipelineError):
    """Raised when a persisted model artifact is corrupt or incompatible."""


class EvaluationError(PipelineError):
    """Raised when metrics are undefined for the given predictions."""
