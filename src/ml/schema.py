"""Column and schema definitions shared by datasets, stages and models."""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Iterable, Iterator, Optional, Tuple

from .errors import SchemaMismatchError


class ColumnKind(str, Enum):
    NUMERIC = "numeric"
    TEXT = "text"
    BOOLEAN = "boolean"
    KEY = "key"
    VECTOR = "vector"


SCALAR_KINDS = frozenset(
    {ColumnKind.NUMERIC, ColumnKind.TEXT, ColumnKind.BOOLEAN, ColumnKind.KEY}
)


@dataclass(frozen=True)
class Column:
    """A named, typed column.

    ``index`` is the position in the delimited source file, ``width`` the
    number of values per row (``None`` for a vector whose width is only known
    after fit) and ``vocabulary`` the ordered key values of a key column.
    """

    name: str
    kind: ColumnKind
    index: Optional[int] = None
    width: Optional[int] = 1
    vocabulary: Optional[Tuple[Any, ...]] = None

    def __post_init__(self):
        if self.kind in SCALAR_KINDS and self.width != 1:
            raise ValueError(f"Scalar column {self.name!r} must have width 1")

    @property
    def is_vector(self) -> bool:
        return self.kind == ColumnKind.VECTOR

    def renamed(self, name: str) -> "Column":
        return replace(self, name=name, index=None)


def numeric(name: str, index: Optional[int] = None) -> Column:
    return Column(name, ColumnKind.NUMERIC, index=index)


def text(name: str, index: Optional[int] = None) -> Column:
    return Column(name, ColumnKind.TEXT, index=index)


def boolean(name: str, index: Optional[int] = None) -> Column:
    return Column(name, ColumnKind.BOOLEAN, index=index)


def vector(name: str, width: Optional[int] = None) -> Column:
    return Column(name, ColumnKind.VECTOR, width=width)


def key(name: str, vocabulary: Optional[Iterable[Any]] = None) -> Column:
    vocab = tuple(vocabulary) if vocabulary is not None else None
    return Column(name, ColumnKind.KEY, vocabulary=vocab)


@dataclass(frozen=True)
class Schema:
    """Ordered, immutable collection of uniquely named columns."""

    columns: Tuple[Column, ...] = ()

    def __post_init__(self):
        names = [c.name for c in self.columns]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate column names: {duplicates}")

    @classmethod
    def of(cls, *columns: Column) -> "Schema":
        return cls(tuple(columns))

    def __iter__(self) -> Iterator[Column]:
        return iter(self.columns)

    def __len__(self) -> int:
        return len(self.columns)

    def __contains__(self, name: object) -> bool:
        return any(c.name == name for c in self.columns)

    def __getitem__(self, name: str) -> Column:
        for column in self.columns:
            if column.name == name:
                return column
        raise SchemaMismatchError(
            f"Column {name!r} not found; available: {list(self.names)}",
            column=name,
        )

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(c.name for c in self.columns)

    def with_column(self, column: Column) -> "Schema":
        """Return a schema with ``column`` added, hiding any same-named column."""
        kept = tuple(c for c in self.columns if c.name != column.name)
        return Schema(kept + (column,))

    def require(
        self,
        name: str,
        kinds: Iterable[ColumnKind],
        stage: Optional[str] = None,
        error: type = SchemaMismatchError,
    ) -> Column:
        """Look up ``name`` and check its kind, naming ``stage`` on failure."""
        allowed = tuple(kinds)
        where = f" (required by {stage})" if stage else ""
        if name not in self:
            raise error(
                f"Column {name!r} not found{where}; available: {list(self.names)}",
                column=name,
                stage=stage,
            )
        column = self[name]
        if column.kind not in allowed:
            expected = ", ".join(k.value for k in allowed)
            raise error(
                f"Column {name!r} has kind {column.kind.value}{where}; "
                f"expected one of: {expected}",
                column=name,
                stage=stage,
            )
        return column
