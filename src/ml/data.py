"""Datasets, delimited-file loading and train/test splitting."""

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Union

import numpy as np
import pandas as pd
import structlog
from scipy import sparse
from sklearn.model_selection import train_test_split as sk_train_test_split

from .errors import DataSourceError, SchemaMismatchError
from .schema import Column, ColumnKind, Schema

logger = structlog.get_logger(__name__)

_TRUE_STRINGS = {"1", "true", "t", "yes", "y"}
_FALSE_STRINGS = {"0", "false", "f", "no", "n", ""}


def _parse_boolean(value: Any, column: str) -> bool:
    if value is None:
        return False
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, (int, float, np.integer, np.floating)):
        return bool(value) if not np.isnan(value) else False
    lowered = str(value).strip().lower()
    if lowered in _TRUE_STRINGS:
        return True
    if lowered in _FALSE_STRINGS:
        return False
    raise SchemaMismatchError(
        f"Value {value!r} in column {column!r} is not a boolean", column=column
    )


def _freeze(array: np.ndarray) -> np.ndarray:
    if array.flags.writeable:
        array = array.copy()
        array.setflags(write=False)
    return array


def _freeze_sparse(values) -> sparse.csr_matrix:
    if (
        isinstance(values, sparse.csr_matrix)
        and values.dtype == np.float64
        and not values.data.flags.writeable
    ):
        return values
    matrix = sparse.csr_matrix(values, dtype=np.float64, copy=True)
    # canonical before freezing, scipy sorts indices in place otherwise
    matrix.sum_duplicates()
    matrix.sort_indices()
    for array in (matrix.data, matrix.indices, matrix.indptr):
        array.setflags(write=False)
    return matrix


def _is_blank(value: Any) -> bool:
    return _is_missing(value) or (isinstance(value, str) and not value.strip())


def _to_numeric(series: pd.Series, name: str) -> np.ndarray:
    """Parse a numeric column; blanks become NaN, anything else must parse."""
    parsed = pd.to_numeric(series, errors="coerce")
    bad = parsed.isna() & ~series.map(_is_blank)
    bad &= ~series.map(lambda v: str(v).strip().lower() == "nan")
    if bad.any():
        value = series[bad].iloc[0]
        raise SchemaMismatchError(
            f"Column {name!r} has non-numeric value {value!r}", column=name
        )
    return parsed.to_numpy(dtype=np.float64)


def _coerce(column: Column, values: Any):
    """Convert raw values into the array type backing ``column``."""
    if column.kind == ColumnKind.VECTOR:
        if sparse.issparse(values):
            matrix = _freeze_sparse(values)
        else:
            matrix = _freeze(np.asarray(values, dtype=np.float64))
            if matrix.ndim != 2:
                raise SchemaMismatchError(
                    f"Vector column {column.name!r} needs a 2-D array, "
                    f"got {matrix.ndim}-D",
                    column=column.name,
                )
        if column.width is not None and matrix.shape[1] != column.width:
            raise SchemaMismatchError(
                f"Vector column {column.name!r} has width {matrix.shape[1]}, "
                f"schema declares {column.width}",
                column=column.name,
            )
        return matrix

    if isinstance(values, np.ndarray) and not values.flags.writeable:
        if column.kind == ColumnKind.NUMERIC and values.dtype == np.float64:
            return values
        if column.kind == ColumnKind.KEY and values.dtype == np.int64:
            return values
        if column.kind == ColumnKind.BOOLEAN and values.dtype == np.bool_:
            return values
        if column.kind == ColumnKind.TEXT and values.dtype == object:
            return values

    series = pd.Series(list(values), dtype=object)
    if column.kind == ColumnKind.NUMERIC:
        array = _to_numeric(series, column.name)
    elif column.kind == ColumnKind.TEXT:
        array = series.map(lambda v: "" if _is_missing(v) else str(v))
        array = array.to_numpy(dtype=object)
    elif column.kind == ColumnKind.BOOLEAN:
        array = np.array(
            [_parse_boolean(v, column.name) for v in series], dtype=np.bool_
        )
    else:
        array = series.map(lambda v: -1 if _is_missing(v) else int(v))
        array = array.to_numpy(dtype=np.int64)
    return _freeze(array)


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, float) and np.isnan(value))


def _row_count(values) -> int:
    return values.shape[0]


class Dataset:
    """Immutable table of typed columns sharing one schema."""

    def __init__(self, schema: Schema, columns: Mapping[str, Any]):
        missing = [name for name in schema.names if name not in columns]
        if missing:
            raise SchemaMismatchError(
                f"No values supplied for columns: {missing}", column=missing[0]
            )
        extra = [name for name in columns if name not in schema]
        if extra:
            raise SchemaMismatchError(
                f"Values supplied for unknown columns: {extra}", column=extra[0]
            )

        data: Dict[str, Any] = {}
        resolved = []
        n_rows: Optional[int] = None
        for column in schema:
            values = _coerce(column, columns[column.name])
            count = _row_count(values)
            if n_rows is None:
                n_rows = count
            elif count != n_rows:
                raise SchemaMismatchError(
                    f"Column {column.name!r} has {count} rows, expected {n_rows}",
                    column=column.name,
                )
            if column.is_vector and column.width is None:
                column = Column(column.name, column.kind, width=values.shape[1])
            resolved.append(column)
            data[column.name] = values

        self._schema = Schema(tuple(resolved))
        self._columns = data
        self._n_rows = n_rows or 0

    @property
    def schema(self) -> Schema:
        return self._schema

    def __len__(self) -> int:
        return self._n_rows

    def __repr__(self) -> str:
        return f"Dataset(rows={self._n_rows}, columns={list(self._schema.names)})"

    def column(self, name: str):
        self._schema[name]
        return self._columns[name]

    def dense(self, name: str) -> np.ndarray:
        """Column values as a dense array (vectors become 2-D)."""
        values = self.column(name)
        return values.toarray() if sparse.issparse(values) else values

    def with_column(self, column: Column, values: Any) -> "Dataset":
        """Return a new dataset with ``column`` added or replaced."""
        schema = self._schema.with_column(column)
        columns = {n: v for n, v in self._columns.items() if n != column.name}
        columns[column.name] = values
        return Dataset(schema, columns)

    def take(self, indices: Iterable[int]) -> "Dataset":
        idx = np.asarray(list(indices), dtype=np.int64)
        return Dataset(
            self._schema, {name: values[idx] for name, values in self._columns.items()}
        )

    def rows(self) -> Iterator[Dict[str, Any]]:
        for i in range(self._n_rows):
            yield self.row(i)

    def row(self, i: int) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for column in self._schema:
            values = self._columns[column.name]
            if sparse.issparse(values):
                out[column.name] = values[i].toarray().ravel()
            elif column.is_vector:
                out[column.name] = values[i]
            else:
                value = values[i]
                out[column.name] = value.item() if isinstance(value, np.generic) else value
        return out

    @classmethod
    def from_records(cls, records: Iterable[Any], schema: Schema) -> "Dataset":
        """Build a dataset from mappings or pydantic models.

        Columns absent from a record get empty values (NaN, "", False, -1).
        """
        dumped = [_record_to_mapping(r) for r in records]
        columns = {}
        for column in schema:
            if column.is_vector:
                if not dumped:
                    width = column.width or 0
                    columns[column.name] = np.zeros((0, width))
                else:
                    columns[column.name] = np.vstack(
                        [np.asarray(r[column.name], dtype=np.float64) for r in dumped]
                    )
            else:
                columns[column.name] = [r.get(column.name) for r in dumped]
        return cls(schema, columns)


def _record_to_mapping(record: Any) -> Mapping[str, Any]:
    if hasattr(record, "model_dump"):
        return record.model_dump()
    if isinstance(record, Mapping):
        return record
    raise TypeError(f"Unsupported record type: {type(record).__name__}")


def load_data(
    path: Union[str, Path],
    schema: Schema,
    has_header: bool = False,
    separator: str = ",",
    allow_quoting: bool = True,
) -> Dataset:
    """Load a delimited text file into a dataset.

    Each schema column with an ``index`` is read from that field position;
    columns without one are read in declaration order.
    """
    path = Path(path)
    if not path.is_file():
        raise DataSourceError(f"Data file not found: {path}", path=str(path))
    try:
        df = pd.read_csv(
            path,
            sep=separator,
            header=0 if has_header else None,
            dtype=str,
            keep_default_na=False,
            quoting=csv.QUOTE_MINIMAL if allow_quoting else csv.QUOTE_NONE,
            skip_blank_lines=True,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise DataSourceError(f"Unable to parse {path}: {e}", path=str(path)) from e
    except OSError as e:
        raise DataSourceError(f"Unable to read {path}: {e}", path=str(path)) from e

    columns = {}
    for position, column in enumerate(schema):
        index = column.index if column.index is not None else position
        if index >= df.shape[1]:
            raise SchemaMismatchError(
                f"Column {column.name!r} maps to field {index}, but {path} "
                f"has {df.shape[1]} fields",
                column=column.name,
            )
        columns[column.name] = df.iloc[:, index].to_numpy()

    try:
        dataset = Dataset(schema, columns)
    except SchemaMismatchError as e:
        raise SchemaMismatchError(
            f"{e} in {path}", column=e.column, stage=e.stage
        ) from e
    logger.info("Data loaded", path=str(path), rows=len(dataset))
    return dataset


@dataclass(frozen=True)
class TrainTestData:
    train: Dataset
    test: Dataset


def train_test_split(
    dataset: Dataset, test_fraction: float = 0.2, seed: Optional[int] = None
) -> TrainTestData:
    """Randomly partition rows into train and test datasets."""
    if not 0.0 < test_fraction < 1.0:
        raise ValueError(f"test_fraction must be in (0, 1), got {test_fraction}")
    if len(dataset) < 2:
        raise ValueError("Need at least two rows to split a dataset")
    train_idx, test_idx = sk_train_test_split(
        np.arange(len(dataset)), test_size=test_fraction, random_state=seed
    )
    logger.debug(
        "Dataset split", train_rows=len(train_idx), test_rows=len(test_idx)
    )
    return TrainTestData(
        train=dataset.take(sorted(train_idx)), test=dataset.take(sorted(test_idx))
    )
