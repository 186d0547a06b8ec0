"""Column-level feature transform stages.

Every stage declares the schema it produces (``output_schema``) so that a
whole chain can be checked before any data is read. ``fit`` learns whatever
state the stage needs from the training dataset and returns a fitted stage
whose ``apply`` maps a dataset to a new dataset with one added column.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import numpy as np
import pandas as pd
import structlog
from scipy import sparse
from sklearn.feature_extraction.text import TfidfVectorizer
from sklearn.pipeline import FeatureUnion, Pipeline as SkPipeline
from sklearn.preprocessing import Normalizer, OneHotEncoder

from .data import Dataset
from .errors import PipelineError
from .schema import Column, ColumnKind, Schema, key, text, vector

logger = structlog.get_logger(__name__)

ALL_KINDS = tuple(ColumnKind)
CONCATENABLE_KINDS = (ColumnKind.NUMERIC, ColumnKind.BOOLEAN, ColumnKind.VECTOR)
KEYABLE_KINDS = (ColumnKind.TEXT, ColumnKind.BOOLEAN, ColumnKind.NUMERIC)


class FittedStage(ABC):
    """A stage whose learned state is fixed; applies to any dataset."""

    @abstractmethod
    def output_column(self, schema: Schema) -> Column:
        """Column this stage adds to ``schema``."""

    @abstractmethod
    def compute(self, dataset: Dataset):
        """Values of the output column for every row of ``dataset``."""

    def output_schema(self, schema: Schema) -> Schema:
        return schema.with_column(self.output_column(schema))

    def apply(self, dataset: Dataset) -> Dataset:
        return dataset.with_column(
            self.output_column(dataset.schema), self.compute(dataset)
        )


class Stage(ABC):
    """An unfitted transform stage."""

    output: str

    def describe(self) -> str:
        return f"{type(self).__name__}({self.output})"

    @abstractmethod
    def output_schema(self, schema: Schema) -> Schema:
        """Validate ``schema`` and return the schema this stage produces."""

    @abstractmethod
    def _fit(self, dataset: Dataset) -> FittedStage:
        ...

    def fit(self, dataset: Dataset) -> FittedStage:
        self.output_schema(dataset.schema)
        fitted = self._fit(dataset)
        logger.debug("Stage fitted", stage=self.describe(), rows=len(dataset))
        return fitted


@dataclass(frozen=True)
class CopyColumns(Stage, FittedStage):
    """Expose ``input`` under the additional name ``output``."""

    output: str
    input: str

    def output_column(self, schema: Schema) -> Column:
        source = schema.require(self.input, ALL_KINDS, stage=self.describe())
        return source.renamed(self.output)

    def output_schema(self, schema: Schema) -> Schema:
        return FittedStage.output_schema(self, schema)

    def compute(self, dataset: Dataset):
        return dataset.column(self.input)

    def _fit(self, dataset: Dataset) -> FittedStage:
        return self


@dataclass(frozen=True)
class OneHotEncoding(Stage):
    """Encode a text column as an indicator vector over the fitted categories.

    Categories are kept in sorted order. A category never seen during fit
    encodes as an all-zero vector.
    """

    output: str
    input: str

    def output_schema(self, schema: Schema) -> Schema:
        schema.require(self.input, (ColumnKind.TEXT,), stage=self.describe())
        return schema.with_column(vector(self.output))

    def _fit(self, dataset: Dataset) -> FittedStage:
        encoder = OneHotEncoder(
            handle_unknown="ignore", sparse_output=False, dtype=np.float64
        )
        encoder.fit(dataset.column(self.input).reshape(-1, 1))
        return FittedOneHotEncoding(self.output, self.input, encoder)


@dataclass(frozen=True)
class FittedOneHotEncoding(FittedStage):
    output: str
    input: str
    encoder: OneHotEncoder

    @property
    def categories(self) -> Tuple[str, ...]:
        return tuple(self.encoder.categories_[0])

    def output_column(self, schema: Schema) -> Column:
        schema.require(self.input, (ColumnKind.TEXT,), stage=f"OneHotEncoding({self.output})")
        return vector(self.output, width=len(self.categories))

    def compute(self, dataset: Dataset):
        values = dataset.column(self.input)
        unseen = int((~np.isin(values, self.categories)).sum())
        if unseen:
            logger.debug(
                "Unseen categories encoded as zeros", column=self.input, rows=unseen
            )
        return self.encoder.transform(values.reshape(-1, 1))


class Concatenate(Stage, FittedStage):
    """Join numeric, boolean and vector columns, in order, into one vector."""

    def __init__(self, output: str, *inputs: str):
        if not inputs:
            raise ValueError("Concatenate needs at least one input column")
        self.output = output
        self.inputs: Tuple[str, ...] = tuple(inputs)

    def __repr__(self) -> str:
        return f"Concatenate({self.output!r}, {', '.join(map(repr, self.inputs))})"

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, Concatenate)
            and (self.output, self.inputs) == (other.output, other.inputs)
        )

    def __hash__(self) -> int:
        return hash((self.output, self.inputs))

    def output_column(self, schema: Schema) -> Column:
        widths = [
            schema.require(name, CONCATENABLE_KINDS, stage=self.describe()).width
            for name in self.inputs
        ]
        width = None if any(w is None for w in widths) else sum(widths)
        return vector(self.output, width=width)

    def output_schema(self, schema: Schema) -> Schema:
        return FittedStage.output_schema(self, schema)

    def compute(self, dataset: Dataset):
        blocks = []
        for name in self.inputs:
            values = dataset.column(name)
            if sparse.issparse(values) or values.ndim == 2:
                blocks.append(values)
            else:
                blocks.append(values.astype(np.float64).reshape(-1, 1))
        if any(sparse.issparse(b) for b in blocks):
            return sparse.hstack(blocks, format="csr", dtype=np.float64)
        return np.hstack(blocks)

    def _fit(self, dataset: Dataset) -> FittedStage:
        return self


@dataclass(frozen=True)
class FeaturizeText(Stage):
    """TF-IDF featurization of free text.

    Word uni- and bi-grams plus character tri-grams, the joined vector L2
    normalised. Output is a sparse vector whose width is fixed at fit.
    """

    output: str
    input: str
    max_features: Optional[int] = 5000

    def output_schema(self, schema: Schema) -> Schema:
        schema.require(self.input, (ColumnKind.TEXT,), stage=self.describe())
        return schema.with_column(vector(self.output))

    def _fit(self, dataset: Dataset) -> FittedStage:
        featurizer = SkPipeline(
            [
                (
                    "union",
                    FeatureUnion(
                        [
                            (
                                "words",
                                TfidfVectorizer(
                                    analyzer="word",
                                    ngram_range=(1, 2),
                                    max_features=self.max_features,
                                ),
                            ),
                            (
                                "chars",
                                TfidfVectorizer(
                                    analyzer="char_wb",
                                    ngram_range=(3, 3),
                                    max_features=self.max_features,
                                ),
                            ),
                        ]
                    ),
                ),
                ("l2", Normalizer(norm="l2")),
            ]
        )
        try:
            featurizer.fit(list(dataset.column(self.input)))
        except ValueError as e:
            raise PipelineError(
                f"Cannot featurize column {self.input!r}: {e}"
            ) from e
        return FittedFeaturizeText(self.output, self.input, featurizer)


@dataclass(frozen=True)
class FittedFeaturizeText(FittedStage):
    output: str
    input: str
    featurizer: SkPipeline

    @property
    def width(self) -> int:
        union = self.featurizer.named_steps["union"]
        return sum(
            len(vectorizer.vocabulary_) for _, vectorizer in union.transformer_list
        )

    def output_column(self, schema: Schema) -> Column:
        schema.require(self.input, (ColumnKind.TEXT,), stage=f"FeaturizeText({self.output})")
        return vector(self.output, width=self.width)

    def compute(self, dataset: Dataset):
        return sparse.csr_matrix(
            self.featurizer.transform(list(dataset.column(self.input)))
        )


def _is_missing_value(value: Any) -> bool:
    if isinstance(value, str):
        return value == ""
    return isinstance(value, float) and np.isnan(value)


@dataclass(frozen=True)
class MapValueToKey(Stage):
    """Map values to dense 0-based integer keys.

    The vocabulary holds the distinct non-missing training values in
    first-seen order. Values outside it map to key ``-1``.
    """

    output: str
    input: str

    def output_schema(self, schema: Schema) -> Schema:
        schema.require(self.input, KEYABLE_KINDS, stage=self.describe())
        return schema.with_column(key(self.output))

    def _fit(self, dataset: Dataset) -> FittedStage:
        values = pd.unique(pd.Series(dataset.column(self.input), dtype=object))
        vocabulary = tuple(
            v.item() if isinstance(v, np.generic) else v
            for v in values
            if not _is_missing_value(v)
        )
        return FittedMapValueToKey(self.output, self.input, vocabulary)


@dataclass(frozen=True)
class FittedMapValueToKey(FittedStage):
    output: str
    input: str
    vocabulary: Tuple[Any, ...]

    def output_column(self, schema: Schema) -> Column:
        schema.require(self.input, KEYABLE_KINDS, stage=f"MapValueToKey({self.output})")
        return key(self.output, self.vocabulary)

    def compute(self, dataset: Dataset):
        lookup: Dict[Any, int] = {v: i for i, v in enumerate(self.vocabulary)}
        return np.array(
            [
                lookup.get(v.item() if isinstance(v, np.generic) else v, -1)
                for v in dataset.column(self.input)
            ],
            dtype=np.int64,
        )


@dataclass(frozen=True)
class MapKeyToValue(Stage, FittedStage):
    """Map a key column back to its values through the key's vocabulary.

    Key ``-1`` (missing) maps to the empty string.
    """

    output: str
    input: str

    def output_column(self, schema: Schema) -> Column:
        schema.require(self.input, (ColumnKind.KEY,), stage=self.describe())
        return text(self.output)

    def output_schema(self, schema: Schema) -> Schema:
        return FittedStage.output_schema(self, schema)

    def compute(self, dataset: Dataset):
        vocabulary = dataset.schema[self.input].vocabulary
        if vocabulary is None:
            raise PipelineError(
                f"Key column {self.input!r} carries no vocabulary to map back from"
            )
        size = len(vocabulary)
        return np.array(
            [str(vocabulary[k]) if 0 <= k < size else "" for k in dataset.column(self.input)],
            dtype=object,
        )

    def _fit(self, dataset: Dataset) -> FittedStage:
        return self
