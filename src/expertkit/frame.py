"""Build attribute definitions and training examples from an in-memory Polars DataFrame."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, NamedTuple

import polars as pl
from loguru import logger

from expertkit.exceptions import ColumnsNotFoundError
from expertkit.tree.models import WILDCARD, AttributeDef, TrainingExample, parse_numeric

type ColumnType = Literal["numeric", "categorical", "excluded"]

# ---------------------------------------------------------------------------
# Private helpers -- Column type classification
# ---------------------------------------------------------------------------

_DTYPE_TO_COLUMN_TYPE: dict[type[pl.DataType] | pl.DataType, ColumnType] = {
    pl.Int8: "numeric",
    pl.Int16: "numeric",
    pl.Int32: "numeric",
    pl.Int64: "numeric",
    pl.UInt8: "numeric",
    pl.UInt16: "numeric",
    pl.UInt32: "numeric",
    pl.UInt64: "numeric",
    pl.Float32: "numeric",
    pl.Float64: "numeric",
    pl.Boolean: "categorical",
    pl.String: "categorical",
    pl.Categorical: "categorical",
}


def _classify_column(dtype: pl.DataType) -> ColumnType:
    """Classify a Polars column dtype as numeric, categorical, or unsupported.

    Parameterized dtypes such as `Enum([...])` do not hash like their bare
    class, so an `isinstance` fallback handles them.

    Args:
        dtype (pl.DataType): The Polars data type of the column.

    Returns:
        ColumnType: `"numeric"`, `"categorical"`, or `"excluded"`.
    """
    result = _DTYPE_TO_COLUMN_TYPE.get(dtype)
    if result is not None:
        return result
    if isinstance(dtype, (pl.Enum, pl.Categorical)):
        return "categorical"
    return "excluded"


# ---------------------------------------------------------------------------
# Public interface
# ---------------------------------------------------------------------------


class ExcludedColumn(NamedTuple):
    """A feature column left out of the training set, with the reason.

    Attributes:
        name (str): The column name.
        reason (str): Human-readable explanation for the exclusion.
    """

    name: str
    reason: str


@dataclass(frozen=True)
class TrainingSet:
    """Attributes and examples derived from a DataFrame, ready for `train`.

    Attributes:
        attributes (list[AttributeDef]): One attribute per kept feature column,
            in column order.
        examples (list[TrainingExample]): One example per row with a target value.
        excluded (list[ExcludedColumn]): Feature columns that were left out.
    """

    attributes: list[AttributeDef]
    examples: list[TrainingExample]
    excluded: list[ExcludedColumn] = field(default_factory=list)


def training_set_from_frame(
    df: pl.DataFrame,
    target: str,
    *,
    features: list[str] | None = None,
) -> TrainingSet:
    """Derive attribute definitions and training examples from a DataFrame.

    Integer and float columns become numeric attributes. String, categorical,
    enum, and boolean columns become categorical attributes, unless every
    known value parses as a number, in which case they become numeric. Nulls
    become the wildcard `"*"`. Rows whose target is null or blank are dropped.
    Categorical domains are the distinct values sorted case-insensitively.

    Args:
        df (pl.DataFrame): The source data.
        target (str): The column holding the class labels.
        features (list[str] | None): Feature columns to use. Defaults to every
            column except `target`.

    Returns:
        TrainingSet: Attributes, examples, and any excluded columns.

    Raises:
        ColumnsNotFoundError: If `target` or a requested feature is not a column of `df`.

    Examples:
        >>> import polars as pl
        >>> df = pl.DataFrame({"Car": ["yes", "no", None], "Advice": ["museum", "home", "home"]})
        >>> training_set = training_set_from_frame(df, "Advice")
        >>> training_set.attributes[0].domain
        ('no', 'yes')
        >>> training_set.examples[2].attributes
        {'Car': '*'}
    """
    feature_columns = [column for column in (features or df.columns) if column != target]
    missing_columns = [column for column in [target, *feature_columns] if column not in df.columns]
    if missing_columns:
        raise ColumnsNotFoundError(missing_columns=missing_columns, available_columns=list(df.columns))

    # A blank label cannot name a class.
    df = df.filter(pl.col(target).is_not_null() & (pl.col(target).cast(pl.String).str.strip_chars() != ""))

    attributes: list[AttributeDef] = []
    excluded: list[ExcludedColumn] = []
    for column in feature_columns:
        attribute_or_reason = _derive_attribute(df[column])
        if isinstance(attribute_or_reason, AttributeDef):
            attributes.append(attribute_or_reason)
        else:
            excluded.append(ExcludedColumn(name=column, reason=attribute_or_reason))

    kept = [attribute.name for attribute in attributes]
    tokens = df.select([pl.col(name).cast(pl.String) for name in [*kept, target]])
    examples = [
        TrainingExample(
            attributes={name: WILDCARD if row[name] is None else row[name] for name in kept},
            label=row[target],
        )
        for row in tokens.iter_rows(named=True)
    ]

    logger.debug(
        "Training set derived from DataFrame",
        rows=len(examples),
        attributes=kept,
        excluded=[column.name for column in excluded],
    )
    return TrainingSet(attributes=attributes, examples=examples, excluded=excluded)


# ---------------------------------------------------------------------------
# Private helpers -- Attribute derivation
# ---------------------------------------------------------------------------


def _derive_attribute(series: pl.Series) -> AttributeDef | str:
    """Derive an attribute definition for a column, or the reason to exclude it.

    Args:
        series (pl.Series): The feature column.

    Returns:
        AttributeDef | str: The attribute, or a human-readable exclusion reason.
    """
    column_type = _classify_column(series.dtype)
    if column_type == "excluded":
        return "unsupported dtype"

    known = [value for value in series.cast(pl.String).drop_nulls().unique().to_list() if value != WILDCARD]
    if not known:
        return "all values are null"

    if column_type == "numeric" or all(parse_numeric(value) is not None for value in known):
        return AttributeDef.numeric(series.name)

    domain = sorted(known, key=lambda value: (value.casefold(), value))
    return AttributeDef.categorical(series.name, domain)
