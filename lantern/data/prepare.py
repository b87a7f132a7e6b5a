# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Input adapters: turn user data into a numeric predictor matrix and encoded outcome.

Two entry points, picked by the caller:
  - prepare_xy(x, y): x is a pandas DataFrame or a 2-D numpy array of numeric
    predictors, y holds the class labels.
  - prepare_formula(formula, data): "class ~ a + b" or "class ~ ." against a
    DataFrame. Non-numeric predictors are expanded into indicator columns
    (first level dropped), which is the supported route for categorical data.

Both return a Blueprint that records exactly how the columns were built, so
prediction data goes through the same encoding with `Blueprint.forge`.

Missing values are not handled here: predictor NaNs pass through and missing
outcomes are encoded as -1, and lantern.training.validation drops those rows.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import numpy as np
import pandas as pd
import torch

from lantern.training.exceptions import InvalidArgumentError, NonNumericPredictorsError
from lantern.training.validation import check_numeric_predictors

MISSING_LABEL = -1


def _to_python(value: Any) -> Any:
    """Unwrap numpy scalars so levels survive a JSON round trip."""
    if isinstance(value, np.generic):
        return value.item()
    return value


@dataclass(frozen=True)
class Blueprint:
    """
    Everything needed to re-create the predictor matrix for new data.

    Attributes:
        predictors: Source columns taken from the input, in order.
        columns: Names of the numeric columns the model sees.
        levels: Outcome class labels; position is the class index.
        outcome: Outcome column name, when the data came from a formula.
        factors: (predictor, levels) for each indicator-encoded predictor.
    """

    predictors: tuple[str, ...]
    columns: tuple[str, ...]
    levels: tuple[Any, ...]
    outcome: Optional[str] = None
    factors: tuple[tuple[str, tuple[Any, ...]], ...] = field(default_factory=tuple)

    @property
    def num_classes(self) -> int:
        return len(self.levels)

    def forge(self, new_data: Any) -> torch.Tensor:
        """
        Encode new predictors the same way the training data was encoded.

        Args:
            new_data: DataFrame holding at least the blueprint's predictors,
                or a numpy array with one column per model column.

        Returns:
            float64 tensor of shape (rows, len(columns)).

        Raises:
            InvalidArgumentError: Columns are missing, the width is wrong, or
                a categorical predictor has a level not seen in training.
            NonNumericPredictorsError: A numeric predictor arrived non-numeric.
        """
        if isinstance(new_data, pd.DataFrame):
            # Names are stored as strings, so labels like 0, 1 match "0", "1".
            new_data = new_data.rename(columns=str)
            missing = [name for name in self.predictors if name not in new_data.columns]
            if missing:
                raise InvalidArgumentError(f"New data is missing predictor columns: {missing}")
            frame = _encode_frame(new_data, list(self.predictors), dict(self.factors))
            matrix = frame.loc[:, list(self.columns)].to_numpy(dtype=np.float64)
        else:
            if self.factors:
                raise InvalidArgumentError(
                    "This model encodes categorical predictors; pass a DataFrame"
                )
            matrix = _numeric_matrix(np.asarray(new_data))
            if matrix.shape[1] != len(self.columns):
                raise InvalidArgumentError(
                    f"Expected {len(self.columns)} predictor columns, got {matrix.shape[1]}"
                )
        return torch.from_numpy(np.ascontiguousarray(matrix))

    def decode(self, indices: Sequence[int]) -> list[Any]:
        """Map class indices back to the original outcome labels."""
        return [self.levels[int(i)] for i in indices]

    def to_dict(self) -> dict[str, Any]:
        return {
            "predictors": list(self.predictors),
            "columns": list(self.columns),
            "levels": [_to_python(level) for level in self.levels],
            "outcome": self.outcome,
            "factors": [
                [name, [_to_python(level) for level in levels]]
                for name, levels in self.factors
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Blueprint":
        return cls(
            predictors=tuple(data["predictors"]),
            columns=tuple(data["columns"]),
            levels=tuple(data["levels"]),
            outcome=data.get("outcome"),
            factors=tuple((name, tuple(levels)) for name, levels in data.get("factors", [])),
        )


@dataclass(frozen=True)
class PreparedData:
    """Output of an input adapter; outcome codes use -1 for missing labels."""

    x: np.ndarray
    y: np.ndarray
    blueprint: Blueprint


def _numeric_matrix(array: np.ndarray) -> np.ndarray:
    if array.ndim != 2:
        raise InvalidArgumentError(
            f"Predictors must be a 2-D matrix, got an array with {array.ndim} dimension(s)"
        )
    check_numeric_predictors(array)
    return array.astype(np.float64)


def _encode_outcome(y: Any) -> tuple[np.ndarray, tuple[Any, ...], Optional[str]]:
    """Turn labels into class indices; returns (codes, levels, name)."""
    name: Optional[str] = None
    if isinstance(y, pd.DataFrame):
        if y.shape[1] != 1:
            raise InvalidArgumentError(
                f"The outcome must have exactly one column, got {y.shape[1]}"
            )
        name = str(y.columns[0])
        series = y.iloc[:, 0]
    elif isinstance(y, pd.Series):
        name = None if y.name is None else str(y.name)
        series = y
    else:
        values = np.asarray(y)
        if values.ndim == 2 and values.shape[1] == 1:
            values = values[:, 0]
        if values.ndim != 1:
            raise InvalidArgumentError("The outcome must be a vector of class labels")
        series = pd.Series(values)

    if isinstance(series.dtype, pd.CategoricalDtype):
        levels = tuple(series.cat.categories)
    else:
        present = series[series.notna()]
        if pd.api.types.is_float_dtype(present.dtype) and not np.all(
            np.mod(present.to_numpy(), 1) == 0
        ):
            raise InvalidArgumentError(
                "The outcome must hold class labels; got non-integral numeric values"
            )
        levels = tuple(sorted(present.unique().tolist()))

    categorical = pd.Categorical(series, categories=list(levels))
    codes = np.asarray(categorical.codes, dtype=np.int64)
    return codes, tuple(_to_python(level) for level in levels), name


def prepare_xy(x: Any, y: Any) -> PreparedData:
    """
    Adapt a predictor matrix/frame and a label vector.

    Raises:
        NonNumericPredictorsError: If any predictor column is non-numeric.
        InvalidArgumentError: If the shapes cannot form a dataset.
    """
    if isinstance(x, pd.DataFrame):
        check_numeric_predictors(x)
        names = tuple(str(c) for c in x.columns)
        matrix = x.to_numpy(dtype=np.float64, na_value=np.nan)
    else:
        matrix = _numeric_matrix(np.asarray(x))
        names = tuple(f"x{i + 1}" for i in range(matrix.shape[1]))

    codes, levels, outcome = _encode_outcome(y)
    if len(codes) != matrix.shape[0]:
        raise InvalidArgumentError(
            f"Predictors have {matrix.shape[0]} rows but the outcome has {len(codes)}"
        )

    blueprint = Blueprint(predictors=names, columns=names, levels=levels, outcome=outcome)
    return PreparedData(x=matrix, y=codes, blueprint=blueprint)


def parse_formula(formula: str, columns: Sequence[str]) -> tuple[str, list[str]]:
    """
    Split "outcome ~ a + b" into the outcome and predictor names.

    "." on the right-hand side means every column except the outcome.
    """
    if formula.count("~") != 1:
        raise InvalidArgumentError(f"Formula must contain exactly one '~': {formula!r}")
    lhs, rhs = (part.strip() for part in formula.split("~"))
    if not lhs:
        raise InvalidArgumentError(f"Formula has no outcome: {formula!r}")

    if rhs == ".":
        terms = [c for c in columns if c != lhs]
    else:
        terms = [term.strip() for term in rhs.split("+")]
        if any(not term for term in terms):
            raise InvalidArgumentError(f"Formula has an empty term: {formula!r}")

    unknown = [name for name in [lhs, *terms] if name not in columns]
    if unknown:
        raise InvalidArgumentError(f"Formula references unknown columns: {unknown}")
    if lhs in terms:
        raise InvalidArgumentError("The outcome cannot also be a predictor")
    if not terms:
        raise InvalidArgumentError(f"Formula has no predictors: {formula!r}")
    return lhs, terms


def _encode_frame(
    data: pd.DataFrame,
    predictors: list[str],
    factors: dict[str, tuple[Any, ...]],
) -> pd.DataFrame:
    """Expand factor predictors into indicator columns with fixed levels."""
    pieces: list[pd.DataFrame] = []
    for name in predictors:
        column = data[name]
        if name not in factors:
            if not pd.api.types.is_numeric_dtype(column.dtype):
                raise NonNumericPredictorsError(
                    f"Predictor {name!r} was numeric in training but is {column.dtype} here"
                )
            pieces.append(
                pd.DataFrame(
                    {name: column.to_numpy(dtype=np.float64, na_value=np.nan)},
                    index=data.index,
                )
            )
            continue

        levels = list(factors[name])
        categorical = pd.Categorical(column, categories=levels)
        unseen = pd.isna(categorical) & column.notna().to_numpy()
        if unseen.any():
            bad = sorted({str(v) for v in column[unseen]})
            raise InvalidArgumentError(f"Predictor {name!r} has unseen levels: {bad}")

        dummies = pd.get_dummies(
            categorical, prefix=name, prefix_sep="", drop_first=True, dtype=np.float64
        )
        dummies.index = data.index
        dummies.loc[column.isna().to_numpy(), :] = np.nan
        pieces.append(dummies)

    if not pieces:
        return pd.DataFrame(index=data.index)
    return pd.concat(pieces, axis=1)


def prepare_formula(formula: str, data: pd.DataFrame) -> PreparedData:
    """
    Adapt a DataFrame through a formula, indicator-encoding categorical predictors.

    Raises:
        InvalidArgumentError: If the formula is malformed or names unknown columns.
    """
    if not isinstance(data, pd.DataFrame):
        raise InvalidArgumentError("Formula fitting needs a pandas DataFrame")

    data = data.rename(columns=str)
    outcome, predictors = parse_formula(formula, list(data.columns))

    factors: dict[str, tuple[Any, ...]] = {}
    for name in predictors:
        column = data[name]
        if pd.api.types.is_numeric_dtype(column.dtype):
            continue
        if isinstance(column.dtype, pd.CategoricalDtype):
            levels = tuple(column.cat.categories)
        else:
            levels = tuple(sorted(column.dropna().unique().tolist(), key=str))
        factors[name] = tuple(_to_python(level) for level in levels)

    frame = _encode_frame(data, predictors, factors)
    codes, levels, _ = _encode_outcome(data[outcome])

    blueprint = Blueprint(
        predictors=tuple(predictors),
        columns=tuple(str(c) for c in frame.columns),
        levels=levels,
        outcome=outcome,
        factors=tuple(factors.items()),
    )
    return PreparedData(x=frame.to_numpy(dtype=np.float64), y=codes, blueprint=blueprint)
