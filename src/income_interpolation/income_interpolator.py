"""
Median household income interpolation

Fills gaps in an annual income series with local regression (LOESS):
missing historical years are interpolated and the forecast year is
extrapolated by evaluating the same local fit beyond the last observation.

Stages: load -> clean -> augment -> split -> predict -> combine -> render.
"""

import pandas as pd
import numpy as np
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union
import logging

from .core.loess import Loess
from .data_manager import DataManager, OBSERVED, INTERPOLATED, COLUMNS
from .utils.validation import (
    DuplicateKeyError,
    FitError,
    validate_series
)

logger = logging.getLogger(__name__)

Override = Union[Tuple[int, Optional[float]], Dict[str, Optional[float]]]


@dataclass
class InterpolationResult:
    """Container for one run of the pipeline at a given span."""
    span: float
    surface: str
    degree: int
    combined: pd.DataFrame

    @property
    def interpolated(self) -> pd.DataFrame:
        """Rows whose value was predicted."""
        return self.combined[self.combined['category'] == INTERPOLATED]

    @property
    def observed(self) -> pd.DataFrame:
        return self.combined[self.combined['category'] == OBSERVED]


@dataclass
class SpanComparison:
    """Results for several spans plus a tidy summary of the predicted rows."""
    results: List[InterpolationResult] = field(default_factory=list)

    @property
    def summary(self) -> pd.DataFrame:
        frames = [
            result.interpolated[['year', 'value']].assign(span=result.span)
            for result in self.results
        ]
        if not frames:
            return pd.DataFrame(columns=['year', 'span', 'value'])
        return pd.concat(frames, ignore_index=True)[['year', 'span', 'value']]

    def pivot(self) -> pd.DataFrame:
        """Predicted values with one row per year and one column per span."""
        return self.summary.pivot(index='year', columns='span', values='value')


def _normalize_override(override: Override) -> Tuple[int, float]:
    if isinstance(override, dict):
        year, value = override['year'], override.get('value')
    else:
        year, value = override
    return int(year), np.nan if value is None else float(value)


def augment(df: pd.DataFrame, overrides: Iterable[Override]) -> pd.DataFrame:
    """
    Append externally supplied years to a cleaned frame.

    Args:
        df: Cleaned frame
        overrides: (year, value) pairs or {'year': ..., 'value': ...} mappings;
            a value of None marks a year to be predicted

    Returns:
        New frame sorted by year

    Raises:
        DuplicateKeyError: If an override year already exists or is repeated
    """
    records = [_normalize_override(o) for o in overrides]
    if not records:
        return df.copy()

    years = [year for year, _ in records]
    clashes = sorted(set(years) & set(df['year'].astype(int)))
    if clashes:
        raise DuplicateKeyError("Override years already present in the data", stage='augment', rows=clashes)
    repeated = sorted(y for y in set(years) if years.count(y) > 1)
    if repeated:
        raise DuplicateKeyError("Override years repeated", stage='augment', rows=repeated)

    extra = pd.DataFrame({
        'year': np.array(years, dtype='int64'),
        'value': np.array([value for _, value in records], dtype='float64'),
        'category': OBSERVED
    })
    logger.info(f"Augmenting with {len(extra)} rows: {extra['year'].tolist()}")

    augmented = pd.concat([df[COLUMNS], extra], ignore_index=True)
    return augmented.sort_values('year', kind='mergesort').reset_index(drop=True)


def split(df: pd.DataFrame) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Partition rows into complete (value present) and empty (value absent) sets.

    Returns:
        Tuple of copies (complete, empty); complete rows are tagged Observed,
        empty rows Interpolated
    """
    present = df['value'].notna()
    complete = df.loc[present].copy()
    empty = df.loc[~present].copy()
    complete['category'] = OBSERVED
    empty['category'] = INTERPOLATED
    logger.info(f"Split: {len(complete)} complete rows, {len(empty)} empty rows {empty['year'].tolist()}")
    return complete, empty


def predict_missing(
    complete: pd.DataFrame,
    empty: pd.DataFrame,
    span: float,
    degree: int = 2,
    surface: str = 'interpolated-surface'
) -> pd.DataFrame:
    """
    Predict the empty rows from a local regression of value on year.

    Args:
        complete: Rows with a value (training set)
        empty: Rows to predict
        span: LOESS span
        degree: Degree of the local polynomial
        surface: 'interpolated-surface' or 'direct'

    Returns:
        Copy of ``empty`` with values rounded to the nearest integer

    Raises:
        FitError: If the model cannot be fitted or a prediction is undefined
    """
    model = Loess(span=span, degree=degree, surface=surface)
    model.fit(complete['year'].to_numpy(), complete['value'].to_numpy())

    predicted = empty.copy()
    if predicted.empty:
        logger.info("No empty rows to predict")
        return predicted

    values = model.predict(predicted['year'].to_numpy())
    undefined = predicted.loc[~np.isfinite(values), 'year'].tolist()
    if undefined:
        hint = " (outside the interpolated surface; use the 'direct' surface)" \
            if surface == 'interpolated-surface' else ""
        raise FitError(f"Prediction undefined{hint}", stage='predict', rows=undefined)

    predicted['value'] = np.round(values)
    predicted['category'] = INTERPOLATED
    for year, value in zip(predicted['year'], predicted['value']):
        logger.info(f"span={span}: predicted {year} = {value:,.0f}")
    return predicted


def combine(complete: pd.DataFrame, predicted: pd.DataFrame) -> pd.DataFrame:
    """Concatenate observed and predicted rows, ordered by year, and validate the series."""
    combined = pd.concat([complete[COLUMNS], predicted[COLUMNS]], ignore_index=True)
    combined = combined.sort_values('year', kind='mergesort').reset_index(drop=True)
    validate_series(combined)
    return combined


class IncomeInterpolator:
    """
    Runs the interpolation pipeline on an income time series.

    Args:
        data_manager: Loader/cleaner for the input file
        overrides: Years absent from the feed, as (year, value) pairs; value None marks a forecast year
        degree: Degree of the local polynomial
        surface: 'interpolated-surface' or 'direct'
    """

    def __init__(
        self,
        data_manager: DataManager,
        overrides: Sequence[Override] = (),
        degree: int = 2,
        surface: str = 'direct'
    ):
        self.data_manager = data_manager
        self.overrides = list(overrides)
        self.degree = degree
        self.surface = surface
        self._prepared: Optional[pd.DataFrame] = None

    @classmethod
    def from_config(cls, config, input_file: Optional[Union[str, Path]] = None,
                    surface: Optional[str] = None, degree: Optional[int] = None) -> 'IncomeInterpolator':
        """Build an interpolator from a Config, with optional command-line overrides."""
        data_manager = DataManager(
            data_path=input_file or config.get('data.input_file'),
            date_column=config.get('data.date_column'),
            value_column=config.get('data.value_column'),
            date_format=config.get('data.date_format', '%d/%m/%y'),
            missing_marker=config.get('data.missing_marker', '.')
        )
        return cls(
            data_manager,
            overrides=config.get('overrides') or [],
            degree=degree if degree is not None else config.get('loess.degree', 2),
            surface=surface or config.get('loess.surface', 'direct')
        )

    def prepare(self) -> pd.DataFrame:
        """Load, clean and augment the data (cached)."""
        if self._prepared is None:
            cleaned = self.data_manager.load()
            self._prepared = augment(cleaned, self.overrides)
        return self._prepared

    def run(self, span: float) -> InterpolationResult:
        """Split the prepared data, predict the empty rows at ``span`` and combine."""
        logger.info(f"Running interpolation with span={span}, degree={self.degree}, surface={self.surface}")
        complete, empty = split(self.prepare())
        predicted = predict_missing(complete, empty, span, degree=self.degree, surface=self.surface)
        combined = combine(complete, predicted)
        return InterpolationResult(span=span, surface=self.surface, degree=self.degree, combined=combined)

    def compare_spans(self, spans: Iterable[float]) -> SpanComparison:
        """Run the pipeline once per span."""
        comparison = SpanComparison()
        for span in spans:
            comparison.results.append(self.run(span))
        return comparison
