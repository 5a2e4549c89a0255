"""
Data validation module for the income interpolation pipeline.
"""

import pandas as pd
import numpy as np
from typing import Optional, List, Dict, Any, Sequence
import logging

logger = logging.getLogger(__name__)

SURFACES = ('interpolated-surface', 'direct')
DEGREES = (0, 1, 2)


class ValidationError(Exception):
    """Base class for validation errors."""
    pass

class DataValidationError(ValidationError):
    """Raised when data validation fails."""
    pass

class ConfigValidationError(ValidationError):
    """Raised when configuration validation fails."""
    pass


class PipelineError(DataValidationError):
    """
    Raised when a pipeline stage cannot process its input.

    Args:
        message: Description of the failure
        stage: Name of the stage that failed (clean, augment, fit, ...)
        rows: Rows (years or source line numbers) that triggered the failure
    """

    def __init__(self, message: str, stage: Optional[str] = None,
                 rows: Optional[Sequence[Any]] = None):
        self.message = message
        self.stage = stage
        self.rows = list(rows) if rows is not None else []
        super().__init__(str(self))

    def __str__(self) -> str:
        text = self.message
        if self.rows:
            text = f"{text} (rows: {', '.join(str(r) for r in self.rows)})"
        return text

class ParseError(PipelineError):
    """Raised when a date or value token cannot be parsed."""
    pass

class DuplicateKeyError(PipelineError):
    """Raised when a year appears more than once."""
    pass

class FitError(PipelineError):
    """Raised when the local regression cannot be fitted or evaluated."""
    pass


def validate_dataframe(
    df: pd.DataFrame,
    required_columns: Optional[List[str]] = None,
    min_columns: int = 1
) -> None:
    """
    Validate a pandas DataFrame for required properties.

    Args:
        df: DataFrame to validate
        required_columns: List of columns that must be present
        min_columns: Minimum number of columns the frame must have

    Raises:
        DataValidationError: If validation fails
    """
    if df.empty:
        raise DataValidationError("DataFrame is empty")

    if len(df.columns) < min_columns:
        raise DataValidationError(
            f"Expected at least {min_columns} columns, got {df.columns.tolist()}"
        )

    if required_columns:
        missing_cols = set(required_columns) - set(df.columns)
        if missing_cols:
            raise DataValidationError(f"Missing required columns: {missing_cols}")

    logger.debug(f"DataFrame validation passed: {df.shape}")


def validate_unique_years(df: pd.DataFrame, stage: str) -> None:
    """Raise DuplicateKeyError if any year occurs more than once."""
    duplicated = df.loc[df['year'].duplicated(keep=False), 'year']
    if not duplicated.empty:
        years = sorted(set(int(y) for y in duplicated))
        raise DuplicateKeyError("Duplicate years", stage=stage, rows=years)


def validate_series(df: pd.DataFrame) -> None:
    """
    Validate a combined series: one row per year, contiguous years, every value present.

    Args:
        df: Combined DataFrame with year, value and category columns

    Raises:
        DataValidationError: If the frame lacks the series columns
        DuplicateKeyError: If a year appears twice
        PipelineError: If years are missing or a value is absent
    """
    validate_dataframe(df, required_columns=['year', 'value', 'category'])
    validate_unique_years(df, stage='combine')

    years = df['year'].astype(int)
    expected = set(range(years.min(), years.max() + 1))
    gaps = sorted(expected - set(years))
    if gaps:
        raise PipelineError("Years are not contiguous", stage='combine', rows=gaps)

    missing = df.loc[~np.isfinite(df['value'].astype(float)), 'year'].tolist()
    if missing:
        raise PipelineError("Rows without a value after prediction", stage='combine', rows=missing)

    logger.debug(f"Series validation passed: {years.min()}-{years.max()}")


def validate_loess_params(span: float, degree: int, surface: str) -> None:
    """Raise ValueError for a span, degree or surface outside its domain."""
    if not np.isfinite(span) or span <= 0:
        raise ValueError(f"span must be a positive number, got {span}")
    if degree not in DEGREES:
        raise ValueError(f"degree must be one of {DEGREES}, got {degree}")
    if surface not in SURFACES:
        raise ValueError(f"surface must be one of {SURFACES}, got {surface!r}")


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validate configuration dictionary.

    Args:
        config: Configuration dictionary to validate

    Raises:
        ConfigValidationError: If validation fails
    """
    required_sections = ['data', 'loess', 'visualization', 'logging']

    try:
        # Check required sections
        missing_sections = set(required_sections) - set(config.keys())
        if missing_sections:
            raise ConfigValidationError(f"Missing required config sections: {missing_sections}")

        # Validate data section
        for key in ('input_file', 'date_format', 'missing_marker'):
            if key not in config['data']:
                raise ConfigValidationError(f"Missing {key} in data configuration")

        # Validate overrides
        for override in config.get('overrides') or []:
            if not isinstance(override, dict) or 'year' not in override:
                raise ConfigValidationError(f"Override must be a mapping with a year: {override}")

        # Validate loess section
        spans = config['loess'].get('spans')
        if not isinstance(spans, list) or not spans:
            raise ConfigValidationError("loess.spans must be a non-empty list")
        for span in spans:
            validate_loess_params(
                float(span),
                config['loess'].get('degree', 2),
                config['loess'].get('surface', 'interpolated-surface')
            )

        # Validate visualization section
        if 'figure_sizes' not in config['visualization']:
            raise ConfigValidationError("Missing figure_sizes in visualization configuration")

        # Validate logging section
        if 'level' not in config['logging']:
            raise ConfigValidationError("Missing logging level configuration")
        if 'format' not in config['logging']:
            raise ConfigValidationError("Missing logging format configuration")

        logger.debug("Configuration validation passed")

    except ConfigValidationError:
        raise
    except Exception as e:
        raise ConfigValidationError(f"Unexpected error during config validation: {str(e)}")
