import re
import pandas as pd
import numpy as np
from typing import Optional, Union
from pathlib import Path
import logging

from .utils.validation import (
    DataValidationError,
    ParseError,
    validate_dataframe,
    validate_unique_years
)


# Set up logging
logger = logging.getLogger(__name__)

OBSERVED = 'Observed'
INTERPOLATED = 'Interpolated'
COLUMNS = ['year', 'value', 'category']

# A single '.' followed by one or two trailing digits is a decimal point
_DECIMAL_TOKEN = re.compile(r'[^.]*\.\d{1,2}')


def parse_value_token(token, missing_marker: str = '.') -> float:
    """
    Convert a raw value token to a float.

    Thousands separators and stray punctuation are stripped ("62,000" and
    "62..000" both give 62000.0). The missing marker, blanks and NaN give NaN.

    Args:
        token: Raw token (string or number)
        missing_marker: Token that stands for a missing value

    Returns:
        Parsed value, NaN if missing

    Raises:
        ValueError: If the token holds no digits and is not the missing marker
    """
    if token is None:
        return np.nan
    if isinstance(token, (int, float, np.number)):
        return float(token)

    text = str(token).strip()
    if text == '' or text == missing_marker or text.lower() == 'nan':
        return np.nan

    if _DECIMAL_TOKEN.fullmatch(text):
        whole, fraction = text.rsplit('.', 1)
        digits = re.sub(r'\D', '', whole) + '.' + fraction
    else:
        digits = re.sub(r'\D', '', text)

    if not digits.strip('.'):
        raise ValueError(f"Unparseable value token: {token!r}")

    value = float(digits)
    return -value if text.startswith('-') else value


def load_raw(path: Union[str, Path], sep: str = ',') -> pd.DataFrame:
    """
    Load a delimited file with a header row, keeping every cell as text.

    Args:
        path: Path to the delimited file
        sep: Field delimiter

    Returns:
        DataFrame of raw string tokens
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    logger.info(f"Loading raw data from {path}")
    try:
        raw = pd.read_csv(path, sep=sep, dtype=str, keep_default_na=False, skipinitialspace=True)
    except pd.errors.EmptyDataError:
        raise DataValidationError(f"Input file is empty: {path}")

    validate_dataframe(raw, min_columns=2)
    logger.info(f"Loaded {len(raw)} rows with columns {raw.columns.tolist()}")
    return raw


class DataManager:
    """
    Loads and cleans the income time series.

    The raw feed holds a date column (day/month/2-digit-year) and a value column
    whose tokens may carry formatting characters or a missing-data marker. The
    cleaned frame has one row per year with columns ``year``, ``value`` (NaN
    when absent) and ``category``.
    """

    def __init__(
        self,
        data_path: Union[str, Path] = "data/median_household_income.csv",
        date_column: Optional[str] = None,
        value_column: Optional[str] = None,
        date_format: str = "%d/%m/%y",
        missing_marker: str = ".",
        sep: str = ","
    ):
        self.__raw_data = None
        self.data_path = Path(data_path)
        self.date_column = date_column
        self.value_column = value_column
        self.date_format = date_format
        self.missing_marker = missing_marker
        self.sep = sep

    @property
    def raw_data(self) -> pd.DataFrame:
        """Raw data, loaded on first access."""
        if self.__raw_data is None:
            self.__raw_data = load_raw(self.data_path, sep=self.sep)
        return self.__raw_data

    def load(self) -> pd.DataFrame:
        """Load and clean the data file."""
        return self.clean(self.raw_data)

    def clean(self, raw: pd.DataFrame, errors: str = 'raise') -> pd.DataFrame:
        """
        Clean a raw (or already cleaned) frame.

        Args:
            raw: Frame read by ``load_raw``, or the output of a previous ``clean``
            errors: 'raise' to fail on unparseable value tokens, 'coerce' to set them to NaN

        Returns:
            DataFrame with columns year, value and category, sorted by year

        Raises:
            ParseError: If a date (or, with errors='raise', a value) cannot be parsed
            DuplicateKeyError: If a year appears more than once
        """
        if errors not in ('raise', 'coerce'):
            raise ValueError(f"errors must be 'raise' or 'coerce', got {errors!r}")

        validate_dataframe(raw, min_columns=2)
        df = raw.rename(columns=lambda c: str(c).strip().lower())

        if 'year' in df.columns and 'date' not in df.columns:
            validate_dataframe(df, required_columns=['year', 'value'])
            years = self._coerce_years(df['year'])
            values = df['value']
        else:
            date_col, value_col = self._resolve_columns(df)
            years = self._parse_years(df[date_col])
            values = df[value_col]

        if not pd.api.types.is_numeric_dtype(values):
            values = self._parse_values(values, errors)

        cleaned = pd.DataFrame({
            'year': years.astype('int64').to_numpy(),
            'value': values.astype('float64').to_numpy(),
            'category': df['category'].to_numpy() if 'category' in df.columns else OBSERVED
        })
        validate_unique_years(cleaned, stage='clean')

        cleaned = cleaned.sort_values('year', kind='mergesort').reset_index(drop=True)
        logger.info(
            f"Cleaned {len(cleaned)} rows covering {cleaned['year'].min()}-{cleaned['year'].max()}, "
            f"{int(cleaned['value'].isna().sum())} missing"
        )
        return cleaned

    def _resolve_columns(self, df: pd.DataFrame):
        """Pick the date and value columns: configured names, else the first two columns."""
        date_col = self.date_column.strip().lower() if self.date_column else df.columns[0]
        value_col = self.value_column.strip().lower() if self.value_column else df.columns[1]

        for col in (date_col, value_col):
            if col not in df.columns:
                raise DataValidationError(
                    f"Column {col!r} not found in input columns {df.columns.tolist()}"
                )
        dropped = [c for c in df.columns if c not in (date_col, value_col)]
        if dropped:
            logger.debug(f"Dropping unused columns: {dropped}")
        return date_col, value_col

    def _parse_years(self, dates: pd.Series) -> pd.Series:
        parsed = pd.to_datetime(dates.astype(str).str.strip(), format=self.date_format, errors='coerce')
        bad = parsed.isna()
        if bad.any():
            rows = [f"line {i + 2}: {dates[i]!r}" for i in dates.index[bad]]
            raise ParseError(f"Dates do not match format {self.date_format!r}", stage='clean', rows=rows)
        return parsed.dt.year

    def _coerce_years(self, years: pd.Series) -> pd.Series:
        numeric = pd.to_numeric(years, errors='coerce')
        bad = numeric.isna() | (numeric != np.floor(numeric))
        if bad.any():
            rows = [f"row {i}: {years[i]!r}" for i in years.index[bad]]
            raise ParseError("Years must be integers", stage='clean', rows=rows)
        return numeric

    def _parse_values(self, values: pd.Series, errors: str) -> pd.Series:
        parsed = []
        for i, token in values.items():
            try:
                parsed.append(parse_value_token(token, self.missing_marker))
            except ValueError:
                if errors == 'raise':
                    raise ParseError("Unparseable value", stage='clean', rows=[f"line {i + 2}: {token!r}"])
                logger.warning(f"Line {i + 2}: unparseable value {token!r} treated as missing")
                parsed.append(np.nan)
        return pd.Series(parsed, index=values.index, dtype='float64')
