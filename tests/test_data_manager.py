"""Tests for loading and cleaning the income series."""

import tempfile
import unittest
from pathlib import Path

import numpy as np
import pandas as pd

from income_interpolation.data_manager import (
    DataManager,
    INTERPOLATED,
    OBSERVED,
    load_raw,
    parse_value_token
)
from income_interpolation.utils.validation import (
    DataValidationError,
    DuplicateKeyError,
    ParseError
)

DATA_FILE = Path(__file__).resolve().parents[1] / 'data' / 'median_household_income.csv'


class TestParseValueToken(unittest.TestCase):
    """Test cases for value token parsing."""

    def test_thousands_separators_are_stripped(self):
        self.assertEqual(parse_value_token('62,000'), 62000.0)
        self.assertEqual(parse_value_token('62..000'), 62000.0)
        self.assertEqual(parse_value_token('$53,585'), 53585.0)
        self.assertEqual(parse_value_token(' 1,234,567 '), 1234567.0)

    def test_decimal_part_is_kept(self):
        self.assertEqual(parse_value_token('1234.50'), 1234.5)
        self.assertEqual(parse_value_token('62,000.5'), 62000.5)

    def test_negative_values(self):
        self.assertEqual(parse_value_token('-1,200'), -1200.0)

    def test_missing_tokens(self):
        self.assertTrue(np.isnan(parse_value_token('.')))
        self.assertTrue(np.isnan(parse_value_token('')))
        self.assertTrue(np.isnan(parse_value_token(None)))
        self.assertTrue(np.isnan(parse_value_token('NA', missing_marker='NA')))

    def test_numbers_pass_through(self):
        self.assertEqual(parse_value_token(66000), 66000.0)
        self.assertEqual(parse_value_token(1.5), 1.5)

    def test_unparseable_token(self):
        with self.assertRaises(ValueError):
            parse_value_token('n/a')


class TestDataManager(unittest.TestCase):
    """Test cases for the cleaner."""

    def setUp(self):
        self.raw = pd.DataFrame({
            ' DATE ': ['01/01/10', '01/01/11', '01/01/12', '01/01/13'],
            'Income': ['60000', '62..000', '.', '66000']
        })
        self.data_manager = DataManager()

    def test_clean_scenario(self):
        """Years are extracted, punctuation stripped and the marker mapped to NaN."""
        cleaned = self.data_manager.clean(self.raw)

        self.assertEqual(cleaned.columns.tolist(), ['year', 'value', 'category'])
        self.assertEqual(cleaned['year'].tolist(), [2010, 2011, 2012, 2013])
        np.testing.assert_array_equal(cleaned['value'].to_numpy(), [60000.0, 62000.0, np.nan, 66000.0])
        self.assertTrue((cleaned['category'] == OBSERVED).all())
        self.assertEqual(cleaned['year'].dtype, np.int64)
        self.assertEqual(cleaned['value'].dtype, np.float64)

    def test_clean_is_idempotent(self):
        once = self.data_manager.clean(self.raw)
        twice = self.data_manager.clean(once)
        pd.testing.assert_frame_equal(once, twice)

    def test_clean_keeps_existing_category(self):
        cleaned = self.data_manager.clean(self.raw)
        cleaned.loc[2, 'category'] = INTERPOLATED
        self.assertEqual(self.data_manager.clean(cleaned).loc[2, 'category'], INTERPOLATED)

    def test_rows_are_sorted_by_year(self):
        cleaned = self.data_manager.clean(self.raw.iloc[::-1].reset_index(drop=True))
        self.assertEqual(cleaned['year'].tolist(), [2010, 2011, 2012, 2013])

    def test_configured_columns(self):
        raw = self.raw.assign(notes=['a', 'b', 'c', 'd'])[['notes', 'Income', ' DATE ']]
        data_manager = DataManager(date_column='date', value_column='INCOME')
        cleaned = data_manager.clean(raw)
        self.assertEqual(cleaned['year'].tolist(), [2010, 2011, 2012, 2013])

    def test_unknown_column(self):
        with self.assertRaises(DataValidationError):
            DataManager(value_column='salary').clean(self.raw)

    def test_bad_date_raises_parse_error(self):
        raw = self.raw.copy()
        raw.loc[1, ' DATE '] = '2011-01-01'
        with self.assertRaises(ParseError) as ctx:
            self.data_manager.clean(raw)
        self.assertEqual(ctx.exception.stage, 'clean')
        self.assertIn('line 3', str(ctx.exception))

    def test_bad_value_raises_parse_error(self):
        raw = self.raw.copy()
        raw.loc[3, 'Income'] = 'n/a'
        with self.assertRaises(ParseError):
            self.data_manager.clean(raw)

    def test_bad_value_coerced(self):
        raw = self.raw.copy()
        raw.loc[3, 'Income'] = 'n/a'
        cleaned = self.data_manager.clean(raw, errors='coerce')
        self.assertTrue(np.isnan(cleaned.loc[3, 'value']))

    def test_duplicate_years(self):
        raw = self.raw.copy()
        raw.loc[3, ' DATE '] = '01/06/12'
        with self.assertRaises(DuplicateKeyError) as ctx:
            self.data_manager.clean(raw)
        self.assertEqual(ctx.exception.rows, [2012])

    def test_empty_frame(self):
        with self.assertRaises(DataValidationError):
            self.data_manager.clean(pd.DataFrame(columns=['date', 'value']))


class TestLoadRaw(unittest.TestCase):
    """Test cases for the loader."""

    def setUp(self):
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.path = Path(self.tmp_dir.name) / 'income.csv'
        self.path.write_text('DATE,VALUE\n01/01/10,"60,000"\n01/01/11,.\n')

    def tearDown(self):
        self.tmp_dir.cleanup()

    def test_cells_are_kept_as_text(self):
        raw = load_raw(self.path)
        self.assertEqual(raw['VALUE'].tolist(), ['60,000', '.'])

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_raw(Path(self.tmp_dir.name) / 'missing.csv')

    def test_single_column_file(self):
        self.path.write_text('DATE\n01/01/10\n')
        with self.assertRaises(DataValidationError):
            load_raw(self.path)

    def test_load_through_data_manager(self):
        cleaned = DataManager(data_path=self.path).load()
        self.assertEqual(cleaned['year'].tolist(), [2010, 2011])
        self.assertEqual(cleaned.loc[0, 'value'], 60000.0)

    def test_bundled_data(self):
        cleaned = DataManager(data_path=DATA_FILE, date_column='DATE', value_column='MEHOINUSA646N').load()
        self.assertEqual(cleaned['year'].iloc[0], 1984)
        self.assertEqual(cleaned['year'].iloc[-1], 2014)
        self.assertEqual(len(cleaned), 31)
        self.assertEqual(cleaned.loc[cleaned['value'].isna(), 'year'].tolist(), [2013])
        self.assertEqual(cleaned.loc[0, 'value'], 22415.0)


if __name__ == '__main__':
    unittest.main()
