"""Tests for chart rendering."""

import tempfile
import unittest
from pathlib import Path

import matplotlib
matplotlib.use('Agg')

import pandas as pd

from income_interpolation.utils.visualization import Visualization


class TestVisualization(unittest.TestCase):
    """Test cases for the bar charts."""

    def setUp(self):
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.viz = Visualization(
            Path(self.tmp_dir.name) / 'figures',
            config={'dpi': 40, 'figure_sizes': {'bar_chart': [6, 3], 'comparison': [4, 3]}}
        )
        self.combined = pd.DataFrame({
            'year': [2010, 2011, 2012, 2013],
            'value': [60000.0, 62000.0, 64000.0, 66000.0],
            'category': ['Observed', 'Observed', 'Interpolated', 'Observed']
        })

    def tearDown(self):
        self.tmp_dir.cleanup()

    def test_plot_interpolation(self):
        before = self.combined.copy()
        path = self.viz.plot_interpolation(self.combined, span=0.75)
        self.assertTrue(path.exists())
        self.assertEqual(path.name, 'income_loess_span_0.75.png')
        pd.testing.assert_frame_equal(self.combined, before)

    def test_plot_span_comparison(self):
        summary = pd.DataFrame({
            'year': [2012, 2016, 2012, 2016],
            'span': [0.75, 0.75, 1.0, 1.0],
            'value': [64000.0, 72500.0, 64100.0, 71800.0]
        })
        path = self.viz.plot_span_comparison(summary)
        self.assertTrue(path.exists())


if __name__ == '__main__':
    unittest.main()
