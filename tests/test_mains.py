"""Tests for the demo entry point in mains/."""

import importlib.util
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

SCRIPT = Path(__file__).resolve().parents[1] / 'mains' / 'income_loess_interpolator.py'


def load_script():
    spec = importlib.util.spec_from_file_location('income_loess_interpolator', SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class StubConfig:
    """Dotted-key lookup over a plain dictionary."""

    def __init__(self, data):
        self.data = data

    def get(self, key, default=None):
        current = self.data
        for k in key.split('.'):
            if not isinstance(current, dict) or k not in current:
                return default
            current = current[k]
        return current


class TestIncomeLoessInterpolator(unittest.TestCase):
    """The demo reads its spans and surface from the configuration."""

    def setUp(self):
        self.tmp_dir = tempfile.TemporaryDirectory()
        tmp = Path(self.tmp_dir.name)
        path = tmp / 'income.csv'
        lines = ['DATE,MEHOINUSA646N']
        for year in range(2004, 2015):
            value = '.' if year == 2010 else str(40000 + 1000 * (year - 2004))
            lines.append(f'01/01/{year % 100:02d},{value}')
        path.write_text('\n'.join(lines) + '\n')

        self.settings = {
            'data': {'input_file': str(path), 'output_dir': str(tmp / 'figures')},
            'overrides': [{'year': 2015, 'value': 51000}, {'year': 2016, 'value': None}],
            'loess': {'spans': [1.0], 'degree': 2, 'surface': 'direct'}
        }
        self.script = load_script()
        self.viz = MagicMock()

    def tearDown(self):
        self.tmp_dir.cleanup()

    def run_script(self):
        with patch.object(self.script, 'Config', return_value=StubConfig(self.settings)), \
                patch.object(self.script, 'Visualization', return_value=self.viz), \
                patch('builtins.print'):
            return self.script.main()

    def test_uses_configured_spans(self):
        self.assertEqual(self.run_script(), 0)
        spans = [c.args[1] for c in self.viz.plot_interpolation.call_args_list]
        self.assertEqual(spans, [1.0])
        self.viz.plot_span_comparison.assert_called_once()

    def test_uses_configured_surface(self):
        self.settings['loess']['surface'] = 'interpolated-surface'
        self.assertEqual(self.run_script(), 1)
        self.viz.plot_interpolation.assert_not_called()


if __name__ == '__main__':
    unittest.main()
