"""
Configuration management for the income interpolation pipeline.
"""

import copy
import yaml
from pathlib import Path
from typing import Any, Dict
import logging

logger = logging.getLogger(__name__)

class Config:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._load_config()
        return cls._instance

    def _load_config(self):
        """Load configuration from YAML file."""
        try:
            config_path = Path(__file__).parent / "config.yaml"
            if not config_path.exists():
                self._create_default_config(config_path)

            with open(config_path, "r") as f:
                self._config = yaml.safe_load(f)
        except Exception as e:
            logger.error(f"Error loading configuration: {e}")
            self._config = self._get_default_config()

    def _create_default_config(self, config_path: Path):
        """Create default configuration file if it doesn't exist."""
        config = self._get_default_config()
        with open(config_path, "w") as f:
            yaml.dump(config, f, default_flow_style=False, sort_keys=False)

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration values."""
        return {
            "data": {
                "input_file": "data/median_household_income.csv",
                "date_column": "date",
                "value_column": "mehoinusa646n",
                "date_format": "%d/%m/%y",
                "missing_marker": ".",
                "output_dir": "figures"
            },
            # Years absent from the feed: 2015 from the Census P60 tables, 2016 is forecast
            "overrides": [
                {"year": 2015, "value": 56516},
                {"year": 2016, "value": None}
            ],
            "loess": {
                "spans": [0.75, 1.0],
                "degree": 2,
                "surface": "direct"
            },
            "visualization": {
                "matplotlib": {
                    "font.family": "serif",
                    "font.serif": ["Latin Modern Roman", "DejaVu Serif"],
                    "mathtext.fontset": "cm",
                    "axes.titlesize": 14,
                    "axes.labelsize": 11,
                    "xtick.labelsize": 8,
                    "ytick.labelsize": 9,
                    "axes.spines.top": False,
                    "axes.spines.right": False
                },
                "seaborn_style": "whitegrid",
                "palette": {
                    "Observed": "#1f77b4",
                    "Interpolated": "#d62728"
                },
                "dpi": 300,
                "figure_sizes": {
                    "bar_chart": [12, 6],
                    "comparison": [8, 5]
                }
            },
            "logging": {
                "level": "INFO",
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "file": "income_interpolation.log"
            }
        }

    def as_dict(self) -> Dict[str, Any]:
        """Return a deep copy of the loaded configuration."""
        return copy.deepcopy(self._config)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        try:
            current = self._config
            for k in key.split('.'):
                current = current[k]
            return current
        except (KeyError, TypeError):
            return default
