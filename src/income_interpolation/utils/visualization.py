"""
Visualization module for the income interpolation pipeline.
"""

import matplotlib.pyplot as plt
import matplotlib.ticker as mticker
import seaborn as sns
import pandas as pd
from pathlib import Path
import logging
from typing import Optional, Dict, Any
from .config import Config
from ..data_manager import OBSERVED, INTERPOLATED

logger = logging.getLogger(__name__)


class Visualization:
    """Class for rendering bar charts of the interpolated income series."""

    def __init__(self, output_dir: Path, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the visualization class.

        Args:
            output_dir: Directory to save visualizations
            config: Optional configuration dictionary. If not provided, uses default config.
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(exist_ok=True, parents=True)

        # Get configuration
        self.config = config or Config().get('visualization', {})
        self.palette = self.config.get('palette', {OBSERVED: '#1f77b4', INTERPOLATED: '#d62728'})
        self._configure_matplotlib()

    def _configure_matplotlib(self):
        """Configure matplotlib based on settings."""
        plt.rcParams.update(self.config.get('matplotlib', {}))
        sns.set_style(self.config.get('seaborn_style', 'whitegrid'), {
            'grid.linestyle': ':',
            'grid.alpha': 0.3
        })

    def _figure_size(self, name: str, default=(12, 6)):
        return tuple(self.config.get('figure_sizes', {}).get(name, default))

    def _save(self, fig, filename: str) -> Path:
        output_path = self.output_dir / filename
        fig.savefig(output_path, dpi=self.config.get('dpi', 300), bbox_inches='tight')
        plt.close(fig)
        logger.info(f"Saved plot to {output_path}")
        return output_path

    def plot_interpolation(self, combined: pd.DataFrame, span: float,
                           title: Optional[str] = None) -> Path:
        """
        Create and save a bar chart of the combined series.

        Bars are keyed by year and colored by category (Observed or
        Interpolated); predicted bars are annotated with their value.

        Args:
            combined: Combined frame with year, value and category columns
            span: LOESS span used for the predictions
            title: Optional title; defaults to one naming the span

        Returns:
            Path to saved plot
        """
        data = combined.sort_values('year').reset_index(drop=True)
        fig, ax = plt.subplots(figsize=self._figure_size('bar_chart'))

        sns.barplot(
            data=data, x='year', y='value', hue='category',
            hue_order=[OBSERVED, INTERPOLATED], palette=self.palette,
            dodge=False, ax=ax
        )

        for position, row in data.iterrows():
            if row['category'] == INTERPOLATED:
                ax.annotate(f"{row['value']:,.0f}", (position, row['value']),
                            xytext=(0, 3), textcoords='offset points',
                            ha='center', va='bottom', fontsize=8, rotation=90)

        ax.set_title(title or f'Median Household Income, LOESS span = {span:g}')
        ax.set_xlabel('Year')
        ax.set_ylabel('Median household income (USD)')
        ax.yaxis.set_major_formatter(mticker.StrMethodFormatter('{x:,.0f}'))
        ax.tick_params(axis='x', rotation=90)
        ax.legend(title='', loc='upper left', framealpha=0.9, edgecolor='none')

        return self._save(fig, f"income_loess_span_{span:g}.png")

    def plot_span_comparison(self, summary: pd.DataFrame) -> Path:
        """
        Create and save a grouped bar chart of the predicted values per span.

        Args:
            summary: Tidy frame with year, span and value columns

        Returns:
            Path to saved plot
        """
        data = summary.assign(span=summary['span'].map(lambda s: f'{s:g}'))
        fig, ax = plt.subplots(figsize=self._figure_size('comparison', (8, 5)))

        sns.barplot(data=data, x='year', y='value', hue='span', ax=ax)

        ax.set_title('Predicted values by LOESS span')
        ax.set_xlabel('Year')
        ax.set_ylabel('Median household income (USD)')
        ax.yaxis.set_major_formatter(mticker.StrMethodFormatter('{x:,.0f}'))
        ax.legend(title='span', loc='best')

        return self._save(fig, 'income_loess_span_comparison.png')
