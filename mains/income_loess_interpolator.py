#!/usr/bin/env python
"""
Median household income LOESS interpolation

Entry point that fills the missing 2013 value and forecasts 2016 with the
LOESS spans and surface listed in config.yaml, then saves one bar chart per span.

Input: data/median_household_income.csv
Output: figures/income_loess_span_*.png
"""

import sys
import logging
from pathlib import Path

from income_interpolation.income_interpolator import IncomeInterpolator
from income_interpolation.utils.config import Config
from income_interpolation.utils.validation import PipelineError
from income_interpolation.utils.visualization import Visualization

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)


def main():
    config = Config()
    figures_dir = Path(config.get('data.output_dir', 'figures'))

    spans = config.get('loess.spans', [0.75, 1.0])

    interpolator = IncomeInterpolator.from_config(config)
    try:
        comparison = interpolator.compare_spans(spans)
    except PipelineError as e:
        logger.error(f"{e.stage} failed: {e}")
        return 1

    viz = Visualization(output_dir=figures_dir)
    for result in comparison.results:
        viz.plot_interpolation(result.combined, result.span)
    viz.plot_span_comparison(comparison.summary)

    print(comparison.pivot().to_string())
    logger.info(f"Plots saved to {figures_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
