"""
Command-line interface for the income interpolation pipeline.
"""

import sys
import logging
import argparse
from pathlib import Path
from typing import Dict, List, Optional
from tqdm import tqdm

from .income_interpolator import IncomeInterpolator, SpanComparison
from .utils.config import Config
from .utils.validation import (
    ConfigValidationError,
    DataValidationError,
    PipelineError,
    SURFACES,
    validate_config
)
from .utils.visualization import Visualization


# Set up logging
logger = logging.getLogger(__name__)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Interpolate and forecast median household income with LOESS'
    )
    parser.add_argument(
        '--input', '-i',
        type=str,
        help='Path to input CSV file (default: data.input_file from config)',
        default=None
    )
    parser.add_argument(
        '--output-dir', '-o',
        type=str,
        help='Directory for the charts (default: data.output_dir from config)',
        default=None
    )
    parser.add_argument(
        '--span', '-s',
        type=float,
        action='append',
        help='LOESS span; repeat to compare several spans (default: loess.spans from config)',
        default=None
    )
    parser.add_argument(
        '--surface',
        choices=SURFACES,
        help='LOESS surface (default: loess.surface from config)',
        default=None
    )
    parser.add_argument(
        '--degree',
        type=int,
        choices=[0, 1, 2],
        help='Degree of the local polynomial (default: loess.degree from config)',
        default=None
    )
    parser.add_argument(
        '--debug', '-d',
        action='store_true',
        help='Enable debug output'
    )
    parser.add_argument(
        '--no-plots',
        action='store_true',
        help='Skip rendering the charts'
    )
    return parser.parse_args(argv)


def configure_logging(debug: bool = False) -> None:
    """Configure logging based on debug flag."""
    config = Config()
    log_config = config.get('logging', {})

    level = logging.DEBUG if debug else getattr(logging, log_config.get('level', 'INFO'))
    format_str = log_config.get('format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    log_file = Path(log_config.get('file', 'income_interpolation.log'))
    log_file.parent.mkdir(parents=True, exist_ok=True)

    # Reset the root logger
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file)
        ]
    )

    # Force matplotlib logger to INFO level
    logging.getLogger('matplotlib').setLevel(logging.INFO)
    logging.getLogger('matplotlib.font_manager').setLevel(logging.INFO)
    logging.getLogger('PIL').setLevel(logging.INFO)


def get_spans(args: argparse.Namespace) -> List[float]:
    """Spans from the command line, or from the configuration."""
    spans = args.span or [float(s) for s in Config().get('loess.spans', [0.75, 1.0])]
    invalid = [s for s in spans if not s > 0]
    if invalid:
        raise ValueError(f"Spans must be positive, got {invalid}")
    return spans


def get_output_dir(args: argparse.Namespace) -> Path:
    output_dir = Path(args.output_dir or Config().get('data.output_dir', 'figures'))
    output_dir.mkdir(exist_ok=True, parents=True)
    return output_dir


def render_charts(comparison: SpanComparison, output_dir: Path) -> Dict[str, Path]:
    """Render one chart per span plus the span comparison chart."""
    viz = Visualization(output_dir)
    plots = {}
    for result in comparison.results:
        plots[f'span_{result.span:g}'] = viz.plot_interpolation(result.combined, result.span)
    if len(comparison.results) > 1 and not comparison.summary.empty:
        plots['comparison'] = viz.plot_span_comparison(comparison.summary)
    logger.info(f"Generated charts: {list(plots.keys())}")
    return plots


def main(argv: Optional[List[str]] = None) -> int:
    """Main function to interpolate the income series and render the charts."""
    try:
        # Parse arguments and configure
        args = parse_arguments(argv)
        configure_logging(args.debug)
        config = Config()
        validate_config(config.as_dict())

        logger.info("Starting LOESS income interpolation")

        interpolator = IncomeInterpolator.from_config(
            config, input_file=args.input, surface=args.surface, degree=args.degree
        )
        spans = get_spans(args)
        interpolator.prepare()

        comparison = SpanComparison()
        for span in tqdm(spans, desc="Spans"):
            comparison.results.append(interpolator.run(span))

        logger.info(f"Predicted values by span:\n{comparison.pivot().to_string()}")

        if not args.no_plots:
            render_charts(comparison, get_output_dir(args))

        logger.info("Process completed successfully!")
        return 0

    except PipelineError as e:
        logger.error(f"{e.stage or 'pipeline'} failed: {e}")
        return 1
    except (ConfigValidationError, DataValidationError, FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
