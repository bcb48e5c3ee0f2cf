#!/usr/bin/env python3
# ========================
# main.py
# ========================

"""
Main Entry Point for the Wind Turbine Market Pipeline

Loads the Canadian wind turbine dataset, cleans it and writes the
manufacturer market share tables consumed by the charting layer.
"""

import sys
import argparse
import logging
from pathlib import Path

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent / 'src'))

from src.pipeline import TurbineMarketPipeline, PipelineError
from src.utils import Config, setup_logging, DataGenerator


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compute wind turbine manufacturer market shares.")
    parser.add_argument("--source", help="URL or path of the turbine CSV (default: TURBINE_DATA_URL)")
    parser.add_argument("--output-dir", help="Directory for output tables")
    parser.add_argument("--top-k", type=int, help="Number of manufacturers shown by name")
    parser.add_argument("--synthetic", type=int, nargs="?", const=0, metavar="ROWS",
                        help="Generate a synthetic dataset with ROWS turbines (default: SYNTHETIC_ROWS) "
                             "and use it as source")
    parser.add_argument("--config", metavar="FILE", help="JSON file with configuration settings")
    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> Config:
    """Build the configuration; command-line flags override the config file."""
    overrides = {}
    if args.output_dir:
        overrides['default_output_dir'] = args.output_dir
    if args.top_k is not None:
        overrides['top_k_manufacturers'] = args.top_k
    if args.config:
        return Config.load_from_file(args.config, overrides)
    return Config(overrides)


def main(argv=None) -> int:
    """Main execution function."""
    args = parse_args(argv)

    try:
        config = load_config(args)
    except (OSError, ValueError, TypeError) as e:
        setup_logging()
        logging.getLogger(__name__).error(f"Cannot load configuration: {e}")
        return 1

    setup_logging(
        log_level=config.LOG_LEVEL,
        log_file="pipeline.log",
        log_dir=config.LOG_DIR
    )

    logger = logging.getLogger(__name__)
    logger.info("=" * 60)
    logger.info("WIND TURBINE MARKET PIPELINE - MAIN EXECUTION")
    logger.info("=" * 60)

    invalid = [name for name, ok in config.validate_config().items() if not ok]
    if invalid:
        logger.error(f"Invalid configuration values: {invalid}")
        return 1

    try:
        config.ensure_directories()

        source = args.source or config.DATA_URL
        generation_stats = None
        if args.synthetic is not None:
            num_rows = args.synthetic or config.SYNTHETIC_ROWS
            source = str(Path(config.RAW_DATA_DIR) / "synthetic_wind_turbines.csv")
            logger.info(f"Generating {num_rows} synthetic turbines...")
            generation_stats = DataGenerator(seed=42).generate_dataset(
                file_path=source,
                num_rows=num_rows,
                error_rate=config.SYNTHETIC_ERROR_RATE
            )

        pipeline = TurbineMarketPipeline(
            source=source,
            output_dir=config.DEFAULT_OUTPUT_DIR,
            config=config
        )
        if not pipeline.validate_input():
            logger.error("Input validation failed. Exiting.")
            return 1

        results = pipeline.run()

        config_path = Path(config.DEFAULT_OUTPUT_DIR) / "run_config.json"
        config.save_to_file(str(config_path))
        results['saved_files']['run_config'] = str(config_path)

        _print_execution_summary(results, generation_stats)
        return 0

    except PipelineError as e:
        logger.error(f"Pipeline execution failed: {e}", exc_info=True)
        return 1
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return 1


def _print_execution_summary(results: dict, generation_stats: dict = None) -> None:
    """Print final execution summary."""
    print("\n" + "=" * 70)
    print("PIPELINE EXECUTION SUMMARY")
    print("=" * 70)

    if generation_stats:
        print("Synthetic data:")
        print(f"   • Turbines generated: {generation_stats['total_rows']:,}")
        print(f"   • Error rate injected: {generation_stats['error_rate']:.1%}")

    processing_stats = results['processing_stats']
    quality_stats = results['data_quality_stats']

    print("Processing:")
    print(f"   • Records aggregated: {processing_stats['records_processed']:,}")
    print(f"   • Dropped records: {quality_stats['records_dropped']:,}")
    print(f"   • Unparseable tokens: {quality_stats['parse_failures']:,}")
    print(f"   • Records without year: {processing_stats['records_without_year']:,}")
    print(f"   • Years covered: {processing_stats['years']}")

    print("Top manufacturers:")
    for row in results['rankings'][:processing_stats['top_k']]:
        print(f"   {row['rank']}. {row['manufacturer']} ({row['turbine_count']:,} turbines)")

    print("Generated outputs:")
    for dataset_type, file_path in results['saved_files'].items():
        print(f"   • {dataset_type.replace('_', ' ').title()}: {Path(file_path).name}")

    print("=" * 70)


if __name__ == '__main__':
    sys.exit(main())
