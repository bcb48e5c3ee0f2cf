# ========================
# src/pipeline/orchestrator.py
# ========================

"""
Pipeline Orchestrator Module

Main orchestrator class that runs load, clean, profile, aggregate and save
in sequence.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .ingestion import TurbineDataLoader
from .cleaning import DataCleaner
from .profiling import DatasetProfiler
from .transformation import MarketShareAggregator
from .storage import DataSaver
from ..utils.performance_monitor import monitor_performance
from ..utils.config import Config

logger = logging.getLogger(__name__)


class TurbineMarketPipeline:
    """
    Orchestrates the turbine market share pipeline.
    Each stage consumes the previous stage's table and produces a new one.
    """

    def __init__(self,
                 source: Optional[str] = None,
                 output_dir: Optional[str] = None,
                 config: Optional[Config] = None):
        """
        Initialize the pipeline.

        Args:
            source (str): URL or path of the turbine CSV; defaults to config.DATA_URL
            output_dir (str): Directory for output files; None skips saving
            config (Config): Configuration object
        """
        self.config = config or Config()
        self.source = source or self.config.DATA_URL
        self.output_dir = output_dir

        self.loader = TurbineDataLoader(self.source, timeout=self.config.REQUEST_TIMEOUT)
        self.cleaner = DataCleaner()
        self.profiler = DatasetProfiler()
        self.aggregator = MarketShareAggregator(
            top_k=self.config.TOP_K_MANUFACTURERS,
            others_label=self.config.OTHERS_LABEL
        )
        self.saver = DataSaver(self.output_dir) if self.output_dir else None

        logger.info("TurbineMarketPipeline initialized:")
        logger.info(f"  Source: {self.source}")
        logger.info(f"  Output: {self.output_dir or '(not saved)'}")
        logger.info(f"  Top manufacturers: {self.config.TOP_K_MANUFACTURERS}")

    def run(self) -> Dict[str, Any]:
        """
        Execute the complete pipeline from start to finish.

        Returns:
            dict: Processing statistics, the aggregate tables and saved files

        Raises:
            DataFetchError: If the dataset cannot be loaded
            AggregationError: If the cleaned table cannot be grouped
        """
        logger.info(f"Starting turbine market pipeline for '{self.source}'...")

        with monitor_performance("TurbineMarketPipeline") as monitor:
            raw_records = self.loader.load()
            monitor.update_progress(len(raw_records))
            monitor.add_checkpoint('load', {'records': len(raw_records)})

            cleaned_records = self.cleaner.clean_records(raw_records)
            monitor.add_checkpoint('clean', {'records': len(cleaned_records)})

            profile = None
            if self.config.ENABLE_DATA_PROFILING:
                profile = self.profiler.profile(cleaned_records)
                monitor.add_checkpoint('profile')

            self.aggregator.aggregate(cleaned_records)
            monitor.add_checkpoint('aggregate', {'rows': len(self.aggregator.annual_shares)})

            saved_files = {}
            if self.saver is not None:
                logger.info("Saving transformed data...")
                saved_files = self.saver.save_all_data(self.aggregator, profile)
                saved_files['data_dictionary'] = self.saver.create_data_dictionary(
                    self.config.TOP_K_MANUFACTURERS, self.config.OTHERS_LABEL
                )
                monitor.add_checkpoint('save', {'files': len(saved_files)})

        results = {
            'pipeline_status': 'completed',
            'source': self.source,
            'output_directory': self.output_dir,
            'saved_files': saved_files,
            'processing_stats': self.aggregator.get_aggregation_summary(),
            'data_quality_stats': self.cleaner.get_statistics(),
            'missing_values': self.profiler.missing_value_counts(profile) if profile else {},
            'performance': {
                key: value for key, value in monitor.summary.items() if key != 'checkpoints'
            },
            'annual_shares': self.aggregator.annual_shares,
            'rankings': self.aggregator.rankings,
            'annual_totals': self.aggregator.annual_totals,
            'profile': profile
        }

        if self.saver is not None:
            summary = {key: value for key, value in results.items()
                       if key not in ('annual_shares', 'rankings', 'annual_totals', 'profile')}
            saved_files['summary'] = self.saver.save_summary(summary)

        logger.info("Pipeline finished successfully.")
        self._log_final_summary(results)
        return results

    def _log_final_summary(self, results: Dict[str, Any]) -> None:
        """Log final pipeline summary."""
        logger.info("=" * 60)
        logger.info("PIPELINE EXECUTION SUMMARY")
        logger.info("=" * 60)

        processing_stats = results['processing_stats']
        quality_stats = results['data_quality_stats']

        logger.info(f"Source: {results['source']}")
        logger.info(f"Records aggregated: {processing_stats['records_processed']:,}")
        logger.info(f"Records without year: {processing_stats['records_without_year']:,}")
        logger.info(f"Data quality rate: {quality_stats['success_rate']:.1f}%")
        logger.info(f"Top manufacturers: {', '.join(processing_stats['top_manufacturers'])}")
        for column, missing in results['missing_values'].items():
            logger.info(f"  missing {column}: {missing}")

        for dataset_type, file_path in results['saved_files'].items():
            logger.info(f"  • {dataset_type}: {file_path}")

        logger.info("=" * 60)

    def validate_input(self) -> bool:
        """
        Check that a local source exists and is a readable file.
        Remote sources are only checked when fetched.

        Returns:
            bool: True if input is valid
        """
        if self.loader.is_remote:
            return True

        input_path = Path(self.source)
        if not input_path.is_file():
            logger.error(f"Input file does not exist: {self.source}")
            return False

        logger.info(f"Input validation passed: {self.source}")
        return True
