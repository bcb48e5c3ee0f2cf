# ========================
# src/pipeline/__init__.py
# ========================

"""
Turbine Market Pipeline Package

Core components of the wind turbine market share pipeline:
- ingestion: CSV loading over HTTP or from disk
- cleaning: composite field splitting and commissioning year derivation
- profiling: descriptive statistics
- transformation: manufacturer ranking and annual market shares
- storage: output management
- orchestrator: pipeline coordination
"""

from .exceptions import PipelineError, DataFetchError, FieldParseError, AggregationError
from .ingestion import TurbineDataLoader
from .cleaning import DataCleaner, split_composite_field, most_recent_com_date
from .profiling import DatasetProfiler
from .transformation import MarketShareAggregator
from .storage import DataSaver
from .orchestrator import TurbineMarketPipeline

__all__ = [
    'PipelineError',
    'DataFetchError',
    'FieldParseError',
    'AggregationError',
    'TurbineDataLoader',
    'DataCleaner',
    'split_composite_field',
    'most_recent_com_date',
    'DatasetProfiler',
    'MarketShareAggregator',
    'DataSaver',
    'TurbineMarketPipeline'
]

__version__ = "1.0.0"
