# ========================
# src/pipeline/profiling.py
# ========================

"""
Data Profiling Module

Descriptive statistics per column, used to report how much of the table
survived cleaning (soft parse failures show up as missing values here).
"""

import logging
import math
import statistics
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class DatasetProfiler:
    """Computes summary statistics for a list of record dicts."""

    def __init__(self, top_values: int = 5):
        """
        Args:
            top_values (int): How many most frequent values to report for text columns
        """
        self.top_values = top_values

    def profile(self, records: List[Dict[str, Any]],
                columns: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        """
        Describe every column of the table.

        Args:
            records (list[dict]): Table to describe
            columns: Columns to include; defaults to every key seen

        Returns:
            dict: {'row_count': int, 'columns': {name: stats}}
        """
        if columns is None:
            seen = {}
            for record in records:
                for key in record:
                    seen.setdefault(key, None)
            columns = list(seen)

        profile = {
            'row_count': len(records),
            'columns': {
                column: self.describe_column([record.get(column) for record in records])
                for column in columns
            }
        }
        logger.info(f"Profiled {len(profile['columns'])} columns over {len(records)} rows")
        return profile

    def describe_column(self, values: List[Any]) -> Dict[str, Any]:
        """Numeric summary for numeric columns, frequency summary otherwise."""
        # NaN and infinities count as missing
        present = [
            v for v in values
            if v is not None and not (isinstance(v, float) and not math.isfinite(v))
        ]
        stats = {
            'count': len(present),
            'missing': len(values) - len(present),
        }
        if present and all(_is_number(v) for v in present):
            stats.update({
                'type': 'numeric',
                'min': min(present),
                'max': max(present),
                'mean': statistics.fmean(present),
                'median': statistics.median(present),
            })
        else:
            frequencies = Counter(str(v) for v in present)
            stats.update({
                'type': 'text',
                'unique': len(frequencies),
                'most_common': frequencies.most_common(self.top_values),
            })
        return stats

    def missing_value_counts(self, profile: Dict[str, Any]) -> Dict[str, int]:
        """Columns with at least one missing value, mapped to the missing count."""
        return {
            column: stats['missing']
            for column, stats in profile['columns'].items()
            if stats['missing']
        }
