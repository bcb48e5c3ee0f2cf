# ========================
# src/pipeline/transformation.py
# ========================

"""
Data Transformation Module

Ranks manufacturers by fleet size, collapses the long tail into a single
"Others" category and computes per-year market shares.
"""

import logging
from collections import Counter, defaultdict
from typing import Any, Dict, Iterable, List, Optional

from .exceptions import AggregationError

logger = logging.getLogger(__name__)

YEAR_FIELD = 'most_recent_com_date'
CAPACITY_FIELD = 'turbine_rated_capacity_k_w'


def _proportion(part: float, total: float) -> Optional[float]:
    return part / total if total else None


class MarketShareAggregator:
    """
    Two-phase aggregation over cleaned turbine records.

    Phase 1 ranks manufacturers once on their raw identity. Phase 2 groups
    records by commissioning year and collapsed manufacturer label.
    """

    def __init__(self, top_k: int = 5, others_label: str = 'Others'):
        """
        Initialize the aggregator.

        Args:
            top_k (int): Number of manufacturers kept under their own name
            others_label (str): Label for every manufacturer outside the top-K
        """
        if top_k < 1:
            raise AggregationError(f"top_k must be at least 1, got {top_k}")

        self.top_k = top_k
        self.others_label = others_label
        self.others_rank = top_k + 1
        self._reset_aggregations()
        logger.info(f"MarketShareAggregator initialized with top_k={top_k}, others_label={others_label!r}")

    def _reset_aggregations(self):
        """Reset all aggregation data structures."""
        self.manufacturer_counts = Counter()
        self.rankings: List[Dict[str, Any]] = []
        self.top_manufacturers: Dict[str, int] = {}
        self.annual_shares: List[Dict[str, Any]] = []
        self.annual_totals: List[Dict[str, Any]] = []
        self.records_processed = 0
        self.records_without_year = 0
        self.ranked = False

    def aggregate(self, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Run both phases over a cleaned table.

        Returns:
            list[dict]: Annual manufacturer aggregate rows
        """
        self._reset_aggregations()
        self.rank_manufacturers(records)
        shares = self.aggregate_annual(records)
        self._log_summary_statistics()
        return shares

    def rank_manufacturers(self, records: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Phase 1: count turbines per manufacturer and assign dense ranks.

        The top-K are the first K manufacturers ordered by count descending
        then name, so a tie at the boundary never admits more than K.

        Returns:
            list[dict]: One row per raw manufacturer, most turbines first
        """
        counts = Counter(self._manufacturer_of(record) for record in records)
        ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))

        rankings = []
        dense_rank = 0
        previous_count = None
        for position, (manufacturer, count) in enumerate(ordered):
            if count != previous_count:
                dense_rank += 1
                previous_count = count
            in_top_k = position < self.top_k
            rankings.append({
                'manufacturer': manufacturer,
                'turbine_count': count,
                'rank': dense_rank,
                'market_label': manufacturer if in_top_k else self.others_label,
                'market_rank': dense_rank if in_top_k else self.others_rank
            })

        self.manufacturer_counts = counts
        self.rankings = rankings
        self.top_manufacturers = {
            row['manufacturer']: row['rank'] for row in rankings[:self.top_k]
        }
        self.ranked = True
        logger.info(
            f"Ranked {len(counts)} manufacturers; top {len(self.top_manufacturers)}: "
            f"{list(self.top_manufacturers)}"
        )
        return rankings

    def is_other(self, manufacturer: str) -> bool:
        """True when the manufacturer is outside the top-K."""
        return manufacturer not in self.top_manufacturers

    def market_label(self, manufacturer: str) -> str:
        return self.others_label if self.is_other(manufacturer) else manufacturer

    def market_rank(self, manufacturer: str) -> int:
        return self.top_manufacturers.get(manufacturer, self.others_rank)

    def aggregate_annual(self, records: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Phase 2: per-year totals, then per (year, manufacturer) shares.

        Records without a commissioning year are left out and counted in
        records_without_year. Missing capacities contribute zero.

        Returns:
            list[dict]: One row per (year, manufacturer), sorted by year then rank
        """
        if not self.ranked:
            raise AggregationError("rank_manufacturers must run before aggregate_annual")

        yearly = defaultdict(lambda: {'capacity': 0.0, 'turbines': 0})
        groups = defaultdict(lambda: {'capacity': 0.0, 'turbines': 0})

        for record in records:
            self.records_processed += 1
            label = self.market_label(self._manufacturer_of(record))
            year = record.get(YEAR_FIELD)
            if year is None:
                self.records_without_year += 1
                continue

            capacity = record.get(CAPACITY_FIELD) or 0.0
            yearly[year]['capacity'] += capacity
            yearly[year]['turbines'] += 1
            groups[(year, label)]['capacity'] += capacity
            groups[(year, label)]['turbines'] += 1

        shares = []
        for (year, label), group in groups.items():
            totals = yearly[year]
            shares.append({
                'year': year,
                'manufacturer': label,
                'capacity_added': group['capacity'],
                'turbines_added': group['turbines'],
                'prop_capacity_added': _proportion(group['capacity'], totals['capacity']),
                'prop_turbines_added': _proportion(group['turbines'], totals['turbines']),
                'annual_capacity_added': totals['capacity'],
                'annual_turbines_added': totals['turbines'],
                'rank': self.market_rank(label)
            })
        shares.sort(key=lambda row: (row['year'], row['rank'], row['manufacturer']))

        self.annual_shares = shares
        self.annual_totals = self._build_annual_totals(yearly)
        if self.records_without_year:
            logger.info(f"{self.records_without_year} records without a commissioning year were excluded")
        return shares

    def _build_annual_totals(self, yearly: Dict[Any, Dict[str, float]]) -> List[Dict[str, Any]]:
        totals = []
        cumulative_capacity = 0.0
        cumulative_turbines = 0
        for year in sorted(yearly):
            cumulative_capacity += yearly[year]['capacity']
            cumulative_turbines += yearly[year]['turbines']
            totals.append({
                'year': year,
                'annual_capacity_added': yearly[year]['capacity'],
                'annual_turbines_added': yearly[year]['turbines'],
                'cumulative_capacity': cumulative_capacity,
                'cumulative_turbines': cumulative_turbines
            })
        return totals

    def _manufacturer_of(self, record: Dict[str, Any]) -> str:
        manufacturer = record.get('manufacturer')
        if manufacturer is None or not str(manufacturer).strip():
            raise AggregationError(f"Record has no manufacturer to group by: {record}")
        return manufacturer

    def _log_summary_statistics(self) -> None:
        """Log summary statistics of the aggregations."""
        years = [row['year'] for row in self.annual_totals]
        logger.info(f"Aggregation complete. Processed {self.records_processed} records")
        logger.info(f"Manufacturers: {len(self.manufacturer_counts)}")
        if years:
            logger.info(f"Commissioning years: {min(years)}-{max(years)} ({len(years)} years)")
        logger.info(f"Annual manufacturer rows: {len(self.annual_shares)}")

    def get_aggregation_summary(self) -> Dict[str, Any]:
        """Get a summary of all aggregations."""
        return {
            'records_processed': self.records_processed,
            'records_without_year': self.records_without_year,
            'manufacturers': len(self.manufacturer_counts),
            'top_manufacturers': list(self.top_manufacturers),
            'top_k': self.top_k,
            'years': len(self.annual_totals),
            'annual_share_rows': len(self.annual_shares)
        }
