# ========================
# src/pipeline/storage.py
# ========================

"""
Data Storage Module

Writes the aggregate tables for the charting layer.
"""

import csv
import json
import logging
from typing import Any, Dict, List
from pathlib import Path

logger = logging.getLogger(__name__)

ANNUAL_SHARE_HEADERS = [
    'year', 'manufacturer', 'capacity_added', 'turbines_added',
    'prop_capacity_added', 'prop_turbines_added',
    'annual_capacity_added', 'annual_turbines_added', 'rank'
]
RANKING_HEADERS = ['manufacturer', 'turbine_count', 'rank', 'market_label', 'market_rank']
ANNUAL_TOTAL_HEADERS = [
    'year', 'annual_capacity_added', 'annual_turbines_added',
    'cumulative_capacity', 'cumulative_turbines'
]


class DataSaver:
    """
    Saves the tables produced by the MarketShareAggregator.
    """

    def __init__(self, output_dir: str = "data/processed"):
        """
        Initialize the data saver.

        Args:
            output_dir (str): Directory to save output files
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"DataSaver initialized with output directory: {self.output_dir}")

    def save_all_data(self, aggregator, profile: Dict[str, Any] = None) -> Dict[str, str]:
        """
        Save all aggregated data to files.

        Args:
            aggregator: MarketShareAggregator that has run
            profile (dict): Optional dataset profile

        Returns:
            dict: Mapping of data type to saved file path
        """
        saved_files = {
            'annual_manufacturer_shares': self.save_annual_shares(aggregator.annual_shares),
            'manufacturer_rankings': self.save_rankings(aggregator.rankings),
            'annual_totals': self.save_annual_totals(aggregator.annual_totals),
        }
        if profile is not None:
            saved_files['dataset_profile'] = self._save_json("dataset_profile.json", profile)

        logger.info(f"All data saved successfully to {len(saved_files)} files")
        return saved_files

    def save_annual_shares(self, rows: List[Dict[str, Any]]) -> str:
        """Save the per-year, per-manufacturer share table."""
        file_path = self.output_dir / "annual_manufacturer_shares.csv"
        self._write_csv(file_path, ANNUAL_SHARE_HEADERS, rows)
        return str(file_path)

    def save_rankings(self, rows: List[Dict[str, Any]]) -> str:
        """Save the manufacturer ranking."""
        file_path = self.output_dir / "manufacturer_rankings.csv"
        self._write_csv(file_path, RANKING_HEADERS, rows)
        return str(file_path)

    def save_annual_totals(self, rows: List[Dict[str, Any]]) -> str:
        """Save yearly and cumulative fleet additions."""
        file_path = self.output_dir / "annual_totals.csv"
        self._write_csv(file_path, ANNUAL_TOTAL_HEADERS, rows)
        return str(file_path)

    def save_summary(self, summary: Dict[str, Any]) -> str:
        """Save the run summary as JSON."""
        return self._save_json("run_summary.json", summary)

    def _save_json(self, filename: str, data: Dict[str, Any]) -> str:
        file_path = self.output_dir / filename
        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False, default=str, allow_nan=False)

        logger.info(f"Saved {file_path}")
        return str(file_path)

    def _write_csv(self, file_path: Path, headers: List[str], data_items: List[Dict]) -> None:
        """Write rows to a CSV file; None is written as an empty cell."""
        try:
            with open(file_path, 'w', newline='', encoding='utf-8') as f:
                writer = csv.DictWriter(f, fieldnames=headers, extrasaction='ignore')
                writer.writeheader()
                writer.writerows(data_items)

            logger.info(f"Saved {len(data_items)} records to {file_path}")

        except OSError as e:
            logger.error(f"Error writing CSV file {file_path}: {e}")
            raise

    def create_data_dictionary(self, top_k: int, others_label: str) -> str:
        """Create a data dictionary explaining all output files."""
        file_path = self.output_dir / "DATA_DICTIONARY.md"

        content = f"""# Data Dictionary

Tables derived from the Canadian wind turbine database. The top {top_k}
manufacturers by turbine count keep their name; all others are reported as
"{others_label}" with rank {top_k + 1}.

## 1. annual_manufacturer_shares.csv
One row per commissioning year and manufacturer.

| Column | Type | Description |
|--------|------|-------------|
| year | integer | Most recent commissioning year of the turbines |
| manufacturer | string | Manufacturer, or "{others_label}" |
| capacity_added | float | Rated capacity (kW) commissioned that year |
| turbines_added | integer | Turbines commissioned that year |
| prop_capacity_added | float | Share of the year's capacity; empty when the year's capacity is 0 |
| prop_turbines_added | float | Share of the year's turbines |
| annual_capacity_added | float | Capacity (kW) commissioned that year, all manufacturers |
| annual_turbines_added | integer | Turbines commissioned that year, all manufacturers |
| rank | integer | Manufacturer rank by total turbine count |

## 2. manufacturer_rankings.csv
One row per manufacturer as named in the source data.

| Column | Type | Description |
|--------|------|-------------|
| manufacturer | string | Manufacturer name |
| turbine_count | integer | Turbines in the whole dataset |
| rank | integer | Dense rank by turbine count (1 = most turbines) |
| market_label | string | Label used in the share table |
| market_rank | integer | Rank used in the share table |

## 3. annual_totals.csv

| Column | Type | Description |
|--------|------|-------------|
| year | integer | Commissioning year |
| annual_capacity_added | float | Capacity (kW) commissioned that year |
| annual_turbines_added | integer | Turbines commissioned that year |
| cumulative_capacity | float | Capacity (kW) commissioned up to and including that year |
| cumulative_turbines | integer | Turbines commissioned up to and including that year |

## 4. dataset_profile.json
Descriptive statistics for every column of the cleaned table.

## 5. run_summary.json
Record counts, cleaning statistics and performance figures for the run.

## Data Quality Notes

- The commissioning year is the latest year listed for the turbine
- Turbines without any commissioning year are excluded from yearly tables
- Missing rated capacities count as zero in capacity sums
- Unparseable numeric tokens are treated as missing values
"""

        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(content)

        logger.info(f"Data dictionary created at {file_path}")
        return str(file_path)
