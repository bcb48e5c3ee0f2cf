# ========================
# src/pipeline/ingestion.py
# ========================

"""
Data Ingestion Module

Fetches the turbine CSV from a URL (or reads a local copy) and returns
one dict per turbine with normalised column names and inferred types.
"""

import csv
import io
import re
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from .exceptions import DataFetchError

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = (
    'manufacturer',
    'turbine_rated_capacity_k_w',
    'commissioning_date',
    'turbine_number_in_project',
)

# Cells treated as missing
NA_VALUES = {'', 'NA', 'NaN', 'nan'}


def normalize_column_name(name: str) -> str:
    """
    Convert a raw header into a snake_case column name.

    "Turbine rated capacity (kW)" -> "turbine_rated_capacity_k_w",
    "Province/Territory" -> "province_territory". Clean names pass through.
    """
    name = (name or '').strip().lstrip('\ufeff')
    # Split camel case boundaries such as "kW" before lowercasing
    name = re.sub(r'([a-z0-9])([A-Z])', r'\1_\2', name)
    name = re.sub(r'[^0-9a-zA-Z]+', '_', name)
    return name.strip('_').lower()


def _parse_int(value: str) -> Optional[int]:
    try:
        return int(value)
    except ValueError:
        return None


def _parse_float(value: str) -> Optional[float]:
    try:
        return float(value)
    except ValueError:
        return None


def infer_column_type(values: List[Optional[str]]) -> type:
    """Return int, float or str for a column, looking at non-empty values only."""
    present = [v for v in values if v is not None]
    if not present:
        return str
    if all(_parse_int(v) is not None for v in present):
        return int
    if all(_parse_float(v) is not None for v in present):
        return float
    return str


class TurbineDataLoader:
    """
    Loads the wind turbine dataset into memory.
    The whole table is small (a few thousand rows), so it is read in one go.
    """

    def __init__(self, source: str, timeout: float = 30.0):
        """
        Initialize the loader.

        Args:
            source (str): http(s) URL or local path of the CSV file
            timeout (float): Request timeout in seconds for remote sources
        """
        self.source = source
        self.timeout = timeout
        self.header: List[str] = []
        self.column_types: Dict[str, type] = {}
        logger.info(f"Initialized TurbineDataLoader for source: {source}")

    @property
    def is_remote(self) -> bool:
        return self.source.lower().startswith(('http://', 'https://'))

    def load(self) -> List[Dict[str, Any]]:
        """
        Fetch and parse the dataset.

        Returns:
            list[dict]: One record per turbine

        Raises:
            DataFetchError: On network failure or malformed CSV
        """
        text = self._fetch_remote() if self.is_remote else self._read_local()
        raw_rows = self._parse_csv(text)
        records = self._apply_types(raw_rows)
        logger.info(f"Loaded {len(records)} records with {len(self.header)} columns")
        return records

    def _fetch_remote(self) -> str:
        logger.info(f"Fetching dataset from {self.source}")
        try:
            response = requests.get(self.source, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Error fetching dataset: {e}")
            raise DataFetchError(f"Request failed: {e}", source=self.source) from e

        response.encoding = response.encoding or 'utf-8'
        return response.text

    def _read_local(self) -> str:
        try:
            return Path(self.source).read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Error reading dataset file: {e}")
            raise DataFetchError(f"Cannot read file: {e}", source=self.source) from e

    def _parse_csv(self, text: str) -> List[Dict[str, Optional[str]]]:
        if not text or not text.strip():
            raise DataFetchError("Dataset is empty", source=self.source)

        rows = []
        try:
            reader = csv.reader(io.StringIO(text), strict=True)
            raw_header = next(reader)
            self.header = [normalize_column_name(h) for h in raw_header]
            logger.info(f"CSV header: {self.header}")

            missing = [c for c in REQUIRED_COLUMNS if c not in self.header]
            if missing:
                raise DataFetchError(f"Missing required columns: {missing}", source=self.source)

            for row in reader:
                if not row:
                    continue
                if len(row) != len(self.header):
                    raise DataFetchError(
                        f"Line {reader.line_num} has {len(row)} fields, expected {len(self.header)}",
                        source=self.source
                    )
                rows.append({
                    column: (None if value.strip() in NA_VALUES else value.strip())
                    for column, value in zip(self.header, row)
                })
        except csv.Error as e:
            logger.error(f"Malformed CSV: {e}")
            raise DataFetchError(f"Malformed CSV: {e}", source=self.source) from e

        logger.debug(f"Parsed {len(rows)} data rows")
        return rows

    def _apply_types(self, rows: List[Dict[str, Optional[str]]]) -> List[Dict[str, Any]]:
        self.column_types = {
            column: infer_column_type([row[column] for row in rows])
            for column in self.header
        }
        logger.debug(f"Inferred column types: {self.column_types}")

        records = []
        for row in rows:
            records.append({
                column: None if value is None else self.column_types[column](value)
                for column, value in row.items()
            })
        return records
