# ========================
# src/pipeline/cleaning.py
# ========================

"""
Data Cleaning Module

Splits the composite turbine fields into typed columns and derives the
representative commissioning year for each record.
"""

import math
import logging
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Union

from .exceptions import FieldParseError

logger = logging.getLogger(__name__)

Number = Union[int, float]

COMMISSIONING_DATE_FIELDS = ('com_date_1', 'com_date_2', 'com_date_3')
TURBINE_NUMBER_FIELDS = ('turbine_number', 'number_of_turbines_in_project')
COMPOSITE_SEPARATOR = '/'


def parse_number(token: Any) -> Number:
    """
    Coerce a token to a number, int when it is integral.

    Raises:
        FieldParseError: If the token is not a finite number
    """
    if isinstance(token, bool):
        raise FieldParseError(str(token))
    if isinstance(token, (int, float)):
        value = token
    else:
        text = str(token).strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            value = float(text)
        except ValueError:
            raise FieldParseError(text) from None

    if not math.isfinite(value):
        raise FieldParseError(str(token))
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def split_composite_field(value: Any,
                          separator: str,
                          n: int,
                          stats: Optional[Counter] = None) -> List[Optional[Number]]:
    """
    Split a composite value into exactly n numeric fields.

    Missing trailing tokens and unparseable tokens become None. Tokens past
    the n-th are discarded. When stats is given, 'parse_failures' and
    'truncated_fields' are incremented on it.

    Args:
        value: Raw cell value, e.g. "2005/2006/2012"
        separator (str): Token separator
        n (int): Number of output fields

    Returns:
        list: n numbers or Nones, in token order
    """
    fields: List[Optional[Number]] = [None] * n
    if value is None:
        return fields

    text = str(value).strip()
    if not text:
        return fields

    tokens = text.split(separator)
    if len(tokens) > n:
        logger.debug(f"Discarding {len(tokens) - n} extra token(s) in {text!r}")
        if stats is not None:
            stats['truncated_fields'] += 1

    for position, token in enumerate(tokens[:n]):
        if not token.strip():
            continue
        try:
            fields[position] = parse_number(token)
        except FieldParseError as e:
            logger.debug(f"{e.message}; field set to None")
            if stats is not None:
                stats['parse_failures'] += 1
    return fields


def most_recent_com_date(dates: Iterable[Optional[Number]]) -> Optional[Number]:
    """Latest of the given commissioning years, or None if none are known."""
    present = [d for d in dates if d is not None]
    return max(present) if present else None


class DataCleaner:
    """
    Applies the cleaning rules to raw turbine records.
    Soft failures (unparseable tokens) become None and are only counted.
    """

    def __init__(self):
        """Initialize the data cleaner."""
        self.records_processed = 0
        self.records_dropped = 0
        self.field_stats = Counter()
        logger.info("DataCleaner initialized")

    def clean_record(self, record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Applies all cleaning rules to a single record and returns the cleaned version.

        Args:
            record (dict): A single turbine record as produced by the loader

        Returns:
            dict or None: The cleaned record, or None if it has no manufacturer
        """
        self.records_processed += 1

        manufacturer = self._standardize_string(record.get('manufacturer'))
        if manufacturer is None:
            self.records_dropped += 1
            logger.debug(f"Record dropped due to missing manufacturer: {record}")
            return None

        cleaned_record = {
            key: value for key, value in record.items()
            if key not in ('commissioning_date', 'turbine_number_in_project')
        }
        cleaned_record['manufacturer'] = manufacturer
        cleaned_record['turbine_rated_capacity_k_w'] = self._clean_capacity(
            record.get('turbine_rated_capacity_k_w')
        )

        com_dates = split_composite_field(
            record.get('commissioning_date'), COMPOSITE_SEPARATOR,
            len(COMMISSIONING_DATE_FIELDS), self.field_stats
        )
        cleaned_record.update(zip(COMMISSIONING_DATE_FIELDS, com_dates))
        cleaned_record['most_recent_com_date'] = most_recent_com_date(com_dates)
        if cleaned_record['most_recent_com_date'] is None:
            self.field_stats['records_without_year'] += 1

        turbine_numbers = split_composite_field(
            record.get('turbine_number_in_project'), COMPOSITE_SEPARATOR,
            len(TURBINE_NUMBER_FIELDS), self.field_stats
        )
        cleaned_record.update(zip(TURBINE_NUMBER_FIELDS, turbine_numbers))

        return cleaned_record

    def clean_records(self, records: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Clean a whole table, dropping records that fail validation."""
        cleaned = []
        for record in records:
            cleaned_record = self.clean_record(record)
            if cleaned_record is not None:
                cleaned.append(cleaned_record)

        stats = self.get_statistics()
        logger.info(
            f"Cleaned {stats['records_cleaned']}/{stats['records_processed']} records "
            f"({stats['parse_failures']} unparseable tokens, "
            f"{stats['records_without_year']} without a commissioning year)"
        )
        if stats['truncated_fields']:
            logger.warning(
                f"{stats['truncated_fields']} composite values had more tokens than "
                f"expected; extra tokens were discarded"
            )
        return cleaned

    def _standardize_string(self, value: Any) -> Optional[str]:
        """Strip and collapse whitespace; blank values become None."""
        if value is None:
            return None
        clean_value = ' '.join(str(value).split())
        return clean_value or None

    def _clean_capacity(self, value: Any) -> Optional[float]:
        """Rated capacity in kW; must be a positive number."""
        if value is None:
            return None
        try:
            capacity = float(parse_number(value))
        except FieldParseError:
            self.field_stats['parse_failures'] += 1
            return None
        return capacity if capacity > 0 else None

    def get_statistics(self) -> Dict[str, Any]:
        """Get cleaning statistics."""
        records_cleaned = self.records_processed - self.records_dropped
        return {
            'records_processed': self.records_processed,
            'records_dropped': self.records_dropped,
            'records_cleaned': records_cleaned,
            'success_rate': records_cleaned / self.records_processed * 100 if self.records_processed > 0 else 0,
            'parse_failures': self.field_stats['parse_failures'],
            'truncated_fields': self.field_stats['truncated_fields'],
            'records_without_year': self.field_stats['records_without_year']
        }
