# ========================
# src/utils/data_generator.py
# ========================

"""
Data Generation Utilities

Writes synthetic turbine datasets shaped like the Canadian wind turbine
database, with malformed values injected, for offline runs and scale tests.
"""

import csv
import random
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

COLUMNS = [
    'objectid', 'province_territory', 'project_name', 'total_project_capacity_mw',
    'turbine_identifier', 'turbine_number_in_project', 'turbine_rated_capacity_k_w',
    'rotor_diameter_m', 'hub_height_m', 'manufacturer', 'model',
    'commissioning_date', 'latitude', 'longitude', 'notes'
]


class DataGenerator:
    """
    Generates turbine datasets project by project, so every turbine of a
    project shares its manufacturer, model and commissioning dates.
    """

    def __init__(self, seed: Optional[int] = None):
        """
        Initialize data generator.

        Args:
            seed (int): Random seed for reproducible data generation
        """
        self.random = random.Random(seed)
        self._initialize_data_patterns()
        logger.info(f"DataGenerator initialized with seed: {seed}")

    def _initialize_data_patterns(self) -> None:
        """Initialize data patterns and distributions."""
        self.manufacturers = [
            {"name": "Vestas", "weight": 0.28, "models": [("V82-1.65", 1650, 82), ("V90-2.0", 2000, 90), ("V117-3.45", 3450, 117)]},
            {"name": "Enercon", "weight": 0.20, "models": [("E-70", 2300, 71), ("E-82", 2300, 82), ("E-101", 3050, 101)]},
            {"name": "Siemens", "weight": 0.17, "models": [("SWT-2.3-101", 2300, 101), ("SWT-3.0-113", 3000, 113)]},
            {"name": "GE", "weight": 0.15, "models": [("1.5sle", 1500, 77), ("1.6-100", 1600, 100)]},
            {"name": "Senvion", "weight": 0.08, "models": [("MM92", 2050, 92), ("3.2M114", 3200, 114)]},
            {"name": "Acciona", "weight": 0.05, "models": [("AW77/1500", 1500, 77)]},
            {"name": "Gamesa", "weight": 0.04, "models": [("G87", 2000, 87)]},
            {"name": "NEG Micon", "weight": 0.02, "models": [("NM48/750", 750, 48)]},
            {"name": "Bonus", "weight": 0.01, "models": [("B44/600", 600, 44)]},
        ]
        self.provinces = [
            {"name": "Ontario", "weight": 0.38, "lat": (42.0, 46.0), "lon": (-83.0, -76.0)},
            {"name": "Quebec", "weight": 0.28, "lat": (45.5, 50.0), "lon": (-73.0, -64.0)},
            {"name": "Alberta", "weight": 0.12, "lat": (49.0, 52.0), "lon": (-114.5, -110.0)},
            {"name": "Nova Scotia", "weight": 0.08, "lat": (43.5, 46.5), "lon": (-66.0, -60.0)},
            {"name": "Manitoba", "weight": 0.05, "lat": (49.0, 51.0), "lon": (-100.0, -96.0)},
            {"name": "Saskatchewan", "weight": 0.05, "lat": (49.0, 53.0), "lon": (-109.0, -102.0)},
            {"name": "New Brunswick", "weight": 0.04, "lat": (45.0, 47.5), "lon": (-67.5, -64.0)},
        ]
        self.first_year = 1993
        self.last_year = 2019
        self.error_types = [
            'missing_capacity', 'garbled_capacity', 'missing_date',
            'garbled_date', 'extra_date_tokens', 'missing_turbine_number',
            'missing_manufacturer'
        ]

    def generate_records(self, num_rows: int, error_rate: float = 0.1) -> Dict[str, Any]:
        """
        Build records in memory.

        Returns:
            dict: {'records': list[dict], 'error_counts': dict}
        """
        records: List[Dict[str, Any]] = []
        error_counts = {error_type: 0 for error_type in self.error_types}
        project_number = 0

        while len(records) < num_rows:
            project_number += 1
            project_size = min(self.random.randint(1, 60), num_rows - len(records))
            for record in self._generate_project(project_number, project_size, len(records)):
                if self.random.random() < error_rate:
                    error_type = self.random.choice(self.error_types)
                    self._inject_error(record, error_type)
                    error_counts[error_type] += 1
                records.append(record)

        return {'records': records, 'error_counts': error_counts}

    def _generate_project(self, project_number: int, size: int, offset: int) -> List[Dict[str, Any]]:
        manufacturer = self.random.choices(
            self.manufacturers, weights=[m['weight'] for m in self.manufacturers]
        )[0]
        model, capacity_kw, rotor = self.random.choice(manufacturer['models'])
        province = self.random.choices(
            self.provinces, weights=[p['weight'] for p in self.provinces]
        )[0]

        # Larger projects are sometimes commissioned in phases
        start_year = self.random.randint(self.first_year, self.last_year)
        phases = 1 if size < 20 else self.random.choice([1, 1, 2, 3])
        years = sorted({min(start_year + i, self.last_year) for i in range(phases)})
        commissioning_date = '/'.join(str(year) for year in years)

        lat = self.random.uniform(*province['lat'])
        lon = self.random.uniform(*province['lon'])
        project_name = f"{province['name']} Wind Project {project_number}"

        turbines = []
        for number in range(1, size + 1):
            turbines.append({
                'objectid': offset + number,
                'province_territory': province['name'],
                'project_name': project_name,
                'total_project_capacity_mw': round(size * capacity_kw / 1000, 2),
                'turbine_identifier': f"P{project_number:04d}-T{number:03d}",
                'turbine_number_in_project': f"{number}/{size}",
                'turbine_rated_capacity_k_w': capacity_kw,
                'rotor_diameter_m': rotor,
                'hub_height_m': self.random.choice([65, 80, 95, 99, 119]),
                'manufacturer': manufacturer['name'],
                'model': model,
                'commissioning_date': commissioning_date,
                'latitude': round(lat + self.random.uniform(-0.02, 0.02), 6),
                'longitude': round(lon + self.random.uniform(-0.02, 0.02), 6),
                'notes': None,
            })
        return turbines

    def _inject_error(self, record: Dict[str, Any], error_type: str) -> None:
        if error_type == 'missing_capacity':
            record['turbine_rated_capacity_k_w'] = None
        elif error_type == 'garbled_capacity':
            record['turbine_rated_capacity_k_w'] = self.random.choice(['unknown', 'n/a', '-'])
        elif error_type == 'missing_date':
            record['commissioning_date'] = None
        elif error_type == 'garbled_date':
            record['commissioning_date'] = self.random.choice(['20O5', 'TBD', '2012/?'])
        elif error_type == 'extra_date_tokens':
            record['commissioning_date'] = f"{record['commissioning_date']}/2019/2020/2021"
        elif error_type == 'missing_turbine_number':
            record['turbine_number_in_project'] = None
        elif error_type == 'missing_manufacturer':
            record['manufacturer'] = None
        record['notes'] = f"synthetic error: {error_type}"

    def generate_dataset(self, file_path: str, num_rows: int, error_rate: float = 0.1) -> Dict[str, Any]:
        """
        Generate a turbine dataset and write it to CSV.

        Args:
            file_path (str): Output CSV path
            num_rows (int): Number of turbines
            error_rate (float): Probability that a turbine gets a malformed field

        Returns:
            dict: Generation statistics
        """
        generated = self.generate_records(num_rows, error_rate)
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.DictWriter(f, fieldnames=COLUMNS)
            writer.writeheader()
            writer.writerows(generated['records'])

        stats = {
            'file_path': str(path),
            'total_rows': len(generated['records']),
            'error_rate': error_rate,
            'error_types': {k: v for k, v in generated['error_counts'].items() if v}
        }
        logger.info(f"Generated {stats['total_rows']} turbines into {path}")
        return stats
