# ========================
# src/utils/config.py
# ========================

"""
Configuration Management

Centralized configuration for the turbine market pipeline with environment support.
"""

import os
import json
from pathlib import Path
from typing import Dict, Any, Optional

DEFAULT_DATA_URL = (
    "https://raw.githubusercontent.com/rfordatascience/tidytuesday/master/"
    "data/2020/2020-10-27/wind-turbine.csv"
)


class Config:
    """
    Configuration class for the turbine market pipeline.
    Supports environment variables and default values.
    """

    def __init__(self, config_dict: Optional[Dict[str, Any]] = None):
        """
        Initialize configuration.

        Args:
            config_dict (dict): Optional configuration overrides
        """
        # Data Source
        self.DATA_URL = os.getenv('TURBINE_DATA_URL', DEFAULT_DATA_URL)
        self.REQUEST_TIMEOUT = float(os.getenv('REQUEST_TIMEOUT', '30'))

        # File Paths
        self.DEFAULT_OUTPUT_DIR = os.getenv('PIPELINE_OUTPUT_DIR', 'data/processed')
        self.RAW_DATA_DIR = os.getenv('RAW_DATA_DIR', 'data/raw')
        self.LOG_DIR = os.getenv('LOG_DIR', 'logs')

        # Market Share Settings
        self.TOP_K_MANUFACTURERS = int(os.getenv('TOP_K_MANUFACTURERS', '5'))
        self.OTHERS_LABEL = os.getenv('OTHERS_LABEL', 'Others')

        # Synthetic Data Settings
        self.SYNTHETIC_ROWS = int(os.getenv('SYNTHETIC_ROWS', '5000'))
        self.SYNTHETIC_ERROR_RATE = float(os.getenv('SYNTHETIC_ERROR_RATE', '0.1'))

        # API Settings
        self.API_PORT = int(os.getenv('API_PORT', '8000'))

        # Logging Configuration
        self.LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

        # Data Quality Settings
        self.ENABLE_DATA_PROFILING = os.getenv('ENABLE_DATA_PROFILING', 'true').lower() == 'true'

        # Override with provided config
        if config_dict:
            self._update_from_dict(config_dict)

    def _update_from_dict(self, config_dict: Dict[str, Any]) -> None:
        """Update configuration from dictionary."""
        for key, value in config_dict.items():
            attr = key.upper()
            if hasattr(self, attr):
                setattr(self, attr, self._coerce(getattr(self, attr), value))

    @staticmethod
    def _coerce(current: Any, value: Any) -> Any:
        """Convert an override to the type of the setting it replaces."""
        if value is None or isinstance(current, str):
            return value
        if isinstance(current, bool):
            if isinstance(value, str):
                return value.strip().lower() == 'true'
            return bool(value)
        return type(current)(value)

    def get_data_paths(self) -> Dict[str, Path]:
        """Get all configured data paths as Path objects."""
        return {
            'output_dir': Path(self.DEFAULT_OUTPUT_DIR),
            'raw_data_dir': Path(self.RAW_DATA_DIR),
            'logs_dir': Path(self.LOG_DIR)
        }

    def ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        for path in self.get_data_paths().values():
            path.mkdir(parents=True, exist_ok=True)

    def validate_config(self) -> Dict[str, bool]:
        """
        Validate configuration values.

        Returns:
            dict: Validation results for each setting
        """
        validations = {}

        validations['data_url'] = bool(self.DATA_URL)
        validations['request_timeout'] = self.REQUEST_TIMEOUT > 0
        validations['top_k_manufacturers'] = self.TOP_K_MANUFACTURERS >= 1
        validations['others_label'] = bool(str(self.OTHERS_LABEL).strip())
        validations['synthetic_rows'] = self.SYNTHETIC_ROWS > 0
        validations['synthetic_error_rate'] = 0.0 <= self.SYNTHETIC_ERROR_RATE <= 1.0
        validations['api_port'] = 1000 <= self.API_PORT <= 65535

        valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        validations['log_level'] = self.LOG_LEVEL.upper() in valid_log_levels

        return validations

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            attr: getattr(self, attr)
            for attr in dir(self)
            if not attr.startswith('_') and not callable(getattr(self, attr))
        }

    def save_to_file(self, file_path: str) -> None:
        """Save configuration to JSON file."""
        with open(file_path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2, default=str)

    @classmethod
    def load_from_file(cls, file_path: str, overrides: Optional[Dict[str, Any]] = None) -> 'Config':
        """Load configuration from JSON file; overrides take precedence over the file."""
        with open(file_path, 'r') as f:
            config_dict = {key.upper(): value for key, value in json.load(f).items()}
        config_dict.update({key.upper(): value for key, value in (overrides or {}).items()})
        return cls(config_dict)

    def __str__(self) -> str:
        lines = ["Configuration Settings:"]
        for key, value in sorted(self.to_dict().items()):
            lines.append(f"  {key}: {value}")
        return "\n".join(lines)
