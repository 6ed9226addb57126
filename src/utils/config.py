# ========================
# src/utils/config.py
# ========================

"""
Configuration Management

Centralized configuration for the reporting engine with environment support.
"""

import os
from typing import Dict, Any, List, Optional


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """
    Configuration class for the reporting engine.
    Supports environment variables and default values.
    """

    def __init__(self, config_dict: Optional[Dict[str, Any]] = None):
        """
        Initialize configuration.

        Args:
            config_dict (dict): Optional configuration overrides
        """
        # Ingestion
        self.DEFAULT_INPUT_FILE = os.getenv('REPORTING_INPUT_FILE', 'data/raw/orders.csv')
        self.DEFAULT_CHUNK_SIZE = int(os.getenv('REPORTING_CHUNK_SIZE', '5000'))
        self.STRICT_PARSING = _env_bool('STRICT_PARSING', 'true')

        # Field formats
        self.CATEGORY_SEPARATOR = os.getenv('CATEGORY_SEPARATOR', '>')
        self.SPEC_SEPARATOR = os.getenv('SPEC_SEPARATOR', '|')
        self.SPEC_KEY_VALUE_SEPARATOR = os.getenv('SPEC_KEY_VALUE_SEPARATOR', '=')

        # Sample data generation
        self.DEFAULT_SAMPLE_ROWS = int(os.getenv('SAMPLE_ROWS', '10000'))

        # Presentation
        self.CURRENCY_SYMBOL = os.getenv('CURRENCY_SYMBOL', '€')
        self.DELIVERY_PERCENTILE = int(os.getenv('DELIVERY_PERCENTILE', '95'))
        self.API_PORT = int(os.getenv('API_PORT', '8000'))

        # Logging Configuration
        self.LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
        self.LOG_DIR = os.getenv('LOG_DIR', 'logs')
        self.LOG_CHUNK_INTERVAL = int(os.getenv('LOG_CHUNK_INTERVAL', '20'))

        # Override with provided config
        if config_dict:
            self._update_from_dict(config_dict)

    def _update_from_dict(self, config_dict: Dict[str, Any]) -> None:
        """Update configuration from dictionary."""
        for key, value in config_dict.items():
            if hasattr(self, key.upper()):
                setattr(self, key.upper(), value)

    def validate_config(self) -> Dict[str, bool]:
        """
        Validate configuration values.

        Returns:
            dict: Validation results for each setting
        """
        validations = {}

        validations['chunk_size'] = self.DEFAULT_CHUNK_SIZE > 0
        validations['sample_rows'] = self.DEFAULT_SAMPLE_ROWS > 0
        validations['delivery_percentile'] = 0 < self.DELIVERY_PERCENTILE <= 100
        validations['api_port'] = 1000 <= self.API_PORT <= 65535
        validations['log_chunk_interval'] = self.LOG_CHUNK_INTERVAL > 0

        # Separators must be non-empty and distinct from each other
        separators = [self.CATEGORY_SEPARATOR, self.SPEC_SEPARATOR, self.SPEC_KEY_VALUE_SEPARATOR]
        validations['separators'] = all(separators) and len(set(separators)) == len(separators)

        valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        validations['log_level'] = self.LOG_LEVEL.upper() in valid_log_levels

        return validations

    def invalid_settings(self) -> List[str]:
        """Names of the settings that failed validation, empty when the config is usable."""
        return [name for name, ok in self.validate_config().items() if not ok]

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            attr: getattr(self, attr)
            for attr in dir(self)
            if attr.isupper() and not callable(getattr(self, attr))
        }

    def __str__(self) -> str:
        """String representation of configuration."""
        lines = ["Configuration Settings:"]
        config_dict = self.to_dict()
        for key, value in sorted(config_dict.items()):
            lines.append(f"  {key}: {value}")
        return "\n".join(lines)
