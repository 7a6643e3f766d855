"""
Configuration Management System for the Contingency Table Engine

This module provides centralized configuration management for table assembly,
including layout labels, number formatting, estimation defaults, logging
configuration, and runtime options.

Usage:
    from config import CONFIG

    # Access config
    print(CONFIG.get('table.cell_separator'))

    # Update config (runtime)
    CONFIG.update('analysis.reference_level', 'frequent')

    # Get with default
    value = CONFIG.get('some.nested.key', default='default_value')
"""

import copy
import json
import os
import warnings
from pathlib import Path
from typing import Any, Dict, Optional


class ConfigManager:
    """
    Centralized configuration management with hierarchical key access.

    Supports:
    - Nested dictionary access with dot notation
    - Default values and fallbacks
    - Environment variable overrides
    - Config validation
    - Runtime updates
    """

    def __init__(self, config_dict: Optional[Dict] = None):
        """
        Create a ConfigManager populated with the given configuration or the module defaults and apply environment variable overrides.

        Parameters:
            config_dict (dict | None): Optional initial configuration dictionary to use instead of the built-in defaults. If None, the manager is initialized from the default configuration.
        """
        self._config = config_dict or self._get_default_config()
        self._env_prefix = "CTABLE_"
        self._load_env_overrides()

    @staticmethod
    def _get_default_config() -> Dict[str, Any]:
        """
        Provide the default nested configuration used by the engine.

        Returns:
            Dict[str, Any]: A dictionary with the default configuration sections
            ('table', 'analysis', 'logging', 'performance', 'validation') and
            their corresponding default settings.
        """
        return {

            # ========== TABLE LAYOUT & FORMATTING ==========
            "table": {
                "cell_separator": "\n",  # Joins multiple crosstab outputs in one cell
                "marginal_label": "Total",
                "overall_label": "Overall",  # Header of the unstratified column (no outcomes)
                "stub_label": "",  # Label column text on header rows
                "percent_digits": 1,
                "continuous_digits": 1,
                "ratio_digits": 2,
                "missing_marker": "-",
                "reference_marker": "ref",
            },

            # ========== ANALYSIS SETTINGS ==========
            "analysis": {
                "conf_level": 0.95,
                "reference_level": "first",  # 'first', 'frequent'
                "logit_max_iter": 100,
                "cox_penalizer": 0.0,

                # P-value Handling
                "pvalue_bounds_lower": 0.001,
                "pvalue_bounds_upper": 0.999,
                "pvalue_digits": 3,
                "pvalue_format_small": "<0.001",
                "pvalue_format_large": ">0.999",
            },

            # ========== LOGGING SETTINGS ==========
            "logging": {
                "enabled": True,
                "level": "INFO",  # DEBUG, INFO, WARNING, ERROR, CRITICAL
                "format": "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
                "date_format": "%Y-%m-%d %H:%M:%S",

                # File Logging
                "file_enabled": False,
                "log_dir": "logs",
                "log_file": "ctable.log",
                "max_log_size": 10485760,  # 10MB in bytes
                "backup_count": 5,

                # Console Logging
                "console_enabled": True,
                "console_level": "WARNING",

                # What to Log
                "log_data_operations": True,
                "log_analysis_operations": True,
                "log_performance": True,  # Timing information
            },

            # ========== PERFORMANCE SETTINGS ==========
            "performance": {
                "num_threads": 1,  # >1 evaluates crosstab cells on a thread pool
            },

            # ========== VALIDATION SETTINGS ==========
            "validation": {
                "strict_mode": False,  # True: summary functions must return str, not numbers
            },
        }

    def _load_env_overrides(self) -> None:
        """
        Apply configuration overrides from environment variables that start with the CTABLE_ prefix.

        Environment variables must follow the form CTABLE_<SECTION>_<KEY>=value; the portion after the prefix is lowercased and split on underscores, where the first segment is treated as the section and the remaining segments are joined with underscores to form the key within that section (e.g., CTABLE_LOGGING_LEVEL -> logging.level). Values are coerced to the type of the default they replace. Variables without at least a section and key are ignored. If applying an override fails, a warning is emitted and the override is skipped.
        """
        for key, value in os.environ.items():
            if key.startswith(self._env_prefix):
                # CTABLE_LOGGING_LEVEL -> ['logging', 'level']
                parts = key[len(self._env_prefix):].lower().split('_')

                if len(parts) < 2:
                    continue

                section = parts[0]
                key_name = '_'.join(parts[1:])
                dotted = f"{section}.{key_name}"

                try:
                    self.update(dotted, self._coerce(self.get(dotted), value))
                except (KeyError, ValueError, TypeError) as e:
                    warnings.warn(f"Failed to set env override {key}={value}: {e}", stacklevel=2)

    @staticmethod
    def _coerce(current: Any, raw: str) -> Any:
        """Convert an environment string to the type of the value it overrides."""
        if isinstance(current, bool):
            return raw.strip().lower() in ("1", "true", "yes", "on")
        if isinstance(current, int):
            return int(raw)
        if isinstance(current, float):
            return float(raw)
        return raw

    def get(self, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value using a dot-separated key path.

        Parameters:
            key (str): Dot-separated path to a nested configuration value (e.g., "logging.level").
            default: Value to return if the specified path does not exist.

        Returns:
            The configuration value at the given path, or `default` if the path is not found.
        """
        keys = key.split('.')
        value = self._config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def update(self, key: str, value: Any) -> None:
        """
        Set an existing configuration value identified by a dot-separated path.

        Raises:
            KeyError: If any intermediate path segment or the final key does not exist in the configuration.
        """
        keys = key.split('.')
        config = self._config

        for k in keys[:-1]:
            if not isinstance(config, dict) or k not in config:
                raise KeyError(f"Config path '{'.'.join(keys[:-1])}' does not exist")
            config = config[k]

        final_key = keys[-1]
        if final_key not in config:
            raise KeyError(f"Config key '{key}' does not exist")

        config[final_key] = value

    def set_nested(self, key: str, value: Any, create: bool = False) -> None:
        """
        Set a value using a dot-separated path, optionally creating missing intermediate dictionaries.

        Parameters:
            key (str): Dot-separated path to the configuration key (e.g., "section.sub.key").
            value (Any): Value to assign to the final key.
            create (bool): If True, create missing intermediate dictionaries along the path; if False and a path segment is missing, a KeyError is raised.
        """
        keys = key.split('.')
        config = self._config

        for k in keys[:-1]:
            if k not in config:
                if create:
                    config[k] = {}
                else:
                    raise KeyError(f"Config path '{k}' does not exist")
            config = config[k]

        config[keys[-1]] = value

    def get_section(self, section: str) -> Dict[str, Any]:
        """Return a deep copy of a top-level configuration section."""
        result = self.get(section, {})
        return copy.deepcopy(result) if isinstance(result, dict) else result

    def to_dict(self) -> Dict[str, Any]:
        """Get a deep copy of the entire configuration dictionary."""
        return copy.deepcopy(self._config)

    def to_json(self, filepath: Optional[str] = None, pretty: bool = True) -> str:
        """
        Serialize the current configuration to a JSON string.

        Parameters:
            filepath (str | None): Optional filesystem path to write the JSON output; when provided, the file is overwritten.
            pretty (bool): If True, format the JSON with indentation for readability; if False, produce compact JSON.
        """
        json_str = json.dumps(self._config, indent=2 if pretty else None)

        if filepath:
            Path(filepath).write_text(json_str)

        return json_str

    def validate(self) -> tuple[bool, list[str]]:
        """
        Validate key configuration constraints and collect any violations.

        Performs a set of sanity checks on configuration values:
        - Ensures `analysis.conf_level` is strictly between 0 and 1.
        - Ensures `analysis.reference_level` is one of `['first', 'frequent']`.
        - Ensures `analysis.pvalue_bounds_lower` is less than `analysis.pvalue_bounds_upper`.
        - Ensures every `table.*_digits` value is a non-negative integer.
        - Ensures `performance.num_threads` is at least 1.
        - Ensures `logging.level` is a standard level name.

        Returns:
            tuple: (is_valid, errors) where `errors` is a list of human-readable error messages.
        """
        errors = []

        conf_level = self.get('analysis.conf_level')
        if conf_level is None or not (0 < conf_level < 1):
            errors.append("analysis.conf_level must be between 0 and 1")

        valid_refs = ['first', 'frequent']
        if self.get('analysis.reference_level') not in valid_refs:
            errors.append(f"analysis.reference_level must be one of {valid_refs}")

        lower = self.get('analysis.pvalue_bounds_lower')
        upper = self.get('analysis.pvalue_bounds_upper')
        if lower is None or upper is None or not (lower < upper):
            errors.append("pvalue_bounds_lower must be < pvalue_bounds_upper")

        for digits_key in ('percent_digits', 'continuous_digits', 'ratio_digits'):
            digits = self.get(f'table.{digits_key}')
            if not isinstance(digits, int) or digits < 0:
                errors.append(f"table.{digits_key} must be a non-negative integer")

        threads = self.get('performance.num_threads')
        if not isinstance(threads, int) or threads < 1:
            errors.append("performance.num_threads must be >= 1")

        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if self.get('logging.level') not in valid_levels:
            errors.append(f"logging.level must be one of {valid_levels}")

        return len(errors) == 0, errors

    def __repr__(self) -> str:
        return f"ConfigManager({len(self._config)} sections)"


# Global config instance
CONFIG = ConfigManager()
