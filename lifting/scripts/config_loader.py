#!/usr/bin/env python3
"""
Configuration loader for liftcycle.

Loads settings from config.yaml with environment variable overrides.
"""

import os
import re
import sys
import threading
import yaml
from pathlib import Path
from typing import Any, Dict, Optional, Set

sys.path.insert(0, str(Path(__file__).parent))
from constants import DEFAULT_DATA_DIR, DEFAULT_WORKOUT_CONFIG_PATH


# Allowlist of environment variables that can be substituted
ALLOWED_ENV_VARS: Set[str] = {
    'LIFT_DATA_DIR',
    'LIFT_WORKOUT_CONFIG',
    'LIFT_LOG_LEVEL',
    'LIFT_LOG_FORMAT',
    'LIFT_ENVIRONMENT',
}

# lifting/scripts -> project root
PROJECT_ROOT: Path = Path(__file__).parent.parent.parent.resolve()

ENV_PATTERN = re.compile(r'\$\{([^}:]+)(?::-([^}]*))?\}')


class Config:
    """Application configuration manager."""

    _instance = None
    _config = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._config is None:
            self._load_config()

    def _candidate_paths(self):
        return [
            PROJECT_ROOT / 'config.yaml',
            Path.cwd() / 'config.yaml',
            Path.home() / '.liftcycle' / 'config.yaml',
        ]

    def _load_config(self, config_path: Optional[Path] = None):
        """Load configuration from config.yaml."""
        if config_path is None:
            for path in self._candidate_paths():
                if path.exists():
                    config_path = path
                    break

        if config_path is None:
            self._config = self._get_defaults()
            return

        with open(config_path, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

        self._config = self._merge(self._get_defaults(), self._process_env_vars(raw_config))

    def _merge(self, base: Dict, override: Dict) -> Dict:
        merged = dict(base)
        for key, value in override.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = self._merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    def _process_env_vars(self, obj: Any) -> Any:
        """
        Recursively process environment variable substitutions.

        SECURITY: Only allowlisted environment variables can be substituted.
        """
        if isinstance(obj, str):
            def replace(match):
                var_name = match.group(1)
                default = match.group(2) or ''

                if var_name not in ALLOWED_ENV_VARS:
                    return default

                return os.environ.get(var_name, default)

            return ENV_PATTERN.sub(replace, obj)

        elif isinstance(obj, dict):
            return {k: self._process_env_vars(v) for k, v in obj.items()}

        elif isinstance(obj, list):
            return [self._process_env_vars(item) for item in obj]

        return obj

    def _get_defaults(self) -> Dict:
        """Return default configuration."""
        return {
            'paths': {
                'data_dir': 'lifting/data',
                'workout_config': 'lifting/workout_config.yaml',
            },
            'logging': {
                'level': 'INFO',
                'format': 'human',
            },
            'training': {
                'default_environment': '',
            },
        }

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Example: config.get('logging.level', 'INFO')
        """
        keys = key_path.split('.')
        value = self._config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def get_path(self, key: str) -> Optional[Path]:
        """Get a path configuration, resolving relative paths against the project root."""
        raw_path = self.get(f'paths.{key}', '')

        if not raw_path:
            return None

        path = Path(os.path.expanduser(raw_path))
        if not path.is_absolute():
            path = PROJECT_ROOT / path

        return path.resolve()

    def get_data_dir(self) -> Path:
        """Directory holding the persisted collections."""
        return self.get_path('data_dir') or DEFAULT_DATA_DIR

    def get_workout_config_path(self) -> Path:
        """Location of the workout configuration (cycle, patterns, templates)."""
        return self.get_path('workout_config') or DEFAULT_WORKOUT_CONFIG_PATH


# Global config instance
config = Config()


def get_config() -> Config:
    """Get the global configuration instance."""
    return config
