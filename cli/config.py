#!/usr/bin/env python3
"""
Configuration Management Module for the Token Registry CLI

Handles hierarchical configuration loading, environment variable mapping,
validation, and management of settings across different environments.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml


# Configuration file locations in order of precedence (highest to lowest)
CONFIG_SEARCH_PATHS = [
    Path.cwd() / '.chain-registry.yml',
    Path.cwd() / '.chain-registry.json',
    Path.home() / '.chain-registry' / 'config.yml',
    Path.home() / '.chain-registry' / 'config.json',
]

# Environment variable prefix; '__' separates nesting levels
ENV_PREFIX = 'CHAIN_REGISTRY_'
ENV_NESTING = '__'

STORAGE_BACKENDS = ('json', 'memory')
OUTPUT_FORMATS = ('table', 'json', 'yaml')
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

DEFAULT_CONFIG = {
    'storage': {
        'backend': 'json',
        'data_dir': '~/.chain-registry/data',
        'max_key_size': 44,
        'max_value_size': 1024,
        'lock_timeout': 30.0,
    },
    'cli': {
        'output_format': 'table',
        'confirm_destructive': True,
    },
    'logging': {
        'level': 'WARNING',
    },
}

PROFILES = {
    'production': {
        'cli': {'confirm_destructive': True},
        'logging': {'level': 'WARNING'},
    },
    'development': {
        'cli': {'confirm_destructive': False},
        'logging': {'level': 'DEBUG'},
    },
    'ephemeral': {
        'storage': {'backend': 'memory'},
        'cli': {'confirm_destructive': False},
    },
}


class ConfigurationManager:
    """Manages hierarchical configuration with environment variable support."""

    def __init__(self, config_file: Optional[str] = None, profile: Optional[str] = None,
                 search_paths: Optional[List[Path]] = None):
        """
        Initialize configuration manager.

        Args:
            config_file: Explicit configuration file path
            profile: Configuration profile to apply (production, development, ephemeral)
            search_paths: Override of the default config file search locations
        """
        self.logger = logging.getLogger('chain-registry.config')
        self.config_file = config_file
        self.profile = profile
        self.search_paths = CONFIG_SEARCH_PATHS if search_paths is None else search_paths
        self._config_cache = None
        self._config_sources = []

    def load(self) -> Dict[str, Any]:
        """
        Load configuration from all sources in hierarchical order.

        Returns:
            Merged configuration dictionary
        """
        if self._config_cache is not None:
            return self._config_cache

        configs = [copy.deepcopy(DEFAULT_CONFIG)]
        self._config_sources = ["defaults"]

        if self.profile:
            if self.profile not in PROFILES:
                raise ValueError(f"Unknown configuration profile: {self.profile}")
            configs.append(PROFILES[self.profile])
            self._config_sources.append(f"profile:{self.profile}")
            self.logger.debug(f"Applied profile: {self.profile}")

        if self.config_file:
            config_path = Path(self.config_file)
            if not config_path.exists():
                raise FileNotFoundError(f"Config file not found: {config_path}")
            configs.append(self._load_config_file(config_path))
            self._config_sources.append(f"file:{config_path}")
        else:
            for config_path in self.search_paths:
                if config_path.exists():
                    configs.append(self._load_config_file(config_path))
                    self._config_sources.append(f"file:{config_path}")
                    self.logger.debug(f"Loaded config from {config_path}")
                    break

        env_config = self._load_environment_variables()
        if env_config:
            configs.append(env_config)
            self._config_sources.append("environment")

        self._config_cache = self._deep_merge(*configs)
        self._expand_paths(self._config_cache)

        return self._config_cache

    def _load_config_file(self, path: Path) -> Dict[str, Any]:
        """Load configuration from a YAML or JSON file."""
        with open(path, 'r') as f:
            if path.suffix in ('.yml', '.yaml'):
                data = yaml.safe_load(f)
            elif path.suffix == '.json':
                data = json.load(f)
            else:
                raise ValueError(f"Unknown config file format: {path}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        return data

    def _load_environment_variables(self) -> Dict[str, Any]:
        """Load configuration from environment variables.

        CHAIN_REGISTRY_STORAGE__DATA_DIR -> {'storage': {'data_dir': value}}
        """
        env_config = {}

        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue

            parts = key[len(ENV_PREFIX):].lower().split(ENV_NESTING)
            current = env_config
            for part in parts[:-1]:
                current = current.setdefault(part, {})
            current[parts[-1]] = self._parse_env_value(value)

        return env_config

    def _parse_env_value(self, value: str) -> Any:
        """Parse environment variable value to appropriate type."""
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass

        if value.lower() in ('true', 'yes'):
            return True
        if value.lower() in ('false', 'no'):
            return False

        return value

    def _deep_merge(self, *dicts: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge multiple dictionaries."""
        result = {}

        for dictionary in dicts:
            for key, value in dictionary.items():
                if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                    result[key] = self._deep_merge(result[key], value)
                else:
                    result[key] = value

        return result

    def _expand_paths(self, config: Dict[str, Any]):
        """Expand ~ and environment variables in path values."""
        for key, value in config.items():
            if isinstance(value, dict):
                self._expand_paths(value)
            elif isinstance(value, str) and ('~' in value or '$' in value):
                config[key] = os.path.expanduser(os.path.expandvars(value))

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation path.

        Args:
            key_path: Dot-separated path (e.g., 'storage.data_dir')
            default: Default value if key not found
        """
        current = self.load()

        for key in key_path.split('.'):
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default

        return current

    def set(self, key_path: str, value: Any):
        """Set configuration value by dot-notation path."""
        config = self.load()

        keys = key_path.split('.')
        current = config
        for key in keys[:-1]:
            current = current.setdefault(key, {})

        current[keys[-1]] = value

    def save(self, path: Union[str, Path], format: str = 'yaml'):
        """Save current configuration to file."""
        config = self.load()

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w') as f:
            if format == 'yaml':
                yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)
            else:
                json.dump(config, f, indent=2)

        self.logger.info(f"Configuration saved to {path}")

    def validate(self) -> List[str]:
        """
        Validate current configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        config = self.load()
        errors = []

        storage = config.get('storage', {})
        backend = storage.get('backend')
        if backend not in STORAGE_BACKENDS:
            errors.append(f"Invalid storage backend: {backend}")
        if backend == 'json' and not storage.get('data_dir'):
            errors.append("storage.data_dir is required for the json backend")

        for bound in ('max_key_size', 'max_value_size'):
            value = storage.get(bound)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                errors.append(f"storage.{bound} must be a positive integer")

        timeout = storage.get('lock_timeout')
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            errors.append("storage.lock_timeout must be a positive number")

        output_format = config.get('cli', {}).get('output_format')
        if output_format not in OUTPUT_FORMATS:
            errors.append(f"Invalid output format: {output_format}")

        level = str(config.get('logging', {}).get('level', '')).upper()
        if level not in LOG_LEVELS:
            errors.append(f"Invalid log level: {config.get('logging', {}).get('level')}")

        return errors

    def get_sources(self) -> List[str]:
        """Get list of configuration sources that were loaded."""
        self.load()
        return self._config_sources
