"""
load the config from config.yaml and environment variables
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"

# environment variable -> (section, key)
ENV_OVERRIDES = {
    'PRICEFEED_SOURCE_URL': ('source', 'url'),
    'PRICEFEED_ASSET_NAME': ('source', 'asset_name'),
    'COOKIE_SERVICE_URL': ('cookie_service', 'url'),
    'COOKIE_SERVICE_RETRIES': ('cookie_service', 'retries'),
    'COOKIE_SERVICE_TIMEOUT': ('cookie_service', 'timeout'),
    'FETCHER_TIMEOUT': ('fetcher', 'timeout'),
    'FETCHER_MAX_RESPONSE_SIZE': ('fetcher', 'max_response_size'),
    'POLL_INTERVAL': ('poller', 'interval'),
    'MONGODB_URI': ('mongodb', 'uri'),
    'MONGODB_DATABASE': ('mongodb', 'database'),
    'LOG_LEVEL': ('logging', 'level'),
    'LOG_JSON': ('logging', 'json'),
}


def parse_env_value(value: str):
    """Turn 'true'/'7'/'2.5' into bool/int/float; anything else stays a string."""
    if value.lower() in ('true', 'false'):
        return value.lower() == 'true'
    for cast in (int, float):
        try:
            return cast(value)
        except ValueError:
            pass
    return value


class Config:
    """Sections of config.yaml, with ENV_OVERRIDES applied on top."""

    def __init__(self, config_path: str = None):
        self.config_path = Path(config_path or DEFAULT_CONFIG_PATH)
        try:
            with open(self.config_path, 'r') as f:
                self._config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        for env_var, (section, key) in ENV_OVERRIDES.items():
            env_value = os.getenv(env_var)
            if env_value is None:
                continue
            if not isinstance(self._config.get(section), dict):
                self._config[section] = {}
            self._config[section][key] = parse_env_value(env_value)

    def get(self, *keys, default=None):
        """Nested lookup, e.g. get('mongodb', 'collections', 'quotes')."""
        current = self._config
        for key in keys:
            if not isinstance(current, dict) or key not in current:
                return default
            current = current[key]
        return current

    def _section(self, name: str) -> Dict[str, Any]:
        return self.get(name, default={})

    source = property(lambda self: self._section('source'))
    cookie_service = property(lambda self: self._section('cookie_service'))
    fetcher = property(lambda self: self._section('fetcher'))
    extractor = property(lambda self: self._section('extractor'))
    poller = property(lambda self: self._section('poller'))
    mongodb = property(lambda self: self._section('mongodb'))
    logging = property(lambda self: self._section('logging'))
