#!/usr/bin/env python3
"""
Configuration for docket.

Settings come from three layers, later ones winning:
1. Built-in defaults (get_default_config)
2. A JSON, TOML or YAML file (DOCKET_CONFIG, or ~/.docket/config.*)
3. DOCKET_<SECTION>_<KEY> environment variables
"""

import os
import json
import tomllib
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import logging
import sys

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)],
)
logger = logging.getLogger("docket")

ENV_PREFIX = "DOCKET_"
CONFIG_FILENAMES = ['config.json', 'config.toml', 'config.yaml', 'config.yml']

# Example and scripting plugins that are published but never documented.
DEFAULT_SKIP_LIST = [
    "logstash-codec-example",
    "logstash-input-example",
    "logstash-filter-example",
    "logstash-output-example",
    "logstash-filter-script",
    "logstash-input-java_input_example",
    "logstash-filter-java_filter_example",
    "logstash-output-java_output_example",
    "logstash-codec-java_codec_example",
]


def get_config_path() -> Path:
    """
    Locate the configuration file.

    DOCKET_CONFIG is used when it names an existing file, then the first
    of ~/.docket/config.{json,toml,yaml,yml} that exists. When none does,
    ~/.docket/config.json is returned.
    """
    explicit = os.environ.get('DOCKET_CONFIG')
    if explicit and Path(explicit).exists():
        return Path(explicit)

    config_dir = Path.home() / '.docket'
    candidates = [config_dir / filename for filename in CONFIG_FILENAMES]
    return next((path for path in candidates if path.exists()), candidates[0])


def _read_json(path: Path) -> Dict[str, Any]:
    with open(path, 'r') as f:
        return json.load(f)


def _read_toml(path: Path) -> Dict[str, Any]:
    with open(path, 'rb') as f:
        return tomllib.load(f)


def _read_yaml(path: Path) -> Dict[str, Any]:
    import yaml
    with open(path, 'r') as f:
        return yaml.safe_load(f) or {}


_READERS: Dict[str, Callable[[Path], Dict[str, Any]]] = {
    '.toml': _read_toml,
    '.yaml': _read_yaml,
    '.yml': _read_yaml,
}


def load_config() -> Dict[str, Any]:
    """Defaults, overlaid with the config file, overlaid with the environment."""
    config = get_default_config()

    path = get_config_path()
    if path.exists():
        reader = _READERS.get(path.suffix.lower(), _read_json)
        try:
            config = merge_configs(config, reader(path))
        except Exception as e:
            logger.error(f"Ignoring unreadable config {path}: {e}")

    return apply_env_overrides(config)


def get_default_config() -> Dict[str, Any]:
    """Built-in settings. GitHub org and token may come from the environment."""
    return {
        "registry": {
            "base_url": "https://rubygems.org",
            "max_attempts": 5,
            "rate_limit_delay_seconds": 1.0,
            "timeout_seconds": 30,
        },
        "github": {
            "token": os.environ.get('DOCKET_GITHUB_TOKEN') or os.environ.get('GITHUB_TOKEN', ''),
            "default_org": os.environ.get('PLUGIN_ORG', 'logstash-plugins'),
            "api_base_url": "https://api.github.com",
            "raw_base_url": "https://raw.githubusercontent.com",
            "web_base_url": "https://github.com",
            "timeout_seconds": 30,
        },
        "scan": {
            "parallel": 4,
            "plugin_regex": "logstash-(?:codec|filter|input|output|integration)",
            "skip": list(DEFAULT_SKIP_LIST),
            "include_prerelease": False,
        },
        "logging": {
            "level": "INFO",
            "format": "%(levelname)s: %(message)s",
        },
    }


def merge_configs(base_config: Dict[str, Any], override_config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep-merge `override_config` into a copy of `base_config`.

    Nested sections are merged key by key; any other value replaces the
    base value. Neither argument is modified.
    """
    merged = dict(base_config)
    for key, value in override_config.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_configs(current, value)
        else:
            merged[key] = value
    return merged


def _coerce_env_value(value: str) -> Any:
    lowered = value.lower()
    if lowered in ('true', 'yes', 'on'):
        return True
    if lowered in ('false', 'no', 'off'):
        return False
    if value.isdigit():
        return int(value)
    return value


def _resolve_env_key(config: Dict[str, Any], parts: List[str]) -> Optional[tuple]:
    """
    Find the (section dict, key) that `parts` spells out.

    Config keys may contain underscores themselves, so at each level the
    longest key matching the next parts is taken.
    """
    level = config
    while parts:
        matches = [key for key in level if parts[:len(key.split('_'))] == key.split('_')]
        if not matches:
            return None
        key = max(matches, key=lambda k: len(k.split('_')))
        parts = parts[len(key.split('_')):]
        if not parts:
            return level, key
        if not isinstance(level[key], dict):
            return None
        level = level[key]
    return None


def apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply DOCKET_<SECTION>_<KEY>=value variables to `config` in place.

    For example DOCKET_REGISTRY_MAX_ATTEMPTS=3 sets registry.max_attempts.
    Booleans (true/yes/on, false/no/off) and integers are converted.
    Variables that name no existing key are ignored.
    """
    for env_key, value in os.environ.items():
        if not env_key.startswith(ENV_PREFIX) or env_key == 'DOCKET_CONFIG':
            continue

        target = _resolve_env_key(config, env_key[len(ENV_PREFIX):].lower().split('_'))
        if target is not None:
            section, key = target
            section[key] = _coerce_env_value(value)

    return config


def configure_logging(config: Dict[str, Any], verbose: bool = False) -> None:
    """Apply the configured log level to docket's loggers."""
    level_name = 'DEBUG' if verbose else str(config.get('logging', {}).get('level', 'INFO')).upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))


def build_registry_client(name: str, config: Dict[str, Any], session=None):
    """Create a registry client for `name` from the registry section."""
    from .infra.rubygems_client import RubygemsClient

    registry = config.get('registry', {})
    return RubygemsClient(
        name,
        session=session,
        base_url=registry.get('base_url', 'https://rubygems.org'),
        max_attempts=int(registry.get('max_attempts', 5)),
        rate_limit_delay=float(registry.get('rate_limit_delay_seconds', 1.0)),
        timeout=float(registry.get('timeout_seconds', 30)),
        logger=logging.getLogger("docket.registry"),
    )


def github_source_factory(name: str, config: Dict[str, Any], session=None) -> Callable:
    """Return a callable building the GitHub source of `name` from a registry record."""
    from .infra.github_source import github_source_from_metadata

    github = config.get('github', {})

    def factory(record):
        return github_source_from_metadata(
            name,
            record,
            default_org=github.get('default_org', 'logstash-plugins'),
            raw_base_url=github.get('raw_base_url', 'https://raw.githubusercontent.com'),
            web_base_url=github.get('web_base_url', 'https://github.com'),
            timeout=float(github.get('timeout_seconds', 30)),
            session=session,
        )

    return factory
