"""Layered configuration for grcmap.

Loads and merges configuration from:
1. Default settings (built-in)
2. Project config (.grcmap/config.yaml) or an explicit --config file
3. CLI parameters (override)
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Optional

import yaml

from .errors import ConfigError

DEFAULT_STOP_WORDS: list[str] = [
    "shall",
    "must",
    "should",
    "implement",
    "establish",
    "maintain",
    "ensure",
    "monitor",
    "review",
    "control",
]

DEFAULT_CONFIG: dict = {
    "mapping": {
        "threshold": 0.3,
        "max_matches": 3,
        "min_token_length": 4,
        "stop_words": DEFAULT_STOP_WORDS,
        "include_unmatched": False,
    },
    "ingest": {
        "max_content_bytes": 10 * 1024 * 1024,
        "csv_quoting": False,
    },
    "catalog": {
        "default_framework": "ISO 27001:2022",
        "extra_dirs": [],
    },
    "ai": {
        "provider": "anthropic",
        "temperature": 0.0,
        "timeout_seconds": 120,
        "anthropic": {
            "model": "claude-sonnet-4-5-20250929",
            "api_key_env": "ANTHROPIC_API_KEY",
            "max_tokens": 16000,
        },
        "openai": {
            "model": "gpt-4o",
            "api_key_env": "OPENAI_API_KEY",
            "max_tokens": 16000,
        },
        "ollama": {
            "endpoint": "http://localhost:11434",
            "model": "llama3.1:70b",
        },
    },
}

PROJECT_CONFIG_PATH = Path(".grcmap") / "config.yaml"


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dicts. Lists are replaced, not merged."""
    result = dict(base)
    for key, value in override.items():
        base_value = result.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            result[key] = deep_merge(base_value, value)
        else:
            result[key] = value
    return result


def load_project_config(project_path: Path) -> dict:
    """Load .grcmap/config.yaml from a project directory, if present.

    A missing or unreadable project config is ignored.
    """
    config_path = project_path / PROJECT_CONFIG_PATH
    if not config_path.exists():
        return {}
    try:
        content = config_path.read_text(encoding="utf-8-sig")
        loaded = yaml.safe_load(content)
    except (OSError, yaml.YAMLError):
        return {}
    return loaded if isinstance(loaded, dict) else {}


def load_config_file(config_file: Path) -> dict:
    """Load an explicitly named config file. Unlike project config, errors are fatal."""
    if not config_file.exists():
        raise ConfigError(f"Config file not found: {config_file}")
    try:
        loaded = yaml.safe_load(config_file.read_text(encoding="utf-8-sig"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Config file is not valid YAML: {config_file}") from e
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"Config file must contain a mapping: {config_file}")
    return loaded


def get_effective_config(
    project_path: Optional[Path] = None,
    config_file: Optional[Path] = None,
    cli_overrides: Optional[dict] = None,
) -> dict:
    """Get the fully resolved configuration."""
    config = copy.deepcopy(DEFAULT_CONFIG)

    if project_path is not None:
        project_config = load_project_config(project_path)
        if project_config:
            config = deep_merge(config, project_config)

    if config_file is not None:
        config = deep_merge(config, load_config_file(config_file))

    if cli_overrides:
        config = deep_merge(config, cli_overrides)

    return config
