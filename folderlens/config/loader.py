"""YAML configuration loader with environment variable overrides.

Configuration is layered (later layers override earlier):

  1. config/config.yaml  -- static defaults checked into the repo
                            (content-review terminology rules, labels)
  2. .env file           -- local developer overrides
  3. Environment vars    -- deploy-time values

``load_config()`` reads the YAML first, then deep-merges the values that
come from :class:`Settings` on top.
"""

from pathlib import Path

import yaml

from folderlens.config.settings import Settings


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.  A missing file yields
              an empty base layer.
        settings: Settings instance to merge; a fresh one is built if omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "drive": {
            "folder_id": settings.google_drive_folder_id,
            "configured": settings.has_drive_credentials(),
        },
        "chunking": {
            "max_size": settings.chunk_max_size,
            "overlap": settings.chunk_overlap,
            "min_length": settings.chunk_min_length,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
