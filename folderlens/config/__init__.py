"""Configuration module -- exports Settings and load_config."""

from folderlens.config.loader import load_config
from folderlens.config.settings import Settings

__all__ = ["Settings", "load_config"]
