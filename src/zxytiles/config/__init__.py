"""Configuration loading utilities for zxytiles."""

from .loader import ConfigLoader, load_config

__all__ = ["ConfigLoader", "load_config"]
