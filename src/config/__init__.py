"""feedlens configuration: the Settings model and the YAML + env loader.

Call :func:`load_config` to resolve settings; ``src/main.py`` does so once
at import time and hands the result to every component it builds.
"""

from src.config.loader import load_config
from src.config.settings import Settings

__all__ = ["Settings", "load_config"]
