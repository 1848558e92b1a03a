"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ───────────────────────────────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. Settings field defaults: declared in settings.py
#   2. config/config.yaml: static defaults checked into the repo
#   3. .env file: local developer overrides (not committed)
#   4. Environment vars: set at deploy time
#
# YAML is grouped by section and flattened into Settings field names:
#
#   search:
#     default_min_similarity: 0.6     →  search_default_min_similarity
#
# A YAML value only applies when the field was NOT provided by .env or
# the environment.
# ──────────────────────────────────────────────────────────────────────
"""

from pathlib import Path
from typing import Any

import yaml

from src.config.settings import Settings
from src.utils.errors import ConfigurationError


def load_config(path: str = "config/config.yaml") -> Settings:
    """Build :class:`Settings` from YAML defaults plus env/.env overrides.

    Args:
        path: Path to the YAML configuration file.  A missing file is fine.

    Returns:
        Fully resolved settings.

    Raises:
        ConfigurationError: If the YAML names an unknown setting.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    flat = _flatten(yaml_config)
    unknown = sorted(k for k in flat if k not in Settings.model_fields)
    if unknown:
        raise ConfigurationError(
            message=f"Unknown settings in {config_path}: {', '.join(unknown)}"
        )

    env_settings = Settings()
    yaml_only = {
        key: value for key, value in flat.items() if key not in env_settings.model_fields_set
    }
    if not yaml_only:
        return env_settings
    # Re-validate so YAML values get the same coercion as env values.
    return Settings.model_validate({**env_settings.model_dump(), **yaml_only})


def _flatten(config: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested sections into ``section_key`` names."""
    flat: dict[str, Any] = {}
    for key, value in config.items():
        name = f"{prefix}_{key}" if prefix else str(key)
        if isinstance(value, dict):
            flat.update(_flatten(value, name))
        else:
            flat[name] = value
    return flat
