"""
Backend configuration loading.

Provides utilities for loading, validating, and merging COP-SLAM
configuration from YAML files.

This module bridges:
1. YAML configuration files (config/cop_slam_base.yaml, config/presets/*.yaml)
2. Pydantic validation models (common/param_models.py)
3. The CorrectionConfig consumed by the pose chain (config.py)

Usage:
    from cop_slam.backend.config import load_chain_config

    params = load_chain_config("/path/to/config.yaml", overrides={"method": "twopass"})
    config = CorrectionConfig.from_params(params)
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from cop_slam.common.param_models import CopSlamParams

PACKAGE_NAME = "cop_slam"
BASE_CONFIG_NAME = "cop_slam_base.yaml"

CONFIG_SECTION = "cop_slam"


def load_yaml_config(config_path: str | Path) -> Dict[str, Any]:
    """
    Load YAML configuration file.

    Args:
        config_path: Path to YAML file

    Returns:
        Dictionary with configuration values

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        return yaml.safe_load(f) or {}


def merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge multiple configuration dictionaries (later configs override earlier).
    """
    result: Dict[str, Any] = {}
    for config in configs:
        if config:
            _deep_merge(result, config)
    return result


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """Deep merge override dict into base dict (mutates base)."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def _section(full_config: Dict[str, Any]) -> Dict[str, Any]:
    # Files may be flat or wrap parameters in a `cop_slam:` section
    if CONFIG_SECTION in full_config:
        return full_config.get(CONFIG_SECTION) or {}
    return full_config


def load_chain_config(
    base_path: Optional[str | Path] = None,
    preset_path: Optional[str | Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> CopSlamParams:
    """
    Load and validate correction parameters from YAML files.

    Args:
        base_path: Path to base configuration YAML (cop_slam_base.yaml)
        preset_path: Optional path to preset override YAML
        overrides: Optional dictionary of parameter overrides

    Returns:
        Validated CopSlamParams model

    Raises:
        ValidationError: If configuration is invalid
    """
    base_config: Dict[str, Any] = {}
    if base_path:
        base_config = _section(load_yaml_config(base_path))

    preset_config: Dict[str, Any] = {}
    if preset_path:
        preset_config = _section(load_yaml_config(preset_path))

    # base <- preset <- overrides
    merged = merge_configs(base_config, preset_config, overrides or {})
    return CopSlamParams(**merged)


def _config_dirs() -> list[Path]:
    # Installed data files (setup.py data_files) first, then the source checkout
    return [
        Path(sys.prefix) / "share" / PACKAGE_NAME / "config",
        Path(__file__).parent.parent.parent / "config",
    ]


def get_default_config_paths() -> tuple[Path, Path]:
    """
    Get default paths to configuration files.

    Searches <sys.prefix>/share/cop_slam/config (installed) before the
    source tree; falls back to the source-tree paths when neither holds
    the base config.

    Returns:
        Tuple of (base_config_path, presets_dir_path)
    """
    dirs = _config_dirs()
    config_dir = next((d for d in dirs if (d / BASE_CONFIG_NAME).exists()), dirs[-1])
    return config_dir / BASE_CONFIG_NAME, config_dir / "presets"


def get_preset_path(preset_name: str) -> Optional[Path]:
    """
    Get path to a preset configuration file.

    Args:
        preset_name: Name of preset (e.g., "twopass_sim3")

    Returns:
        Path to preset file, or None if not found
    """
    _, presets_dir = get_default_config_paths()
    preset_path = presets_dir / f"{preset_name}.yaml"
    return preset_path if preset_path.exists() else None
