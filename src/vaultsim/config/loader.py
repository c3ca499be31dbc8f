"""Configuration loader from YAML, with dot-path overrides."""

import copy
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .schema import Config

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def load_config(yaml_path: str = None, overrides: Optional[Mapping[str, Any]] = None) -> Config:
    """
    Load configuration from YAML file.

    Args:
        yaml_path: Path to YAML file (defaults to defaults.yaml)
        overrides: Dot-path overrides applied before validation,
            e.g. {"scenario.cycle_count": 4}

    Returns:
        Config object

    Raises:
        ValueError: If the file does not hold a YAML mapping
    """
    if yaml_path is None:
        yaml_path = DEFAULTS_PATH

    with open(yaml_path, 'r') as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"{yaml_path}: expected a mapping at the top level, got {type(data).__name__}")

    if overrides:
        data = apply_overrides(data, overrides)

    return Config.from_dict(data)


def config_from_dict(data: Dict[str, Any]) -> Config:
    """Create config from dictionary."""
    return Config.from_dict(data)


def apply_overrides(data: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of a raw config dict with dot-path overrides applied.

    Intermediate sections are created when missing so overrides can add
    optional sections (e.g. ``market``).
    """
    result = copy.deepcopy(data)
    for path, value in overrides.items():
        parts = path.split('.')
        node = result
        for part in parts[:-1]:
            child = node.get(part)
            if child is None:
                child = node[part] = {}
            elif not isinstance(child, dict):
                raise ValueError(f"cannot override {path!r}: {part!r} is not a section")
            node = child
        node[parts[-1]] = value
    return result
