import json
import os
from typing import Any, Dict, Mapping


def _load_config(file_name: str, config_path: str = None) -> Dict[str, Any]:
    if config_path is None:
        config_path = os.path.join(os.path.dirname(__file__), file_name)
    with open(config_path, "r") as f:
        return json.load(f)


def load_squat_config(config_path: str = None) -> Dict[str, Any]:
    """Load squat config from JSON file."""
    return _load_config("squat_config.json", config_path)


def load_pushup_config(config_path: str = None) -> Dict[str, Any]:
    """Load pushup config from JSON file."""
    return _load_config("pushup_config.json", config_path)


def load_plank_config(config_path: str = None) -> Dict[str, Any]:
    """Load plank config from JSON file."""
    return _load_config("plank_config.json", config_path)


def require_section(config: Mapping[str, Any], section: str, keys) -> Dict[str, Any]:
    """
    Fetch a config section and check that every expected key is present.

    Raises:
        ValueError: if the section or any key is missing
    """
    if section not in config:
        raise ValueError(f"Missing config section: {section}")
    values = config[section]
    missing = [k for k in keys if k not in values]
    if missing:
        raise ValueError(f"Missing keys in config section '{section}': {', '.join(missing)}")
    return dict(values)
