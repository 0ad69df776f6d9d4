"""Configuration management for Hours Calc.

Configuration is split into two kinds of files:

1. settings.json - Machine-specific settings
   - data_dir: where state.json and exports live (optional)
   - currency: display currency for reports (default EUR)
   - deduction_mode: "sequential" or "independent"
   - management_fee_rate: fraction used by the revenue breakdown (0.10)
   - client_rate_multiplier: fallback multiplier when no client rate matches

2. Profile definition files (YAML) - one worker/contractor each
   - Loaded on demand by `hours-calc profile add <file>`
   - Validated before they are committed to the state store

Config directory resolution:
1. HOURS_CALC_CONFIG_PATH environment variable (if set)
2. ~/.config/hours-calc/ (XDG_CONFIG_HOME fallback)

Data directory resolution:
1. settings.json "data_dir" key (if set)
2. XDG_DATA_HOME/hours-calc/ or ~/.local/share/hours-calc/
"""

import json
import os
from pathlib import Path
from typing import Any

import yaml

from .schemas import CalculationOptions


APP_NAME = "hours-calc"
SETTINGS_FILENAME = "settings.json"
STATE_FILENAME = "state.json"

# Settings keys accepted by `hours-calc settings set`, with their value types
SETTINGS_SCHEMA = {
    "data_dir": str,
    "currency": str,
    "deduction_mode": str,
    "management_fee_rate": float,
    "client_rate_multiplier": float,
    "include_revenue": bool,
}


class ConfigNotFoundError(Exception):
    """Raised when a configuration file is missing or unreadable."""
    pass


def get_config_dir() -> Path:
    """Directory holding settings.json.

    HOURS_CALC_CONFIG_PATH wins; tests point it at a temp dir.
    """
    env_path = os.environ.get("HOURS_CALC_CONFIG_PATH")
    if env_path:
        return Path(env_path)

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
    return Path(xdg_config_home) / APP_NAME


def get_settings_path() -> Path:
    return get_config_dir() / SETTINGS_FILENAME


def load_settings() -> dict:
    """Load settings.json, or {} when it has not been written yet.

    Raises:
        ConfigNotFoundError: If the file exists but is not valid JSON
    """
    settings_file = get_settings_path()

    if not settings_file.exists():
        return {}

    try:
        with open(settings_file, "r") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigNotFoundError(f"Invalid JSON in {settings_file}: {e}")


def save_settings(settings: dict) -> Path:
    """Write the whole settings dict; `settings unset` relies on keys dropping out."""
    settings_file = get_settings_path()
    settings_file.parent.mkdir(parents=True, exist_ok=True)

    with open(settings_file, "w") as f:
        json.dump(settings, f, indent=2)

    return settings_file


def get_setting(key: str, default: Any = None) -> Any:
    return load_settings().get(key, default)


def set_setting(key: str, value: Any) -> Path:
    """Store one already-coerced value (see coerce_setting)."""
    settings = load_settings()
    settings[key] = value
    return save_settings(settings)


def coerce_setting(key: str, raw: str) -> Any:
    """Convert a command-line string to the type a setting expects.

    Raises:
        ValueError: If the key is unknown or the value does not convert
    """
    if key not in SETTINGS_SCHEMA:
        valid_keys = ", ".join(SETTINGS_SCHEMA.keys())
        raise ValueError(f"Unknown setting '{key}'. Valid keys: {valid_keys}")

    expected_type = SETTINGS_SCHEMA[key]
    if expected_type is bool:
        lowered = raw.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ValueError(f"Setting '{key}' expects true/false, got '{raw}'")
    if expected_type is float:
        try:
            return float(raw)
        except ValueError:
            raise ValueError(f"Setting '{key}' expects a number, got '{raw}'")
    return raw


def get_data_path() -> Path:
    """Get the data directory path.

    Uses settings.json "data_dir" if set, otherwise XDG_DATA_HOME/hours-calc/.

    Returns:
        Path to the data directory (created if doesn't exist)
    """
    custom = get_setting("data_dir")
    if custom:
        data_path = Path(custom).expanduser()
    else:
        xdg_data_home = os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share")
        data_path = Path(xdg_data_home) / APP_NAME
    data_path.mkdir(parents=True, exist_ok=True)
    return data_path


def get_state_path() -> Path:
    """Get the path to state.json in the data directory."""
    return get_data_path() / STATE_FILENAME


def load_profile_file(path: Path) -> dict:
    """Load a profile definition from a YAML (or JSON) file.

    Args:
        path: Path to the profile file

    Returns:
        Profile dictionary as written in the file

    Raises:
        ConfigNotFoundError: If the file is missing, unparseable, or not a mapping
    """
    path = Path(path)
    if not path.exists():
        raise ConfigNotFoundError(f"Profile file not found: {path}")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigNotFoundError(f"Invalid YAML in {path}: {e}")

    if not isinstance(data, dict) or not data:
        raise ConfigNotFoundError(f"Profile file must contain a mapping: {path}")

    return data


def load_calculation_options(overrides: dict | None = None) -> CalculationOptions:
    """Build CalculationOptions from settings.json plus explicit overrides.

    Args:
        overrides: Values that take precedence over settings (None values ignored)

    Returns:
        CalculationOptions instance
    """
    settings = load_settings()
    values = {
        key: settings[key]
        for key in ("deduction_mode", "include_revenue", "management_fee_rate", "client_rate_multiplier")
        if key in settings
    }
    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value
    return CalculationOptions(**values)
