"""Shared helpers for CLI commands: state loading and option resolution."""

import click

from hourscalc.sdk import (
    ConfigNotFoundError,
    DataImportError,
    get_setting,
    load_calculation_options,
    load_state,
    save_state,
)


def open_state():
    """Load state.json, turning SDK errors into ClickException."""
    try:
        return load_state()
    except (DataImportError, ConfigNotFoundError) as e:
        raise click.ClickException(f"Cannot read state: {e}")


def commit_state(state):
    """Persist state.json and return its path."""
    return save_state(state)


def resolve_options(mode=None, revenue=None):
    """CalculationOptions from settings.json with command-line overrides."""
    try:
        return load_calculation_options({"deduction_mode": mode, "include_revenue": revenue})
    except (ConfigNotFoundError, ValueError) as e:
        raise click.ClickException(f"Invalid calculation settings: {e}")


def currency() -> str:
    return get_setting("currency", "EUR")
