"""Settings CLI commands for Hours Calc.

Manages settings.json - data directory, currency, calculation options.
"""

import click

from hourscalc.sdk import (
    SETTINGS_SCHEMA,
    ConfigNotFoundError,
    coerce_setting,
    get_data_path,
    get_settings_path,
    load_calculation_options,
    load_settings,
    save_settings,
    set_setting,
)


@click.group()
def settings():
    """Manage settings (settings.json).

    \b
    Available settings:
    - data_dir: custom data directory path
    - currency: display currency (EUR, USD, GBP)
    - deduction_mode: sequential or independent
    - include_revenue: true/false, bill the client from client rates
    - management_fee_rate: fraction of the hourly margin kept as fee (0.10)
    - client_rate_multiplier: worker rate multiplier when no client rate matches (2)
    """
    pass


@settings.command("show")
def settings_show():
    """Show current settings and effective calculation options."""
    settings_path = get_settings_path()
    try:
        current = load_settings()
        options = load_calculation_options()
    except (ConfigNotFoundError, ValueError) as e:
        raise click.ClickException(str(e))

    click.echo(f"Settings file: {settings_path}")
    click.echo(f"File exists: {settings_path.exists()}")
    click.echo()

    if current:
        click.echo("Current settings:")
        for key, value in current.items():
            click.echo(f"  {key}: {value}")
    else:
        click.echo("No settings configured (using defaults).")

    click.echo()
    click.echo("Effective values:")
    click.echo(f"  data_dir: {get_data_path()}")
    click.echo(f"  currency: {current.get('currency', 'EUR')}")
    for key, value in options.model_dump().items():
        click.echo(f"  {key}: {value}")


@settings.command("set")
@click.argument("key", type=click.Choice(sorted(SETTINGS_SCHEMA)))
@click.argument("value")
def settings_set(key, value):
    """Set KEY to VALUE in settings.json."""
    try:
        coerced = coerce_setting(key, value)
    except ValueError as e:
        raise click.BadParameter(str(e))

    # Reject values the calculation options would not accept
    if key in ("deduction_mode", "management_fee_rate", "client_rate_multiplier", "include_revenue"):
        try:
            load_calculation_options({key: coerced})
        except ValueError as e:
            raise click.BadParameter(f"Invalid value for {key}: {e}")

    path = set_setting(key, coerced)
    click.echo(f"Set {key}: {coerced}")
    click.echo(f"Saved to: {path}")


@settings.command("unset")
@click.argument("key", type=click.Choice(sorted(SETTINGS_SCHEMA)))
def settings_unset(key):
    """Remove KEY from settings.json, reverting to the default."""
    current = load_settings()
    if key not in current:
        click.echo(f"{key} was not set.")
        return
    del current[key]
    save_settings(current)
    click.echo(f"Cleared {key}.")
