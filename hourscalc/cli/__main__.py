"""Hours Calc CLI - Command-line interface for hours and payment calculations."""

import json
from pathlib import Path

import click
from rich.console import Console

from hourscalc import __version__
from hourscalc.sdk import calculate, daily_rollup, write_report_csv

from .common import currency, open_state, resolve_options
from .data_commands import data as data_group
from .hours_commands import hours as hours_group
from .profile_commands import profile as profile_group
from .renderers.report_renderer import render_daily, render_report, render_revenue
from .settings_commands import settings as settings_group


@click.group()
@click.version_option(version=__version__, prog_name="hours-calc")
def cli():
    """Hours Calc - Hours registration and payment distribution.

    Log hours per profile, apply ordered deductions, split client billing
    into worker pay, management fee and profit, and transfer deducted
    amounts between profiles.

    Configuration is loaded from (in order):

    \b
    1. HOURS_CALC_CONFIG_PATH environment variable
    2. ~/.config/hours-calc/settings.json (XDG default)

    Run 'hours-calc settings show' to see effective settings.
    """
    pass


# Add subcommand groups
cli.add_command(profile_group)
cli.add_command(hours_group)
cli.add_command(data_group)
cli.add_command(settings_group)


@cli.command("calc")
@click.option("--mode", type=click.Choice(["sequential", "independent"]), help="Override deduction_mode setting.")
@click.option("--revenue/--no-revenue", default=None, help="Bill from client rates (overrides include_revenue).")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def calc(mode, revenue, as_json):
    """Calculate gross, deductions, transfers and net for every profile."""
    state = open_state()
    options = resolve_options(mode, revenue)
    report = calculate(state.profiles, state.time_entries, state.applied_state, options)

    if as_json:
        click.echo(json.dumps(report.to_wire(), indent=2))
        return

    console = Console()
    render_report(console, report, currency())
    if options.include_revenue and report.results:
        render_revenue(console, report, currency())


@cli.command("report")
@click.option("--mode", type=click.Choice(["sequential", "independent"]), help="Override deduction_mode setting.")
@click.option("--csv", "csv_path", type=click.Path(dir_okay=False), help="Write the report to a CSV file.")
def report(mode, csv_path):
    """Show the report with a daily hours roll-up."""
    state = open_state()
    options = resolve_options(mode)
    result = calculate(state.profiles, state.time_entries, state.applied_state, options)

    if csv_path:
        write_report_csv(result, state.time_entries, Path(csv_path))
        click.echo(f"Wrote {csv_path}")
        return

    console = Console()
    render_report(console, result, currency())
    rows = daily_rollup(state.time_entries, result.client_payment.average_rate)
    if rows:
        render_daily(console, rows, currency())


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
