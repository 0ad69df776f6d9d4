"""Profile CLI commands for Hours Calc.

Manages worker/contractor profiles: rates, client rates, deductions,
and per-deduction applied toggles.
"""

import json

import click
from rich.console import Console

from hourscalc.sdk import (
    ConfigNotFoundError,
    ProfileNotFoundError,
    ProfileValidationError,
    build_profile,
    delete_profile,
    load_profile_file,
    save_profile,
    set_deduction_applied,
    validate_profile,
)
from .common import commit_state, currency, open_state
from .renderers.report_renderer import render_profile


def _display_errors(errors, warnings=()):
    for err in errors:
        click.secho(f"  ! {err}", fg="red")
    for warning in warnings:
        click.secho(f"  ~ {warning}", fg="yellow")


@click.group()
def profile():
    """Manage profiles (workers/contractors).

    \b
    A profile file is YAML:
      id: alice
      name: Alice
      hourly_rates:
        - {id: std, label: Standard, rate: 20}
      client_rates:
        - {label: Standard, rate: 45, employee_rate_id: std}
      deductions:
        - {name: Tax, amount: 5, kind: fixed, priority: 0}
        - {name: Profit Share, amount: 50, kind: percentage, role: profit_share, priority: 2}
    """
    pass


@profile.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def profile_list(as_json):
    """List configured profiles."""
    state = open_state()

    if as_json:
        click.echo(json.dumps([p.to_wire() for p in state.profiles], indent=2))
        return

    if not state.profiles:
        click.echo("No profiles configured.")
        click.echo("\nAdd one with: hours-calc profile add <profile.yaml>")
        return

    for p in state.profiles:
        entries = len(state.entries_for(p.id))
        rates = ", ".join(f"{r.label} {r.rate:g}" for r in p.hourly_rates)
        click.echo(f"  {p.id}  {p.name}  [{rates}]  {len(p.deductions)} deduction(s), {entries} entr{'y' if entries == 1 else 'ies'}")


@profile.command("show")
@click.argument("profile_id")
def profile_show(profile_id):
    """Show a profile's rates and deductions."""
    state = open_state()
    try:
        p = state.get_profile(profile_id)
    except ProfileNotFoundError as e:
        raise click.ClickException(str(e))

    render_profile(Console(), p, state.applied_state, currency())


@profile.command("add")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def profile_add(path):
    """Create or replace a profile from a YAML file.

    A profile with the same id is replaced; its time entries are kept.
    """
    state = open_state()
    try:
        data = load_profile_file(path)
        saved = save_profile(state, data)
    except ConfigNotFoundError as e:
        raise click.ClickException(str(e))
    except ProfileValidationError as e:
        click.secho("Profile is invalid:", fg="red")
        _display_errors(e.errors)
        raise click.ClickException("Profile not saved.")

    commit_state(state)
    click.echo(f"Saved profile {saved.id} ({saved.name})")


@profile.command("validate")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def profile_validate(path):
    """Check a profile file without saving it."""
    state = open_state()
    try:
        draft = build_profile(load_profile_file(path))
    except ConfigNotFoundError as e:
        raise click.ClickException(str(e))
    except ProfileValidationError as e:
        _display_errors(e.errors)
        raise click.ClickException("Profile is invalid.")

    result = validate_profile(draft, state.profiles)
    _display_errors(result.errors, result.warnings)
    if not result.valid:
        raise click.ClickException("Profile is invalid.")
    click.secho(f"Profile '{draft.name}' is valid.", fg="green")


@profile.command("remove")
@click.argument("profile_id")
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation.")
def profile_remove(profile_id, yes):
    """Delete a profile together with all of its time entries."""
    state = open_state()
    try:
        p = state.get_profile(profile_id)
    except ProfileNotFoundError as e:
        raise click.ClickException(str(e))

    entries = len(state.entries_for(profile_id))
    if not yes:
        click.confirm(f"Delete '{p.name}' and {entries} time entries?", abort=True)

    removed = delete_profile(state, profile_id)
    commit_state(state)
    click.echo(f"Deleted profile {profile_id} ({removed} time entries removed)")


@profile.command("toggle")
@click.argument("profile_id")
@click.argument("deduction_id")
@click.option("--on/--off", "applied", default=None, help="Apply or skip the deduction (default: flip).")
def profile_toggle(profile_id, deduction_id, applied):
    """Switch a deduction on or off for calculation without deleting it."""
    state = open_state()
    if applied is None:
        applied = not state.applied_state.is_applied(profile_id, deduction_id)
    try:
        set_deduction_applied(state, profile_id, deduction_id, applied)
    except ProfileNotFoundError as e:
        raise click.ClickException(str(e))

    commit_state(state)
    click.echo(f"Deduction {deduction_id} on {profile_id}: {'applied' if applied else 'not applied'}")
