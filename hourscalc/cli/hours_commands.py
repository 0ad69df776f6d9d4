"""Time entry CLI commands for Hours Calc."""

import json
from datetime import date, datetime

import click

from hourscalc.sdk import (
    EntryNotFoundError,
    TimeEntryValidationError,
    add_time_entry,
    delete_time_entry,
    format_hours,
)
from .common import commit_state, open_state


def _parse_date(value):
    if not value:
        return date.today()
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise click.BadParameter(f"Invalid date format '{value}'. Use YYYY-MM-DD.")


@click.group()
def hours():
    """Log, list and delete time entries.

    Entries cannot be edited; delete and re-add instead.
    """
    pass


@hours.command("add")
@click.argument("profile_id")
@click.argument("amount", type=float)
@click.option("--rate", "rate_id", help="Hourly rate id (default: the profile's first rate).")
@click.option("--date", "date_str", help="Work date (YYYY-MM-DD). Defaults to today.")
@click.option("--description", "-d", help="Optional description.")
def hours_add(profile_id, amount, rate_id, date_str, description):
    """Log AMOUNT hours for PROFILE_ID.

    \b
    Examples:
      hours-calc hours add alice 7.5
      hours-calc hours add alice 2 --rate overtime --date 2025-03-01
    """
    entry_date = _parse_date(date_str)
    state = open_state()

    if rate_id is None:
        p = next((p for p in state.profiles if p.id == profile_id), None)
        if p is not None and p.hourly_rates:
            rate_id = p.hourly_rates[0].id
        else:
            rate_id = ""

    try:
        entry = add_time_entry(state, profile_id, rate_id, entry_date, amount, description)
    except TimeEntryValidationError as e:
        raise click.ClickException("; ".join(e.errors))

    commit_state(state)
    click.echo(f"Logged {format_hours(entry.hours)} for {profile_id} on {entry.date} (entry {entry.id})")


@hours.command("list")
@click.option("--profile", "profile_id", help="Only entries for this profile.")
@click.option("--date", "date_str", help="Only entries on this date (YYYY-MM-DD).")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def hours_list(profile_id, date_str, as_json):
    """List time entries, newest first."""
    state = open_state()
    entries = state.time_entries
    if profile_id:
        entries = [e for e in entries if e.profile_id == profile_id]
    if date_str:
        day = _parse_date(date_str)
        entries = [e for e in entries if e.date == day]
    entries = sorted(entries, key=lambda e: e.date, reverse=True)

    if as_json:
        click.echo(json.dumps([e.to_wire() for e in entries], indent=2))
        return

    if not entries:
        click.echo("No time entries.")
        return

    names = {p.id: p.name for p in state.profiles}
    for e in entries:
        label = names.get(e.profile_id, e.profile_id)
        note = f"  {e.description}" if e.description else ""
        click.echo(f"  {e.id}  {e.date}  {label:<16} {format_hours(e.hours):>8}  [{e.hourly_rate_id}]{note}")


@hours.command("remove")
@click.argument("entry_id")
def hours_remove(entry_id):
    """Delete a time entry."""
    state = open_state()
    try:
        entry = delete_time_entry(state, entry_id)
    except EntryNotFoundError as e:
        raise click.ClickException(str(e))

    commit_state(state)
    click.echo(f"Deleted entry {entry.id} ({format_hours(entry.hours)} on {entry.date})")
