"""Import/export CLI commands for Hours Calc."""

from datetime import date
from pathlib import Path

import click

from hourscalc.sdk import (
    DataImportError,
    get_state_path,
    import_document,
    write_export,
)
from .common import commit_state, open_state, resolve_options


@click.group()
def data():
    """Export and import the full state as a JSON document."""
    pass


@data.command("path")
def data_path():
    """Show where state.json lives."""
    click.echo(get_state_path())


@data.command("export")
@click.argument("output", required=False, type=click.Path(dir_okay=False))
def data_export(output):
    """Write profiles, time entries and current calculations to OUTPUT.

    Defaults to hours-calc-backup-<today>.json in the current directory.
    """
    state = open_state()
    output_path = Path(output) if output else Path(f"hours-calc-backup-{date.today().isoformat()}.json")
    write_export(state, output_path, resolve_options())
    click.echo(f"Exported {len(state.profiles)} profiles and {len(state.time_entries)} time entries to {output_path}")


@data.command("import")
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation.")
def data_import(source, yes):
    """Replace ALL current data with the contents of SOURCE.

    Nothing changes if SOURCE is not a valid document.
    """
    text = Path(source).read_text()
    try:
        result = import_document(text)
    except DataImportError as e:
        click.secho("Import failed, current data unchanged:", fg="red")
        for err in e.errors:
            click.secho(f"  ! {err}", fg="red")
        raise click.ClickException("Invalid import document.")

    for warning in result.warnings:
        click.secho(f"  ~ {warning}", fg="yellow")

    if not yes:
        current = open_state()
        click.confirm(
            f"Replace {len(current.profiles)} profiles / {len(current.time_entries)} entries "
            f"with {len(result.state.profiles)} / {len(result.state.time_entries)}?",
            abort=True,
        )

    commit_state(result.state)
    click.echo(f"Imported {len(result.state.profiles)} profiles and {len(result.state.time_entries)} time entries")
