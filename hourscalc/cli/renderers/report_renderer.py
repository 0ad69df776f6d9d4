"""Rich renderers for calculation reports and profiles.

Transforms SDK objects into formatted Rich tables.
"""

from typing import List

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from hourscalc.sdk.applied import AppliedState
from hourscalc.sdk.report import (
    DailyRow,
    breakdown_rows,
    format_currency,
    format_hours,
)
from hourscalc.sdk.schemas import CalculationReport, Profile


def render_report(console: Console, report: CalculationReport, currency: str = "EUR") -> None:
    """Render summary, per-profile breakdown and payout distribution.

    Args:
        console: Rich Console instance
        report: Result of engine.calculate()
        currency: Display currency code
    """
    def fmt(amount: float) -> str:
        return format_currency(amount, currency)

    payment = report.client_payment
    summary = Table(show_header=False, box=None, padding=(0, 2))
    summary.add_column("key", style="dim")
    summary.add_column("value", justify="right")
    summary.add_row("Client payment", fmt(payment.total_amount))
    summary.add_row("Total hours", format_hours(payment.total_hours))
    summary.add_row("Average rate", fmt(payment.average_rate))
    summary.add_row("Profiles", str(len(report.results)))
    console.print(Panel(summary, title="Summary", border_style="dim"))

    if not report.results:
        console.print("[dim]No profiles configured.[/dim]")
        return

    table = Table(title="Profiles", box=box.ROUNDED)
    table.add_column("Profile", style="bold")
    table.add_column("Hours", justify="right")
    table.add_column("Rate", justify="right")
    table.add_column("Gross", justify="right")
    table.add_column("Deductions", justify="right")
    table.add_column("Received", justify="right")
    table.add_column("Net", justify="right", style="green")
    for row in breakdown_rows(report):
        table.add_row(
            row.name,
            format_hours(row.hours),
            fmt(row.rate),
            fmt(row.gross),
            fmt(row.deductions),
            fmt(row.received) if row.received else "-",
            fmt(row.net),
        )
    console.print(table)

    for result in report.results:
        if not result.deduction_breakdown:
            continue
        detail = Table(title=f"Deductions: {result.profile_name}", box=box.SIMPLE)
        detail.add_column("Deduction")
        detail.add_column("Kind", style="dim")
        detail.add_column("Role", style="dim")
        detail.add_column("Amount", justify="right")
        for line in result.deduction_breakdown:
            name = line.deduction_name if line.applied else f"[dim strike]{line.deduction_name}[/dim strike]"
            if line.recipient_profile_id:
                name += f" [cyan]-> {line.recipient_profile_id}[/cyan]"
            detail.add_row(name, line.kind, line.role, fmt(line.amount))
        console.print(detail)

    distribution = Table(title="Payment Distribution", box=box.ROUNDED)
    distribution.add_column("Profile", style="bold")
    distribution.add_column("Amount", justify="right")
    distribution.add_column("Share", justify="right")
    for share in report.payment_distribution:
        distribution.add_row(share.profile_name, fmt(share.amount), f"{share.percentage:.1f}%")
    console.print(distribution)


def render_revenue(console: Console, report: CalculationReport, currency: str = "EUR") -> None:
    """Render client billing, margin and margin split per profile."""
    def fmt(amount: float) -> str:
        return format_currency(amount, currency)

    table = Table(title="Revenue", box=box.ROUNDED)
    table.add_column("Profile", style="bold")
    table.add_column("Worker", justify="right")
    table.add_column("Client", justify="right")
    table.add_column("Margin", justify="right")
    table.add_column("Mgmt fee", justify="right")
    table.add_column("Profit", justify="right", style="green")
    for result in report.results:
        revenue = result.revenue_breakdown
        if revenue is None:
            continue
        client = fmt(revenue.client_payment)
        if revenue.used_fallback:
            client = f"[yellow]{client}[/yellow]"
        table.add_row(
            result.profile_name,
            fmt(revenue.employee_payment),
            client,
            fmt(revenue.profit_margin),
            fmt(revenue.totals.management_fee),
            fmt(revenue.totals.residual_profit),
        )
    console.print(table)
    console.print("[dim]Yellow client amounts use the worker rate fallback.[/dim]")


def render_daily(console: Console, rows: List[DailyRow], currency: str = "EUR") -> None:
    """Render the daily hours roll-up."""
    table = Table(title="Daily Hours", box=box.ROUNDED)
    table.add_column("Date")
    table.add_column("Hours", justify="right")
    table.add_column("Profiles", justify="right")
    table.add_column("Amount", justify="right")
    for row in rows:
        table.add_row(
            row.date.isoformat(),
            format_hours(row.total_hours),
            str(row.profile_count),
            format_currency(row.amount, currency),
        )
    console.print(table)


def render_profile(console: Console, profile: Profile, applied: AppliedState, currency: str = "EUR") -> None:
    """Render one profile's rates and deductions."""
    def fmt(amount: float) -> str:
        return format_currency(amount, currency)

    rates = Table(title=f"{profile.name} ({profile.id})", box=box.ROUNDED)
    rates.add_column("Rate id", style="dim")
    rates.add_column("Label")
    rates.add_column("Worker", justify="right")
    rates.add_column("Client", justify="right")
    client_by_rate = {c.employee_rate_id: c for c in profile.client_rates}
    for rate in profile.hourly_rates:
        client = client_by_rate.get(rate.id)
        rates.add_row(rate.id, rate.label, fmt(rate.rate), fmt(client.rate) if client else "[dim]x2[/dim]")
    console.print(rates)

    if profile.deductions:
        deductions = Table(title="Deductions", box=box.SIMPLE)
        deductions.add_column("Id", style="dim")
        deductions.add_column("Prio", justify="right")
        deductions.add_column("Name")
        deductions.add_column("Amount", justify="right")
        deductions.add_column("Role", style="dim")
        deductions.add_column("Recipient")
        deductions.add_column("Applied")
        for d in profile.sorted_deductions():
            amount = f"{d.amount:g}%" if d.kind == "percentage" else f"{fmt(d.amount)}/h"
            is_on = applied.is_applied(profile.id, d.id)
            deductions.add_row(
                d.id,
                str(d.priority),
                d.name,
                amount,
                d.role,
                d.recipient_profile_id or "-",
                "[green]yes[/green]" if is_on else "[red]no[/red]",
            )
        console.print(deductions)
