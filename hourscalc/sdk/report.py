"""Tabular report data and display formatting.

Rows are plain numbers; rounding happens only in format_currency and
format_hours, which are for display.
"""

import csv
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Dict, Iterable, List, Set

from .schemas import CalculationReport, TimeEntry


CURRENCY_SYMBOLS = {
    "EUR": "€",
    "USD": "$",
    "GBP": "£",
}


@dataclass
class BreakdownRow:
    """One profile's line in the report table."""

    profile_id: str
    name: str
    hours: float
    rate: float  # effective gross per hour
    gross: float
    deductions: float
    received: float
    net: float


@dataclass
class DailyRow:
    """Hours logged on one date, priced at the average client rate."""

    date: date
    total_hours: float
    profile_count: int
    amount: float


def format_currency(amount: float, currency: str = "EUR") -> str:
    """Format an amount for display with two decimals (e.g., €1,234.56)."""
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), f"{currency.upper()} ")
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_hours(hours: float) -> str:
    """Format hours for display (e.g., 7.5 h)."""
    return f"{hours:.1f} h"


def breakdown_rows(report: CalculationReport) -> List[BreakdownRow]:
    """Per-profile rows: name, hours, rate, gross, deductions, received, net."""
    rows = []
    for result in report.results:
        rate = result.gross_amount / result.total_hours if result.total_hours > 0 else 0.0
        rows.append(BreakdownRow(
            profile_id=result.profile_id,
            name=result.profile_name,
            hours=result.total_hours,
            rate=rate,
            gross=result.gross_amount,
            deductions=result.total_deductions,
            received=result.received_from_others,
            net=result.net_amount,
        ))
    return rows


def daily_rollup(time_entries: Iterable[TimeEntry], average_rate: float) -> List[DailyRow]:
    """Group hours by date, newest first.

    Args:
        time_entries: Entries to group
        average_rate: ClientPayment.average_rate used to price each day

    Returns:
        List of DailyRow sorted by date descending
    """
    hours_by_date: Dict[date, float] = defaultdict(float)
    profiles_by_date: Dict[date, Set[str]] = defaultdict(set)

    for entry in time_entries:
        hours_by_date[entry.date] += entry.hours
        profiles_by_date[entry.date].add(entry.profile_id)

    return [
        DailyRow(
            date=day,
            total_hours=hours_by_date[day],
            profile_count=len(profiles_by_date[day]),
            amount=hours_by_date[day] * average_rate,
        )
        for day in sorted(hours_by_date, reverse=True)
    ]


def write_report_csv(
    report: CalculationReport,
    time_entries: Iterable[TimeEntry],
    output_path: Path,
) -> Path:
    """Write the profile breakdown and daily roll-up to a CSV file.

    Args:
        report: Result of engine.calculate()
        time_entries: Entries for the daily section
        output_path: Path to output CSV file

    Returns:
        Path to the written file
    """
    with open(output_path, "w", newline="") as csvfile:
        writer = csv.writer(csvfile)
        writer.writerow(["Profile", "Hours", "Rate", "Gross", "Deductions", "Received", "Net"])
        for row in breakdown_rows(report):
            writer.writerow([
                row.name, f"{row.hours:.2f}", f"{row.rate:.2f}", f"{row.gross:.2f}",
                f"{row.deductions:.2f}", f"{row.received:.2f}", f"{row.net:.2f}",
            ])

        payment = report.client_payment
        writer.writerow([])
        writer.writerow(["Total client payment", f"{payment.total_amount:.2f}"])
        writer.writerow(["Total hours", f"{payment.total_hours:.2f}"])
        writer.writerow(["Average rate", f"{payment.average_rate:.2f}"])

        writer.writerow([])
        writer.writerow(["Date", "Hours", "Profiles", "Amount"])
        for day in daily_rollup(time_entries, payment.average_rate):
            writer.writerow([
                day.date.isoformat(), f"{day.total_hours:.2f}", day.profile_count, f"{day.amount:.2f}",
            ])

    return output_path
