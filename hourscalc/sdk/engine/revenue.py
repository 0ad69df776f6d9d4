"""Client billing, margin and margin distribution for one profile.

The worker payment is the profile's gross. The client payment comes from
the profile's client rates, each linked to an hourly rate by id. When no
entry matches a client rate at all, the client payment falls back to the
worker payment times CLIENT_RATE_FALLBACK_MULTIPLIER.
"""

import logging
from typing import Iterable, Optional

from ..schemas import (
    CalculationOptions,
    ClientRate,
    DistributionAmount,
    MarginFigures,
    Profile,
    RevenueBreakdown,
    TimeEntry,
)

logger = logging.getLogger(__name__)


def find_client_rate(profile: Profile, hourly_rate_id: str) -> Optional[ClientRate]:
    """First client rate billing for the given hourly rate id."""
    for client_rate in profile.client_rates:
        if client_rate.employee_rate_id == hourly_rate_id:
            return client_rate
    return None


def margin_split(
    client_rate: float,
    worker_rate: float,
    management_fee_rate: float,
) -> MarginFigures:
    """Split one hour of client rate into worker pay, fee and residual profit.

    Fee and residual are floored at 0 when the worker costs more than the
    client pays.
    """
    leftover = client_rate - worker_rate
    management_fee = max(0.0, leftover * management_fee_rate)
    residual_profit = max(0.0, leftover - management_fee)
    return MarginFigures(
        client_rate=client_rate,
        worker_rate=worker_rate,
        leftover=leftover,
        management_fee=management_fee,
        residual_profit=residual_profit,
    )


def _scaled(figures: MarginFigures, hours: float) -> MarginFigures:
    return MarginFigures(
        client_rate=figures.client_rate * hours,
        worker_rate=figures.worker_rate * hours,
        leftover=figures.leftover * hours,
        management_fee=figures.management_fee * hours,
        residual_profit=figures.residual_profit * hours,
    )


def calculate_revenue(
    profile: Profile,
    time_entries: Iterable[TimeEntry],
    employee_payment: float,
    total_hours: float,
    options: Optional[CalculationOptions] = None,
) -> RevenueBreakdown:
    """Derive the client payment, margin and distributions for a profile.

    Args:
        profile: Profile with client_rates and profit_distributions
        time_entries: This profile's entries
        employee_payment: Gross pay for the profile (worker payment)
        total_hours: Hours counted toward the gross
        options: Fee rate and fallback multiplier (defaults if None)

    Returns:
        RevenueBreakdown (purely derived)
    """
    options = options or CalculationOptions()

    client_payment = 0.0
    matched = False
    for entry in time_entries:
        if entry.profile_id != profile.id:
            continue
        rate = profile.find_rate(entry.hourly_rate_id)
        if rate is None:
            continue
        client_rate = find_client_rate(profile, rate.id)
        if client_rate is None:
            continue
        client_payment += entry.hours * client_rate.rate
        matched = True

    used_fallback = not matched
    if used_fallback:
        client_payment = employee_payment * options.client_rate_multiplier
        logger.debug(
            f"revenue: {profile.id} has no matching client rate, "
            f"using worker payment x {options.client_rate_multiplier}"
        )

    profit_margin = client_payment - employee_payment

    distributions = []
    for dist in profile.profit_distributions:
        if dist.kind == "margin_of_worker_pay":
            amount = employee_payment * dist.percentage / 100
        else:
            amount = profit_margin * dist.percentage / 100
        distributions.append(DistributionAmount(
            distribution_id=dist.id,
            name=dist.name,
            kind=dist.kind,
            percentage=dist.percentage,
            amount=amount,
        ))

    if total_hours > 0:
        per_hour = margin_split(
            client_payment / total_hours,
            employee_payment / total_hours,
            options.management_fee_rate,
        )
    else:
        per_hour = MarginFigures()

    return RevenueBreakdown(
        employee_payment=employee_payment,
        client_payment=client_payment,
        profit_margin=profit_margin,
        used_fallback=used_fallback,
        distributions=distributions,
        per_hour=per_hour,
        totals=_scaled(per_hour, total_hours),
    )
