"""engine - Payment calculation pipeline.

Scope:
- Gross pay per profile from time entries and hourly rates (gross.py)
- Ordered deductions, sequential or independent (deductions.py)
- Client billing, margin and distributions (revenue.py)
- Cross-profile transfers of deducted amounts (transfers.py)
- Client payment and payout shares across profiles (aggregate.py)

The pipeline is a pure function of (profiles, time entries, applied state,
options). It never mutates its inputs and keeps no state between calls, so
recomputing on unchanged inputs gives identical results. Data problems
(unknown rate ids, dangling recipients, zero hours) resolve to zero
contributions instead of raising; rejecting bad configurations is the job
of sdk.validation at save time.

Usage:
    from hourscalc.sdk.engine import calculate

    report = calculate(state.profiles, state.time_entries, state.applied)
    for result in report.results:
        print(result.profile_name, result.net_amount)
"""

from typing import Optional, Sequence

from ..applied import AppliedState
from ..schemas import (
    CalculationOptions,
    CalculationReport,
    CalculationResult,
    Profile,
    TimeEntry,
)
from .aggregate import aggregate, client_payment, payment_distribution
from .deductions import DeductionOutcome, apply_deductions, profit_share_base
from .gross import calculate_gross, entries_for_profile
from .revenue import calculate_revenue, find_client_rate, margin_split
from .transfers import received_amounts, resolve_transfers, untransferred_deductions


def calculate_profile(
    profile: Profile,
    time_entries: Sequence[TimeEntry],
    applied: AppliedState,
    options: CalculationOptions,
) -> CalculationResult:
    """Phase 1 for a single profile: gross, own deductions, revenue.

    Transfers from other profiles are not included.
    """
    entries = entries_for_profile(profile, time_entries)
    gross = calculate_gross(profile, entries)
    outcome = apply_deductions(
        profile,
        applied,
        gross.gross_amount,
        gross.total_hours,
        mode=options.deduction_mode,
    )

    revenue = None
    if options.include_revenue:
        revenue = calculate_revenue(
            profile, entries, gross.gross_amount, gross.total_hours, options
        )

    return CalculationResult(
        profile_id=profile.id,
        profile_name=profile.name,
        total_hours=gross.total_hours,
        gross_amount=gross.gross_amount,
        total_deductions=outcome.total_deductions,
        net_amount=outcome.net_amount,
        deduction_breakdown=outcome.breakdown,
        revenue_breakdown=revenue,
    )


def calculate(
    profiles: Sequence[Profile],
    time_entries: Sequence[TimeEntry],
    applied=None,
    options: Optional[CalculationOptions] = None,
) -> CalculationReport:
    """Recompute every profile's result plus the aggregate figures.

    Args:
        profiles: Profile snapshot
        time_entries: Time entry snapshot
        applied: AppliedState, nested {profile_id: {deduction_id: bool}} dict, or None
        options: CalculationOptions (defaults if None)

    Returns:
        CalculationReport with results in profile order
    """
    options = options or CalculationOptions()
    applied = AppliedState.coerce(applied)

    phase_one = [calculate_profile(p, time_entries, applied, options) for p in profiles]
    results = resolve_transfers(profiles, phase_one, applied)

    payment, distribution = aggregate(results, use_client_rates=options.include_revenue)

    return CalculationReport(
        results=results,
        client_payment=payment,
        payment_distribution=distribution,
    )


__all__ = [
    "calculate",
    "calculate_profile",
    # Gross
    "calculate_gross",
    "entries_for_profile",
    # Deductions
    "DeductionOutcome",
    "apply_deductions",
    "profit_share_base",
    # Revenue
    "calculate_revenue",
    "find_client_rate",
    "margin_split",
    # Transfers
    "received_amounts",
    "resolve_transfers",
    "untransferred_deductions",
    # Aggregate
    "aggregate",
    "client_payment",
    "payment_distribution",
]
