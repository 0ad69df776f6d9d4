"""Deduction processing.

Two modes:

- independent: every deduction is computed against the original gross.
  Percentage = gross x pct/100, fixed = flat amount.
- sequential (default): deductions run in priority order against a running
  remaining balance. Fixed deductions are a per-hour amount (amount x hours).
  Percentages take pct of what is left at that point. Profit-share
  deductions instead take pct of a base rebuilt from gross: minus the
  applied salary (x hours), then minus the applied management fee
  percentage of that. The profit-share amount is still subtracted from the
  running balance.

Toggled-off deductions stay in the breakdown with amount 0 and applied=False.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..applied import AppliedState
from ..schemas import Deduction, DeductionLine, DeductionMode, Profile

logger = logging.getLogger(__name__)


@dataclass
class DeductionOutcome:
    """Breakdown plus totals for one profile's deductions."""

    breakdown: List[DeductionLine] = field(default_factory=list)
    total_deductions: float = 0.0
    net_amount: float = 0.0

    def amount_for(self, deduction_id: str) -> float:
        for line in self.breakdown:
            if line.deduction_id == deduction_id:
                return line.amount
        return 0.0


def _line(deduction: Deduction, amount: float, applied: bool) -> DeductionLine:
    return DeductionLine(
        deduction_id=deduction.id,
        deduction_name=deduction.name,
        amount=amount,
        kind=deduction.kind,
        role=deduction.role,
        applies_to=deduction.applies_to,
        applied=applied,
        recipient_profile_id=deduction.recipient_profile_id,
    )


def _first_applied(
    deductions: List[Deduction],
    role: str,
    kind: str,
    is_applied: Callable[[Deduction], bool],
) -> Optional[Deduction]:
    for deduction in deductions:
        if deduction.role == role and deduction.kind == kind and is_applied(deduction):
            return deduction
    return None


def profit_share_base(
    deductions: List[Deduction],
    is_applied: Callable[[Deduction], bool],
    gross_amount: float,
    total_hours: float,
) -> float:
    """Amount a profit-share percentage is taken from.

    gross - applied salary x hours, then less the applied management fee
    percentage of that remainder. Independent of deduction order.
    """
    base = gross_amount

    salary = _first_applied(deductions, "salary", "fixed", is_applied)
    if salary is not None:
        base -= salary.amount * total_hours

    fee = _first_applied(deductions, "management_fee", "percentage", is_applied)
    if fee is not None:
        base -= base * (fee.amount / 100)

    return base


def apply_deductions(
    profile: Profile,
    applied: AppliedState,
    gross_amount: float,
    total_hours: float,
    mode: DeductionMode = "sequential",
) -> DeductionOutcome:
    """Apply a profile's deductions to its gross pay.

    Args:
        profile: Profile whose deductions are applied
        applied: Toggle state; unseen deductions count as applied
        gross_amount: Gross pay from calculate_gross
        total_hours: Hours from calculate_gross (fixed deductions are per hour)
        mode: "sequential" or "independent"

    Returns:
        DeductionOutcome with breakdown in priority order
    """
    ordered = profile.sorted_deductions()

    def is_applied(deduction: Deduction) -> bool:
        return applied.is_applied(profile.id, deduction.id)

    if mode == "independent":
        return _apply_independent(ordered, is_applied, gross_amount)
    return _apply_sequential(ordered, is_applied, gross_amount, total_hours)


def _apply_independent(
    ordered: List[Deduction],
    is_applied: Callable[[Deduction], bool],
    gross_amount: float,
) -> DeductionOutcome:
    outcome = DeductionOutcome()

    for deduction in ordered:
        if not is_applied(deduction):
            outcome.breakdown.append(_line(deduction, 0.0, applied=False))
            continue
        if deduction.kind == "percentage":
            amount = (gross_amount * deduction.amount) / 100
        else:
            amount = deduction.amount
        outcome.total_deductions += amount
        outcome.breakdown.append(_line(deduction, amount, applied=True))

    outcome.net_amount = gross_amount - outcome.total_deductions
    return outcome


def _apply_sequential(
    ordered: List[Deduction],
    is_applied: Callable[[Deduction], bool],
    gross_amount: float,
    total_hours: float,
) -> DeductionOutcome:
    outcome = DeductionOutcome()
    remaining = gross_amount

    for deduction in ordered:
        if not is_applied(deduction):
            outcome.breakdown.append(_line(deduction, 0.0, applied=False))
            continue

        if deduction.kind == "fixed":
            amount = deduction.amount * total_hours
        elif deduction.role == "profit_share":
            base = profit_share_base(ordered, is_applied, gross_amount, total_hours)
            amount = base * (deduction.amount / 100)
            logger.debug(f"profit share {deduction.id}: {deduction.amount}% of base {base:.2f}")
        else:
            amount = remaining * (deduction.amount / 100)

        remaining -= amount
        outcome.breakdown.append(_line(deduction, amount, applied=True))

    outcome.total_deductions = gross_amount - remaining
    outcome.net_amount = remaining
    return outcome
