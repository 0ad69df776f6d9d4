"""Cross-profile transfers of deducted amounts.

A deduction on profile O with recipient_profile_id == P moves the amount
O deducted into P's net pay. Resolution runs after every profile's own
deductions are computed, so an amount is never received before it is
deducted, whatever order the profiles are in.

A recipient id that matches no profile drops the transfer: the amount is
still deducted from O but nobody receives it.
"""

import logging
from typing import Dict, List, Sequence

from ..applied import AppliedState
from ..schemas import CalculationResult, Profile

logger = logging.getLogger(__name__)


def received_amounts(
    profiles: Sequence[Profile],
    results: Sequence[CalculationResult],
    applied: AppliedState,
) -> Dict[str, float]:
    """Total each profile receives from other profiles' deductions.

    Args:
        profiles: All profiles (deduction definitions with recipients)
        results: Phase-1 results holding each profile's deduction breakdown
        applied: Toggle state; only applied deductions transfer

    Returns:
        Dict of profile_id -> amount received (0.0 for profiles receiving nothing)
    """
    by_id = {r.profile_id: r for r in results}
    received = {p.id: 0.0 for p in profiles}

    for payer in profiles:
        payer_result = by_id.get(payer.id)
        if payer_result is None:
            continue
        lines = {line.deduction_id: line for line in payer_result.deduction_breakdown}

        for deduction in payer.deductions:
            recipient = deduction.recipient_profile_id
            if not recipient or recipient == payer.id:
                continue
            if not applied.is_applied(payer.id, deduction.id):
                continue
            if recipient not in received:
                logger.debug(
                    f"transfer: {payer.id}/{deduction.id} names unknown recipient "
                    f"{recipient}, dropped"
                )
                continue
            line = lines.get(deduction.id)
            if line is not None:
                received[recipient] += line.amount

    return received


def resolve_transfers(
    profiles: Sequence[Profile],
    results: Sequence[CalculationResult],
    applied: AppliedState,
) -> List[CalculationResult]:
    """Phase 2: add received transfers to each profile's net amount.

    Returns new CalculationResult objects; the phase-1 results are not modified.
    """
    received = received_amounts(profiles, results, applied)

    resolved = []
    for result in results:
        amount = received.get(result.profile_id, 0.0)
        resolved.append(result.model_copy(update={
            "received_from_others": amount,
            "net_amount": result.net_amount + amount,
        }))
    return resolved


def untransferred_deductions(
    profiles: Sequence[Profile],
    results: Sequence[CalculationResult],
) -> float:
    """Sum of deducted amounts that no profile receives.

    Covers deductions with no recipient, a self recipient, or a recipient
    id that matches no profile. Sum of final nets equals sum of gross
    minus this figure.
    """
    known = {p.id for p in profiles}
    recipients = {
        (p.id, d.id): d.recipient_profile_id for p in profiles for d in p.deductions
    }

    total = 0.0
    for result in results:
        for line in result.deduction_breakdown:
            recipient = recipients.get((result.profile_id, line.deduction_id))
            if recipient and recipient != result.profile_id and recipient in known:
                continue
            total += line.amount
    return total
