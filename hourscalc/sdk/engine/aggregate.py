"""Roll per-profile results up into client payment and payout shares."""

from typing import List, Sequence, Tuple

from ..schemas import CalculationResult, ClientPayment, PaymentDistribution


def client_payment(
    results: Sequence[CalculationResult],
    use_client_rates: bool = False,
) -> ClientPayment:
    """Total billed to the client, total hours and average rate.

    Args:
        results: Completed per-profile results
        use_client_rates: Sum revenue_breakdown.client_payment instead of gross
            (profiles without a revenue breakdown contribute their gross)

    Returns:
        ClientPayment; average_rate is 0 when no hours were logged
    """
    total_amount = 0.0
    for result in results:
        if use_client_rates and result.revenue_breakdown is not None:
            total_amount += result.revenue_breakdown.client_payment
        else:
            total_amount += result.gross_amount

    total_hours = sum(r.total_hours for r in results)
    average_rate = total_amount / total_hours if total_hours > 0 else 0.0

    return ClientPayment(
        total_amount=total_amount,
        total_hours=total_hours,
        average_rate=average_rate,
    )


def payment_distribution(results: Sequence[CalculationResult]) -> List[PaymentDistribution]:
    """Each profile's net amount as a percentage of all net amounts.

    Percentages are 0 when the nets sum to 0.
    """
    total_net = sum(r.net_amount for r in results)

    return [
        PaymentDistribution(
            profile_id=r.profile_id,
            profile_name=r.profile_name,
            amount=r.net_amount,
            percentage=(r.net_amount / total_net) * 100 if total_net != 0 else 0.0,
        )
        for r in results
    ]


def aggregate(
    results: Sequence[CalculationResult],
    use_client_rates: bool = False,
) -> Tuple[ClientPayment, List[PaymentDistribution]]:
    """Client payment plus payout distribution in one call."""
    return client_payment(results, use_client_rates), payment_distribution(results)
