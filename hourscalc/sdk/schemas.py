"""Pydantic schemas for hours-calc data validation.

All schemas use extra='forbid' to reject unknown fields, so a typo in a
profile file or a corrupt import causes a clear error rather than silent
ignoring. Python attributes are snake_case; the JSON wire format keeps the
camelCase keys used by exported documents (hourlyRates, profileId, ...).
"""

import datetime as dt
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


DeductionKind = Literal["percentage", "fixed"]
DeductionRole = Literal["salary", "management_fee", "profit_share", "generic"]
AppliesTo = Literal["employee", "employer", "both"]
DistributionKind = Literal["margin_of_worker_pay", "share_of_margin"]
DeductionMode = Literal["sequential", "independent"]

# Fraction of the per-hour leftover (client rate - worker rate) kept as management fee
MANAGEMENT_FEE_RATE = 0.10

# Client payment = worker payment x this, when no client rate matches any entry
CLIENT_RATE_FALLBACK_MULTIPLIER = 2.0


class WireModel(BaseModel):
    """Base for all models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    def to_wire(self) -> dict:
        """Dump to a JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# Profile configuration
# =============================================================================


class HourlyRate(WireModel):
    """A worker rate tier (e.g., 'Standard', 'Overtime')."""

    id: str = Field(..., description="Stable rate identifier")
    label: str = Field(..., description="Display label")
    rate: float = Field(..., description="Amount paid per hour")


class ClientRate(WireModel):
    """Client-facing rate linked to one of the profile's hourly rates."""

    id: str = Field(..., description="Stable client rate identifier")
    label: str = Field(default="", description="Display label")
    rate: float = Field(..., description="Amount billed to the client per hour")
    employee_rate_id: str = Field(..., description="HourlyRate.id this client rate bills for")


class ProfitDistribution(WireModel):
    """A recipient of part of the margin."""

    id: str = Field(..., description="Stable identifier")
    name: str = Field(..., description="Recipient name")
    percentage: float = Field(..., description="Percentage (0-100)")
    kind: DistributionKind = Field(
        default="share_of_margin",
        description=(
            "margin_of_worker_pay: percentage of the worker payment; "
            "share_of_margin: percentage of (client payment - worker payment)"
        ),
    )


class Deduction(WireModel):
    """A deduction applied to a profile's gross pay.

    Fixed deductions are a per-hour amount in sequential mode and a flat
    sum in independent mode. The role tags deductions that take part in
    the profit-share calculation.
    """

    id: str = Field(..., description="Stable deduction identifier")
    name: str = Field(..., description="Display name")
    amount: float = Field(..., description="Percentage (0-100) or fixed amount")
    kind: DeductionKind = Field(..., description="percentage or fixed")
    priority: int = Field(default=0, description="Ascending = applied first")
    applies_to: AppliesTo = Field(default="employee", description="Who bears the deduction")
    role: DeductionRole = Field(default="generic", description="Role in profit-share math")
    recipient_profile_id: Optional[str] = Field(
        default=None, description="Profile that receives the deducted amount"
    )


class Profile(WireModel):
    """A biller/worker identity with its rates and deductions."""

    id: str = Field(..., description="Stable profile identifier")
    name: str = Field(..., description="Display name")
    hourly_rates: List[HourlyRate] = Field(default_factory=list)
    client_rates: List[ClientRate] = Field(default_factory=list)
    profit_distributions: List[ProfitDistribution] = Field(default_factory=list)
    deductions: List[Deduction] = Field(default_factory=list)
    created_at: Optional[dt.datetime] = Field(default=None)
    updated_at: Optional[dt.datetime] = Field(default=None)

    def find_rate(self, rate_id: str) -> Optional[HourlyRate]:
        """Return the hourly rate with this id, or None."""
        for rate in self.hourly_rates:
            if rate.id == rate_id:
                return rate
        return None

    def sorted_deductions(self) -> List[Deduction]:
        """Deductions in application order (stable on equal priority)."""
        return sorted(self.deductions, key=lambda d: d.priority)


class TimeEntry(WireModel):
    """One logged work session."""

    id: str = Field(..., description="Entry identifier")
    profile_id: str = Field(..., description="Profile.id that worked the hours")
    hourly_rate_id: str = Field(..., description="HourlyRate.id the hours bill at")
    date: dt.date = Field(..., description="Work date")
    hours: float = Field(..., gt=0, description="Hours worked")
    description: Optional[str] = Field(default=None)

    @field_validator("date", mode="before")
    @classmethod
    def truncate_datetime_string(cls, v):
        """Accept ISO date-time strings (2024-03-01T00:00:00.000Z) as dates."""
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        if isinstance(v, dt.datetime):
            return v.date()
        return v


# =============================================================================
# Engine options
# =============================================================================


class CalculationOptions(WireModel):
    """Knobs for one recomputation."""

    deduction_mode: DeductionMode = Field(default="sequential")
    include_revenue: bool = Field(default=True)
    management_fee_rate: float = Field(default=MANAGEMENT_FEE_RATE, ge=0, le=1)
    client_rate_multiplier: float = Field(default=CLIENT_RATE_FALLBACK_MULTIPLIER, ge=0)


# =============================================================================
# Calculation results (derived, never the source of truth)
# =============================================================================


class GrossTotals(WireModel):
    """Hours and gross pay for one profile."""

    total_hours: float = 0.0
    gross_amount: float = 0.0


class DeductionLine(WireModel):
    """One row of a profile's deduction breakdown."""

    deduction_id: str
    deduction_name: str
    amount: float
    kind: DeductionKind
    role: DeductionRole = "generic"
    applies_to: AppliesTo = "employee"
    applied: bool = True
    recipient_profile_id: Optional[str] = None


class MarginFigures(WireModel):
    """Client rate split into worker pay, management fee and residual profit."""

    client_rate: float = 0.0
    worker_rate: float = 0.0
    leftover: float = 0.0
    management_fee: float = 0.0
    residual_profit: float = 0.0


class DistributionAmount(WireModel):
    """Amount owed to one profit distribution recipient."""

    distribution_id: str
    name: str
    kind: DistributionKind
    percentage: float
    amount: float


class RevenueBreakdown(WireModel):
    """Client billing versus worker payment for one profile."""

    employee_payment: float
    client_payment: float
    profit_margin: float
    used_fallback: bool = False
    distributions: List[DistributionAmount] = Field(default_factory=list)
    per_hour: MarginFigures = Field(default_factory=MarginFigures)
    totals: MarginFigures = Field(default_factory=MarginFigures)


class CalculationResult(WireModel):
    """Per-profile outcome of a recomputation."""

    profile_id: str
    profile_name: str
    total_hours: float = 0.0
    gross_amount: float = 0.0
    total_deductions: float = 0.0
    net_amount: float = 0.0
    received_from_others: float = 0.0
    deduction_breakdown: List[DeductionLine] = Field(default_factory=list)
    revenue_breakdown: Optional[RevenueBreakdown] = None

    @model_validator(mode="after")
    def check_coherence(self) -> "CalculationResult":
        """net = gross - deductions + received (within float noise)."""
        expected = self.gross_amount - self.total_deductions + self.received_from_others
        tolerance = 1e-6 * max(1.0, abs(self.gross_amount))
        if abs(self.net_amount - expected) > tolerance:
            raise ValueError(
                f"net_amount ({self.net_amount:.2f}) != gross - deductions + received "
                f"({expected:.2f})"
            )
        return self


class ClientPayment(WireModel):
    """What the client pays in total."""

    total_amount: float = 0.0
    total_hours: float = 0.0
    average_rate: float = 0.0


class PaymentDistribution(WireModel):
    """Share of the total net payout going to one profile."""

    profile_id: str
    profile_name: str
    amount: float
    percentage: float


class CalculationReport(WireModel):
    """Everything one recomputation produces."""

    results: List[CalculationResult] = Field(default_factory=list)
    client_payment: ClientPayment = Field(default_factory=ClientPayment)
    payment_distribution: List[PaymentDistribution] = Field(default_factory=list)

    def result_for(self, profile_id: str) -> Optional[CalculationResult]:
        """Return the result for a profile id, or None."""
        for result in self.results:
            if result.profile_id == profile_id:
                return result
        return None
