"""Save-time validation for profiles and time entries.

The engine tolerates bad references (they contribute zero). Validation is
where they are rejected, before a draft reaches the state store:

Profile errors (block save):
- empty name, no hourly rates, a rate <= 0 or with an empty label
- duplicate rate / client rate / deduction ids
- client rate <= 0 or linked to an hourly rate id the profile lacks
- deduction with empty name or negative amount
- role/kind mismatch (salary must be fixed, management_fee and
  profit_share must be percentage)
- more than one salary or management_fee deduction
- recipient that is the profile itself, not an existing profile,
  or closes a cycle (A pays B, B pays A)
- profit distribution percentage outside 0..100

Profile warnings (allowed):
- percentage deductions adding up to more than 100
- duplicate priorities (ties fall back to listed order)

Time entry errors: unknown profile or rate. Hours > 0 is enforced by the
TimeEntry model itself.
"""

from typing import Dict, List, Optional, Sequence, Set

from .schemas import Profile, TimeEntry


ROLE_KIND = {
    "salary": "fixed",
    "management_fee": "percentage",
    "profit_share": "percentage",
}

SINGLE_ROLES = ("salary", "management_fee")


class ProfileValidationError(Exception):
    """Raised when a profile draft fails validation."""
    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__(f"Profile validation failed: {'; '.join(errors)}")


class TimeEntryValidationError(Exception):
    """Raised when a time entry references unknown data or has bad hours."""
    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__(f"Time entry validation failed: {'; '.join(errors)}")


class ProfileValidationResult:
    """Result of validating one profile draft."""

    def __init__(self, profile: Profile, errors: list = None, warnings: list = None):
        self.profile = profile
        self.errors = errors or []
        self.warnings = warnings or []

    @property
    def valid(self) -> bool:
        return not self.errors

    def require_valid(self) -> Profile:
        """Return the profile, or raise ProfileValidationError listing all errors."""
        if self.errors:
            raise ProfileValidationError(self.errors)
        return self.profile


def _duplicates(ids: Sequence[str]) -> Set[str]:
    seen: Set[str] = set()
    dupes: Set[str] = set()
    for item in ids:
        if item in seen:
            dupes.add(item)
        seen.add(item)
    return dupes


def find_recipient_cycle(profiles: Sequence[Profile]) -> Optional[List[str]]:
    """Return a list of profile ids forming a recipient cycle, or None.

    Edges run from a profile to each recipient of its deductions. Unknown
    recipients and self edges are ignored here (checked separately).
    """
    known = {p.id for p in profiles}
    edges: Dict[str, List[str]] = {
        p.id: [
            d.recipient_profile_id
            for d in p.deductions
            if d.recipient_profile_id in known and d.recipient_profile_id != p.id
        ]
        for p in profiles
    }

    visiting: List[str] = []
    done: Set[str] = set()

    def visit(node: str) -> Optional[List[str]]:
        if node in visiting:
            return visiting[visiting.index(node):] + [node]
        if node in done:
            return None
        visiting.append(node)
        for target in edges.get(node, []):
            cycle = visit(target)
            if cycle:
                return cycle
        visiting.pop()
        done.add(node)
        return None

    for profile in profiles:
        cycle = visit(profile.id)
        if cycle:
            return cycle
    return None


def validate_profile(
    draft: Profile,
    profiles: Sequence[Profile] = (),
    check_recipients: bool = True,
) -> ProfileValidationResult:
    """Validate a profile draft against the existing profiles.

    Args:
        draft: Profile to be saved (new, or replacing the profile with its id)
        profiles: Profiles currently in the store
        check_recipients: Reject unknown recipients and recipient cycles.
            Import passes False; it warns on unknown recipients and checks
            cycles once for the whole document.

    Returns:
        ProfileValidationResult with errors and warnings
    """
    errors = []
    warnings = []

    if not draft.name or not draft.name.strip():
        errors.append("name is required")

    # Hourly rates
    if not draft.hourly_rates:
        errors.append("at least one hourly rate is required")
    for i, rate in enumerate(draft.hourly_rates):
        if not rate.label or not rate.label.strip():
            errors.append(f"hourly_rates[{i}].label is required")
        if rate.rate <= 0:
            errors.append(f"hourly_rates[{i}].rate must be > 0 (got {rate.rate})")
    for dupe in sorted(_duplicates([r.id for r in draft.hourly_rates])):
        errors.append(f"duplicate hourly rate id '{dupe}'")

    # Client rates
    rate_ids = {r.id for r in draft.hourly_rates}
    for i, client_rate in enumerate(draft.client_rates):
        if client_rate.rate <= 0:
            errors.append(f"client_rates[{i}].rate must be > 0 (got {client_rate.rate})")
        if client_rate.employee_rate_id not in rate_ids:
            errors.append(
                f"client_rates[{i}] links to unknown hourly rate '{client_rate.employee_rate_id}'"
            )
    for dupe in sorted(_duplicates([c.id for c in draft.client_rates])):
        errors.append(f"duplicate client rate id '{dupe}'")

    # Profit distributions
    for i, dist in enumerate(draft.profit_distributions):
        if not 0 <= dist.percentage <= 100:
            errors.append(
                f"profit_distributions[{i}].percentage must be 0-100 (got {dist.percentage})"
            )

    # Deductions
    others = [p for p in profiles if p.id != draft.id]
    other_ids = {p.id for p in others}
    role_counts: Dict[str, int] = {}

    for i, deduction in enumerate(draft.deductions):
        label = f"deductions[{i}]"
        if not deduction.name or not deduction.name.strip():
            errors.append(f"{label}.name is required")
        if deduction.amount < 0:
            errors.append(f"{label}.amount must be >= 0 (got {deduction.amount})")

        expected_kind = ROLE_KIND.get(deduction.role)
        if expected_kind and deduction.kind != expected_kind:
            errors.append(
                f"{label}: role '{deduction.role}' requires kind '{expected_kind}'"
            )
        role_counts[deduction.role] = role_counts.get(deduction.role, 0) + 1

        recipient = deduction.recipient_profile_id
        if recipient:
            if recipient == draft.id:
                errors.append(f"{label}: recipient cannot be the profile itself")
            elif check_recipients and recipient not in other_ids:
                errors.append(f"{label}: recipient profile '{recipient}' does not exist")

    for role in SINGLE_ROLES:
        if role_counts.get(role, 0) > 1:
            errors.append(f"at most one '{role}' deduction allowed (found {role_counts[role]})")

    for dupe in sorted(_duplicates([d.id for d in draft.deductions])):
        errors.append(f"duplicate deduction id '{dupe}'")

    cycle = find_recipient_cycle(others + [draft]) if check_recipients else None
    if cycle:
        errors.append(f"recipient cycle: {' -> '.join(cycle)}")

    # Warnings
    pct_total = sum(d.amount for d in draft.deductions if d.kind == "percentage")
    if pct_total > 100:
        warnings.append(f"percentage deductions add up to {pct_total:g}%")
    if _duplicates([str(d.priority) for d in draft.deductions]):
        warnings.append("duplicate deduction priorities; listed order breaks ties")

    return ProfileValidationResult(draft, errors=errors, warnings=warnings)


def validate_time_entry(entry: TimeEntry, profiles: Sequence[Profile]) -> List[str]:
    """Check that an entry references an existing profile and rate.

    Returns:
        List of error strings (empty if valid)
    """
    errors = []

    profile = next((p for p in profiles if p.id == entry.profile_id), None)
    if profile is None:
        errors.append(f"unknown profile '{entry.profile_id}'")
    elif profile.find_rate(entry.hourly_rate_id) is None:
        errors.append(
            f"profile '{profile.name}' has no hourly rate '{entry.hourly_rate_id}'"
        )

    return errors
