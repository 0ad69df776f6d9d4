"""Gross pay: hours x matching hourly rate, per profile."""

import logging
from typing import Iterable, List

from ..schemas import GrossTotals, Profile, TimeEntry

logger = logging.getLogger(__name__)


def entries_for_profile(profile: Profile, time_entries: Iterable[TimeEntry]) -> List[TimeEntry]:
    """Time entries logged against this profile, in input order."""
    return [e for e in time_entries if e.profile_id == profile.id]


def calculate_gross(profile: Profile, time_entries: Iterable[TimeEntry]) -> GrossTotals:
    """Sum hours and hours x rate for one profile.

    Entries whose hourly_rate_id no longer exists on the profile contribute
    nothing (neither hours nor pay). Never raises on empty or unmatched data.

    Args:
        profile: Profile to total
        time_entries: Full entry collection (filtered here by profile_id)

    Returns:
        GrossTotals with total_hours and gross_amount
    """
    total_hours = 0.0
    gross_amount = 0.0

    for entry in entries_for_profile(profile, time_entries):
        rate = profile.find_rate(entry.hourly_rate_id)
        if rate is None:
            logger.debug(
                f"gross: {profile.id} entry {entry.id} references unknown rate "
                f"{entry.hourly_rate_id}, skipped"
            )
            continue
        total_hours += entry.hours
        gross_amount += entry.hours * rate.rate

    return GrossTotals(total_hours=total_hours, gross_amount=gross_amount)
