"""State store: profiles, time entries and deduction toggles.

The store owns the in-memory state and its persistence. All money math is
delegated to sdk.engine, which is recomputed from a state snapshot whenever
a result is needed; results are never stored as a source of truth (they
appear in export documents for convenience only).

Files:
    <data_dir>/state.json   - {"profiles": [...], "timeEntries": [...], "applied": {...}}
    export documents         - state + derived calculations + exportDate + version

Import is all-or-nothing: a document that fails to parse or validate raises
DataImportError and the caller keeps its current state.

Legacy documents (single hourlyRate per profile, "hoursEntries", deduction
"type" instead of "kind", index-based employeeRateId, no deduction roles)
are migrated on import.
"""

import json
import logging
import math
import os
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import Field, ValidationError

from .applied import AppliedState
from .config import get_state_path
from .engine import calculate
from .schemas import (
    CalculationOptions,
    CalculationResult,
    ClientPayment,
    PaymentDistribution,
    Profile,
    TimeEntry,
    WireModel,
)
from .validation import (
    ROLE_KIND,
    ProfileValidationError,
    TimeEntryValidationError,
    find_recipient_cycle,
    validate_profile,
    validate_time_entry,
)

# Configure logging based on LOG_LEVEL environment variable
_log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, _log_level, logging.INFO),
    format="%(asctime)s.%(msecs)03d %(levelname)s: %(message)s",
    datefmt="%H:%M:%S"
)
logger = logging.getLogger(__name__)

EXPORT_VERSION = "2.0"

# Keys an export document may carry that are recomputed rather than imported
DERIVED_KEYS = {"calculations", "clientPayment", "paymentDistribution", "exportDate", "version", "settings"}

# Legacy deduction names mapped to roles, matched case-insensitively as substrings
LEGACY_ROLE_NAMES = [
    ("profit share", "profit_share"),
    ("mgmt fee", "management_fee"),
    ("salary", "salary"),
]


class ProfileNotFoundError(Exception):
    """Raised when an operation names a profile that does not exist."""
    pass


class EntryNotFoundError(Exception):
    """Raised when an operation names a time entry that does not exist."""
    pass


class DataImportError(Exception):
    """Raised when an import document is malformed; nothing is applied."""
    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__(f"Import failed: {'; '.join(errors)}")


class HoursState(WireModel):
    """Complete user state."""

    profiles: List[Profile] = Field(default_factory=list)
    time_entries: List[TimeEntry] = Field(default_factory=list)
    applied: Dict[str, Dict[str, bool]] = Field(default_factory=dict)

    @property
    def applied_state(self) -> AppliedState:
        """Toggle view sharing this state's applied dict."""
        return AppliedState(self.applied)

    def get_profile(self, profile_id: str) -> Profile:
        for profile in self.profiles:
            if profile.id == profile_id:
                return profile
        raise ProfileNotFoundError(f"Profile not found: {profile_id}")

    def entries_for(self, profile_id: str) -> List[TimeEntry]:
        return [e for e in self.time_entries if e.profile_id == profile_id]


class ExportDocument(WireModel):
    """Full export: state plus derived figures at export time."""

    profiles: List[Profile]
    time_entries: List[TimeEntry]
    applied: Dict[str, Dict[str, bool]] = Field(default_factory=dict)
    calculations: List[CalculationResult] = Field(default_factory=list)
    client_payment: ClientPayment = Field(default_factory=ClientPayment)
    payment_distribution: List[PaymentDistribution] = Field(default_factory=list)
    export_date: datetime
    version: str = EXPORT_VERSION


@dataclass
class ImportResult:
    """Successfully imported state plus non-blocking warnings."""

    state: HoursState
    warnings: List[str] = field(default_factory=list)


def generate_id() -> str:
    """Short random identifier for profiles, rates, deductions and entries."""
    return uuid.uuid4().hex[:8]


def _now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Profiles
# =============================================================================


def _fill_ids(data: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of a profile dict with generated ids where they are missing."""
    data = dict(data)
    data.setdefault("id", generate_id())
    for key in ("hourly_rates", "hourlyRates", "client_rates", "clientRates",
                "profit_distributions", "profitDistributions", "deductions"):
        if key in data and isinstance(data[key], list):
            data[key] = [
                {"id": generate_id(), **item} if isinstance(item, dict) and "id" not in item else item
                for item in data[key]
            ]
    return data


def build_profile(data: Union[Profile, Dict[str, Any]]) -> Profile:
    """Turn a profile draft (dict from a form or YAML file) into a Profile.

    Missing ids are generated. Schema problems raise ProfileValidationError.
    """
    if isinstance(data, Profile):
        return data
    try:
        return Profile.model_validate(_fill_ids(data))
    except ValidationError as e:
        raise ProfileValidationError(_format_validation_errors(e))


def save_profile(
    state: HoursState,
    draft: Union[Profile, Dict[str, Any]],
    now: Optional[datetime] = None,
) -> Profile:
    """Create a profile, or replace the profile with the same id.

    Args:
        state: State to modify in place
        draft: Profile or dict
        now: Timestamp for created_at/updated_at (defaults to current UTC time)

    Returns:
        The saved profile (with timestamps)

    Raises:
        ProfileValidationError: If the draft is invalid
    """
    now = now or _now()
    profile = build_profile(draft)
    result = validate_profile(profile, state.profiles)
    result.require_valid()
    for warning in result.warnings:
        logger.warning(f"profile '{profile.name}': {warning}")

    existing = next((p for p in state.profiles if p.id == profile.id), None)
    profile = profile.model_copy(update={
        "name": profile.name.strip(),
        "created_at": existing.created_at if existing and existing.created_at else (profile.created_at or now),
        "updated_at": now,
    })

    if existing is not None:
        state.profiles = [profile if p.id == profile.id else p for p in state.profiles]
        logger.debug(f"Updated profile {profile.id} ({profile.name})")
    else:
        state.profiles.append(profile)
        logger.debug(f"Created profile {profile.id} ({profile.name})")

    state.applied_state.register(profile)
    return profile


def delete_profile(state: HoursState, profile_id: str) -> int:
    """Delete a profile and every time entry logged against it.

    Returns:
        Number of time entries removed with the profile

    Raises:
        ProfileNotFoundError: If no profile has this id
    """
    state.get_profile(profile_id)

    state.profiles = [p for p in state.profiles if p.id != profile_id]
    before = len(state.time_entries)
    state.time_entries = [e for e in state.time_entries if e.profile_id != profile_id]
    state.applied_state.forget(profile_id)

    for payer in state.profiles:
        for deduction in payer.deductions:
            if deduction.recipient_profile_id == profile_id:
                logger.warning(
                    f"profile '{payer.name}' deduction '{deduction.name}' names deleted "
                    f"recipient {profile_id}; its amount will not be transferred"
                )

    removed = before - len(state.time_entries)
    logger.debug(f"Deleted profile {profile_id} and {removed} time entries")
    return removed


def set_deduction_applied(state: HoursState, profile_id: str, deduction_id: str, applied: bool) -> None:
    """Toggle a deduction on or off for calculation without deleting it."""
    profile = state.get_profile(profile_id)
    if not any(d.id == deduction_id for d in profile.deductions):
        raise ProfileNotFoundError(
            f"Profile '{profile.name}' has no deduction '{deduction_id}'"
        )
    state.applied_state.set_applied(profile_id, deduction_id, applied)


# =============================================================================
# Time entries
# =============================================================================


def add_time_entry(
    state: HoursState,
    profile_id: str,
    hourly_rate_id: str,
    entry_date: date,
    hours: float,
    description: Optional[str] = None,
) -> TimeEntry:
    """Log a work session. Entries cannot be edited afterwards, only deleted.

    Raises:
        TimeEntryValidationError: Unknown profile/rate, or hours not a finite number > 0
    """
    if hours is None or not math.isfinite(hours) or hours <= 0:
        raise TimeEntryValidationError([f"hours must be > 0 (got {hours})"])

    description = description.strip() if description else None
    try:
        entry = TimeEntry(
            id=generate_id(),
            profile_id=profile_id,
            hourly_rate_id=hourly_rate_id,
            date=entry_date,
            hours=hours,
            description=description or None,
        )
    except ValidationError as e:
        raise TimeEntryValidationError(_format_validation_errors(e))

    errors = validate_time_entry(entry, state.profiles)
    if errors:
        raise TimeEntryValidationError(errors)

    state.time_entries.append(entry)
    logger.debug(f"Added entry {entry.id}: {hours}h for {profile_id} on {entry.date}")
    return entry


def delete_time_entry(state: HoursState, entry_id: str) -> TimeEntry:
    """Remove a time entry by id and return it."""
    for entry in state.time_entries:
        if entry.id == entry_id:
            state.time_entries = [e for e in state.time_entries if e.id != entry_id]
            return entry
    raise EntryNotFoundError(f"Time entry not found: {entry_id}")


# =============================================================================
# Persistence
# =============================================================================


def load_state(path: Optional[Path] = None) -> HoursState:
    """Load state.json (empty state if the file does not exist).

    Raises:
        DataImportError: If the file exists but is corrupt
    """
    path = Path(path) if path else get_state_path()
    if not path.exists():
        logger.debug(f"No state file at {path}, starting empty")
        return HoursState()

    with open(path, "r") as f:
        text = f.read()
    return import_document(text).state


def save_state(state: HoursState, path: Optional[Path] = None) -> Path:
    """Write state.json atomically (temp file + rename)."""
    path = Path(path) if path else get_state_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path = path.with_suffix(".json.tmp")
    with open(tmp_path, "w") as f:
        json.dump(state.to_wire(), f, indent=2)
    tmp_path.replace(path)

    logger.debug(f"Saved state to {path}")
    return path


# =============================================================================
# Export / import
# =============================================================================


def build_export(
    state: HoursState,
    options: Optional[CalculationOptions] = None,
    now: Optional[datetime] = None,
) -> ExportDocument:
    """Snapshot the state together with freshly computed results."""
    report = calculate(state.profiles, state.time_entries, state.applied_state, options)
    return ExportDocument(
        profiles=state.profiles,
        time_entries=state.time_entries,
        applied=state.applied_state.as_dict(),
        calculations=report.results,
        client_payment=report.client_payment,
        payment_distribution=report.payment_distribution,
        export_date=now or _now(),
    )


def export_document(
    state: HoursState,
    options: Optional[CalculationOptions] = None,
    now: Optional[datetime] = None,
) -> str:
    """Export the state as a JSON document string."""
    return json.dumps(build_export(state, options, now).to_wire(), indent=2)


def write_export(
    state: HoursState,
    output_path: Path,
    options: Optional[CalculationOptions] = None,
) -> Path:
    """Write an export document to output_path."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(export_document(state, options))
    logger.debug(f"Exported {len(state.profiles)} profiles to {output_path}")
    return output_path


def infer_role(name: str) -> str:
    """Role for a legacy deduction that predates explicit roles."""
    lowered = (name or "").lower()
    for pattern, role in LEGACY_ROLE_NAMES:
        if pattern in lowered:
            return role
    return "generic"


def _migrate_profile(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Bring a legacy profile dict up to the current wire shape."""
    profile = dict(raw)

    # v1: single hourlyRate, no rate tiers
    if "hourlyRate" in profile and "hourlyRates" not in profile:
        profile["hourlyRates"] = [{"id": "standard", "label": "Standard", "rate": profile["hourlyRate"]}]
    profile.pop("hourlyRate", None)
    profile.pop("deductionType", None)

    rates = profile.get("hourlyRates") or []
    client_rates = []
    for client_rate in profile.get("clientRates") or []:
        client_rate = dict(client_rate)
        link = client_rate.get("employeeRateId")
        # Index-based link: number (or digit string) pointing into hourlyRates
        if isinstance(link, int) or (isinstance(link, str) and link.isdigit() and
                                     not any(r.get("id") == link for r in rates)):
            index = int(link)
            if 0 <= index < len(rates):
                client_rate["employeeRateId"] = rates[index].get("id")
            else:
                client_rate["employeeRateId"] = str(link)
        client_rates.append(client_rate)
    if "clientRates" in profile:
        profile["clientRates"] = client_rates

    deductions = []
    for deduction in profile.get("deductions") or []:
        deduction = dict(deduction)
        if "type" in deduction and "kind" not in deduction:
            deduction["kind"] = deduction.pop("type")
        if "role" not in deduction:
            role = infer_role(deduction.get("name", ""))
            # A "Salary" kept as a percentage stays generic
            if ROLE_KIND.get(role, deduction.get("kind")) != deduction.get("kind"):
                role = "generic"
            deduction["role"] = role
        deductions.append(deduction)
    if "deductions" in profile:
        profile["deductions"] = deductions

    return profile


def _migrate_entry(raw: Dict[str, Any], legacy_rate_ids: Dict[str, str]) -> Dict[str, Any]:
    entry = dict(raw)
    if "hourlyRateId" not in entry and entry.get("profileId") in legacy_rate_ids:
        entry["hourlyRateId"] = legacy_rate_ids[entry["profileId"]]
    return entry


def _format_validation_errors(error: ValidationError, prefix: str = "") -> List[str]:
    messages = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item["loc"])
        path = f"{prefix}.{loc}" if prefix and loc else (prefix or loc or "root")
        messages.append(f"{path}: {item['msg']}")
    return messages


def import_document(text: str) -> ImportResult:
    """Parse an export document (or state.json) into a new HoursState.

    Derived sections (calculations, clientPayment, ...) are ignored; they
    are recomputed from the imported state.

    Raises:
        DataImportError: JSON, schema or referential problems. Nothing is
            returned in that case, so the caller's state is left untouched.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DataImportError([f"invalid JSON: {e}"])

    if not isinstance(data, dict):
        raise DataImportError([f"document must be a JSON object, got {type(data).__name__}"])

    errors: List[str] = []
    warnings: List[str] = []

    unknown = set(data) - DERIVED_KEYS - {"profiles", "timeEntries", "hoursEntries", "applied"}
    for key in sorted(unknown):
        errors.append(f"unknown top-level key '{key}'")

    raw_profiles = data.get("profiles", [])
    raw_entries = data.get("timeEntries", data.get("hoursEntries", []))
    raw_applied = data.get("applied", {})

    if not isinstance(raw_profiles, list):
        errors.append("profiles must be a list")
        raw_profiles = []
    if not isinstance(raw_entries, list):
        errors.append("timeEntries must be a list")
        raw_entries = []
    if not isinstance(raw_applied, dict):
        errors.append("applied must be an object")
        raw_applied = {}

    legacy_rate_ids = {
        p.get("id"): "standard"
        for p in raw_profiles
        if isinstance(p, dict) and "hourlyRate" in p and "hourlyRates" not in p
    }

    parsed: List[tuple] = []
    for i, raw in enumerate(raw_profiles):
        if not isinstance(raw, dict):
            errors.append(f"profiles[{i}]: must be an object")
            continue
        try:
            parsed.append((i, Profile.model_validate(_migrate_profile(raw))))
        except ValidationError as e:
            errors.extend(_format_validation_errors(e, f"profiles[{i}]"))
            continue
        if raw.get("id") in legacy_rate_ids and any(
            d.get("type", d.get("kind")) == "fixed"
            for d in raw.get("deductions") or [] if isinstance(d, dict)
        ):
            warnings.append(
                f"profiles[{i}]: v1 fixed deductions were flat sums; sequential mode "
                f"applies them per hour (set deduction_mode=independent to keep flat sums)"
            )

    profiles: List[Profile] = [profile for _, profile in parsed]
    for i, profile in parsed:
        result = validate_profile(profile, profiles, check_recipients=False)
        errors.extend(f"profiles[{i}]: {err}" for err in result.errors)
        warnings.extend(f"profiles[{i}]: {warning}" for warning in result.warnings)

    entries: List[TimeEntry] = []
    for i, raw in enumerate(raw_entries):
        if not isinstance(raw, dict):
            errors.append(f"timeEntries[{i}]: must be an object")
            continue
        try:
            entries.append(TimeEntry.model_validate(_migrate_entry(raw, legacy_rate_ids)))
        except ValidationError as e:
            errors.extend(_format_validation_errors(e, f"timeEntries[{i}]"))

    profile_ids = [p.id for p in profiles]
    for pid in sorted({pid for pid in profile_ids if profile_ids.count(pid) > 1}):
        errors.append(f"duplicate profile id '{pid}'")

    by_id = {p.id: p for p in profiles}
    for entry in entries:
        profile = by_id.get(entry.profile_id)
        if profile is None:
            errors.append(f"time entry {entry.id} references unknown profile '{entry.profile_id}'")
        elif profile.find_rate(entry.hourly_rate_id) is None:
            warnings.append(
                f"time entry {entry.id} references unknown rate '{entry.hourly_rate_id}' "
                f"(contributes nothing)"
            )

    for profile in profiles:
        for deduction in profile.deductions:
            recipient = deduction.recipient_profile_id
            if recipient and recipient not in by_id:
                warnings.append(
                    f"profile '{profile.name}' deduction '{deduction.name}' names unknown "
                    f"recipient '{recipient}' (not transferred)"
                )
    cycle = find_recipient_cycle(profiles)
    if cycle:
        errors.append(f"recipient cycle: {' -> '.join(cycle)}")

    if errors:
        raise DataImportError(errors)

    applied = AppliedState({
        pid: {did: bool(flag) for did, flag in flags.items()}
        for pid, flags in raw_applied.items()
        if isinstance(flags, dict)
    })
    for profile in profiles:
        applied.register(profile)
    applied.prune(by_id)

    for warning in warnings:
        logger.warning(warning)

    state = HoursState(profiles=profiles, time_entries=entries, applied=applied.states)
    logger.debug(f"Imported {len(profiles)} profiles and {len(entries)} time entries")
    return ImportResult(state=state, warnings=warnings)
