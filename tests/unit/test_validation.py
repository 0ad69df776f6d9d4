"""Tests for save-time validation of profiles and time entries."""

from datetime import date

import pytest

from hourscalc.sdk.schemas import ClientRate, Deduction, HourlyRate, Profile, ProfitDistribution, TimeEntry
from hourscalc.sdk.validation import (
    ProfileValidationError,
    find_recipient_cycle,
    validate_profile,
    validate_time_entry,
)


def make_profile(pid="alice", deductions=(), **kw):
    kw.setdefault("hourly_rates", [HourlyRate(id="std", label="Standard", rate=20)])
    return Profile(id=pid, name=kw.pop("name", pid.title()), deductions=list(deductions), **kw)


def deduction(did, kind="percentage", amount=10, **kw):
    return Deduction(id=did, name=kw.pop("name", did), amount=amount, kind=kind, **kw)


class TestValidateProfile:

    def test_minimal_profile_is_valid(self):
        result = validate_profile(make_profile())

        assert result.valid
        assert result.errors == []
        assert result.require_valid().id == "alice"

    def test_name_required(self):
        result = validate_profile(make_profile(name="  "))

        assert "name is required" in result.errors

    def test_hourly_rate_required(self):
        result = validate_profile(make_profile(hourly_rates=[]))

        assert not result.valid
        assert any("hourly rate" in e for e in result.errors)

    def test_rate_must_be_positive(self):
        profile = make_profile(hourly_rates=[HourlyRate(id="std", label="Standard", rate=0)])

        result = validate_profile(profile)

        assert any("rate must be > 0" in e for e in result.errors)

    def test_duplicate_rate_ids(self):
        profile = make_profile(hourly_rates=[
            HourlyRate(id="std", label="A", rate=10),
            HourlyRate(id="std", label="B", rate=20),
        ])

        result = validate_profile(profile)

        assert "duplicate hourly rate id 'std'" in result.errors

    def test_client_rate_must_link_to_existing_rate(self):
        profile = make_profile(client_rates=[ClientRate(id="c", rate=50, employee_rate_id="nope")])

        result = validate_profile(profile)

        assert any("unknown hourly rate 'nope'" in e for e in result.errors)

    def test_distribution_percentage_range(self):
        profile = make_profile(profit_distributions=[ProfitDistribution(id="d", name="X", percentage=120)])

        result = validate_profile(profile)

        assert any("0-100" in e for e in result.errors)

    def test_negative_deduction_amount(self):
        result = validate_profile(make_profile(deductions=[deduction("d", amount=-1)]))

        assert any("must be >= 0" in e for e in result.errors)

    @pytest.mark.parametrize("role,kind", [
        ("salary", "percentage"),
        ("management_fee", "fixed"),
        ("profit_share", "fixed"),
    ])
    def test_role_kind_mismatch(self, role, kind):
        result = validate_profile(make_profile(deductions=[deduction("d", kind=kind, role=role)]))

        assert any(f"role '{role}' requires kind" in e for e in result.errors)

    def test_single_salary(self):
        profile = make_profile(deductions=[
            deduction("s1", kind="fixed", role="salary"),
            deduction("s2", kind="fixed", role="salary", priority=1),
        ])

        result = validate_profile(profile)

        assert any("at most one 'salary'" in e for e in result.errors)

    def test_errors_are_collected_not_short_circuited(self):
        profile = make_profile(name="", hourly_rates=[], deductions=[deduction("d", amount=-5)])

        result = validate_profile(profile)

        assert len(result.errors) >= 3
        with pytest.raises(ProfileValidationError) as exc:
            result.require_valid()
        assert exc.value.errors == result.errors


class TestRecipients:

    def test_self_recipient_rejected(self):
        profile = make_profile(deductions=[deduction("d", recipient_profile_id="alice")])

        result = validate_profile(profile)

        assert any("cannot be the profile itself" in e for e in result.errors)

    def test_unknown_recipient_rejected(self):
        profile = make_profile(deductions=[deduction("d", recipient_profile_id="ghost")])

        result = validate_profile(profile)

        assert any("'ghost' does not exist" in e for e in result.errors)

    def test_unknown_recipient_allowed_without_recipient_checks(self):
        profile = make_profile(deductions=[
            deduction("d", recipient_profile_id="ghost"),
            deduction("e", recipient_profile_id="alice", priority=1),
        ])

        result = validate_profile(profile, check_recipients=False)

        assert not any("does not exist" in e for e in result.errors)
        assert any("cannot be the profile itself" in e for e in result.errors)

    def test_existing_recipient_accepted(self):
        bob = make_profile("bob")
        alice = make_profile(deductions=[deduction("d", recipient_profile_id="bob")])

        assert validate_profile(alice, [bob]).valid

    def test_cycle_rejected(self):
        """Alice pays Bob; saving Bob paying Alice closes a cycle."""
        alice = make_profile(deductions=[deduction("d", recipient_profile_id="bob")])
        bob_draft = make_profile("bob", deductions=[deduction("d", recipient_profile_id="alice")])

        result = validate_profile(bob_draft, [alice, make_profile("bob")])

        assert any("recipient cycle" in e for e in result.errors)

    def test_find_recipient_cycle_none_for_chain(self):
        a = make_profile("a", deductions=[deduction("d", recipient_profile_id="b")])
        b = make_profile("b", deductions=[deduction("d", recipient_profile_id="c")])
        c = make_profile("c")

        assert find_recipient_cycle([a, b, c]) is None

    def test_find_recipient_cycle_reports_path(self):
        a = make_profile("a", deductions=[deduction("d", recipient_profile_id="b")])
        b = make_profile("b", deductions=[deduction("d", recipient_profile_id="a")])

        assert find_recipient_cycle([a, b]) == ["a", "b", "a"]


class TestWarnings:

    def test_percentages_over_100_warn(self):
        profile = make_profile(deductions=[
            deduction("a", amount=60, priority=0),
            deduction("b", amount=60, priority=1),
        ])

        result = validate_profile(profile)

        assert result.valid
        assert any("add up to 120%" in w for w in result.warnings)

    def test_duplicate_priorities_warn(self):
        profile = make_profile(deductions=[deduction("a"), deduction("b")])

        result = validate_profile(profile)

        assert result.valid
        assert any("priorities" in w for w in result.warnings)


class TestValidateTimeEntry:

    @pytest.fixture
    def profiles(self):
        return [make_profile()]

    def make_entry(self, profile_id="alice", rate_id="std"):
        return TimeEntry(id="e", profile_id=profile_id, hourly_rate_id=rate_id, date=date(2025, 1, 2), hours=1)

    def test_valid_entry(self, profiles):
        assert validate_time_entry(self.make_entry(), profiles) == []

    def test_unknown_profile(self, profiles):
        errors = validate_time_entry(self.make_entry(profile_id="bob"), profiles)

        assert errors == ["unknown profile 'bob'"]

    def test_unknown_rate(self, profiles):
        errors = validate_time_entry(self.make_entry(rate_id="ot"), profiles)

        assert any("no hourly rate 'ot'" in e for e in errors)

    def test_non_positive_hours_rejected_by_schema(self):
        with pytest.raises(ValueError):
            TimeEntry(id="e", profile_id="alice", hourly_rate_id="std", date=date(2025, 1, 2), hours=0)
