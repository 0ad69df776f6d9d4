"""Tests for the state store: profiles, entries, toggles, persistence, import/export."""

import json
from datetime import date, datetime, timezone

import pytest

from hourscalc.sdk.store import (
    DataImportError,
    EntryNotFoundError,
    HoursState,
    ProfileNotFoundError,
    add_time_entry,
    delete_profile,
    delete_time_entry,
    export_document,
    import_document,
    infer_role,
    load_state,
    save_profile,
    save_state,
    set_deduction_applied,
)
from hourscalc.sdk.engine import calculate
from hourscalc.sdk.validation import ProfileValidationError, TimeEntryValidationError


T0 = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)
T1 = datetime(2025, 2, 1, 9, 0, tzinfo=timezone.utc)

ALICE = {
    "id": "alice",
    "name": "Alice",
    "hourly_rates": [{"id": "std", "label": "Standard", "rate": 20}],
    "deductions": [{"id": "tax", "name": "Tax", "amount": 10, "kind": "percentage"}],
}

BOB = {
    "id": "bob",
    "name": "Bob",
    "hourly_rates": [{"id": "std", "label": "Standard", "rate": 30}],
}


@pytest.fixture
def state():
    s = HoursState()
    save_profile(s, ALICE, now=T0)
    save_profile(s, BOB, now=T0)
    return s


class TestProfiles:

    def test_save_creates_profile_with_timestamps(self, state):
        alice = state.get_profile("alice")

        assert alice.name == "Alice"
        assert alice.created_at == T0
        assert alice.updated_at == T0

    def test_save_replaces_and_keeps_created_at(self, state):
        save_profile(state, {**ALICE, "name": "Alice B."}, now=T1)

        alice = state.get_profile("alice")
        assert len(state.profiles) == 2
        assert alice.name == "Alice B."
        assert alice.created_at == T0
        assert alice.updated_at == T1

    def test_missing_ids_are_generated(self):
        s = HoursState()
        saved = save_profile(s, {
            "name": "Carol",
            "hourlyRates": [{"label": "Standard", "rate": 15}],
            "deductions": [{"name": "Tax", "amount": 5, "kind": "fixed"}],
        })

        assert saved.id
        assert saved.hourly_rates[0].id
        assert saved.deductions[0].id

    def test_invalid_profile_not_saved(self, state):
        with pytest.raises(ProfileValidationError) as exc:
            save_profile(state, {"id": "x", "name": "", "hourly_rates": []})

        assert len(exc.value.errors) >= 2
        assert [p.id for p in state.profiles] == ["alice", "bob"]

    def test_schema_error_is_validation_error(self, state):
        with pytest.raises(ProfileValidationError):
            save_profile(state, {"id": "x", "name": "X", "hourly_rates": [{"id": "r", "label": "R", "rate": 1}], "bogus": 1})

    def test_new_deductions_default_to_applied(self, state):
        assert state.applied == {"alice": {"tax": True}, "bob": {}}

    def test_toggle_survives_profile_update(self, state):
        set_deduction_applied(state, "alice", "tax", False)
        save_profile(state, {**ALICE, "name": "Alice 2"})

        assert state.applied_state.is_applied("alice", "tax") is False

    def test_toggle_unknown_deduction(self, state):
        with pytest.raises(ProfileNotFoundError):
            set_deduction_applied(state, "alice", "nope", False)

    def test_get_unknown_profile(self, state):
        with pytest.raises(ProfileNotFoundError):
            state.get_profile("ghost")


class TestDeleteProfile:

    def test_cascades_time_entries(self, state):
        add_time_entry(state, "alice", "std", date(2025, 3, 1), 2)
        add_time_entry(state, "alice", "std", date(2025, 3, 2), 3)
        add_time_entry(state, "bob", "std", date(2025, 3, 1), 1)

        removed = delete_profile(state, "alice")

        assert removed == 2
        assert [p.id for p in state.profiles] == ["bob"]
        assert all(e.profile_id == "bob" for e in state.time_entries)
        assert "alice" not in state.applied

    def test_unknown_profile(self, state):
        with pytest.raises(ProfileNotFoundError):
            delete_profile(state, "ghost")

    def test_recipient_deleted_leaves_dangling_reference(self, state):
        save_profile(state, {**ALICE, "deductions": [
            {"id": "tax", "name": "Tax", "amount": 10, "kind": "percentage", "recipient_profile_id": "bob"},
        ]})
        add_time_entry(state, "alice", "std", date(2025, 3, 1), 10)

        delete_profile(state, "bob")
        report = calculate(state.profiles, state.time_entries, state.applied_state)

        assert report.result_for("alice").net_amount == pytest.approx(180)


class TestTimeEntries:

    def test_add_entry(self, state):
        entry = add_time_entry(state, "alice", "std", date(2025, 3, 1), 7.5, "  sprint  ")

        assert entry.id
        assert entry.description == "sprint"
        assert state.time_entries == [entry]

    @pytest.mark.parametrize("hours", [0, -1, float("nan"), float("inf")])
    def test_hours_must_be_positive(self, state, hours):
        with pytest.raises(TimeEntryValidationError):
            add_time_entry(state, "alice", "std", date(2025, 3, 1), hours)
        assert state.time_entries == []

    def test_unknown_profile(self, state):
        with pytest.raises(TimeEntryValidationError):
            add_time_entry(state, "ghost", "std", date(2025, 3, 1), 1)

    def test_unknown_rate(self, state):
        with pytest.raises(TimeEntryValidationError):
            add_time_entry(state, "alice", "overtime", date(2025, 3, 1), 1)

    def test_delete_entry(self, state):
        entry = add_time_entry(state, "alice", "std", date(2025, 3, 1), 1)

        removed = delete_time_entry(state, entry.id)

        assert removed.id == entry.id
        assert state.time_entries == []

    def test_delete_unknown_entry(self, state):
        with pytest.raises(EntryNotFoundError):
            delete_time_entry(state, "nope")


class TestPersistence:

    def test_missing_file_is_empty_state(self, tmp_path):
        state = load_state(tmp_path / "state.json")

        assert state.profiles == []
        assert state.time_entries == []

    def test_save_then_load(self, state, tmp_path):
        add_time_entry(state, "alice", "std", date(2025, 3, 1), 2)
        set_deduction_applied(state, "alice", "tax", False)
        path = tmp_path / "state.json"

        save_state(state, path)
        loaded = load_state(path)

        assert loaded.profiles == state.profiles
        assert loaded.time_entries == state.time_entries
        assert loaded.applied == state.applied
        assert not (tmp_path / "state.json.tmp").exists()

    def test_state_file_uses_camel_case(self, state, tmp_path):
        path = save_state(state, tmp_path / "state.json")

        data = json.loads(path.read_text())
        assert "timeEntries" in data
        assert "hourlyRates" in data["profiles"][0]

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")

        with pytest.raises(DataImportError):
            load_state(path)


class TestExportImport:

    def test_export_includes_derived_figures(self, state):
        add_time_entry(state, "alice", "std", date(2025, 3, 1), 2)

        doc = json.loads(export_document(state, now=T1))

        assert doc["version"] == "2.0"
        assert doc["exportDate"].startswith("2025-02-01")
        assert doc["calculations"][0]["netAmount"] == pytest.approx(36)
        assert "clientPayment" in doc
        assert "paymentDistribution" in doc

    def test_export_import_preserves_results(self, state):
        add_time_entry(state, "alice", "std", date(2025, 3, 1), 2)
        add_time_entry(state, "bob", "std", date(2025, 3, 2), 4)
        set_deduction_applied(state, "alice", "tax", False)
        before = calculate(state.profiles, state.time_entries, state.applied_state)

        imported = import_document(export_document(state)).state
        after = calculate(imported.profiles, imported.time_entries, imported.applied_state)

        assert imported.profiles == state.profiles
        assert after.to_wire() == before.to_wire()

    def test_invalid_json(self):
        with pytest.raises(DataImportError) as exc:
            import_document("{oops")

        assert "invalid JSON" in exc.value.errors[0]

    def test_not_an_object(self):
        with pytest.raises(DataImportError):
            import_document("[1, 2, 3]")

    def test_unknown_top_level_key(self):
        with pytest.raises(DataImportError) as exc:
            import_document(json.dumps({"profiles": [], "timeEntries": [], "surprise": 1}))

        assert "unknown top-level key 'surprise'" in exc.value.errors

    def test_entry_for_unknown_profile(self):
        doc = {
            "profiles": [],
            "timeEntries": [{"id": "e", "profileId": "ghost", "hourlyRateId": "std", "date": "2025-01-01", "hours": 1}],
        }

        with pytest.raises(DataImportError) as exc:
            import_document(json.dumps(doc))

        assert any("unknown profile 'ghost'" in e for e in exc.value.errors)

    def test_schema_errors_are_all_reported(self):
        doc = {
            "profiles": [{"id": "a", "name": "A"}, {"name": "no id"}],
            "timeEntries": [{"id": "e", "profileId": "a", "hourlyRateId": "std", "date": "bad", "hours": -1}],
        }

        with pytest.raises(DataImportError) as exc:
            import_document(json.dumps(doc))

        assert any(e.startswith("profiles[1]") for e in exc.value.errors)
        assert any(e.startswith("timeEntries[0]") for e in exc.value.errors)

    def test_unknown_rate_is_warning(self):
        doc = {
            "profiles": [{"id": "a", "name": "A", "hourlyRates": [{"id": "std", "label": "S", "rate": 10}]}],
            "timeEntries": [{"id": "e", "profileId": "a", "hourlyRateId": "old", "date": "2025-01-01", "hours": 1}],
        }

        result = import_document(json.dumps(doc))

        assert len(result.state.time_entries) == 1
        assert any("unknown rate 'old'" in w for w in result.warnings)

    def test_applied_for_unknown_profiles_is_dropped(self):
        doc = {
            "profiles": [{"id": "a", "name": "A", "hourlyRates": [{"id": "std", "label": "S", "rate": 10}]}],
            "timeEntries": [],
            "applied": {"a": {}, "gone": {"x": False}},
        }

        result = import_document(json.dumps(doc))

        assert result.state.applied == {"a": {}}

    def test_invalid_profile_configuration_rejected(self):
        """Profiles go through the same checks as a save."""
        doc = {
            "profiles": [{
                "id": "a",
                "name": "A",
                "hourlyRates": [{"id": "std", "label": "S", "rate": 10}],
                "deductions": [
                    {"id": "s1", "name": "Salary", "amount": 5, "kind": "fixed", "role": "salary"},
                    {"id": "s2", "name": "Salary 2", "amount": 6, "kind": "fixed", "role": "salary", "priority": 1},
                ],
            }],
            "timeEntries": [],
        }

        with pytest.raises(DataImportError) as exc:
            import_document(json.dumps(doc))

        assert "profiles[0]: at most one 'salary' deduction allowed (found 2)" in exc.value.errors

    def test_self_recipient_rejected(self):
        doc = {
            "profiles": [{
                "id": "a",
                "name": "A",
                "hourlyRates": [{"id": "std", "label": "S", "rate": 10}],
                "deductions": [
                    {"id": "d", "name": "Fee", "amount": 5, "kind": "percentage", "recipientProfileId": "a"},
                ],
            }],
            "timeEntries": [],
        }

        with pytest.raises(DataImportError) as exc:
            import_document(json.dumps(doc))

        assert any("recipient cannot be the profile itself" in e for e in exc.value.errors)

    def test_unknown_recipient_still_imports(self):
        doc = {
            "profiles": [{
                "id": "a",
                "name": "A",
                "hourlyRates": [{"id": "std", "label": "S", "rate": 10}],
                "deductions": [
                    {"id": "d", "name": "Fee", "amount": 5, "kind": "percentage", "recipientProfileId": "gone"},
                ],
            }],
            "timeEntries": [],
        }

        result = import_document(json.dumps(doc))

        assert len(result.state.profiles) == 1
        assert any("unknown recipient 'gone'" in w for w in result.warnings)


class TestLegacyMigration:

    def test_v1_document(self):
        """Single hourlyRate, hoursEntries, deduction type and ISO timestamps."""
        doc = {
            "profiles": [{
                "id": "p1",
                "name": "Legacy",
                "hourlyRate": 25,
                "deductionType": "sequential",
                "deductions": [
                    {"id": "d1", "name": "Salary", "amount": 10, "type": "fixed", "priority": 0},
                    {"id": "d2", "name": "MGMT Fee", "amount": 10, "type": "percentage", "priority": 1},
                    {"id": "d3", "name": "Profit Share 50%", "amount": 50, "type": "percentage", "priority": 2},
                ],
            }],
            "hoursEntries": [
                {"id": "h1", "profileId": "p1", "date": "2024-03-01T00:00:00.000Z", "hours": 4},
            ],
            "exportDate": "2024-03-02T10:00:00.000Z",
            "version": "1.0",
        }

        result = import_document(json.dumps(doc))
        state = result.state
        profile = state.get_profile("p1")

        assert profile.hourly_rates[0].id == "standard"
        assert profile.hourly_rates[0].rate == 25
        assert [d.role for d in profile.deductions] == ["salary", "management_fee", "profit_share"]
        assert [d.kind for d in profile.deductions] == ["fixed", "percentage", "percentage"]
        assert state.time_entries[0].hourly_rate_id == "standard"
        assert state.time_entries[0].date == date(2024, 3, 1)
        assert state.applied == {"p1": {"d1": True, "d2": True, "d3": True}}
        assert any("deduction_mode=independent" in w for w in result.warnings)

    def test_v1_percentage_salary_becomes_generic(self):
        doc = {
            "profiles": [{
                "id": "p1",
                "name": "Legacy",
                "hourlyRate": 25,
                "deductions": [{"id": "d1", "name": "Salary", "amount": 40, "type": "percentage"}],
            }],
            "hoursEntries": [],
        }

        result = import_document(json.dumps(doc))

        assert result.state.get_profile("p1").deductions[0].role == "generic"
        assert not any("deduction_mode" in w for w in result.warnings)

    def test_index_based_client_rate_link(self):
        doc = {
            "profiles": [{
                "id": "p1",
                "name": "P",
                "hourlyRates": [
                    {"id": "r-a", "label": "Day", "rate": 20},
                    {"id": "r-b", "label": "Night", "rate": 30},
                ],
                "clientRates": [{"id": "c1", "label": "Night", "rate": 70, "employeeRateId": 1}],
            }],
            "timeEntries": [],
        }

        profile = import_document(json.dumps(doc)).state.get_profile("p1")

        assert profile.client_rates[0].employee_rate_id == "r-b"

    def test_explicit_role_is_kept(self):
        doc = {
            "profiles": [{
                "id": "p1",
                "name": "P",
                "hourlyRates": [{"id": "r", "label": "R", "rate": 20}],
                "deductions": [{"id": "d", "name": "Salary advance", "amount": 5, "kind": "fixed", "role": "generic"}],
            }],
            "timeEntries": [],
        }

        profile = import_document(json.dumps(doc)).state.get_profile("p1")

        assert profile.deductions[0].role == "generic"


@pytest.mark.parametrize("name,role", [
    ("Salary", "salary"),
    ("MGMT Fee", "management_fee"),
    ("Profit share (partner)", "profit_share"),
    ("Income tax", "generic"),
    ("", "generic"),
])
def test_infer_role(name, role):
    assert infer_role(name) == role
