"""Per-deduction applied/not-applied toggles.

The toggle state lives apart from the profile definitions so a deduction
can be switched off for calculation without deleting it. Pairs that have
never been seen count as applied.
"""

from typing import Dict, Iterable, Mapping, Optional

from .schemas import Profile


class AppliedState:
    """Mapping of (profile_id, deduction_id) -> applied flag.

    Wraps a nested dict {profile_id: {deduction_id: bool}}, the shape
    stored in state.json and exported documents. The wrapped dict is
    shared, not copied, so the store can hand its own dict in.
    """

    def __init__(self, states: Optional[Dict[str, Dict[str, bool]]] = None):
        self.states = states if states is not None else {}

    @classmethod
    def coerce(cls, value) -> "AppliedState":
        """Accept an AppliedState, a nested mapping, or None."""
        if isinstance(value, AppliedState):
            return value
        if value is None:
            return cls()
        return cls({pid: dict(flags) for pid, flags in value.items()})

    def is_applied(self, profile_id: str, deduction_id: str) -> bool:
        """Lookup without side effects; unseen pairs are applied."""
        return self.states.get(profile_id, {}).get(deduction_id, True)

    def set_applied(self, profile_id: str, deduction_id: str, applied: bool) -> None:
        self.states.setdefault(profile_id, {})[deduction_id] = bool(applied)

    def register(self, profile: Profile) -> None:
        """Record the default (applied) for deductions seen for the first time.

        Flags for deductions no longer on the profile are dropped.
        """
        current = self.states.get(profile.id, {})
        self.states[profile.id] = {
            d.id: current.get(d.id, True) for d in profile.deductions
        }

    def forget(self, profile_id: str) -> None:
        self.states.pop(profile_id, None)

    def prune(self, profile_ids: Iterable[str]) -> None:
        """Drop flags for profiles not in profile_ids."""
        keep = set(profile_ids)
        for pid in list(self.states):
            if pid not in keep:
                del self.states[pid]

    def as_dict(self) -> Dict[str, Dict[str, bool]]:
        return {pid: dict(flags) for pid, flags in self.states.items()}

    def __eq__(self, other) -> bool:
        if isinstance(other, AppliedState):
            return self.states == other.states
        if isinstance(other, Mapping):
            return self.states == dict(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"AppliedState({self.states!r})"
