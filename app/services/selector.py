"""
Center assignment heuristics.

Pure functions over directory records: no I/O, deterministic for a given
input order, so they can be unit tested without any store.
"""

from enum import Enum
from typing import Optional, Sequence

from schemas.service_center import CenterRecord
from services.exceptions import NoCandidateError


class SelectionPolicy(str, Enum):
    LEAST_LOAD = "least_load"
    MAX_FREE_CAPACITY = "max_free_capacity"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SelectionPolicy":
        if not value:
            return cls.LEAST_LOAD
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown center selection policy: {value!r}")


def _least_load(candidates: Sequence[CenterRecord]) -> Optional[CenterRecord]:
    chosen = None
    for center in candidates:
        if not center.id or not center.is_active:
            continue
        # strict `<` keeps the first center on ties
        if chosen is None or center.load < chosen.load:
            chosen = center
    return chosen


def _max_free_capacity(candidates: Sequence[CenterRecord]) -> Optional[CenterRecord]:
    chosen = None
    for center in candidates:
        if not center.id or not center.is_active:
            continue
        if chosen is None or center.free_capacity > chosen.free_capacity:
            chosen = center
    return chosen


_POLICIES = {
    SelectionPolicy.LEAST_LOAD: _least_load,
    SelectionPolicy.MAX_FREE_CAPACITY: _max_free_capacity,
}


def choose_center(
    candidates: Sequence[CenterRecord],
    policy: SelectionPolicy = SelectionPolicy.LEAST_LOAD
) -> CenterRecord:
    """Returns the chosen center record or raises NoCandidateError."""
    chosen = _POLICIES[SelectionPolicy(policy)](candidates or [])
    if chosen is None:
        raise NoCandidateError("No eligible service center available for assignment")
    return chosen


def select_center(
    candidates: Sequence[CenterRecord],
    policy: SelectionPolicy = SelectionPolicy.LEAST_LOAD
) -> str:
    """Returns the id of the chosen center or raises NoCandidateError."""
    return choose_center(candidates, policy).id
