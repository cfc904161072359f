"""Synchronizer lifecycle phases."""

from __future__ import annotations

from enum import StrEnum


class SyncPhase(StrEnum):
    INITIALIZING = "initializing"
    AUTHENTICATING = "authenticating"
    SEEDING = "seeding"
    SUBSCRIBED = "subscribed"
    ERROR = "error"


_TRANSITIONS: dict[SyncPhase, frozenset[SyncPhase]] = {
    SyncPhase.INITIALIZING: frozenset({SyncPhase.AUTHENTICATING, SyncPhase.ERROR}),
    SyncPhase.AUTHENTICATING: frozenset({SyncPhase.SEEDING, SyncPhase.ERROR}),
    SyncPhase.SEEDING: frozenset({SyncPhase.SUBSCRIBED, SyncPhase.ERROR}),
    SyncPhase.SUBSCRIBED: frozenset({SyncPhase.ERROR}),
    SyncPhase.ERROR: frozenset(),
}


def can_transition(current: SyncPhase, target: SyncPhase) -> bool:
    """Whether *current* may move to *target*. ``ERROR`` is terminal."""
    return target in _TRANSITIONS[current]
