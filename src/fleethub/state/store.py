"""In-memory inventory state.

This is the only component allowed to replace the local vehicle set.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict

from fleethub.models.snapshot import InventorySnapshot
from fleethub.models.vehicle import Vehicle
from fleethub.state.phase import SyncPhase, can_transition

_logger = logging.getLogger(__name__)


class InventoryView(BaseModel):
    """Immutable copy of the state handed to renderers and observers."""

    model_config = ConfigDict(frozen=True)

    phase: SyncPhase
    vehicles: tuple[Vehicle, ...] = ()
    selected: Vehicle | None = None
    error_message: str | None = None
    is_auth_ready: bool = False
    user_id: str | None = None

    @property
    def is_loading(self) -> bool:
        return self.phase in (SyncPhase.INITIALIZING, SyncPhase.AUTHENTICATING, SyncPhase.SEEDING)


class InventoryStore:
    """Derived local state for one dashboard.

    Snapshots replace the vehicle set wholesale. The open detail selection
    is re-pointed at the matching vehicle of each new snapshot; when the
    vehicle is missing from it the previous copy stays selected.
    """

    def __init__(self) -> None:
        self._phase = SyncPhase.INITIALIZING
        self._snapshot = InventorySnapshot()
        self._selected: Vehicle | None = None
        self._error_message: str | None = None
        self._is_auth_ready = False
        self._user_id: str | None = None

    @property
    def phase(self) -> SyncPhase:
        return self._phase

    @property
    def snapshot(self) -> InventorySnapshot:
        return self._snapshot

    @property
    def selected(self) -> Vehicle | None:
        return self._selected

    @property
    def error_message(self) -> str | None:
        return self._error_message

    def transition(self, target: SyncPhase) -> bool:
        """Move to *target* if allowed; returns whether the phase changed."""
        if not can_transition(self._phase, target):
            _logger.debug("Ignoring phase change %s -> %s", self._phase, target)
            return False
        _logger.info("Inventory phase %s -> %s", self._phase, target)
        self._phase = target
        return True

    def fail(self, message: str) -> bool:
        """Enter the error phase with a user-facing *message*."""
        if not self.transition(SyncPhase.ERROR):
            return False
        self._error_message = message
        return True

    def mark_auth_ready(self, user_id: str | None) -> None:
        self._is_auth_ready = True
        self._user_id = user_id

    def apply_snapshot(self, snapshot: InventorySnapshot) -> bool:
        """Replace the vehicle set; returns ``False`` once the store has failed."""
        if self._phase is SyncPhase.ERROR:
            return False
        self._snapshot = snapshot
        if self._selected is not None:
            fresh = snapshot.get(self._selected.id)
            if fresh is not None:
                self._selected = fresh
        return True

    def get(self, vehicle_id: str) -> Vehicle | None:
        return self._snapshot.get(vehicle_id)

    def select(self, vehicle_id: str) -> Vehicle | None:
        """Open the detail view for *vehicle_id* using the latest snapshot."""
        vehicle = self._snapshot.get(vehicle_id)
        if vehicle is not None:
            self._selected = vehicle
        return vehicle

    def clear_selection(self) -> None:
        self._selected = None

    def view(self) -> InventoryView:
        return InventoryView(
            phase=self._phase,
            vehicles=self._snapshot.vehicles,
            selected=self._selected,
            error_message=self._error_message,
            is_auth_ready=self._is_auth_ready,
            user_id=self._user_id,
        )
