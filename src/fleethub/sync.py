"""Inventory synchronizer.

Drives the dashboard lifecycle against a :class:`FleetStoreClient`::

    initializing -> authenticating -> seeding -> subscribed

Any phase may instead move to ``error``, which is terminal.
Authentication failures are logged and do not stop the sequence; the
phase still advances once sign-in has been attempted so the listing can
come up without a confirmed identity. Configuration, seeding and fetch
failures are terminal and leave a user-facing message in the state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

from fleethub.client import FleetStoreClient
from fleethub.exceptions import (
    FleetAuthenticationError,
    FleetConfigError,
    FleetDataSetupError,
    FleetFetchError,
    FleetWriteError,
)
from fleethub.fixtures import DEFAULT_FLEET
from fleethub.models.snapshot import InventorySnapshot
from fleethub.models.vehicle import Vehicle
from fleethub.state.phase import SyncPhase
from fleethub.state.store import InventoryStore, InventoryView

_logger = logging.getLogger(__name__)

StateListener = Callable[[InventoryView], None]

CONFIG_ERROR_MESSAGE = "Backend configuration is missing. Vehicle data cannot be loaded."
SETUP_ERROR_MESSAGE = "Failed to set up vehicle data."
FETCH_ERROR_MESSAGE = "Failed to fetch vehicle data."


def _noop() -> None:
    return None


class InventorySynchronizer:
    """Keeps an :class:`InventoryStore` in step with the vehicle collection.

    Usage::

        async with FleetStoreClient(config) as client:
            sync = InventorySynchronizer(client)
            sync.add_listener(render)
            await sync.start()
            ...
            await sync.close()
    """

    def __init__(
        self,
        client: FleetStoreClient,
        *,
        fixtures: Iterable[Vehicle] = DEFAULT_FLEET,
        store: InventoryStore | None = None,
    ) -> None:
        self._client = client
        self._fixtures = tuple(fixtures)
        self._store = store if store is not None else InventoryStore()
        self._listeners: list[StateListener] = []
        # Replaced by the real handle once subscribed; close() may run first.
        self._unsubscribe: Callable[[], None] = _noop
        self._closed = False

    async def __aenter__(self) -> InventorySynchronizer:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    @property
    def store(self) -> InventoryStore:
        return self._store

    @property
    def phase(self) -> SyncPhase:
        return self._store.phase

    @property
    def closed(self) -> bool:
        return self._closed

    def view(self) -> InventoryView:
        return self._store.view()

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def add_listener(self, listener: StateListener) -> Callable[[], None]:
        """Call *listener* with a fresh view after every state change.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _notify(self) -> None:
        view = self._store.view()
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception:
                _logger.warning("State listener failed", exc_info=True)

    def _fail(self, message: str) -> None:
        if self._store.fail(message):
            self._notify()

    def _advance(self, phase: SyncPhase) -> None:
        if self._store.transition(phase):
            self._notify()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Run connect → authenticate → seed → subscribe.

        Returns once subscribed or failed. If :meth:`close` runs while a
        step is in flight, no later step is started.
        """
        if self._closed or self._store.phase is not SyncPhase.INITIALIZING:
            return

        try:
            await self._client.connect()
        except FleetConfigError as exc:
            _logger.error("Cannot connect: %s", exc)
            self._fail(CONFIG_ERROR_MESSAGE)
            return
        if self._closed:
            return
        self._advance(SyncPhase.AUTHENTICATING)

        user_id: str | None = None
        try:
            user_id = await self._client.authenticate()
        except FleetAuthenticationError as exc:
            _logger.error("Authentication failed, continuing without an identity: %s", exc)
        self._store.mark_auth_ready(user_id)
        if self._closed:
            return
        self._advance(SyncPhase.SEEDING)

        try:
            await self._client.ensure_seeded(self._fixtures)
        except FleetDataSetupError as exc:
            _logger.error("Seeding failed: %s", exc)
            self._fail(SETUP_ERROR_MESSAGE)
            return
        if self._closed:
            return
        self._advance(SyncPhase.SUBSCRIBED)

        self._unsubscribe = self._client.subscribe(self._handle_snapshot, self._handle_error)

    async def close(self) -> None:
        """Stop the subscription. Safe to call repeatedly and before :meth:`start`."""
        self._closed = True
        unsubscribe = self._unsubscribe
        self._unsubscribe = _noop
        unsubscribe()

    def _handle_snapshot(self, snapshot: InventorySnapshot) -> None:
        if self._closed:
            return
        if self._store.apply_snapshot(snapshot):
            _logger.debug("Snapshot applied: %d vehicles", len(snapshot))
            self._notify()

    def _handle_error(self, exc: FleetFetchError) -> None:
        if self._closed:
            return
        _logger.error("Vehicle subscription failed: %s", exc)
        self._fail(FETCH_ERROR_MESSAGE)

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def open_detail(self, vehicle_id: str) -> Vehicle | None:
        """Open the hub for *vehicle_id* with its latest stored fields."""
        vehicle = self._store.select(vehicle_id)
        if vehicle is None:
            _logger.debug("Cannot open unknown vehicle %s", vehicle_id)
            return None
        self._notify()
        return vehicle

    def close_detail(self) -> None:
        self._store.clear_selection()
        self._notify()

    async def toggle_status(self, vehicle_id: str) -> bool:
        """Flip ``Available`` ↔ ``Rented``.

        The change shows up with the next snapshot. Write failures are
        logged and reported only through the return value.
        """
        vehicle = self._store.get(vehicle_id)
        if vehicle is None:
            _logger.warning("Cannot toggle unknown vehicle %s", vehicle_id)
            return False
        try:
            await self._client.update_fields(vehicle_id, {"status": vehicle.status.flipped.value})
        except FleetWriteError:
            _logger.warning("Status toggle for %s failed", vehicle_id, exc_info=True)
            return False
        return True
