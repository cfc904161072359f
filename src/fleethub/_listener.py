"""Live collection listener.

The document REST API has no public streaming listen channel, so a
subscription is an asyncio task that re-reads the collection every
``poll_interval`` seconds and emits an :class:`InventorySnapshot` whenever
the set of ``(document name, updateTime)`` pairs changes.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from fleethub._constants import RETRYABLE_STATUSES
from fleethub.exceptions import FleetApiError, FleetError, FleetFetchError, FleetTransportError
from fleethub.ingestion.documents import snapshot_from_documents
from fleethub.models.snapshot import InventorySnapshot

_logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[InventorySnapshot], None]
ErrorCallback = Callable[[FleetFetchError], None]
FetchDocuments = Callable[[], Awaitable[tuple[list[dict[str, Any]], datetime | None]]]


class Subscription:
    """Handle returned by :meth:`FleetStoreClient.subscribe`.

    Calling the handle (or :meth:`cancel`) stops the listener. It is safe to
    call any number of times, and before the listener task has been
    attached; once cancelled no callback fires again.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._task: asyncio.Task[None] | None = None

    @property
    def active(self) -> bool:
        return not self._cancelled and self._task is not None and not self._task.done()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def attach(self, task: asyncio.Task[None]) -> None:
        if self._cancelled:
            task.cancel()
            return
        self._task = task

    def cancel(self) -> None:
        self._cancelled = True
        task = self._task
        if task is not None and not task.done():
            task.cancel()

    def __call__(self) -> None:
        self.cancel()

    async def wait_closed(self) -> None:
        """Wait for the listener task to finish after :meth:`cancel`."""
        task = self._task
        if task is None:
            return
        with contextlib.suppress(asyncio.CancelledError):
            try:
                await task
            except Exception:
                # Read failures are delivered through on_error.
                _logger.debug("Listener task ended with an error", exc_info=True)


def _fingerprint(documents: list[dict[str, Any]]) -> tuple[tuple[str, str], ...]:
    return tuple((str(doc.get("name", "")), str(doc.get("updateTime", ""))) for doc in documents)


def _is_transient(exc: FleetError) -> bool:
    if isinstance(exc, FleetTransportError):
        return True
    return isinstance(exc, FleetApiError) and exc.code in RETRYABLE_STATUSES


class SnapshotListener:
    """Poll loop behind a :class:`Subscription`."""

    def __init__(
        self,
        fetch: FetchDocuments,
        *,
        subscription: Subscription,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
        poll_interval: float,
        retry_attempts: int,
    ) -> None:
        self._fetch = fetch
        self._subscription = subscription
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._poll_interval = poll_interval
        self._retry_attempts = retry_attempts
        self._last_fingerprint: tuple[tuple[str, str], ...] | None = None

    async def run(self) -> None:
        failures = 0
        while not self._subscription.cancelled:
            try:
                documents, read_time = await self._fetch()
            except FleetError as exc:
                if _is_transient(exc) and failures < self._retry_attempts:
                    failures += 1
                    _logger.debug("Listener read failed (attempt %d), retrying: %s", failures, exc)
                    await asyncio.sleep(self._poll_interval)
                    continue
                self._emit_error(exc)
                return
            except Exception as exc:
                _logger.warning("Unexpected listener read failure", exc_info=True)
                self._emit_error(exc)
                return
            failures = 0

            fingerprint = _fingerprint(documents)
            if fingerprint != self._last_fingerprint:
                self._last_fingerprint = fingerprint
                self._emit_snapshot(snapshot_from_documents(documents, read_time=read_time))

            await asyncio.sleep(self._poll_interval)

    def _emit_snapshot(self, snapshot: InventorySnapshot) -> None:
        if self._subscription.cancelled:
            return
        try:
            self._on_snapshot(snapshot)
        except Exception:
            _logger.warning("Snapshot callback failed", exc_info=True)

    def _emit_error(self, exc: Exception) -> None:
        if self._subscription.cancelled:
            return
        error = FleetFetchError(f"Failed to fetch vehicle data: {str(exc) or type(exc).__name__}")
        error.__cause__ = exc
        _logger.error("Inventory subscription stopped: %s", exc)
        try:
            self._on_error(error)
        except Exception:
            _logger.warning("Error callback failed", exc_info=True)
