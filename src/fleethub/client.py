"""High-level async client for the fleet document store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any

import aiohttp

from fleethub._api import auth as _auth_api
from fleethub._api import documents as _documents_api
from fleethub._api.values import decode_value
from fleethub._listener import ErrorCallback, SnapshotCallback, SnapshotListener, Subscription
from fleethub._transport import RestTransport, Transport
from fleethub.config import FleetConfig, LogAppendMode
from fleethub.exceptions import (
    FleetAuthenticationError,
    FleetDataSetupError,
    FleetError,
    FleetFetchError,
    FleetWriteError,
)
from fleethub.ingestion.documents import snapshot_from_documents
from fleethub.models._base import FleetBaseModel
from fleethub.models.snapshot import InventorySnapshot
from fleethub.models.token import AuthToken
from fleethub.models.vehicle import Vehicle
from fleethub.session import Session

_logger = logging.getLogger(__name__)


def _to_plain(value: Any) -> Any:
    if isinstance(value, FleetBaseModel):
        return value.to_document()
    return value


class FleetStoreClient:
    """Async client for the vehicle collection.

    The client is the session context shared by the synchronizer and the
    form controller: it owns the HTTP session, the signed-in identity and
    every live subscription it handed out.

    Usage::

        async with FleetStoreClient(config) as client:
            await client.authenticate()
            await client.ensure_seeded(DEFAULT_FLEET)
            unsubscribe = client.subscribe(on_snapshot, on_error)
    """

    def __init__(
        self,
        config: FleetConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = transport
        self._external_transport = transport is not None
        self._session: Session | None = None
        self._subscriptions: list[Subscription] = []
        self._connected = False

    @property
    def config(self) -> FleetConfig:
        return self._config

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def user_id(self) -> str | None:
        return self._session.user_id if self._session is not None else None

    @property
    def is_connected(self) -> bool:
        return self._connected

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FleetStoreClient:
        return await self.connect()

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def connect(self) -> FleetStoreClient:
        """Validate the backend configuration and open the HTTP session.

        Raises
        ------
        FleetConfigError
            The backend configuration is missing or incomplete.
        """
        self._config.validate()
        if self._connected:
            return self
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = RestTransport(self._http_session)
        self._connected = True
        _logger.info(
            "Connected to project %s, collection %s",
            self._config.firebase.project_id,
            self._config.collection_path,
        )
        return self

    async def close(self) -> None:
        """Cancel every subscription and release the HTTP session. Idempotent."""
        subscriptions = self._subscriptions
        self._subscriptions = []
        for subscription in subscriptions:
            subscription.cancel()
        for subscription in subscriptions:
            await subscription.wait_closed()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._external_transport:
            self._transport = None
        self._connected = False

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def authenticate(self) -> str:
        """Sign in and return the user id.

        Uses ``config.initial_auth_token`` when present and falls back to an
        anonymous identity if that fails or no token was given.

        Raises
        ------
        FleetAuthenticationError
            Every sign-in path failed.
        """
        transport = self._require_transport()
        token: AuthToken | None = None
        if self._config.initial_auth_token:
            try:
                token = await _auth_api.sign_in_with_custom_token(
                    self._config, transport, self._config.initial_auth_token
                )
            except FleetAuthenticationError as exc:
                _logger.warning("Custom token sign-in failed, falling back to anonymous: %s", exc)
        if token is None:
            token = await _auth_api.sign_in_anonymously(self._config, transport)

        self._session = self._session_from_token(token)
        _logger.info("Signed in as %s (anonymous=%s)", token.user_id, token.anonymous)
        return token.user_id

    async def ensure_session(self) -> Session | None:
        """Return the current session, refreshing the ID token when near expiry.

        Returns ``None`` when no identity was established; requests are then
        sent unauthenticated. A failed refresh keeps the old session.
        """
        session = self._session
        if session is None:
            return None
        if not session.refresh_token or not session.expires_within(self._config.token_refresh_margin):
            return session
        try:
            token = await _auth_api.refresh_id_token(
                self._config,
                self._require_transport(),
                session.refresh_token,
                anonymous=session.anonymous,
            )
        except FleetAuthenticationError as exc:
            _logger.warning("Token refresh failed: %s", exc)
            return session
        self._session = self._session_from_token(token)
        return self._session

    def invalidate_session(self) -> None:
        """Forget the signed-in identity."""
        self._session = None

    @staticmethod
    def _session_from_token(token: AuthToken) -> Session:
        return Session(
            user_id=token.user_id,
            id_token=token.id_token,
            refresh_token=token.refresh_token,
            anonymous=token.anonymous,
            ttl=token.expires_in,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> Transport:
        if self._transport is None or not self._connected:
            raise FleetError("Client not connected. Use 'async with FleetStoreClient(...) as client:'")
        return self._transport

    async def _bearer(self) -> str | None:
        session = await self.ensure_session()
        return session.id_token if session is not None else None

    async def _fetch_documents(self) -> tuple[list[dict[str, Any]], datetime | None]:
        return await _documents_api.run_collection_query(
            self._config,
            self._require_transport(),
            bearer=await self._bearer(),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def collection_is_empty(self) -> bool:
        documents, _ = await _documents_api.run_collection_query(
            self._config,
            self._require_transport(),
            bearer=await self._bearer(),
            limit=1,
        )
        return not documents

    async def fetch_inventory(self) -> InventorySnapshot:
        """One-shot read of the whole collection.

        Raises
        ------
        FleetFetchError
            The collection could not be read.
        """
        try:
            documents, read_time = await self._fetch_documents()
        except FleetError as exc:
            raise FleetFetchError(f"Failed to fetch vehicle data: {exc}") from exc
        return snapshot_from_documents(documents, read_time=read_time)

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    async def ensure_seeded(self, fixtures: Iterable[Vehicle]) -> bool:
        """Write *fixtures* as one batch if the collection has no documents.

        Returns ``True`` when the batch was written. The emptiness check and
        the batch are not one transaction; a concurrent seeder can still
        race this one.

        Raises
        ------
        FleetDataSetupError
            The emptiness check or the batch write failed.
        """
        try:
            if not await self.collection_is_empty():
                _logger.debug("Collection %s already populated, skipping seed", self._config.collection_path)
                return False
            writes = [
                _documents_api.build_create_write(
                    self._config,
                    _documents_api.new_document_id(),
                    vehicle.to_document(),
                )
                for vehicle in fixtures
            ]
            if not writes:
                return False
            await _documents_api.commit(
                self._config,
                self._require_transport(),
                writes,
                bearer=await self._bearer(),
            )
        except FleetError as exc:
            raise FleetDataSetupError(f"Failed to set up vehicle data: {exc}") from exc
        _logger.info("Seeded %d vehicles into %s", len(writes), self._config.collection_path)
        return True

    # ------------------------------------------------------------------
    # Live subscription
    # ------------------------------------------------------------------

    def subscribe(self, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> Subscription:
        """Start a live listener on the vehicle collection.

        The returned :class:`Subscription` is always callable. If the
        listener cannot be started, *on_error* is invoked and the handle is
        returned already inert.
        """
        subscription = Subscription()
        try:
            self._require_transport()
            loop = asyncio.get_running_loop()
        except (FleetError, RuntimeError) as exc:
            subscription.cancel()
            error = FleetFetchError(f"Failed to start vehicle subscription: {exc}")
            error.__cause__ = exc
            try:
                on_error(error)
            except Exception:
                _logger.warning("Error callback failed", exc_info=True)
            return subscription

        listener = SnapshotListener(
            self._fetch_documents,
            subscription=subscription,
            on_snapshot=on_snapshot,
            on_error=on_error,
            poll_interval=self._config.poll_interval,
            retry_attempts=self._config.listen_retry_attempts,
        )
        subscription.attach(loop.create_task(listener.run(), name="fleethub-listener"))
        self._subscriptions = [s for s in self._subscriptions if not s.cancelled]
        self._subscriptions.append(subscription)
        return subscription

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def update_fields(
        self,
        vehicle_id: str,
        fields: Mapping[str, Any],
        *,
        array_union: Mapping[str, Sequence[Any]] | None = None,
    ) -> None:
        """Merge *fields* into an existing vehicle document.

        Keys not named in *fields* are left untouched. Each *array_union*
        entry appends its items to the named array field in the same write;
        duplicate handling follows ``config.log_append_mode``.

        Raises
        ------
        FleetWriteError
            The write was rejected or could not be sent.
        """
        plain_fields = {key: _to_plain(value) for key, value in fields.items()}
        plain_unions = {key: [_to_plain(item) for item in items] for key, items in (array_union or {}).items()}
        try:
            if plain_unions and self._config.log_append_mode is LogAppendMode.APPEND:
                write = await self._build_append_write(vehicle_id, plain_fields, plain_unions)
            else:
                write = _documents_api.build_update_write(
                    self._config,
                    vehicle_id,
                    plain_fields,
                    array_union=plain_unions or None,
                )
            await _documents_api.commit(
                self._config,
                self._require_transport(),
                [write],
                bearer=await self._bearer(),
            )
        except FleetError as exc:
            raise FleetWriteError(f"Failed to update vehicle {vehicle_id}: {exc}", vehicle_id=vehicle_id) from exc
        _logger.debug("Updated vehicle %s fields=%s", vehicle_id, sorted([*plain_fields, *plain_unions]))

    async def _build_append_write(
        self,
        vehicle_id: str,
        fields: dict[str, Any],
        unions: dict[str, list[Any]],
    ) -> dict[str, Any]:
        """Read-modify-write append that keeps value-equal duplicates.

        The write carries the read's ``updateTime`` as a precondition, so a
        concurrent change makes it fail instead of dropping entries.
        """
        document = await _documents_api.get_document(
            self._config,
            self._require_transport(),
            vehicle_id,
            bearer=await self._bearer(),
        )
        stored = document.get("fields") or {}
        merged = dict(fields)
        for key, items in unions.items():
            current = decode_value(stored[key]) if key in stored else []
            if not isinstance(current, list):
                current = []
            merged[key] = [*current, *items]
        update_time = document.get("updateTime")
        return _documents_api.build_update_write(
            self._config,
            vehicle_id,
            merged,
            update_time=str(update_time) if update_time else None,
        )
