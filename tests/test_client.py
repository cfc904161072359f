from __future__ import annotations

import asyncio
import dataclasses
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

import pytest

from fleethub.client import FleetStoreClient
from fleethub.config import FirebaseConfig, FleetConfig, LogAppendMode
from fleethub.exceptions import (
    FleetApiError,
    FleetAuthenticationError,
    FleetConfigError,
    FleetDataSetupError,
    FleetFetchError,
    FleetTransportError,
    FleetWriteError,
)
from fleethub.fixtures import DEFAULT_FLEET
from fleethub.models.snapshot import InventorySnapshot
from fleethub.models.vehicle import ServiceRecord, VehicleStatus

if TYPE_CHECKING:
    from conftest import FakeDocumentBackend


async def wait_for(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


def _seed_one(backend: FakeDocumentBackend, doc_id: str = "car-1") -> None:
    backend.put(doc_id, DEFAULT_FLEET[0].to_document())


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_connect_rejects_missing_backend_config(backend: FakeDocumentBackend) -> None:
    config = FleetConfig(firebase=FirebaseConfig(), app_id="test-app")
    client = FleetStoreClient(config, transport=backend)

    with pytest.raises(FleetConfigError):
        await client.connect()

    assert not client.is_connected
    assert backend.calls == {}


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_custom_token_sign_in_and_bearer_forwarded(config: FleetConfig, backend: FakeDocumentBackend) -> None:
    config = dataclasses.replace(config, initial_auth_token="pre-issued")
    async with FleetStoreClient(config, transport=backend) as client:
        user_id = await client.authenticate()
        await client.fetch_inventory()

    assert user_id == "custom-user"
    assert backend.calls.get("signUp") is None
    assert backend.bearers[-1] == client.session.id_token  # type: ignore[union-attr]


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_rejected_custom_token_falls_back_to_anonymous(config: FleetConfig, backend: FakeDocumentBackend) -> None:
    config = dataclasses.replace(config, initial_auth_token="expired")
    backend.custom_token_fails = True
    async with FleetStoreClient(config, transport=backend) as client:
        user_id = await client.authenticate()

    assert user_id == "anon-user"
    assert backend.calls["signInWithCustomToken"] == 1
    assert backend.calls["signUp"] == 1


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_all_sign_in_paths_failing_raises(config: FleetConfig, backend: FakeDocumentBackend) -> None:
    backend.anonymous_fails = True
    async with FleetStoreClient(config, transport=backend) as client:
        with pytest.raises(FleetAuthenticationError) as exc_info:
            await client.authenticate()
        assert client.user_id is None

    assert exc_info.value.code == "ADMIN_ONLY_OPERATION"


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_near_expiry_session_is_refreshed(config: FleetConfig, backend: FakeDocumentBackend) -> None:
    config = dataclasses.replace(config, token_refresh_margin=7200.0)
    async with FleetStoreClient(config, transport=backend) as client:
        await client.authenticate()
        session = await client.ensure_session()

    assert backend.calls["token"] == 1
    assert session is not None
    assert session.refresh_token == "refresh-3"


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_seed_writes_fixtures_once(config: FleetConfig, backend: FakeDocumentBackend) -> None:
    async with FleetStoreClient(config, transport=backend) as client:
        await client.authenticate()
        first = await client.ensure_seeded(DEFAULT_FLEET)
        second = await client.ensure_seeded(DEFAULT_FLEET)
        snapshot = await client.fetch_inventory()

    assert first is True
    assert second is False
    assert backend.calls["commit"] == 1
    assert len(backend.ids()) == len(DEFAULT_FLEET)
    assert all(len(doc_id) == 20 for doc_id in backend.ids())
    assert sorted(v.name for v in snapshot.vehicles) == sorted(v.name for v in DEFAULT_FLEET)


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_seed_skipped_when_collection_has_documents(config: FleetConfig, backend: FakeDocumentBackend) -> None:
    _seed_one(backend)
    async with FleetStoreClient(config, transport=backend) as client:
        assert await client.ensure_seeded(DEFAULT_FLEET) is False

    assert backend.ids() == ["car-1"]
    assert "commit" not in backend.calls


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_seed_failure_raises_data_setup_error(config: FleetConfig, backend: FakeDocumentBackend) -> None:
    backend.commit_error = FleetApiError("denied", code="PERMISSION_DENIED", status_code=403)
    async with FleetStoreClient(config, transport=backend) as client:
        with pytest.raises(FleetDataSetupError, match="Failed to set up vehicle data"):
            await client.ensure_seeded(DEFAULT_FLEET)


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_fetch_skips_malformed_documents(config: FleetConfig, backend: FakeDocumentBackend) -> None:
    _seed_one(backend, "car-1")
    backend.put("car-2", {"name": "Broken", "status": "Scrapped"})
    async with FleetStoreClient(config, transport=backend) as client:
        snapshot = await client.fetch_inventory()

    assert [v.id for v in snapshot.vehicles] == ["car-1"]
    assert snapshot.skipped_ids == ("car-2",)


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_fetch_failure_raises_fetch_error(config: FleetConfig, backend: FakeDocumentBackend) -> None:
    backend.query_errors.append(FleetApiError("denied", code="PERMISSION_DENIED", status_code=403))
    async with FleetStoreClient(config, transport=backend) as client:
        with pytest.raises(FleetFetchError, match="Failed to fetch vehicle data"):
            await client.fetch_inventory()


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_update_merges_only_named_fields(config: FleetConfig, backend: FakeDocumentBackend) -> None:
    _seed_one(backend)
    before = backend.data("car-1")
    async with FleetStoreClient(config, transport=backend) as client:
        await client.update_fields("car-1", {"status": "Rented"})

    after = backend.data("car-1")
    assert after["status"] == "Rented"
    assert {k: v for k, v in after.items() if k != "status"} == {k: v for k, v in before.items() if k != "status"}


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_update_of_missing_document_raises_write_error(config: FleetConfig, backend: FakeDocumentBackend) -> None:
    async with FleetStoreClient(config, transport=backend) as client:
        with pytest.raises(FleetWriteError) as exc_info:
            await client.update_fields("ghost", {"status": "Rented"})

    assert exc_info.value.vehicle_id == "ghost"
    assert backend.ids() == []


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_array_union_suppresses_equal_entries(config: FleetConfig, backend: FakeDocumentBackend) -> None:
    _seed_one(backend)
    record = ServiceRecord(date="2025-01-01", notes="Oil change", cost=250)
    async with FleetStoreClient(config, transport=backend) as client:
        for _ in range(2):
            await client.update_fields(
                "car-1",
                {"lastServiceDate": "2025-01-01"},
                array_union={"serviceHistory": [record]},
            )

    history = backend.data("car-1")["serviceHistory"]
    assert len(history) == len(DEFAULT_FLEET[0].service_history) + 1
    assert history[-1] == {"date": "2025-01-01", "notes": "Oil change", "cost": 250.0}
    assert backend.data("car-1")["lastServiceDate"] == "2025-01-01"


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_append_mode_keeps_equal_entries(config: FleetConfig, backend: FakeDocumentBackend) -> None:
    _seed_one(backend)
    config = dataclasses.replace(config, log_append_mode=LogAppendMode.APPEND)
    record = ServiceRecord(date="2025-01-01", notes="Oil change", cost=250)
    async with FleetStoreClient(config, transport=backend) as client:
        for _ in range(2):
            await client.update_fields("car-1", {}, array_union={"serviceHistory": [record]})

    history = backend.data("car-1")["serviceHistory"]
    assert len(history) == len(DEFAULT_FLEET[0].service_history) + 2
    assert history[-1] == history[-2]


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_subscription_emits_initial_and_changed_snapshots(
    config: FleetConfig, backend: FakeDocumentBackend
) -> None:
    _seed_one(backend)
    snapshots: list[InventorySnapshot] = []
    errors: list[FleetFetchError] = []
    async with FleetStoreClient(config, transport=backend) as client:
        subscription = client.subscribe(snapshots.append, errors.append)
        await wait_for(lambda: len(snapshots) == 1)

        await asyncio.sleep(0.05)
        assert len(snapshots) == 1

        await client.update_fields("car-1", {"status": "Rented"})
        await wait_for(lambda: len(snapshots) == 2)
        subscription()

    assert snapshots[0].vehicles[0].status is VehicleStatus.AVAILABLE
    assert snapshots[1].vehicles[0].status is VehicleStatus.RENTED
    assert errors == []


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_empty_collection_emits_empty_snapshot(config: FleetConfig, backend: FakeDocumentBackend) -> None:
    snapshots: list[InventorySnapshot] = []
    async with FleetStoreClient(config, transport=backend) as client:
        client.subscribe(snapshots.append, lambda _exc: None)
        await wait_for(lambda: len(snapshots) == 1)

    assert len(snapshots[0]) == 0


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_unsubscribe_before_first_read_suppresses_callbacks(
    config: FleetConfig, backend: FakeDocumentBackend
) -> None:
    _seed_one(backend)
    snapshots: list[InventorySnapshot] = []
    async with FleetStoreClient(config, transport=backend) as client:
        subscription = client.subscribe(snapshots.append, lambda _exc: None)
        subscription()
        subscription()
        await asyncio.sleep(0.05)

    assert snapshots == []
    assert subscription.cancelled
    assert not subscription.active


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_transient_read_errors_are_retried(
    config: FleetConfig, backend: FakeDocumentBackend, transport_error: FleetTransportError
) -> None:
    _seed_one(backend)
    backend.query_errors.extend([transport_error, transport_error])
    snapshots: list[InventorySnapshot] = []
    errors: list[FleetFetchError] = []
    async with FleetStoreClient(config, transport=backend) as client:
        client.subscribe(snapshots.append, errors.append)
        await wait_for(lambda: len(snapshots) == 1)

    assert errors == []
    assert backend.calls["runQuery"] >= 3


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_exhausted_retries_report_one_error(
    config: FleetConfig, backend: FakeDocumentBackend, transport_error: FleetTransportError
) -> None:
    backend.query_errors.extend([transport_error] * 3)
    errors: list[FleetFetchError] = []
    async with FleetStoreClient(config, transport=backend) as client:
        subscription = client.subscribe(lambda _snap: None, errors.append)
        await wait_for(lambda: len(errors) == 1)
        await asyncio.sleep(0.05)
        assert not subscription.active

    assert len(errors) == 1
    assert isinstance(errors[0].__cause__, FleetTransportError)


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_permission_error_stops_subscription_immediately(
    config: FleetConfig, backend: FakeDocumentBackend
) -> None:
    backend.query_errors.append(FleetApiError("denied", code="PERMISSION_DENIED", status_code=403))
    snapshots: list[InventorySnapshot] = []
    errors: list[FleetFetchError] = []
    async with FleetStoreClient(config, transport=backend) as client:
        client.subscribe(snapshots.append, errors.append)
        await wait_for(lambda: len(errors) == 1)
        await asyncio.sleep(0.05)

    assert snapshots == []
    assert len(errors) == 1
    assert backend.calls["runQuery"] == 1
    assert "Failed to fetch vehicle data" in str(errors[0])


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_subscribe_before_connect_reports_error(config: FleetConfig, backend: FakeDocumentBackend) -> None:
    client = FleetStoreClient(config, transport=backend)
    errors: list[FleetFetchError] = []

    subscription = client.subscribe(lambda _snap: None, errors.append)

    assert len(errors) == 1
    assert subscription.cancelled
    subscription()


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_close_cancels_live_subscriptions(config: FleetConfig, backend: FakeDocumentBackend) -> None:
    _seed_one(backend)
    snapshots: list[InventorySnapshot] = []
    client = FleetStoreClient(config, transport=backend)
    await client.connect()
    subscription = client.subscribe(snapshots.append, lambda _exc: None)
    await wait_for(lambda: len(snapshots) == 1)

    await client.close()
    backend.put("car-2", DEFAULT_FLEET[1].to_document())
    await asyncio.sleep(0.05)

    assert not subscription.active
    assert len(snapshots) == 1
    assert not client.is_connected


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_invalidated_session_sends_no_bearer(config: FleetConfig, backend: FakeDocumentBackend) -> None:
    async with FleetStoreClient(config, transport=backend) as client:
        await client.authenticate()
        client.invalidate_session()
        await client.fetch_inventory()

    assert client.user_id is None
    assert backend.bearers[-1] is None
