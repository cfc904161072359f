from __future__ import annotations

import asyncio
import base64
import copy
import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import pytest

from fleethub._api.values import decode_fields, encode_fields
from fleethub.config import FirebaseConfig, FleetConfig
from fleethub.exceptions import FleetApiError, FleetTransportError

DB_ROOT = "projects/demo-fleet/databases/(default)/documents"
COLLECTION = f"{DB_ROOT}/artifacts/test-app/public/data/cars"


def make_id_token(user_id: str) -> str:
    """Unsigned JWT carrying only a ``user_id`` claim."""

    def _segment(data: dict[str, Any]) -> str:
        return base64.urlsafe_b64encode(json.dumps(data).encode()).decode().rstrip("=")

    return f"{_segment({'alg': 'none'})}.{_segment({'user_id': user_id, 'sub': user_id})}.sig"


@dataclass
class FakeDocumentBackend:
    """In-process stand-in for the identity and document REST endpoints."""

    documents: dict[str, dict[str, Any]] = field(default_factory=dict)
    calls: dict[str, int] = field(default_factory=dict)
    bearers: list[str | None] = field(default_factory=list)
    custom_token_fails: bool = False
    anonymous_fails: bool = False
    query_errors: list[Exception] = field(default_factory=list)
    commit_error: Exception | None = None
    revision: int = 0

    def _record_call(self, endpoint: str) -> None:
        self.calls[endpoint] = self.calls.get(endpoint, 0) + 1

    def _timestamp(self) -> str:
        self.revision += 1
        return f"2026-01-01T00:00:{self.revision // 1000:02d}.{self.revision % 1000:03d}000Z"

    # -- test helpers -------------------------------------------------

    def put(self, doc_id: str, data: Mapping[str, Any]) -> None:
        name = f"{COLLECTION}/{doc_id}"
        ts = self._timestamp()
        self.documents[name] = {"name": name, "fields": encode_fields(data), "createTime": ts, "updateTime": ts}

    def data(self, doc_id: str) -> dict[str, Any]:
        return decode_fields(self.documents[f"{COLLECTION}/{doc_id}"]["fields"])

    def ids(self) -> list[str]:
        return sorted(name.rsplit("/", 1)[-1] for name in self.documents)

    # -- transport ----------------------------------------------------

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        payload: Mapping[str, Any] | None = None,
        form: Mapping[str, str] | None = None,
        params: Mapping[str, str] | None = None,
        bearer: str | None = None,
    ) -> Any:
        await asyncio.sleep(0)
        endpoint = url.rsplit("/", 1)[-1]
        self._record_call(endpoint.split(":")[-1] if ":" in endpoint else endpoint)
        self.bearers.append(bearer)

        if endpoint == "accounts:signInWithCustomToken":
            if self.custom_token_fails:
                raise FleetApiError("bad token", code="INVALID_CUSTOM_TOKEN", status_code=400, endpoint=endpoint)
            return {"idToken": make_id_token("custom-user"), "refreshToken": "refresh-1", "expiresIn": "3600"}

        if endpoint == "accounts:signUp":
            if self.anonymous_fails:
                raise FleetApiError("disabled", code="ADMIN_ONLY_OPERATION", status_code=400, endpoint=endpoint)
            return {
                "idToken": make_id_token("anon-user"),
                "refreshToken": "refresh-2",
                "expiresIn": "3600",
                "localId": "anon-user",
            }

        if endpoint == "token":
            assert form is not None
            return {
                "id_token": make_id_token("anon-user"),
                "refresh_token": "refresh-3",
                "expires_in": "3600",
                "user_id": "anon-user",
            }

        if url.endswith(":runQuery"):
            assert payload is not None
            if self.query_errors:
                raise self.query_errors.pop(0)
            return self._run_query(url, payload["structuredQuery"])

        if url.endswith(":commit"):
            assert payload is not None
            if self.commit_error is not None:
                raise self.commit_error
            return self._commit(payload["writes"])

        if method == "GET":
            name = url.split("/v1/", 1)[-1]
            document = self.documents.get(name)
            if document is None:
                raise FleetApiError("not found", code="NOT_FOUND", status_code=404, endpoint=endpoint)
            return copy.deepcopy(document)

        raise AssertionError(f"Unexpected request in fake backend: {method} {url}")

    def _run_query(self, url: str, query: dict[str, Any]) -> list[dict[str, Any]]:
        parent = url.split("/v1/", 1)[-1].removesuffix(":runQuery")
        prefix = f"{parent}/{query['from'][0]['collectionId']}/"
        names = sorted(n for n in self.documents if n.startswith(prefix) and "/" not in n[len(prefix) :])
        if "limit" in query:
            names = names[: query["limit"]]
        read_time = self._timestamp()
        if not names:
            return [{"readTime": read_time}]
        return [{"document": copy.deepcopy(self.documents[n]), "readTime": read_time} for n in names]

    def _commit(self, writes: list[dict[str, Any]]) -> dict[str, Any]:
        for write in writes:
            name = write["update"]["name"]
            precondition = write.get("currentDocument", {})
            existing = self.documents.get(name)
            if precondition.get("exists") is False and existing is not None:
                raise FleetApiError("exists", code="ALREADY_EXISTS", status_code=409, endpoint="commit")
            if precondition.get("exists") is True and existing is None:
                raise FleetApiError("missing", code="NOT_FOUND", status_code=404, endpoint="commit")
            if "updateTime" in precondition and (
                existing is None or existing["updateTime"] != precondition["updateTime"]
            ):
                raise FleetApiError("stale", code="FAILED_PRECONDITION", status_code=400, endpoint="commit")

        commit_time = self._timestamp()
        for write in writes:
            name = write["update"]["name"]
            incoming = write["update"].get("fields", {})
            document = self.documents.get(name)
            if document is None or "updateMask" not in write:
                document = {"name": name, "fields": {}, "createTime": commit_time}
                document["fields"] = copy.deepcopy(incoming)
            else:
                for path in write["updateMask"]["fieldPaths"]:
                    key = path.strip("`")
                    if key in incoming:
                        document["fields"][key] = copy.deepcopy(incoming[key])
                    else:
                        document["fields"].pop(key, None)
            for transform in write.get("updateTransforms", []):
                key = transform["fieldPath"].strip("`")
                current = document["fields"].get(key, {"arrayValue": {"values": []}})
                values = list(current.get("arrayValue", {}).get("values", []))
                for value in transform["appendMissingElements"]["values"]:
                    if value not in values:
                        values.append(value)
                document["fields"][key] = {"arrayValue": {"values": values}}
            document["updateTime"] = commit_time
            self.documents[name] = document
        return {"writeResults": [{"updateTime": commit_time} for _ in writes], "commitTime": commit_time}


@pytest.fixture
def config() -> FleetConfig:
    return FleetConfig(
        firebase=FirebaseConfig(api_key="test-key", project_id="demo-fleet"),
        app_id="test-app",
        poll_interval=0.01,
        listen_retry_attempts=2,
    )


@pytest.fixture
def backend() -> FakeDocumentBackend:
    return FakeDocumentBackend()


@pytest.fixture
def transport_error() -> FleetTransportError:
    return FleetTransportError("connection reset", endpoint="runQuery")


@pytest.fixture
def make_token() -> Callable[[str], str]:
    return make_id_token
