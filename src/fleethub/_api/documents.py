"""Document endpoints.

Endpoints:
  - {parent}:runQuery
  - documents:commit
  - GET {document}
"""

from __future__ import annotations

import re
import secrets
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

from fleethub._api.values import encode_fields, encode_value, parse_timestamp
from fleethub._constants import AUTO_ID_ALPHABET, AUTO_ID_LENGTH
from fleethub._transport import Transport
from fleethub.config import FleetConfig

_SIMPLE_FIELD = re.compile(r"^[_a-zA-Z][_a-zA-Z0-9]*$")


def new_document_id() -> str:
    """Random 20-character id in the format the client SDKs generate."""
    return "".join(secrets.choice(AUTO_ID_ALPHABET) for _ in range(AUTO_ID_LENGTH))


def quote_field_path(field: str) -> str:
    """Quote a single top-level field name for use in masks and transforms."""
    if _SIMPLE_FIELD.match(field):
        return field
    escaped = field.replace("\\", "\\\\").replace("`", "\\`")
    return f"`{escaped}`"


def collection_parent(config: FleetConfig) -> tuple[str, str]:
    """Split the collection path into ``(parent resource, collection id)``."""
    parent, _, collection_id = config.collection_path.rpartition("/")
    return f"{config.database_root}/{parent}", collection_id


def document_name(config: FleetConfig, doc_id: str) -> str:
    """Full resource name of a vehicle document."""
    return f"{config.database_root}/{config.collection_path}/{doc_id}"


def build_create_write(config: FleetConfig, doc_id: str, data: Mapping[str, Any]) -> dict[str, Any]:
    """Write that creates a document and fails if it already exists."""
    return {
        "update": {"name": document_name(config, doc_id), "fields": encode_fields(data)},
        "currentDocument": {"exists": False},
    }


def build_update_write(
    config: FleetConfig,
    doc_id: str,
    fields: Mapping[str, Any],
    *,
    array_union: Mapping[str, Sequence[Any]] | None = None,
    update_time: str | None = None,
) -> dict[str, Any]:
    """Field-merge write against an existing document.

    Only the keys of *fields* are listed in the update mask, so every other
    stored field is left untouched. Each *array_union* entry becomes an
    ``appendMissingElements`` transform applied in the same write.

    With *update_time* the write is rejected unless the document is still at
    that revision; otherwise it only requires the document to exist.
    """
    write: dict[str, Any] = {
        "update": {"name": document_name(config, doc_id), "fields": encode_fields(fields)},
        "updateMask": {"fieldPaths": [quote_field_path(key) for key in fields]},
    }
    if array_union:
        write["updateTransforms"] = [
            {
                "fieldPath": quote_field_path(key),
                "appendMissingElements": {"values": [encode_value(item) for item in items]},
            }
            for key, items in array_union.items()
        ]
    if update_time is not None:
        write["currentDocument"] = {"updateTime": update_time}
    else:
        write["currentDocument"] = {"exists": True}
    return write


async def run_collection_query(
    config: FleetConfig,
    transport: Transport,
    *,
    bearer: str | None,
    limit: int | None = None,
) -> tuple[list[dict[str, Any]], datetime | None]:
    """Query the vehicle collection.

    Returns the documents in document-id order together with the read time
    reported by the backend.
    """
    parent, collection_id = collection_parent(config)
    query: dict[str, Any] = {"from": [{"collectionId": collection_id}]}
    if limit is not None:
        query["limit"] = limit

    response = await transport.request_json(
        "POST",
        f"{config.firestore_url}/{parent}:runQuery",
        payload={"structuredQuery": query},
        bearer=bearer,
    )
    results = response if isinstance(response, list) else [response]

    documents: list[dict[str, Any]] = []
    read_time: datetime | None = None
    for item in results:
        if not isinstance(item, dict):
            continue
        document = item.get("document")
        if isinstance(document, dict):
            documents.append(document)
        raw_read_time = item.get("readTime")
        if isinstance(raw_read_time, str):
            parsed = parse_timestamp(raw_read_time)
            read_time = parsed if read_time is None else max(read_time, parsed)
    return documents, read_time


async def get_document(
    config: FleetConfig,
    transport: Transport,
    doc_id: str,
    *,
    bearer: str | None,
) -> dict[str, Any]:
    """Fetch a single vehicle document."""
    response = await transport.request_json(
        "GET",
        f"{config.firestore_url}/{document_name(config, doc_id)}",
        bearer=bearer,
    )
    return response if isinstance(response, dict) else {}


async def commit(
    config: FleetConfig,
    transport: Transport,
    writes: Sequence[Mapping[str, Any]],
    *,
    bearer: str | None,
) -> dict[str, Any]:
    """Apply *writes* atomically; either all succeed or none do."""
    response = await transport.request_json(
        "POST",
        f"{config.firestore_url}/{config.database_root}:commit",
        payload={"writes": list(writes)},
        bearer=bearer,
    )
    return response if isinstance(response, dict) else {}
