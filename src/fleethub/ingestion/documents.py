"""Decode stored documents into validated models."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from fleethub._api.values import decode_fields
from fleethub.models.snapshot import InventorySnapshot
from fleethub.models.vehicle import Vehicle

_logger = logging.getLogger(__name__)


def document_id(name: str) -> str:
    """Last path segment of a document resource name."""
    return name.rstrip("/").rsplit("/", 1)[-1]


def vehicle_from_document(document: Mapping[str, Any]) -> Vehicle:
    """Build a :class:`Vehicle` from a REST document.

    Raises
    ------
    pydantic.ValidationError
        The stored fields do not describe a valid vehicle.
    """
    fields = decode_fields(document.get("fields") or {})
    fields["id"] = document_id(str(document.get("name", "")))
    return Vehicle.model_validate(fields)


def snapshot_from_documents(
    documents: Iterable[Mapping[str, Any]],
    *,
    read_time: datetime | None = None,
) -> InventorySnapshot:
    """Validate every document; invalid ones are logged and left out."""
    vehicles: list[Vehicle] = []
    skipped: list[str] = []
    for document in documents:
        try:
            vehicles.append(vehicle_from_document(document))
        except (ValidationError, ValueError, TypeError) as exc:
            doc_id = document_id(str(document.get("name", "")))
            skipped.append(doc_id)
            _logger.warning("Skipping malformed vehicle document %s: %s", doc_id, exc)
    return InventorySnapshot(vehicles=tuple(vehicles), read_time=read_time, skipped_ids=tuple(skipped))
