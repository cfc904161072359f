"""Vehicle hub form controller.

The hub offers two append-only logs per vehicle: service history and
condition notes. A submission validates its required fields, builds an
immutable record and issues one field-merge update that appends the record
and refreshes the denormalized summary fields alongside it. Nothing is
echoed locally; the change appears with the next inventory snapshot.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from datetime import date
from typing import Any

from fleethub.client import FleetStoreClient
from fleethub.exceptions import FleetWriteError, FormValidationError
from fleethub.ingestion.normalize import coerce_mileage, parse_iso_date
from fleethub.models.vehicle import ConditionEntry, ServiceRecord

_logger = logging.getLogger(__name__)


@dataclasses.dataclass
class ServiceLogForm:
    """Raw input of the service log form."""

    date: str = ""
    notes: str = ""
    cost: str = ""
    next_service_date: str = ""

    def reset(self) -> None:
        self.date = ""
        self.notes = ""
        self.cost = ""
        self.next_service_date = ""


@dataclasses.dataclass
class ConditionLogForm:
    """Raw input of the condition log form. An empty ``date`` means today."""

    mileage: str = ""
    note: str = ""
    date: str = ""

    def reset(self) -> None:
        self.mileage = ""
        self.note = ""
        self.date = ""


@dataclasses.dataclass(frozen=True)
class FieldUpdate:
    """Arguments for one :meth:`FleetStoreClient.update_fields` call."""

    fields: dict[str, Any]
    array_union: dict[str, tuple[Any, ...]]


def _required_date(value: str, *, field: str, label: str) -> date:
    parsed = parse_iso_date(value)
    if parsed is None:
        raise FormValidationError(f"{label} must be a valid date (YYYY-MM-DD)", field=field)
    return parsed


def build_service_update(form: ServiceLogForm) -> FieldUpdate:
    """Validate *form* and build the service log update.

    Appends ``{date, notes, cost}`` to ``serviceHistory`` and sets
    ``lastServiceDate`` (plus ``nextServiceDate`` when given). An
    unparsable cost is recorded as ``0``.

    Raises
    ------
    FormValidationError
        Notes are blank or a date is invalid.
    """
    notes = form.notes.strip()
    if not notes:
        raise FormValidationError("Service notes are required", field="notes")
    service_date = _required_date(form.date, field="date", label="Service date")

    record = ServiceRecord(date=service_date.isoformat(), notes=notes, cost=form.cost)
    fields: dict[str, Any] = {"lastServiceDate": record.date}
    if form.next_service_date.strip():
        next_date = _required_date(form.next_service_date, field="next_service_date", label="Next service date")
        fields["nextServiceDate"] = next_date.isoformat()
    return FieldUpdate(fields=fields, array_union={"serviceHistory": (record,)})


def build_condition_update(form: ConditionLogForm, *, today: date) -> FieldUpdate:
    """Validate *form* and build the condition log update.

    Appends ``{date, note}`` to ``conditionLog`` and sets
    ``currentMileage``. An unparsable mileage is recorded as ``0``.

    Raises
    ------
    FormValidationError
        The note or mileage is blank, or the date is invalid.
    """
    note = form.note.strip()
    if not note:
        raise FormValidationError("Condition note is required", field="note")
    if not form.mileage.strip():
        raise FormValidationError("Current mileage is required", field="mileage")
    entry_date = _required_date(form.date, field="date", label="Entry date") if form.date.strip() else today

    entry = ConditionEntry(date=entry_date.isoformat(), note=note)
    fields: dict[str, Any] = {"currentMileage": coerce_mileage(form.mileage)}
    return FieldUpdate(fields=fields, array_union={"conditionLog": (entry,)})


class VehicleHubController:
    """Holds both hub forms and submits them for one vehicle at a time."""

    def __init__(
        self,
        client: FleetStoreClient,
        *,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._client = client
        self._today = today
        self.service_form = ServiceLogForm()
        self.condition_form = ConditionLogForm()

    def reset(self) -> None:
        self.service_form.reset()
        self.condition_form.reset()

    async def _submit(self, vehicle_id: str, update: FieldUpdate, kind: str) -> bool:
        try:
            await self._client.update_fields(vehicle_id, update.fields, array_union=update.array_union)
        except FleetWriteError:
            _logger.warning("Saving %s log for %s failed", kind, vehicle_id, exc_info=True)
            return False
        return True

    async def submit_service(self, vehicle_id: str) -> bool:
        """Submit the service form; resets it and returns ``True`` on success.

        Raises
        ------
        FormValidationError
            The form is incomplete; nothing was sent.
        """
        update = build_service_update(self.service_form)
        if not await self._submit(vehicle_id, update, "service"):
            return False
        self.service_form.reset()
        return True

    async def submit_condition(self, vehicle_id: str) -> bool:
        """Submit the condition form; resets it and returns ``True`` on success.

        Raises
        ------
        FormValidationError
            The form is incomplete; nothing was sent.
        """
        update = build_condition_update(self.condition_form, today=self._today())
        if not await self._submit(vehicle_id, update, "condition"):
            return False
        self.condition_form.reset()
        return True
