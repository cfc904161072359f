"""Vehicle document models."""

from __future__ import annotations

from datetime import date
from enum import StrEnum
from typing import Any

from pydantic import Field, field_validator

from fleethub.ingestion.normalize import (
    coerce_amount,
    coerce_mileage,
    non_negative_or_zero,
    parse_iso_date,
    safe_str,
)
from fleethub.models._base import FleetBaseModel


class VehicleStatus(StrEnum):
    """Rental status. Stored as the literal strings ``Available`` / ``Rented``."""

    AVAILABLE = "Available"
    RENTED = "Rented"

    @property
    def flipped(self) -> VehicleStatus:
        """The status a toggle moves to."""
        return VehicleStatus.RENTED if self is VehicleStatus.AVAILABLE else VehicleStatus.AVAILABLE

    @classmethod
    def _missing_(cls, value: object) -> VehicleStatus | None:
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value.lower() == normalized:
                    return member
        return None


def _coerce_date_text(value: Any) -> str:
    parsed = parse_iso_date(value)
    if parsed is not None:
        return parsed.isoformat()
    return safe_str(value).strip()


class ServiceRecord(FleetBaseModel):
    """One entry of ``serviceHistory``."""

    date: str
    """Service date, ``YYYY-MM-DD``."""
    notes: str = ""
    """Free-text description of the work done."""
    cost: float = 0.0
    """Invoice total; ``0`` when the entered amount could not be parsed."""

    @field_validator("date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> str:
        return _coerce_date_text(value)

    @field_validator("notes", mode="before")
    @classmethod
    def _coerce_notes(cls, value: Any) -> str:
        return safe_str(value)

    @field_validator("cost", mode="before")
    @classmethod
    def _coerce_cost(cls, value: Any) -> float:
        return coerce_amount(value)


class ConditionEntry(FleetBaseModel):
    """One entry of ``conditionLog``."""

    date: str
    """Inspection date, ``YYYY-MM-DD``."""
    note: str = ""
    """Free-text condition remark."""

    @field_validator("date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> str:
        return _coerce_date_text(value)

    @field_validator("note", mode="before")
    @classmethod
    def _coerce_note(cls, value: Any) -> str:
        return safe_str(value)


class Vehicle(FleetBaseModel):
    """A rental vehicle document.

    ``id`` is the store-assigned document id; it is not part of the stored
    fields and is excluded from :meth:`to_document`.
    """

    id: str = Field(default="", exclude=True)
    """Document id."""
    name: str = ""
    """Display name (e.g. ``"Lamborghini Huracán EVO"``)."""
    year: int = 0
    """Model year."""
    vehicle_type: str = Field(default="", alias="type")
    """Category (e.g. ``"Supercar"``)."""
    price_per_day: float = 0.0
    """Daily rental price."""
    image_url: str = ""
    """Image reference."""
    status: VehicleStatus = VehicleStatus.AVAILABLE
    """Rental status."""
    last_service_date: str = ""
    """Most recent service date, ``YYYY-MM-DD``."""
    next_service_date: str = ""
    """Scheduled next service date, ``YYYY-MM-DD``."""
    service_history: tuple[ServiceRecord, ...] = ()
    """Service log in insertion order."""
    current_mileage: int = 0
    """Odometer reading."""
    condition_log: tuple[ConditionEntry, ...] = ()
    """Condition log in insertion order."""
    total_days_rented: int = 0
    """Cumulative rented days."""
    lifetime_revenue: float = 0.0
    """Cumulative rental revenue."""

    @property
    def is_available(self) -> bool:
        return self.status is VehicleStatus.AVAILABLE

    @property
    def next_service_on(self) -> date | None:
        return parse_iso_date(self.next_service_date)

    @field_validator("name", "image_url", "vehicle_type", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return safe_str(value)

    @field_validator("last_service_date", "next_service_date", mode="before")
    @classmethod
    def _coerce_dates(cls, value: Any) -> str:
        return _coerce_date_text(value)

    @field_validator("price_per_day", "lifetime_revenue", mode="before")
    @classmethod
    def _coerce_money(cls, value: Any) -> float:
        return coerce_amount(value)

    @field_validator("year", "total_days_rented", mode="before")
    @classmethod
    def _coerce_counts(cls, value: Any) -> int:
        return int(non_negative_or_zero(value))

    @field_validator("current_mileage", mode="before")
    @classmethod
    def _coerce_mileage(cls, value: Any) -> int:
        return coerce_mileage(value)

    @field_validator("service_history", "condition_log", mode="before")
    @classmethod
    def _coerce_logs(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, (list, tuple)):
            return tuple(item for item in value if isinstance(item, (dict, FleetBaseModel)))
        return ()
