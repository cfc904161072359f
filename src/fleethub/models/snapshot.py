"""Inventory snapshot model."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from fleethub.models.vehicle import Vehicle


class InventorySnapshot(BaseModel):
    """A point-in-time copy of the vehicle collection.

    Vehicles keep the order the store returned them in (document id order).
    """

    model_config = ConfigDict(frozen=True)

    vehicles: tuple[Vehicle, ...] = ()
    read_time: datetime | None = None
    skipped_ids: tuple[str, ...] = Field(default=(), description="Documents that failed validation")

    def get(self, vehicle_id: str) -> Vehicle | None:
        for vehicle in self.vehicles:
            if vehicle.id == vehicle_id:
                return vehicle
        return None

    def __contains__(self, vehicle_id: object) -> bool:
        return isinstance(vehicle_id, str) and self.get(vehicle_id) is not None

    def __len__(self) -> int:
        return len(self.vehicles)
