"""Data models for stored fleet documents."""

from fleethub.models._base import FleetBaseModel
from fleethub.models.snapshot import InventorySnapshot
from fleethub.models.token import AuthToken
from fleethub.models.vehicle import ConditionEntry, ServiceRecord, Vehicle, VehicleStatus

__all__ = [
    "AuthToken",
    "ConditionEntry",
    "FleetBaseModel",
    "InventorySnapshot",
    "ServiceRecord",
    "Vehicle",
    "VehicleStatus",
]
