"""fleethub - Async fleet dashboard client for a realtime document store."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("fleethub")
except PackageNotFoundError:
    __version__ = "0+local"
from fleethub._listener import Subscription
from fleethub.client import FleetStoreClient
from fleethub.config import FirebaseConfig, FleetConfig, LogAppendMode
from fleethub.exceptions import (
    FleetApiError,
    FleetAuthenticationError,
    FleetConfigError,
    FleetDataSetupError,
    FleetError,
    FleetFetchError,
    FleetTransportError,
    FleetWriteError,
    FormValidationError,
)
from fleethub.fixtures import DEFAULT_FLEET
from fleethub.forms import ConditionLogForm, ServiceLogForm, VehicleHubController
from fleethub.models import (
    AuthToken,
    ConditionEntry,
    InventorySnapshot,
    ServiceRecord,
    Vehicle,
    VehicleStatus,
)
from fleethub.state.phase import SyncPhase
from fleethub.state.store import InventoryView
from fleethub.sync import InventorySynchronizer

__all__ = [
    "__version__",
    "AuthToken",
    "ConditionEntry",
    "ConditionLogForm",
    "DEFAULT_FLEET",
    "FirebaseConfig",
    "FleetApiError",
    "FleetAuthenticationError",
    "FleetConfig",
    "FleetConfigError",
    "FleetDataSetupError",
    "FleetError",
    "FleetFetchError",
    "FleetStoreClient",
    "FleetTransportError",
    "FleetWriteError",
    "FormValidationError",
    "InventorySnapshot",
    "InventorySynchronizer",
    "InventoryView",
    "LogAppendMode",
    "ServiceLogForm",
    "ServiceRecord",
    "Subscription",
    "SyncPhase",
    "Vehicle",
    "VehicleHubController",
    "VehicleStatus",
]
