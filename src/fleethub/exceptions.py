"""Custom exception hierarchy for fleethub."""

from __future__ import annotations


class FleetError(Exception):
    """Base exception for all fleethub errors."""


class FleetConfigError(FleetError):
    """Invalid or missing backend configuration."""


class FleetTransportError(FleetError):
    """HTTP-level failure (network, unexpected status, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class FleetApiError(FleetError):
    """Backend returned an error envelope (``{"error": {...}}``)."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "",
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.code = code
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class FleetAuthenticationError(FleetApiError):
    """Sign-in failed on every available path, or a token refresh was rejected."""


class FleetDataSetupError(FleetError):
    """The empty-collection check or the seeding batch failed."""


class FleetFetchError(FleetError):
    """The live inventory subscription failed and has stopped."""


class FleetWriteError(FleetError):
    """A partial document update was rejected or could not be sent."""

    def __init__(self, message: str, *, vehicle_id: str = "") -> None:
        self.vehicle_id = vehicle_id
        super().__init__(message)


class FormValidationError(FleetError, ValueError):
    """A hub form submission is missing a required field.

    ``field`` names the offending form field so callers can highlight it.
    """

    def __init__(self, message: str, *, field: str = "") -> None:
        self.field = field
        super().__init__(message)
