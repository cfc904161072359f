"""Client configuration for fleethub."""

from __future__ import annotations

import dataclasses
import json
import logging
import os
from collections.abc import Callable, Mapping
from enum import StrEnum
from typing import Any, TypeVar

from fleethub._constants import (
    DEFAULT_APP_ID,
    FIRESTORE_BASE_URL,
    IDENTITY_TOOLKIT_URL,
    SECURE_TOKEN_URL,
)
from fleethub.exceptions import FleetConfigError

_logger = logging.getLogger(__name__)

_T = TypeVar("_T")

_SDK_KEYS: dict[str, str] = {
    "apiKey": "api_key",
    "projectId": "project_id",
    "authDomain": "auth_domain",
    "storageBucket": "storage_bucket",
    "messagingSenderId": "messaging_sender_id",
    "appId": "app_id",
    "databaseId": "database_id",
}


def _parse_env(name: str, raw: str, parse: Callable[[str], _T]) -> _T:
    try:
        return parse(raw)
    except ValueError as exc:
        raise FleetConfigError(f"Invalid value for {name}: {raw!r}") from exc


class LogAppendMode(StrEnum):
    """How log entries are appended to ``serviceHistory`` / ``conditionLog``.

    ``UNION`` uses the server-side array-union transform, which drops an
    entry that is value-equal to one already stored. ``APPEND`` reads the
    current array and writes it back with the new entry, keeping duplicates.
    """

    UNION = "union"
    APPEND = "append"


@dataclasses.dataclass(frozen=True)
class FirebaseConfig:
    """Backend project configuration.

    Mirrors the web SDK configuration object. Only ``api_key`` and
    ``project_id`` are needed by the REST endpoints; the remaining fields
    are kept so a configuration blob round-trips unchanged.
    """

    api_key: str = ""
    project_id: str = ""
    auth_domain: str = ""
    storage_bucket: str = ""
    messaging_sender_id: str = ""
    app_id: str = ""
    database_id: str = "(default)"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> FirebaseConfig:
        """Build from a web-SDK style mapping (``apiKey``, ``projectId``, ...)."""
        kwargs: dict[str, str] = {}
        for key, value in data.items():
            field_name = _SDK_KEYS.get(key, key)
            if field_name in _SDK_KEYS.values() and value is not None:
                kwargs[field_name] = str(value)
        return cls(**kwargs)

    @classmethod
    def from_json(cls, text: str | None) -> FirebaseConfig:
        """Parse a JSON configuration string, falling back to an empty config."""
        if not text:
            return cls()
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            _logger.warning("Backend configuration is not valid JSON; using an empty configuration")
            return cls()
        if not isinstance(data, dict):
            _logger.warning("Backend configuration is not a JSON object; using an empty configuration")
            return cls()
        return cls.from_mapping(data)

    @property
    def is_empty(self) -> bool:
        return not (self.api_key or self.project_id)


@dataclasses.dataclass(frozen=True)
class FleetConfig:
    """Client configuration.

    Parameters
    ----------
    firebase : FirebaseConfig
        Backend project configuration.
    initial_auth_token : str or None
        Optional pre-issued custom token. When absent the client signs in
        anonymously.
    app_id : str
        Tenant identifier used to namespace the collection path.
    poll_interval : float
        Seconds between listener reads of the vehicle collection.
    listen_retry_attempts : int
        Consecutive network failures tolerated by the listener before the
        subscription reports an error and stops.
    log_append_mode : LogAppendMode
        Duplicate handling for appended log entries.
    token_refresh_margin : float
        Refresh the ID token this many seconds before it expires.
    identity_url, secure_token_url, firestore_url : str
        REST base URLs. Override to point at an emulator.
    """

    firebase: FirebaseConfig = dataclasses.field(default_factory=FirebaseConfig)
    initial_auth_token: str | None = None
    app_id: str = DEFAULT_APP_ID
    poll_interval: float = 2.0
    listen_retry_attempts: int = 3
    log_append_mode: LogAppendMode = LogAppendMode.UNION
    token_refresh_margin: float = 60.0
    identity_url: str = IDENTITY_TOOLKIT_URL
    secure_token_url: str = SECURE_TOKEN_URL
    firestore_url: str = FIRESTORE_BASE_URL

    @property
    def collection_path(self) -> str:
        """Path of the vehicle collection relative to the database root."""
        return f"artifacts/{self.app_id}/public/data/cars"

    @property
    def database_root(self) -> str:
        """Resource name of the database's document root."""
        return f"projects/{self.firebase.project_id}/databases/{self.firebase.database_id}/documents"

    def validate(self) -> None:
        """Raise :class:`FleetConfigError` if the backend configuration is unusable."""
        if self.firebase.is_empty:
            raise FleetConfigError("Backend configuration is missing")
        if not self.firebase.api_key:
            raise FleetConfigError("Backend configuration has no apiKey")
        if not self.firebase.project_id:
            raise FleetConfigError("Backend configuration has no projectId")
        if not self.app_id.strip() or "/" in self.app_id:
            raise FleetConfigError(f"Invalid app id: {self.app_id!r}")
        if self.poll_interval <= 0:
            raise FleetConfigError("poll_interval must be positive")

    @classmethod
    def from_env(cls, **overrides: Any) -> FleetConfig:
        """Create configuration from environment variables.

        Reads ``FLEETHUB_FIREBASE_CONFIG`` (JSON), ``FLEETHUB_INITIAL_AUTH_TOKEN``
        and ``FLEETHUB_APP_ID`` plus the optional tuning variables. Absent
        values fall back to an empty backend configuration and the default
        tenant. Explicit keyword arguments override environment values.
        """
        env = os.environ

        firebase_override = overrides.pop("firebase", None)
        if isinstance(firebase_override, FirebaseConfig):
            firebase = firebase_override
        elif isinstance(firebase_override, Mapping):
            firebase = FirebaseConfig.from_mapping(firebase_override)
        else:
            firebase = FirebaseConfig.from_json(env.get("FLEETHUB_FIREBASE_CONFIG"))

        config_kwargs: dict[str, Any] = {"firebase": firebase}

        token = env.get("FLEETHUB_INITIAL_AUTH_TOKEN")
        if token:
            config_kwargs["initial_auth_token"] = token

        app_id = env.get("FLEETHUB_APP_ID")
        if app_id:
            config_kwargs["app_id"] = app_id

        interval_env = env.get("FLEETHUB_POLL_INTERVAL")
        if interval_env is not None and "poll_interval" not in overrides:
            config_kwargs["poll_interval"] = _parse_env("FLEETHUB_POLL_INTERVAL", interval_env, float)

        retries_env = env.get("FLEETHUB_LISTEN_RETRY_ATTEMPTS")
        if retries_env is not None and "listen_retry_attempts" not in overrides:
            config_kwargs["listen_retry_attempts"] = _parse_env("FLEETHUB_LISTEN_RETRY_ATTEMPTS", retries_env, int)

        mode_env = env.get("FLEETHUB_LOG_APPEND_MODE")
        if mode_env is not None and "log_append_mode" not in overrides:
            config_kwargs["log_append_mode"] = _parse_env(
                "FLEETHUB_LOG_APPEND_MODE", mode_env, lambda text: LogAppendMode(text.strip().lower())
            )

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
