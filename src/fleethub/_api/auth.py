"""Identity endpoints.

Endpoints:
  - accounts:signInWithCustomToken
  - accounts:signUp (anonymous)
  - token (refresh)
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Any

from fleethub._redact import redact_for_log
from fleethub._transport import Transport
from fleethub.config import FleetConfig
from fleethub.exceptions import FleetApiError, FleetAuthenticationError, FleetTransportError
from fleethub.ingestion.normalize import safe_float
from fleethub.models.token import AuthToken

_logger = logging.getLogger(__name__)


def user_id_from_id_token(id_token: str) -> str:
    """Read the ``user_id`` (or ``sub``) claim from an unverified JWT.

    The token is only inspected for the caller's own identity; signature
    verification is the backend's job.
    """
    parts = id_token.split(".")
    if len(parts) < 2:
        return ""
    segment = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(segment.encode("ascii")))
    except (ValueError, UnicodeDecodeError):
        return ""
    if not isinstance(claims, dict):
        return ""
    return str(claims.get("user_id") or claims.get("sub") or "")


def parse_sign_in_response(
    response: dict[str, Any],
    *,
    endpoint: str,
    anonymous: bool,
) -> AuthToken:
    """Parse a sign-in or refresh response into an :class:`AuthToken`.

    Accepts both the camelCase identity-toolkit shape and the snake_case
    secure-token shape.
    """
    _logger.debug("Sign-in response parsed=%s", redact_for_log(response))
    id_token = response.get("idToken") or response.get("id_token")
    refresh_token = response.get("refreshToken") or response.get("refresh_token") or ""
    if not id_token:
        raise FleetAuthenticationError(
            "Sign-in response missing idToken",
            endpoint=endpoint,
        )

    user_id = str(response.get("localId") or response.get("user_id") or "") or user_id_from_id_token(str(id_token))
    if not user_id:
        raise FleetAuthenticationError(
            "Sign-in response missing user id",
            endpoint=endpoint,
        )

    expires_in = safe_float(response.get("expiresIn") or response.get("expires_in")) or 3600.0
    return AuthToken(
        user_id=user_id,
        id_token=str(id_token),
        refresh_token=str(refresh_token),
        expires_in=expires_in,
        anonymous=anonymous,
        raw=response,
    )


async def _post_identity(
    config: FleetConfig,
    transport: Transport,
    *,
    url: str,
    anonymous: bool,
    payload: dict[str, Any] | None = None,
    form: dict[str, str] | None = None,
) -> AuthToken:
    endpoint = url.rsplit("/", 1)[-1]
    try:
        response = await transport.request_json(
            "POST",
            url,
            payload=payload,
            form=form,
            params={"key": config.firebase.api_key},
        )
    except FleetAuthenticationError:
        raise
    except FleetApiError as exc:
        raise FleetAuthenticationError(
            f"{endpoint} rejected: {exc}",
            code=exc.code,
            status_code=exc.status_code,
            endpoint=endpoint,
        ) from exc
    except FleetTransportError as exc:
        raise FleetAuthenticationError(
            f"{endpoint} failed: {exc}",
            status_code=exc.status_code,
            endpoint=endpoint,
        ) from exc
    if not isinstance(response, dict):
        raise FleetAuthenticationError(f"{endpoint} returned a non-object body", endpoint=endpoint)
    return parse_sign_in_response(response, endpoint=endpoint, anonymous=anonymous)


async def sign_in_with_custom_token(config: FleetConfig, transport: Transport, token: str) -> AuthToken:
    """Exchange a pre-issued custom token for an ID token."""
    return await _post_identity(
        config,
        transport,
        url=f"{config.identity_url}/accounts:signInWithCustomToken",
        anonymous=False,
        payload={"token": token, "returnSecureToken": True},
    )


async def sign_in_anonymously(config: FleetConfig, transport: Transport) -> AuthToken:
    """Create a new anonymous identity."""
    return await _post_identity(
        config,
        transport,
        url=f"{config.identity_url}/accounts:signUp",
        anonymous=True,
        payload={"returnSecureToken": True},
    )


async def refresh_id_token(
    config: FleetConfig,
    transport: Transport,
    refresh_token: str,
    *,
    anonymous: bool,
) -> AuthToken:
    """Exchange a refresh token for a fresh ID token."""
    return await _post_identity(
        config,
        transport,
        url=f"{config.secure_token_url}/token",
        anonymous=anonymous,
        form={"grant_type": "refresh_token", "refresh_token": refresh_token},
    )
