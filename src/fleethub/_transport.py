"""JSON-over-HTTP transport for the identity and document REST endpoints."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from fleethub._constants import USER_AGENT
from fleethub._redact import redact_for_log
from fleethub.exceptions import FleetApiError, FleetTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles/mocks while
    keeping the production implementation (`RestTransport`) concrete.
    """

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        payload: Mapping[str, Any] | None = None,
        form: Mapping[str, str] | None = None,
        params: Mapping[str, str] | None = None,
        bearer: str | None = None,
    ) -> Any:
        ...


def _error_from_body(body: Any) -> dict[str, Any] | None:
    """Extract a Google-style ``{"error": {...}}`` envelope, if present.

    ``runQuery`` streams a JSON array, so the envelope can also arrive as
    the first array element.
    """
    if isinstance(body, list) and body and isinstance(body[0], dict):
        body = body[0]
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        return error
    if isinstance(error, str):
        # Secure token endpoint uses {"error": "invalid_grant", "error_description": ...}
        return {"status": error, "message": str(body.get("error_description", error))}
    return None


class RestTransport:
    """HTTP transport that encodes JSON bodies and maps error envelopes."""

    def __init__(self, http_session: aiohttp.ClientSession) -> None:
        self._http = http_session

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        payload: Mapping[str, Any] | None = None,
        form: Mapping[str, str] | None = None,
        params: Mapping[str, str] | None = None,
        bearer: str | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises
        ------
        FleetApiError
            The backend answered with an error envelope.
        FleetTransportError
            Network failure or timeout, or a non-2xx response without a usable envelope,
            or a body that is not JSON.
        """
        headers: dict[str, str] = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        if bearer:
            headers["authorization"] = f"Bearer {bearer}"

        kwargs: dict[str, Any] = {"headers": headers}
        if params:
            kwargs["params"] = dict(params)
        if form is not None:
            kwargs["data"] = dict(form)
        elif payload is not None:
            headers["content-type"] = "application/json; charset=UTF-8"
            kwargs["data"] = json.dumps(payload, separators=(",", ":"))

        endpoint = url.split("?", 1)[0]
        _logger.debug("%s %s body=%s", method, endpoint, redact_for_log(payload if form is None else form))

        try:
            async with self._http.request(method, url, **kwargs) as resp:
                status = resp.status
                text = await resp.text()
        except aiohttp.ClientError as exc:
            raise FleetTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc
        except TimeoutError as exc:
            raise FleetTransportError(
                f"Request to {endpoint} timed out",
                endpoint=endpoint,
            ) from exc

        try:
            body = json.loads(text) if text.strip() else {}
        except json.JSONDecodeError as exc:
            raise FleetTransportError(
                f"Invalid JSON from {endpoint} (HTTP {status}): {text[:200]}",
                status_code=status,
                endpoint=endpoint,
            ) from exc

        error = _error_from_body(body)
        if status >= 400 or error is not None:
            if error is None:
                raise FleetTransportError(
                    f"HTTP {status} from {endpoint}: {text[:200]}",
                    status_code=status,
                    endpoint=endpoint,
                )
            message = str(error.get("message", ""))
            code = str(error.get("status") or error.get("code") or status)
            raise FleetApiError(
                f"{endpoint} failed: status={code} message={message}",
                code=code,
                status_code=status,
                endpoint=endpoint,
            )

        _logger.debug("%s %s -> HTTP %s", method, endpoint, status)
        return body
