"""Session state for authenticated backend calls."""

from __future__ import annotations

import time

from pydantic import BaseModel, ConfigDict, Field

#: ID tokens issued by the identity service live for one hour.
DEFAULT_TOKEN_TTL: float = 3600.0


class Session(BaseModel):
    """Signed-in identity after a successful sign-in or token refresh.

    Parameters
    ----------
    user_id : str
        The authenticated user's ID (``localId`` / ``user_id`` claim).
    id_token : str
        Bearer token sent with every document request.
    refresh_token : str
        Token exchanged for a fresh ``id_token`` before expiry.
    anonymous : bool
        Whether the identity was created anonymously.
    created_at : float
        Monotonic timestamp (``time.monotonic()``) of issue.
    ttl : float
        Token lifetime in seconds (``expiresIn``).
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )

    user_id: str
    id_token: str
    refresh_token: str = ""
    anonymous: bool = False
    created_at: float = Field(default_factory=time.monotonic)
    ttl: float = DEFAULT_TOKEN_TTL

    def expires_within(self, margin: float) -> bool:
        """Whether the token expires in less than *margin* seconds."""
        return (time.monotonic() - self.created_at) >= (self.ttl - margin)

    @property
    def is_expired(self) -> bool:
        """Whether the session has exceeded its TTL."""
        return self.expires_within(0.0)
