"""Authentication token model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class AuthToken(BaseModel):
    """Tokens returned by a sign-in or refresh call.

    Parameters
    ----------
    user_id : str
        The authenticated user's ID.
    id_token : str
        Short-lived bearer token for document requests.
    refresh_token : str
        Long-lived token used to obtain a new ``id_token``.
    expires_in : float
        Lifetime of ``id_token`` in seconds.
    anonymous : bool
        Whether the identity was created anonymously.
    raw : dict
        Full response body for access to additional fields.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    id_token: str
    refresh_token: str
    expires_in: float
    anonymous: bool = False
    raw: dict[str, Any]
