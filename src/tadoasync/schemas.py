"""tadoasync provides an async client for the tado° cloud API.

Models of the JSON exchanged with the vendor's auth & API servers.
"""

from __future__ import annotations

from datetime import UTC, datetime as dt
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class OAuthToken(BaseModel):
    """An access token, with its refresh token & expiry (the persisted form)."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "Bearer"  # noqa: S105
    refresh_token: str = ""
    expiry: dt = dt.min.replace(tzinfo=UTC)
    scope: str = ""

    @field_validator("expiry")
    @classmethod
    def _ensure_aware(cls, value: dt) -> dt:
        return value if value.tzinfo else value.replace(tzinfo=UTC)

    @property
    def valid(self) -> bool:
        """Return True if the access token is (as far as we know) unexpired."""
        return bool(self.access_token) and self.expiry > dt.now(tz=UTC)

    def __repr__(self) -> str:  # never expose the token strings
        return f"{self.__class__.__name__}(expiry={self.expiry.isoformat()})"

    __str__ = __repr__


class TokenResponse(BaseModel):
    """Response to POST /oauth/token (a successful grant)."""

    model_config = ConfigDict(extra="allow")

    access_token: str
    refresh_token: str = ""
    expires_in: float = 0
    token_type: str = "Bearer"  # noqa: S105
    scope: str = ""


class DeviceAuthResponse(BaseModel):
    """Response to POST /oauth2/device_authorize."""

    model_config = ConfigDict(extra="allow")

    device_code: str
    user_code: str = ""
    verification_uri: str = ""
    verification_uri_complete: str = ""
    expires_in: float = 300
    interval: float = 5


class ErrorEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    code: str = ""
    title: str = ""


class ErrorResponse(BaseModel):
    """The body of a 4xx/5xx response from the API."""

    model_config = ConfigDict(extra="allow")

    errors: list[ErrorEntry] = Field(default_factory=list)


class HomeEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    name: str


class AccountResponse(BaseModel):
    """Response to GET /me (is snake_case, having been converted)."""

    model_config = ConfigDict(extra="allow")

    id: str = ""
    name: str = ""
    email: str = ""
    username: str = ""
    locale: str = ""
    homes: list[HomeEntry] = Field(default_factory=list)
    mobile_devices: list[dict[str, Any]] = Field(default_factory=list)


# used to check responses, a mismatch is logged (it is not fatal)
TADO_GET_ACCOUNT: Final = TypeAdapter(AccountResponse)
TADO_GET_LIST: Final = TypeAdapter(list[dict[str, Any]])
TADO_GET_DICT: Final = TypeAdapter(dict[str, Any])
