"""An async client for the tado° cloud API."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .schemas import OAuthToken


class _TadoBaseError(Exception):
    """The base class for all exceptions."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class TadoError(_TadoBaseError):
    """The base class for all exceptions."""


# These occur whilst a RESTful API call is being made
class ApiRequestFailedError(TadoError):  # a base exception, API failed
    """The API request failed for some reason (no/invalid/unexpected response).

    If the server responded, then the `status` attr will have an integer value.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ApiTransportError(ApiRequestFailedError):
    """The API request could not be sent/completed (e.g. connection error, timeout)."""


class ApiStatusError(ApiRequestFailedError):
    """The API responded with an unexpected status, and without an error list.

    The message is the status line exactly as supplied by the server, for example
    "429 Too Many Requests".
    """


class UnauthorizedError(ApiStatusError):
    """The API rejected the access token (401/403).

    The token manager will have been reset, so a retry will re-authenticate.
    """


class ApiError(ApiRequestFailedError):
    """The API responded with a list of errors, each a (code, title) pair.

    All instances are the same kind of error regardless of their entries, so use
    `isinstance(err, ApiError)` to ask "was this reported by the API?".
    """

    def __init__(
        self, errors: list[tuple[str, str]], status: int | None = None
    ) -> None:
        self.errors = list(errors)
        super().__init__(self._render(self.errors), status=status)

    @staticmethod
    def _render(errors: list[tuple[str, str]]) -> str:
        entries = [{code: title} for code, title in errors]
        if len(entries) == 1:
            return json.dumps(entries[0], separators=(",", ":"))
        return json.dumps(entries, separators=(",", ":"))

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ApiError)

    def __hash__(self) -> int:
        return hash(ApiError)


class UnprocessableEntityError(ApiRequestFailedError):
    """The API refused to act upon a (malformed) request (422).

    The `error` attr is the inner error (usually an ApiError); it is also chained as
    the `__cause__` when raised.
    """

    def __init__(self, error: Exception, status: int | None = 422) -> None:
        super().__init__(f"unprocessable entity: {error}", status=status)
        self.error = error


class ApiAuthenticationError(ApiRequestFailedError):
    """No request was sent as an access token could not be obtained.

    The cause is chained as the `__cause__`.
    """

    def __init__(self, error: Exception) -> None:
        super().__init__(f"auth: {error}", status=getattr(error, "status", None))
        self.error = error


class BadApiResponseError(ApiRequestFailedError):
    """The received JSON is not as expected (e.g. is not valid JSON)."""


# These occur whilst authenticating (obtaining an access token)
class AuthenticationError(TadoError):  # a base exception, unable to authenticate
    """Unable to obtain an access token."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class AuthenticationFailedError(AuthenticationError):
    """The authentication server rejected the grant (any status other than 200).

    The message is the status line exactly as supplied by the server. If the body
    was an OAuth2 error response, then `error_code` is its "error" (for example,
    "invalid_grant" or "authorization_pending").
    """

    def __init__(
        self, message: str, status: int | None = None, error_code: str | None = None
    ) -> None:
        super().__init__(message, status=status)
        self.error_code = error_code


class AuthenticationIOError(AuthenticationError):
    """The grant could not be sent/completed, or its response could not be read."""


# These occur without / after a RESTful API call (e.g. a necessary call was not made)
class ConfigError(TadoError):  # a base exception, bad account config
    """The account configuration is somehow unusable."""


class NoHomesError(ConfigError):
    """The account has no homes (so there is no active home)."""


class UnknownHomeError(ConfigError):
    """The account has no home of that name."""


# These occur whilst a token is being persisted / restored
class TokenStoreError(TadoError):  # a base exception, token store failed
    """The token could not be persisted or restored."""


class NoTokenSourceError(TokenStoreError):
    """There is neither an upstream token source nor a stored token."""


class TokenNotFoundError(TokenStoreError):
    """There is no stored token (the token file does not exist)."""


class StaleTokenError(TokenStoreError):
    """The stored token is older than the freshness bound (by file mtime)."""


class InvalidCiphertextError(TokenStoreError):
    """The stored token could not be decrypted (wrong passphrase or tampered)."""


class MalformedTokenError(TokenStoreError):
    """The stored token was decrypted, but is not a valid serialized token."""


class TokenSaveError(TokenStoreError):
    """The token could not be saved, although it is still usable in-memory.

    The `token` attr is the (fresh) token that failed to save.
    """

    def __init__(self, message: str, token: OAuthToken) -> None:
        super().__init__(message)
        self.token = token
