"""tadoasync provides an async client for the tado° cloud API.

Access tokens are obtained (and refreshed) by a token manager, and can be persisted
to a file (encrypted at rest) so they survive a restart.
"""

from __future__ import annotations

from .auth import (
    AbstractTokenManager,
    ApiResponse,
    Auth,
    Authenticator,
    DeviceCodeAuthenticator,
)
from .exceptions import (
    ApiAuthenticationError,
    ApiError,
    ApiRequestFailedError,
    ApiStatusError,
    ApiTransportError,
    AuthenticationError,
    AuthenticationFailedError,
    AuthenticationIOError,
    BadApiResponseError,
    ConfigError,
    InvalidCiphertextError,
    MalformedTokenError,
    NoHomesError,
    NoTokenSourceError,
    StaleTokenError,
    TadoError,
    TokenNotFoundError,
    TokenSaveError,
    TokenStoreError,
    UnauthorizedError,
    UnknownHomeError,
    UnprocessableEntityError,
)
from .main import ApiClass, TadoClient, build_url_map
from .schemas import OAuthToken
from .store import AbstractTokenStore, EncryptedFileTokenStore
from .token_source import AbstractTokenSource, PersistentTokenSource
from .zone import ComfortLevel, TimetableType, Zone

__version__ = "0.1.0"

__all__ = [  # noqa: RUF022
    "TadoClient",
    "ApiClass",
    "build_url_map",
    "Zone",
    "ComfortLevel",
    "TimetableType",
    #
    "AbstractTokenManager",
    "Authenticator",
    "DeviceCodeAuthenticator",
    "Auth",
    "ApiResponse",
    "OAuthToken",
    #
    "AbstractTokenSource",
    "PersistentTokenSource",
    "AbstractTokenStore",
    "EncryptedFileTokenStore",
    #
    "TadoError",
    "ApiRequestFailedError",
    "ApiAuthenticationError",
    "ApiError",
    "ApiStatusError",
    "ApiTransportError",
    "BadApiResponseError",
    "UnauthorizedError",
    "UnprocessableEntityError",
    "AuthenticationError",
    "AuthenticationFailedError",
    "AuthenticationIOError",
    "ConfigError",
    "NoHomesError",
    "UnknownHomeError",
    "TokenStoreError",
    "NoTokenSourceError",
    "TokenNotFoundError",
    "StaleTokenError",
    "InvalidCiphertextError",
    "MalformedTokenError",
    "TokenSaveError",
]
