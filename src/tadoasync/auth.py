"""tadoasync provides an async client for the tado° cloud API."""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from abc import ABC, abstractmethod
from datetime import UTC, datetime as dt, timedelta as td
from functools import cached_property
from http import HTTPMethod, HTTPStatus
from typing import TYPE_CHECKING, Any, Final, NamedTuple

import aiohttp
from pydantic import ValidationError

from . import exceptions as exc
from .const import (
    AUTH_URL,
    DEFAULT_CLIENT_ID,
    DEFAULT_CLIENT_SECRET,
    DEVICE_AUTH_URL,
    DEVICE_CLIENT_ID,
    DEVICE_SCOPE,
    DEVICE_TOKEN_URL,
    ERR_MSG_LOOKUP_BASE,
    GRANT_DEVICE_CODE,
    GRANT_PASSWORD,
    GRANT_REFRESH_TOKEN,
    HEADERS_BASE,
    HEADERS_CRED,
    HINT_BAD_CREDS,
    HINT_CHECK_NETWORK,
    SCOPE,
    SZ_REFRESH_TOKEN,
)
from .schemas import DeviceAuthResponse, OAuthToken, TokenResponse
from .token_source import AbstractTokenSource

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from aiohttp.typedefs import StrOrURL


_LOGGER = logging.getLogger(__name__)


class CredentialsManagerBase:
    """A base class for managing the credentials used for HTTP authentication."""

    def __init__(
        self,
        websession: aiohttp.ClientSession,
        /,
        *,
        client_id: str,
        auth_url: str,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialise the credentials manager."""

        self.websession: Final = websession

        self._client_id: Final = client_id
        self._auth_url: Final = auth_url
        self.logger = logger or _LOGGER

    def __str__(self) -> str:
        """Return a string representation of the object."""
        return (
            f"{self.__class__.__name__}"
            f"(client_id='{self.client_id}', auth_url='{self.auth_url}')"
        )

    @cached_property
    def client_id(self) -> str:
        """Return the client id used for HTTP authentication."""
        return self._client_id

    @cached_property
    def auth_url(self) -> str:
        """Return the URL used for HTTP authentication (the token endpoint)."""
        return self._auth_url

    async def _post_request(self, url: StrOrURL, /, **kwargs: Any) -> dict[str, Any]:
        """POST an authentication request and return the response (a dict).

        Will raise AuthenticationFailedError if the status is not 200, and
        AuthenticationIOError if the server could not be reached or the response
        could not be read.
        """

        rsp: aiohttp.ClientResponse | None = None  # to prevent unbound error

        try:
            rsp = await self._request(HTTPMethod.POST, url, **kwargs)
            content = await rsp.read()

        except (aiohttp.ClientError, TimeoutError) as err:  # e.g. ClientConnectionError
            self.logger.error(HINT_CHECK_NETWORK)  # noqa: TRY400

            raise exc.AuthenticationIOError(
                f"Authenticator request failed: {err!r}"
            ) from err

        finally:
            if rsp is not None:
                rsp.release()

        if rsp.status != HTTPStatus.OK:
            if hint := ERR_MSG_LOOKUP_BASE.get(rsp.status):
                self.logger.error(hint)

            raise exc.AuthenticationFailedError(
                f"{rsp.status} {rsp.reason}".strip(),
                status=rsp.status,
                error_code=_oauth_error_code(content),
            )

        try:
            response = json.loads(content)
        except ValueError as err:  # NOTE: don't include the content, may have secrets
            raise exc.AuthenticationIOError(
                "Authenticator response is not valid JSON"
            ) from err

        if not isinstance(response, dict):  # an unanticipated edge-case
            raise exc.AuthenticationIOError("Authenticator response is not a dict")

        return response

    async def _request(  # dev/test wrapper
        self, method: HTTPMethod, url: StrOrURL, /, **kwargs: Any
    ) -> aiohttp.ClientResponse:
        """Wrap the request to the ClientSession (useful for dev/test)."""
        return await self.websession.request(method, url, **kwargs)


def _oauth_error_code(content: bytes) -> str | None:
    """Return the 'error' of an OAuth2 error response, if any."""

    try:
        response = json.loads(content)
    except ValueError:
        return None
    if isinstance(response, dict) and isinstance(response.get("error"), str):
        return response["error"]
    return None


class AbstractTokenManager(CredentialsManagerBase, AbstractTokenSource, ABC):
    """An ABC for managing the auth tokens used for HTTP authentication.

    The tokens are obtained via an initial grant (e.g. the user's password), then
    kept current via refresh_token grants. All grants are serialized by a lock, so
    concurrent callers will share the outcome of a single grant.
    """

    _access_token: str
    _access_token_expires: dt
    _refresh_token: str = ""

    def __init__(
        self,
        websession: aiohttp.ClientSession,
        /,
        *,
        client_id: str,
        auth_url: str,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the token manager."""

        super().__init__(
            websession, client_id=client_id, auth_url=auth_url, logger=logger
        )

        self._lock = asyncio.Lock()
        self._resets = 0  # a grant that spans a reset must not restore the refresh token

        self._token_type = "Bearer"  # noqa: S105
        self._scope = ""
        self._clear_access_token()  # initialise the attrs

    def _clear_access_token(self) -> None:
        """Clear the auth tokens attrs (set to falsey state)."""

        self._access_token = ""
        self._access_token_expires = dt.min.replace(tzinfo=UTC)  # don't need local TZ

    @property
    def access_token(self) -> str:
        """Return the access token."""
        return self._access_token

    @property
    def access_token_expires(self) -> dt:
        """Return the expiration datetime of the access token."""
        return self._access_token_expires

    @property
    def refresh_token(self) -> str:
        """Return the refresh token."""
        return self._refresh_token

    def is_token_valid(self) -> bool:
        """Return True if the access token is valid (the server may still reject it)."""
        return bool(self._access_token) and self._access_token_expires > dt.now(tz=UTC)

    async def token(self) -> OAuthToken:
        """Return the current token, obtaining a new one if required.

        Without a refresh token, uses the initial grant (e.g. the user's password).
        Otherwise, uses the refresh token if the access token has expired. If that
        refresh fails, the refresh token is cleared (so the next call will use the
        initial grant) and the error is raised.
        """

        async with self._lock:
            if not self._refresh_token:
                self.logger.debug("Fetching access_token (initial grant)...")
                await self._initial_grant()

            elif dt.now(tz=UTC) >= self._access_token_expires:
                self.logger.debug("Fetching access_token (refresh_token grant)...")

                try:
                    await self._fetch_access_token(self._refresh_credentials())
                except exc.AuthenticationError as err:
                    self.logger.debug(f"Expired/invalid refresh_token: {err}")
                    self._refresh_token = ""
                    raise

            return self.export_token()

    def reset(self) -> None:
        """Clear the refresh token, so the next call will use the initial grant.

        If a grant is in flight, its refresh token will be discarded when it completes.
        """

        self.logger.debug("Resetting the token manager (will re-authenticate)")
        self._resets += 1
        self._refresh_token = ""

    @abstractmethod
    async def _initial_grant(self) -> None:
        """Obtain a token without a refresh token (e.g. with the user's password)."""

    def _refresh_credentials(self) -> dict[str, str]:
        """Return the form data of a refresh_token grant."""

        return {
            "client_id": self._client_id,
            "grant_type": GRANT_REFRESH_TOKEN,
            SZ_REFRESH_TOKEN: self._refresh_token,
        }

    async def _fetch_access_token(
        self, credentials: dict[str, str], url: str | None = None
    ) -> None:
        """Obtain an access token using the supplied credentials.

        Will raise AuthenticationFailedError if the grant is rejected.
        """

        url = url or self.auth_url
        resets = self._resets

        response = await self._post_access_token_request(
            url,
            headers=HEADERS_CRED,
            data=credentials,  # NOTE: is form-urlencoded
        )

        try:
            tokens = TokenResponse.model_validate(response)
        except ValidationError as err:
            raise exc.AuthenticationIOError(
                f"Authenticator response is invalid ({err.error_count()} errors)"
            ) from None

        self._access_token = tokens.access_token
        self._access_token_expires = dt.now(tz=UTC) + td(seconds=tokens.expires_in)
        self._refresh_token = tokens.refresh_token if resets == self._resets else ""
        self._token_type = tokens.token_type
        self._scope = tokens.scope

        self.logger.debug(f" - access_token_expires = {self.access_token_expires}")

    async def _post_access_token_request(  # dev/test wrapper (also typing)
        self, url: StrOrURL, /, **kwargs: Any
    ) -> dict[str, Any]:
        """Wrap the POST request to the vendor's auth server."""
        return await self._post_request(url, **kwargs)

    def import_token(self, token: OAuthToken) -> None:
        """Extract the token data from a (restored) token."""

        self._access_token = token.access_token
        self._access_token_expires = token.expiry
        self._refresh_token = token.refresh_token
        self._token_type = token.token_type
        self._scope = token.scope

    def export_token(self) -> OAuthToken:
        """Convert the token data to a (serializable) token."""

        return OAuthToken(
            access_token=self._access_token,
            token_type=self._token_type,
            refresh_token=self._refresh_token,
            expiry=self._access_token_expires,
            scope=self._scope,
        )


class Authenticator(AbstractTokenManager):
    """A token manager that authenticates with the user's password."""

    def __init__(
        self,
        username: str,
        password: str,
        websession: aiohttp.ClientSession,
        /,
        *,
        client_id: str | None = None,
        client_secret: str | None = None,
        auth_url: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the authenticator."""

        super().__init__(
            websession,
            client_id=client_id or DEFAULT_CLIENT_ID,
            auth_url=auth_url or AUTH_URL,
            logger=logger,
        )

        self._username: Final = username
        self._password: Final = password
        self._client_secret: Final = client_secret or DEFAULT_CLIENT_SECRET

    async def _initial_grant(self) -> None:
        self.logger.debug(" - authenticating with username/password")

        credentials = {
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "grant_type": GRANT_PASSWORD,
            GRANT_PASSWORD: self._password,
            "scope": SCOPE,
            "username": self._username,
        }

        try:
            await self._fetch_access_token(credentials)
        except exc.AuthenticationFailedError as err:
            if err.status in (HTTPStatus.BAD_REQUEST, HTTPStatus.UNAUTHORIZED):
                self.logger.error(HINT_BAD_CREDS)  # noqa: TRY400
            raise

    def _refresh_credentials(self) -> dict[str, str]:
        return super()._refresh_credentials() | {
            "client_secret": self._client_secret,
            "scope": SCOPE,
        }


class DeviceCodeAuthenticator(AbstractTokenManager):
    """A token manager that authenticates via the OAuth2 device code flow.

    The user must visit a verification URL (and log in) before the flow times out.
    The URL is passed to `on_verification`, if provided, otherwise it is logged.
    """

    def __init__(
        self,
        websession: aiohttp.ClientSession,
        /,
        *,
        client_id: str | None = None,
        auth_url: str | None = None,
        device_auth_url: str | None = None,
        on_verification: Callable[[str, str], Awaitable[None] | None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the authenticator."""

        super().__init__(
            websession,
            client_id=client_id or DEVICE_CLIENT_ID,
            auth_url=auth_url or DEVICE_TOKEN_URL,
            logger=logger,
        )

        self._device_auth_url: Final = device_auth_url or DEVICE_AUTH_URL
        self._on_verification = on_verification

    async def _initial_grant(self) -> None:
        self.logger.debug(" - authenticating with a device code")

        response = await self._post_request(
            self._device_auth_url,
            headers=HEADERS_CRED,
            data={"client_id": self._client_id, "scope": DEVICE_SCOPE},
        )

        try:
            device = DeviceAuthResponse.model_validate(response)
        except ValidationError as err:
            raise exc.AuthenticationIOError(
                f"Device authorization response is invalid: {err}"
            ) from err

        url = device.verification_uri_complete or device.verification_uri

        if self._on_verification is None:
            self.logger.warning(
                f"To authenticate, visit {url} (user code: {device.user_code})"
            )
        elif inspect.isawaitable(result := self._on_verification(url, device.user_code)):
            await result

        await self._poll_for_token(device)

    async def _poll_for_token(self, device: DeviceAuthResponse) -> None:
        """Poll the token endpoint until the user has authorized this device."""

        credentials = {
            "client_id": self._client_id,
            "device_code": device.device_code,
            "grant_type": GRANT_DEVICE_CODE,
        }

        interval = device.interval
        deadline = dt.now(tz=UTC) + td(seconds=device.expires_in)

        while dt.now(tz=UTC) < deadline:
            await asyncio.sleep(interval)

            try:
                await self._fetch_access_token(credentials)

            except exc.AuthenticationFailedError as err:
                if err.error_code == "authorization_pending":
                    continue
                if err.error_code == "slow_down":
                    interval += 5
                    continue
                raise

            return

        raise exc.AuthenticationFailedError(
            "Device authorization has expired (the user did not log in)"
        )


class ApiResponse(NamedTuple):
    """A (completely read) response of the vendor's API."""

    status: int
    reason: str
    content_length: int | None
    body: bytes

    @property
    def status_line(self) -> str:
        """Return the status line, e.g. '429 Too Many Requests'."""
        return f"{self.status} {self.reason}".strip()


class Auth:
    """A class for making authenticated requests of the tado° API.

    Every request bears an access token obtained from the token source.
    """

    def __init__(
        self,
        token_source: AbstractTokenSource,
        websession: aiohttp.ClientSession,
        /,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        """A class for interacting with the tado° API."""

        self.websession: Final = websession

        self._token_source: Final = token_source
        self.logger: Final = logger or _LOGGER

    def __str__(self) -> str:
        """Return a string representation of the object."""
        return f"{self.__class__.__name__}(token_source={self._token_source})"

    async def _headers(self, headers: dict[str, str] | None = None) -> dict[str, str]:
        """Ensure the authorization header has a valid access token.

        Will raise ApiAuthenticationError if unable to obtain an access token.
        """

        try:
            access_token = await self._token_source.get_access_token()

        except exc.TokenSaveError as err:  # the token is still usable
            self.logger.warning(f"Unable to save the access token: {err}")
            access_token = err.token.access_token

        except (exc.TadoError, TimeoutError) as err:
            raise exc.ApiAuthenticationError(err) from err

        headers = HEADERS_BASE | (headers or {})
        return headers | {
            "Authorization": "Bearer " + access_token,
        }

    async def request(
        self,
        method: HTTPMethod,
        url: StrOrURL,
        /,
        *,
        json: dict[str, Any] | list[Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> ApiResponse:
        """Make a request of the vendor's API, and return the (read) response.

        Will raise ApiTransportError if the request could not be sent/completed.
        """

        rsp: aiohttp.ClientResponse | None = None  # to prevent unbound error

        headers = await self._headers(headers)

        try:
            rsp = await self._request(method, url, headers=headers, json=json)
            body = await rsp.read()

        except (aiohttp.ClientError, TimeoutError) as err:  # e.g. ClientConnectionError
            if isinstance(err, aiohttp.ClientConnectionError):
                self.logger.error(HINT_CHECK_NETWORK)  # noqa: TRY400

            raise exc.ApiTransportError(f"{method} {url}: {err!r}") from err

        else:
            return ApiResponse(rsp.status, rsp.reason or "", rsp.content_length, body)

        finally:
            if rsp is not None:
                rsp.release()

    async def _request(  # dev/test wrapper
        self, method: HTTPMethod, url: StrOrURL, /, **kwargs: Any
    ) -> aiohttp.ClientResponse:
        """Wrap the request to the ClientSession (useful for dev/test)."""
        return await self.websession.request(method, url, **kwargs)
