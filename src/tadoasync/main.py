"""tadoasync provides an async client for the tado° cloud API."""

from __future__ import annotations

import asyncio
import json
import logging
from enum import StrEnum
from http import HTTPMethod, HTTPStatus
from typing import TYPE_CHECKING, Any, Final

import aiohttp
from pydantic import ValidationError

from . import exceptions as exc
from .auth import Auth, Authenticator
from .const import (
    ERR_MSG_LOOKUP_BASE,
    URL_BOB,
    URL_INSIGHTS,
    URL_MINDER,
    URL_MY_TADO,
)
from .helpers import (
    convert_keys_to_camel_case,
    convert_keys_to_snake_case,
    obscure_secrets,
)
from .schemas import (
    TADO_GET_ACCOUNT,
    TADO_GET_DICT,
    TADO_GET_LIST,
    AccountResponse,
    ErrorResponse,
)
from .store import EncryptedFileTokenStore
from .token_source import PersistentTokenSource
from .zone import Zone

if TYPE_CHECKING:
    from datetime import date, timedelta as td
    from os import PathLike

    from pydantic import TypeAdapter

    from .auth import ApiResponse
    from .token_source import AbstractTokenSource
    from .typedefs import (
        TadoAccountResponseT,
        TadoConsumptionResponseT,
        TadoEnergySavingsReportT,
        TadoHomeInfoResponseT,
        TadoMobileDeviceResponseT,
        TadoRunningTimeT,
        TadoWeatherResponseT,
        TadoZoneResponseT,
        _JsonT,
    )


API_STRFTIME: Final = "%Y-%m-%d"


_LOGGER = logging.getLogger(__name__.rpartition(".")[0])


class ApiClass(StrEnum):
    """The families of the vendor's API (each has its own base URL)."""

    ME = "me"
    MY_TADO = "myTado"
    MINDER = "minder"
    BOB = "bob"
    INSIGHTS = "insights"


def build_url_map(override: str | None = None) -> dict[ApiClass, str]:
    """Return the URL template of each API class.

    The templates (other than for ME) are formatted with the home id. An override
    (e.g. a test server) is used as the base URL of every API class.
    """

    my_tado, minder, bob, insights = URL_MY_TADO, URL_MINDER, URL_BOB, URL_INSIGHTS
    if override:
        my_tado = minder = bob = insights = override.rstrip("/")

    return {
        ApiClass.ME: f"{my_tado}/me",
        ApiClass.MY_TADO: f"{my_tado}/homes/{{home_id}}",
        ApiClass.MINDER: f"{minder}/homes/{{home_id}}",
        ApiClass.BOB: f"{bob}/{{home_id}}",
        ApiClass.INSIGHTS: f"{insights}/homes/{{home_id}}",
    }


def _parse_error(body: bytes, status: int) -> exc.ApiRequestFailedError:
    """Return the error list of a response body (or an error if is unparsable)."""

    try:
        response = ErrorResponse.model_validate_json(body)
    except ValidationError as err:
        return exc.BadApiResponseError(
            f"unparsable error: {err.errors()[0]['msg']}", status=status
        )
    return exc.ApiError([(e.code, e.title) for e in response.errors], status=status)


class TadoClient:
    """Provide a client to access the tado° cloud API.

    The first call of any API (other than GET /me) will select the active home,
    which is the first home of the account unless `set_active_home()` is used.
    """

    _account: AccountResponse | None = None

    def __init__(
        self,
        username: str | None = None,
        password: str | None = None,
        /,
        *,
        client_secret: str | None = None,
        websession: aiohttp.ClientSession | None = None,
        auth_url: str | None = None,
        api_url: str | None = None,
        token_file: str | PathLike[str] | None = None,
        passphrase: str | None = None,
        max_token_age: td | None = None,
        token_source: AbstractTokenSource | None = None,
        logger: logging.Logger | None = None,
        debug: bool = False,
    ) -> None:
        """Construct the TadoClient object.

        Unless a token source is supplied, a username & password are required. If a
        token file is supplied, the tokens are persisted (encrypted with the
        passphrase), so they are re-used by the next instance of the client.
        """

        self.logger = logger or _LOGGER
        if debug:
            self.logger.setLevel(logging.DEBUG)
            self.logger.debug("Debug mode explicitly enabled via kwarg.")

        self._own_session = websession is None
        self.websession: Final = websession or aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=30)
        )

        if token_source is None:
            if not username or not password:
                raise ValueError("A username & password (or a token source) are required")

            token_source = Authenticator(
                username,
                password,
                self.websession,
                client_secret=client_secret,
                auth_url=auth_url,
                logger=logger,
            )

        if token_file is not None:
            if not passphrase:
                raise ValueError("A passphrase is required to encrypt the token file")

            store = EncryptedFileTokenStore(
                token_file, passphrase, max_age=max_token_age, logger=logger
            )
            token_source = PersistentTokenSource(store, token_source, logger=logger)

        self._token_source: Final = token_source
        self.auth = Auth(token_source, self.websession, logger=logger)

        self._url_map: Final = build_url_map(api_url)

        self._lock = asyncio.Lock()  # for the active home (and account)
        self._active_home_id: int | None = None
        self._active_home_name: str | None = None

    def __str__(self) -> str:
        """Return a string representation of this object."""
        return f"{self.__class__.__name__}(auth='{self.auth}')"

    async def __aenter__(self) -> TadoClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the web session, if it was created by this client."""

        if self._own_session:
            await self.websession.close()

    @property
    def token_source(self) -> AbstractTokenSource:
        """Return the token source used to authenticate requests."""
        return self._token_source

    # The generic dispatcher...

    async def call(
        self,
        method: HTTPMethod,
        api_class: ApiClass | str,
        endpoint: str = "",
        /,
        *,
        json: dict[str, Any] | list[Any] | None = None,
        schema: TypeAdapter[Any] | None = None,
    ) -> _JsonT:
        """Call the vendor's API and return the (decoded) response, if any.

        Converts keys to/from snake_case as required. Optionally checks the response
        JSON against the expected schema and logs a debug message if it doesn't
        match. Returns None if the response has no content.
        """

        api_class = ApiClass(api_class)

        if api_class != ApiClass.ME:
            await self._ensure_active_home()

        url = self._make_url(api_class, endpoint)

        if json is not None:
            json = convert_keys_to_camel_case(json)
            if self.logger.isEnabledFor(logging.DEBUG):
                self.logger.debug(f"{method} {url}: {obscure_secrets(json)}")

        rsp = await self.auth.request(method, url, json=json)

        return self._handle_response(method, url, rsp, schema=schema)

    def _make_url(self, api_class: ApiClass, endpoint: str) -> str:
        """Return the URL of an endpoint (the ME class has no endpoints)."""

        if api_class == ApiClass.ME:
            return self._url_map[api_class]
        return self._url_map[api_class].format(home_id=self._active_home_id) + endpoint

    def _handle_response(
        self,
        method: HTTPMethod,
        url: str,
        rsp: ApiResponse,
        /,
        *,
        schema: TypeAdapter[Any] | None = None,
    ) -> _JsonT:
        """Return the decoded response, or raise the appropriate exception."""

        if rsp.status == HTTPStatus.OK:
            if rsp.content_length == 0 or not rsp.body:
                return None

            try:
                response = json.loads(rsp.body)
            except ValueError as err:
                raise exc.BadApiResponseError(
                    f"{method} {url}: response is not valid JSON: {err}",
                    status=rsp.status,
                ) from err

            if self.logger.isEnabledFor(logging.DEBUG):
                self.logger.debug(f"{method} {url}: {obscure_secrets(response)}")

            response = convert_keys_to_snake_case(response)

            if schema:
                try:
                    schema.validate_python(response)
                except ValidationError as err:
                    self.logger.debug(f"{method} {url}: payload may be invalid: {err}")

            return response  # type: ignore[no-any-return]

        if rsp.status == HTTPStatus.NO_CONTENT:
            return None

        if rsp.status in (HTTPStatus.UNAUTHORIZED, HTTPStatus.FORBIDDEN):
            # the server may revoke a token before it expires, so re-authenticate
            self.logger.warning(
                f"{method} {url}: the access token was rejected: {rsp.status_line}"
            )
            self._token_source.reset()
            raise exc.UnauthorizedError(rsp.status_line, status=rsp.status)

        if hint := ERR_MSG_LOOKUP_BASE.get(rsp.status):
            self.logger.error(hint)

        if rsp.status == HTTPStatus.UNPROCESSABLE_ENTITY:
            err = _parse_error(rsp.body, rsp.status)
            raise exc.UnprocessableEntityError(err, status=rsp.status) from err

        if isinstance(err := _parse_error(rsp.body, rsp.status), exc.ApiError):
            if err.errors:
                raise err

        raise exc.ApiStatusError(rsp.status_line, status=rsp.status)

    # The active home...

    async def _get_account(self) -> AccountResponse:
        """Return the account (retrieving it, if required)."""

        if self._account is None:
            response = await self.call(HTTPMethod.GET, ApiClass.ME)

            try:
                self._account = TADO_GET_ACCOUNT.validate_python(response)
            except ValidationError as err:
                raise exc.BadApiResponseError(
                    f"GET {self._url_map[ApiClass.ME]}: response is invalid: {err}"
                ) from err

        return self._account

    async def _ensure_active_home(self) -> None:
        """Select the first home of the account, unless a home is already active."""

        if self._active_home_id is not None:
            return

        async with self._lock:
            if self._active_home_id is not None:  # another task may have set it
                return

            account = await self._get_account()
            if not account.homes:
                raise exc.NoHomesError("no homes detected")

            self._active_home_id = account.homes[0].id
            self._active_home_name = account.homes[0].name

            self.logger.debug(f"The active home is: {self._active_home_id}")

    async def set_active_home(self, name: str) -> None:
        """Select the active home by its name (case-sensitive)."""

        async with self._lock:
            account = await self._get_account()

            for home in account.homes:
                if home.name == name:
                    self._active_home_id = home.id
                    self._active_home_name = home.name
                    return

        raise exc.UnknownHomeError(f"invalid home name: {name}")

    def get_active_home(self) -> str | None:
        """Return the name of the active home, or None if there isn't one (yet)."""
        return self._active_home_name

    @property
    def active_home_id(self) -> int | None:
        """Return the id of the active home, or None if there isn't one (yet)."""
        return self._active_home_id

    def reset_active_home(self) -> None:
        """Clear the active home (and the account), so both will be re-fetched."""

        self._account = None
        self._active_home_id = None
        self._active_home_name = None

    # Account & Home APIs...

    async def get_account(self) -> TadoAccountResponseT:
        """Return the account information (and all its homes)."""

        response: TadoAccountResponseT = await self.call(  # type: ignore[assignment]
            HTTPMethod.GET, ApiClass.ME, schema=TADO_GET_ACCOUNT
        )
        return response

    async def get_homes(self) -> list[str]:
        """Return the names of all the homes of the account."""

        await self._ensure_active_home()
        account = await self._get_account()
        return [home.name for home in account.homes]

    async def get_home_info(self) -> TadoHomeInfoResponseT:
        """Return the information of the active home."""

        response: TadoHomeInfoResponseT = await self.call(  # type: ignore[assignment]
            HTTPMethod.GET, ApiClass.MY_TADO, schema=TADO_GET_DICT
        )
        return response

    async def get_home_state(self) -> dict[str, Any]:
        """Return the presence state of the active home (e.g. HOME, AWAY)."""

        response: dict[str, Any] = await self.call(  # type: ignore[assignment]
            HTTPMethod.GET, ApiClass.MY_TADO, "/state", schema=TADO_GET_DICT
        )
        return response

    async def set_home_state(self, home: bool) -> None:
        """Lock the presence of the active home to HOME (if True) or AWAY."""

        await self.call(
            HTTPMethod.PUT,
            ApiClass.MY_TADO,
            "/presenceLock",
            json={"home_presence": "HOME" if home else "AWAY"},
        )

    async def unset_home_state(self) -> None:
        """Unlock the presence of the active home (i.e. return to geofencing)."""
        await self.call(HTTPMethod.DELETE, ApiClass.MY_TADO, "/presenceLock")

    async def get_weather(self) -> TadoWeatherResponseT:
        response: TadoWeatherResponseT = await self.call(  # type: ignore[assignment]
            HTTPMethod.GET, ApiClass.MY_TADO, "/weather", schema=TADO_GET_DICT
        )
        return response

    async def get_mobile_devices(self) -> list[TadoMobileDeviceResponseT]:
        response: list[TadoMobileDeviceResponseT] = await self.call(  # type: ignore[assignment]
            HTTPMethod.GET, ApiClass.MY_TADO, "/mobileDevices", schema=TADO_GET_LIST
        )
        return response or []

    async def get_users(self) -> list[dict[str, Any]]:
        response: list[dict[str, Any]] = await self.call(  # type: ignore[assignment]
            HTTPMethod.GET, ApiClass.MY_TADO, "/users", schema=TADO_GET_LIST
        )
        return response or []

    async def get_heating_circuits(self) -> list[dict[str, Any]]:
        response: list[dict[str, Any]] = await self.call(  # type: ignore[assignment]
            HTTPMethod.GET, ApiClass.MY_TADO, "/heatingCircuits", schema=TADO_GET_LIST
        )
        return response or []

    async def get_air_comfort(self) -> dict[str, Any]:
        response: dict[str, Any] = await self.call(  # type: ignore[assignment]
            HTTPMethod.GET, ApiClass.MY_TADO, "/airComfort", schema=TADO_GET_DICT
        )
        return response

    async def get_zones(self) -> list[Zone]:
        """Return the zones of the active home."""

        response: list[TadoZoneResponseT] = await self.call(  # type: ignore[assignment]
            HTTPMethod.GET, ApiClass.MY_TADO, "/zones", schema=TADO_GET_LIST
        )
        return [Zone(self, config) for config in response or []]

    # Report APIs...

    async def get_consumption(
        self, country: str, start: date | None = None, end: date | None = None
    ) -> TadoConsumptionResponseT:
        """Return the gas consumption of the active home (optionally, for a period)."""

        query = f"country={country}"
        if start is not None:
            query += f"&startDate={start.strftime(API_STRFTIME)}"
        if end is not None:
            query += f"&endDate={end.strftime(API_STRFTIME)}"

        response: TadoConsumptionResponseT = await self.call(  # type: ignore[assignment]
            HTTPMethod.GET, ApiClass.INSIGHTS, f"/consumption?{query}"
        )
        return response

    async def get_energy_savings(self) -> list[TadoEnergySavingsReportT]:
        """Return the monthly energy savings reports of the active home."""

        response: dict[str, Any] | None = await self.call(  # type: ignore[assignment]
            HTTPMethod.GET, ApiClass.BOB, "/"
        )
        return (response or {}).get("reports", [])

    async def get_running_times(
        self, start: date, end: date | None = None
    ) -> list[TadoRunningTimeT]:
        """Return the (daily) running times of the heating system of the active home."""

        if start is None:
            raise ValueError("start cannot be None")

        query = f"from={start.strftime(API_STRFTIME)}"
        if end is not None:
            query += f"&to={end.strftime(API_STRFTIME)}"

        response: dict[str, Any] | None = await self.call(  # type: ignore[assignment]
            HTTPMethod.GET, ApiClass.MINDER, f"/runningTimes?{query}"
        )
        return (response or {}).get("running_times", [])

    async def get_incidents(self) -> list[dict[str, Any]]:
        """Return the incidents (e.g. boiler faults) of the active home."""

        response: dict[str, Any] | None = await self.call(  # type: ignore[assignment]
            HTTPMethod.GET, ApiClass.MINDER, "/incidents"
        )
        return (response or {}).get("incidents", [])
