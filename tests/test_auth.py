"""Tests for the token managers (password & device code grants)."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime as dt, timedelta as td
from http import HTTPMethod
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock

import aiohttp
import pytest
from aioresponses import CallbackResult, aioresponses
from freezegun import freeze_time
from yarl import URL

from tadoasync import Authenticator, DeviceCodeAuthenticator, exceptions as exc
from tadoasync.const import (
    DEVICE_AUTH_URL,
    DEVICE_TOKEN_URL,
    HEADERS_CRED,
    HINT_BAD_CREDS,
)

from .const import DATA_PASSWORD, URL_AUTH, data_refresh, token_payload

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from aioresponses.core import RequestCall


def _grants(rsp: aioresponses, url: str = URL_AUTH) -> list[RequestCall]:
    return rsp.requests.get((HTTPMethod.POST, URL(url)), [])


def _expire(authenticator: Authenticator) -> None:
    authenticator._access_token_expires = dt.now(tz=UTC) - td(seconds=1)


async def test_password_grant(
    client_session: aiohttp.ClientSession, credentials: tuple[str, str]
) -> None:
    """Test the initial grant, and that the token is then re-used."""

    authenticator = Authenticator(*credentials, client_session)

    with freeze_time("2025-01-01 12:00:00", real_asyncio=True) as frozen:
        with aioresponses() as rsp:
            rsp.post(URL_AUTH, payload=token_payload("token_1", expires_in=20))

            assert await authenticator.get_access_token() == "token_1"

            rsp.assert_called_once_with(
                URL_AUTH, HTTPMethod.POST, headers=HEADERS_CRED, data=DATA_PASSWORD
            )

            frozen.tick(td(seconds=19))
            assert await authenticator.get_access_token() == "token_1"

            assert len(_grants(rsp)) == 1  # no new grant within the lifetime

        assert authenticator.access_token_expires == dt(
            2025, 1, 1, 12, 0, 20, tzinfo=UTC
        )
        assert authenticator.is_token_valid()


async def test_refresh_grant(
    client_session: aiohttp.ClientSession, credentials: tuple[str, str]
) -> None:
    """Test an expired access token is refreshed with the refresh token."""

    authenticator = Authenticator(*credentials, client_session)

    with aioresponses() as rsp:
        rsp.post(URL_AUTH, payload=token_payload("token_1", refresh_token="refresh_1"))
        assert await authenticator.get_access_token() == "token_1"

    _expire(authenticator)

    with aioresponses() as rsp:
        rsp.post(URL_AUTH, payload=token_payload("token_2", refresh_token="refresh_2"))
        assert await authenticator.get_access_token() == "token_2"

        rsp.assert_called_once_with(
            URL_AUTH,
            HTTPMethod.POST,
            headers=HEADERS_CRED,
            data=data_refresh("refresh_1"),
        )

    assert authenticator.refresh_token == "refresh_2"


async def test_refresh_grant_rejected(
    client_session: aiohttp.ClientSession, credentials: tuple[str, str]
) -> None:
    """Test a rejected refresh clears the refresh token (next is a password grant)."""

    authenticator = Authenticator(*credentials, client_session)

    with aioresponses() as rsp:
        rsp.post(URL_AUTH, payload=token_payload("token_1"))
        await authenticator.get_access_token()

    _expire(authenticator)

    with aioresponses() as rsp:
        rsp.post(URL_AUTH, status=400, payload={"error": "invalid_grant"})

        with pytest.raises(exc.AuthenticationFailedError) as err:
            await authenticator.get_access_token()

    assert err.value.status == 400
    assert err.value.error_code == "invalid_grant"
    assert str(err.value) == "400 Bad Request"

    assert authenticator.refresh_token == ""

    with aioresponses() as rsp:
        rsp.post(URL_AUTH, payload=token_payload("token_3"))
        assert await authenticator.get_access_token() == "token_3"

        assert _grants(rsp)[0].kwargs["data"] == DATA_PASSWORD


async def test_password_grant_rejected(
    client_session: aiohttp.ClientSession, credentials: tuple[str, str]
) -> None:
    """Test a rejected password grant."""

    authenticator = Authenticator(*credentials, client_session)

    with aioresponses() as rsp:
        rsp.post(
            URL_AUTH,
            status=401,
            payload={"error": "invalid_client", "error_description": "Bad creds"},
        )

        with pytest.raises(exc.AuthenticationFailedError) as err:
            await authenticator.get_access_token()

    assert str(err.value) == "401 Unauthorized"
    assert not authenticator.is_token_valid()


async def test_zero_lifetime(
    client_session: aiohttp.ClientSession, credentials: tuple[str, str]
) -> None:
    """Test a token that expires immediately is refreshed on the next call."""

    authenticator = Authenticator(*credentials, client_session)

    with aioresponses() as rsp:
        rsp.post(URL_AUTH, payload=token_payload("token_1", expires_in=0))
        rsp.post(URL_AUTH, payload=token_payload("token_2"))

        assert await authenticator.get_access_token() == "token_1"
        assert await authenticator.get_access_token() == "token_2"

        grants = _grants(rsp)

    assert len(grants) == 2
    assert grants[0].kwargs["data"]["grant_type"] == "password"
    assert grants[1].kwargs["data"]["grant_type"] == "refresh_token"


async def test_concurrent_callers(
    client_session: aiohttp.ClientSession, credentials: tuple[str, str]
) -> None:
    """Test concurrent callers share the outcome of a single grant."""

    authenticator = Authenticator(*credentials, client_session)

    with aioresponses() as rsp:
        rsp.post(URL_AUTH, payload=token_payload("token_1"))  # only one response

        results = await asyncio.gather(
            *(authenticator.get_access_token() for _ in range(5))
        )

        assert len(_grants(rsp)) == 1

    assert results == ["token_1"] * 5


async def test_reset(
    client_session: aiohttp.ClientSession, credentials: tuple[str, str]
) -> None:
    """Test a reset token manager will use the initial grant."""

    authenticator = Authenticator(*credentials, client_session)

    with aioresponses() as rsp:
        rsp.post(URL_AUTH, payload=token_payload("token_1"))
        rsp.post(URL_AUTH, payload=token_payload("token_2"))

        await authenticator.get_access_token()
        authenticator.reset()

        assert await authenticator.get_access_token() == "token_2"
        assert _grants(rsp)[1].kwargs["data"] == DATA_PASSWORD


async def test_import_export(
    client_session: aiohttp.ClientSession, credentials: tuple[str, str]
) -> None:
    """Test an imported (unexpired) token is used without a grant."""

    authenticator = Authenticator(*credentials, client_session)

    with aioresponses() as rsp:
        rsp.post(URL_AUTH, payload=token_payload("token_1"))
        token = await authenticator.token()

    assert token.valid

    restarted = Authenticator(*credentials, client_session)
    restarted.import_token(token)

    with aioresponses() as rsp:  # any grant would fail
        assert await restarted.get_access_token() == "token_1"

    assert restarted.export_token() == token


@pytest.mark.parametrize(
    "kwargs",
    [
        {"exception": aiohttp.ClientConnectionError("Connection refused")},
        {"exception": TimeoutError()},
        {"body": "<html>Service Unavailable</html>", "content_type": "text/html"},
        {"payload": ["not", "a", "dict"]},
        {"payload": {"token_type": "bearer"}},  # no access_token
    ],
)
async def test_grant_io_error(
    client_session: aiohttp.ClientSession,
    credentials: tuple[str, str],
    kwargs: dict,
) -> None:
    """Test failures to complete a grant (or read its response)."""

    authenticator = Authenticator(*credentials, client_session)

    with aioresponses() as rsp:
        rsp.post(URL_AUTH, **kwargs)

        with pytest.raises(exc.AuthenticationIOError):
            await authenticator.get_access_token()


async def test_auth_url_override(
    client_session: aiohttp.ClientSession, credentials: tuple[str, str]
) -> None:
    """Test the token endpoint can be overridden."""

    url = "http://localhost:8080/oauth/token"
    authenticator = Authenticator(*credentials, client_session, auth_url=url)

    with aioresponses() as rsp:
        rsp.post(url, payload=token_payload("token_1"))
        assert await authenticator.get_access_token() == "token_1"


DEVICE_RESPONSE = {
    "device_code": "device_code_1",
    "user_code": "7BQ5ZQ",
    "verification_uri": "https://login.tado.com/oauth2/device",
    "verification_uri_complete": "https://login.tado.com/oauth2/device?user_code=7BQ5ZQ",
    "expires_in": 300,
    "interval": 0,
}


async def test_device_code_grant(client_session: aiohttp.ClientSession) -> None:
    """Test the device code flow, including polling whilst authorization is pending."""

    on_verification = AsyncMock()
    authenticator = DeviceCodeAuthenticator(
        client_session, on_verification=on_verification
    )

    with aioresponses() as rsp:
        rsp.post(DEVICE_AUTH_URL, payload=DEVICE_RESPONSE)
        rsp.post(DEVICE_TOKEN_URL, status=400, payload={"error": "authorization_pending"})
        rsp.post(DEVICE_TOKEN_URL, payload=token_payload("token_1"))

        assert await authenticator.get_access_token() == "token_1"

        polls = _grants(rsp, DEVICE_TOKEN_URL)

    on_verification.assert_awaited_once_with(
        DEVICE_RESPONSE["verification_uri_complete"], "7BQ5ZQ"
    )

    assert len(polls) == 2
    assert polls[0].kwargs["data"]["device_code"] == "device_code_1"
    assert polls[0].kwargs["data"]["grant_type"] == (
        "urn:ietf:params:oauth:grant-type:device_code"
    )


async def test_device_code_denied(client_session: aiohttp.ClientSession) -> None:
    """Test the device code flow when the user denies access."""

    authenticator = DeviceCodeAuthenticator(client_session)

    with aioresponses() as rsp:
        rsp.post(DEVICE_AUTH_URL, payload=DEVICE_RESPONSE)
        rsp.post(DEVICE_TOKEN_URL, status=400, payload={"error": "access_denied"})

        with pytest.raises(exc.AuthenticationFailedError) as err:
            await authenticator.get_access_token()

    assert err.value.error_code == "access_denied"


async def test_device_code_expired(client_session: aiohttp.ClientSession) -> None:
    """Test the device code flow when the user does not log in in time."""

    authenticator = DeviceCodeAuthenticator(client_session)

    with aioresponses() as rsp:
        rsp.post(DEVICE_AUTH_URL, payload=DEVICE_RESPONSE | {"expires_in": 0})

        with pytest.raises(exc.AuthenticationFailedError):
            await authenticator.get_access_token()

        assert not _grants(rsp, DEVICE_TOKEN_URL)


def _blocking_grant(
    started: asyncio.Event, release: asyncio.Event, **kwargs: Any
) -> Callable[..., Awaitable[CallbackResult]]:
    """Return a callback that stalls the grant until it is released."""

    async def callback(url: URL, **_: Any) -> CallbackResult:
        started.set()
        await release.wait()
        return CallbackResult(payload=token_payload(**kwargs))

    return callback


async def test_reset_during_grant(
    client_session: aiohttp.ClientSession, credentials: tuple[str, str]
) -> None:
    """Test a reset whilst a grant is in flight is not undone by the grant."""

    authenticator = Authenticator(*credentials, client_session)
    started, release = asyncio.Event(), asyncio.Event()

    with aioresponses() as rsp:
        rsp.post(
            URL_AUTH,
            callback=_blocking_grant(
                started, release, access_token="token_1", refresh_token="refresh_1"
            ),
        )

        task = asyncio.create_task(authenticator.get_access_token())
        await started.wait()

        authenticator.reset()
        release.set()

        assert await task == "token_1"  # the caller still gets its token

    assert authenticator.refresh_token == ""

    with aioresponses() as rsp:
        rsp.post(URL_AUTH, payload=token_payload("token_2"))

        assert await authenticator.get_access_token() == "token_2"
        assert _grants(rsp)[0].kwargs["data"] == DATA_PASSWORD


async def test_cancelled_before_grant(
    client_session: aiohttp.ClientSession, credentials: tuple[str, str]
) -> None:
    """Test a task cancelled before its grant starts does not issue the grant."""

    authenticator = Authenticator(*credentials, client_session)

    with aioresponses() as rsp:
        rsp.post(URL_AUTH, payload=token_payload("token_1"))

        task = asyncio.create_task(authenticator.get_access_token())
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert not _grants(rsp)


async def test_cancelled_during_grant(
    client_session: aiohttp.ClientSession, credentials: tuple[str, str]
) -> None:
    """Test cancellation propagates as is, and leaves the token manager usable."""

    authenticator = Authenticator(*credentials, client_session)
    started = asyncio.Event()

    with aioresponses() as rsp:
        rsp.post(URL_AUTH, callback=_blocking_grant(started, asyncio.Event()))

        task = asyncio.create_task(authenticator.get_access_token())
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

    assert not authenticator.is_token_valid()

    with aioresponses() as rsp:
        rsp.post(URL_AUTH, payload=token_payload("token_2"))

        assert await authenticator.get_access_token() == "token_2"


async def test_deadline_during_grant(
    client_session: aiohttp.ClientSession, credentials: tuple[str, str]
) -> None:
    """Test a caller's deadline cancels the grant (it is not wrapped)."""

    authenticator = Authenticator(*credentials, client_session)

    with aioresponses() as rsp:
        rsp.post(URL_AUTH, callback=_blocking_grant(asyncio.Event(), asyncio.Event()))

        with pytest.raises(TimeoutError) as err:
            async with asyncio.timeout(0.05):
                await authenticator.get_access_token()

    assert not isinstance(err.value, exc.TadoError)


async def test_hint_only_for_password_grant(
    client_session: aiohttp.ClientSession,
    credentials: tuple[str, str],
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Test the bad credentials hint is not logged for a rejected refresh token."""

    authenticator = Authenticator(*credentials, client_session)

    with aioresponses() as rsp:
        rsp.post(URL_AUTH, payload=token_payload("token_1"))
        await authenticator.get_access_token()

    _expire(authenticator)

    with aioresponses() as rsp:
        rsp.post(URL_AUTH, status=400, payload={"error": "invalid_grant"})

        with pytest.raises(exc.AuthenticationFailedError):
            await authenticator.get_access_token()

    assert HINT_BAD_CREDS not in caplog.text

    with aioresponses() as rsp:
        rsp.post(URL_AUTH, status=401, payload={"error": "invalid_client"})

        with pytest.raises(exc.AuthenticationFailedError):
            await authenticator.get_access_token()

    assert HINT_BAD_CREDS in caplog.text
