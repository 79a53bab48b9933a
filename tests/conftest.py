"""tado-async - test config."""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiohttp
import pytest

from tadoasync import TadoClient

from .const import TEST_PASSWORD, TEST_USERNAME

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path


@pytest.fixture
async def client_session() -> AsyncGenerator[aiohttp.ClientSession]:
    """Yield an aiohttp.ClientSession (never faked)."""

    client_session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=30))

    try:
        yield client_session
    finally:
        await client_session.close()


@pytest.fixture(scope="session")
def credentials() -> tuple[str, str]:
    """Return a username and a password."""
    return TEST_USERNAME, TEST_PASSWORD


@pytest.fixture
def token_file(tmp_path: Path) -> Path:
    """Return the path of a (not yet existing) token file."""
    return tmp_path / ".tado-tokens.tst"


@pytest.fixture
async def tado(
    client_session: aiohttp.ClientSession, credentials: tuple[str, str]
) -> TadoClient:
    """Return a client (that uses the vendor's URLs, so they can be mocked)."""
    return TadoClient(*credentials, websession=client_session)
