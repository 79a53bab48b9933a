"""Persist the current token to a file, encrypted at rest.

The file holds the ciphertext of the token's JSON, and is readable/writable only by
its owner. The file's mtime is the time of the last save, and is used to decide if
the stored token is still fresh (the refresh token may outlive the access token, so
the token's own expiry is not used for this).
"""

from __future__ import annotations

import logging
import os
import secrets
from abc import ABC, abstractmethod
from datetime import UTC, datetime as dt, timedelta as td
from pathlib import Path
from typing import TYPE_CHECKING, Final

import aiofiles
import aiofiles.os
from pydantic import ValidationError

from . import exceptions as exc
from .const import DEFAULT_MAX_TOKEN_AGE
from .crypto import decrypt, derive_key, encrypt
from .schemas import OAuthToken

if TYPE_CHECKING:
    from os import PathLike

FILE_MODE: Final = 0o600


_LOGGER = logging.getLogger(__name__)


def _owner_only(path: str, flags: int) -> int:
    return os.open(path, flags | os.O_EXCL, FILE_MODE)


class AbstractTokenStore(ABC):
    """An ABC for persisting/restoring a token."""

    @abstractmethod
    async def save(self, token: OAuthToken) -> None:
        """Persist the token (will raise TokenStoreError if unable to do so)."""

    @abstractmethod
    async def load(self, max_age: td | None = None) -> OAuthToken:
        """Restore the last persisted token (will raise TokenStoreError if unable)."""


class EncryptedFileTokenStore(AbstractTokenStore):
    """A token store that uses a file, with the token encrypted via a passphrase."""

    def __init__(
        self,
        path: str | PathLike[str],
        passphrase: str | bytes,
        /,
        *,
        max_age: td | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialise the token store."""

        self._path: Final = Path(path)
        self._key: Final = derive_key(passphrase)
        self._max_age: Final = DEFAULT_MAX_TOKEN_AGE if max_age is None else max_age

        self.logger = logger or _LOGGER

    def __str__(self) -> str:
        """Return a string representation of the object."""
        return f"{self.__class__.__name__}(path='{self._path}')"

    @property
    def path(self) -> Path:
        """Return the path of the token file."""
        return self._path

    @property
    def max_age(self) -> td:
        """Return the default freshness bound of the token file."""
        return self._max_age

    async def save(self, token: OAuthToken) -> None:
        """Encrypt the token and (atomically) write it to the token file."""

        content = encrypt(token.model_dump_json().encode("utf-8"), self._key)
        # unique per save
        tmp_path = self._path.with_name(f"{self._path.name}.{secrets.token_hex(4)}.tmp")

        try:
            async with aiofiles.open(tmp_path, "wb", opener=_owner_only) as fp:
                await fp.write(content)

            await aiofiles.os.replace(tmp_path, self._path)

        except OSError as err:
            try:
                await aiofiles.os.remove(tmp_path)
            except OSError:
                pass  # may not have been created
            raise exc.TokenStoreError(f"Unable to save the token: {err}") from err

        self.logger.debug(f"Saved the token to: {self._path} (expires {token.expiry})")

    async def load(self, max_age: td | None = None) -> OAuthToken:
        """Read the token file and decrypt the token.

        Will raise StaleTokenError if the file is older than the freshness bound, a
        timedelta of zero is never fresh.
        """

        if max_age is None:
            max_age = self._max_age

        try:
            st = await aiofiles.os.stat(self._path)
        except FileNotFoundError as err:
            raise exc.TokenNotFoundError(f"No stored token: {self._path}") from err
        except OSError as err:
            raise exc.TokenStoreError(f"Unable to load the token: {err}") from err

        age = dt.now(tz=UTC) - dt.fromtimestamp(st.st_mtime, tz=UTC)
        if not max_age or age > max_age:
            raise exc.StaleTokenError(f"stored token is too old ({age} > {max_age})")

        try:
            async with aiofiles.open(self._path, "rb") as fp:
                content = await fp.read()
        except OSError as err:
            raise exc.TokenStoreError(f"Unable to load the token: {err}") from err

        plaintext = decrypt(content, self._key)

        try:
            token = OAuthToken.model_validate_json(plaintext)
        except ValidationError as err:
            # the message of a ValidationError may include the input (the token)
            raise exc.MalformedTokenError(
                f"Stored token is malformed ({err.error_count()} errors)"
            ) from None

        self.logger.debug(f"Loaded the token from: {self._path} (age {age})")
        return token
