"""Provide a token source that persists (and restores) the tokens of another."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Final

from . import exceptions as exc

if TYPE_CHECKING:
    from datetime import timedelta as td

    from .schemas import OAuthToken
    from .store import AbstractTokenStore


_LOGGER = logging.getLogger(__name__)


class AbstractTokenSource(ABC):
    """An ABC for anything that can provide a (valid) token on demand."""

    @abstractmethod
    async def token(self) -> OAuthToken:
        """Return a valid token, obtaining a new one if required."""

    async def get_access_token(self) -> str:  # convenience wrapper
        """Return a valid access token."""
        return (await self.token()).access_token

    def reset(self) -> None:  # noqa: B027
        """Discard any state that would prevent a full re-authentication."""

    def import_token(self, token: OAuthToken) -> None:  # noqa: B027
        """Seed the source with a (previously persisted) token."""


class PersistentTokenSource(AbstractTokenSource):
    """A token source that saves the tokens of its upstream source as they change.

    The last saved token is restored (once) when first used. If there is an upstream
    source, it is seeded with that token, so a restarted process can continue to use
    the refresh token rather than re-authenticate.
    """

    def __init__(
        self,
        store: AbstractTokenStore,
        upstream: AbstractTokenSource | None = None,
        /,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialise the token source."""

        self._store: Final = store
        self._upstream: Final = upstream
        self.logger = logger or _LOGGER

        self._lock = asyncio.Lock()  # for the restore, and the compare-and-save
        self._current: OAuthToken | None = None
        self._restored = False

    def __str__(self) -> str:
        """Return a string representation of the object."""
        return f"{self.__class__.__name__}(store={self._store}, upstream={self._upstream})"

    @property
    def current(self) -> OAuthToken | None:
        """Return the last token that was saved (or restored), if any."""
        return self._current

    async def restore(self) -> OAuthToken | None:
        """Restore the stored token, if there is one that is fresh enough.

        Only the first call will read the store, callers that arrive whilst it is
        being read will wait for it.
        """

        async with self._lock:
            return await self._restore()

    async def _restore(self) -> OAuthToken | None:
        if self._restored:
            return self._current

        try:
            token = await self._store.load()
        except exc.TokenStoreError as err:
            self._restored = True
            self.logger.debug(f"Unable to restore the token: {err}")
            return None

        self._restored = True

        if self._upstream is not None:
            self._upstream.import_token(token)

        self._current = token
        return token

    async def token(self) -> OAuthToken:
        """Return the token of the upstream source, saving it if it has changed.

        Concurrent callers are serialized, so each distinct token is saved once. If
        the save fails, raise TokenSaveError (the fresh token is its `token` attr)
        and retry the save on the next call.
        """

        async with self._lock:
            await self._restore()

            if self._upstream is None:
                if self._current is None:
                    raise exc.NoTokenSourceError("no token source")
                return self._current

            token = await self._upstream.token()

            if self._current and token.access_token == self._current.access_token:
                return token

            try:
                await self._store.save(token)
            except exc.TokenStoreError as err:
                raise exc.TokenSaveError(f"{err}", token) from err

            self._current = token
            return token

    async def get_stored_token(self, max_age: td | None = None) -> OAuthToken:
        """Return the stored token (if it is fresh enough), bypassing any upstream."""
        return await self._store.load(max_age)

    def reset(self) -> None:
        """Reset the upstream source (so it will re-authenticate)."""

        if self._upstream is not None:
            self._upstream.reset()
