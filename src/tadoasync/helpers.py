"""tadoasync provides an async client for the tado° cloud API.

Helpers for the JSON exchanged with the vendor: its keys are camelCase on the wire
and snake_case in this library, and it is redacted before being logged.
"""

from __future__ import annotations

import re
from functools import cache
from typing import TYPE_CHECKING, Any, Final, TypeVar

from .const import _DBG_DONT_OBFUSCATE, REGEX_EMAIL_ADDRESS

if TYPE_CHECKING:
    from collections.abc import Callable

_T = TypeVar("_T")

_WORD_BOUNDARY: Final = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


@cache
def camel_to_snake(s: str) -> str:
    """Return a key converted from camelCase (e.g. durationInSeconds) to snake_case."""
    return _WORD_BOUNDARY.sub("_", s).lower()


@cache
def snake_to_camel(s: str) -> str:
    """Return a key converted from snake_case (e.g. home_presence) to camelCase."""
    head, *tail = s.split("_")
    return head + "".join(word.capitalize() for word in tail)


def _convert_keys(data: Any, fnc: Callable[[str], str]) -> Any:
    if isinstance(data, list):
        return [_convert_keys(item, fnc) for item in data]
    if isinstance(data, dict):
        return {
            fnc(k) if isinstance(k, str) else k: _convert_keys(v, fnc)
            for k, v in data.items()
        }
    return data


def convert_keys_to_camel_case(data: _T) -> _T:
    """Recursively convert all dict keys to camelCase (before sending a request)."""
    return _convert_keys(data, snake_to_camel)  # type: ignore[no-any-return]


def convert_keys_to_snake_case(data: _T) -> _T:
    """Recursively convert all dict keys to snake_case (after receiving a response)."""
    return _convert_keys(data, camel_to_snake)  # type: ignore[no-any-return]


REDACTED: Final = "********"

# values are always replaced
_SECRET_KEYS: Final = frozenset(
    {
        "access_token",
        "client_secret",
        "device_code",
        "jti",
        "password",
        "refresh_token",
        "user_code",
    }
)

# values are replaced, unless they are numbers, flags or null (keys with 'name' in
# them are also personal, but keep their first two characters)
_PERSONAL_KEYS: Final = frozenset(
    {
        "address_line1",
        "address_line2",
        "city",
        "email",
        "geolocation",
        "phone",
        "serial_no",
        "short_serial_no",
        "zip_code",
    }
)


def _redact(key: str, value: Any) -> Any:
    if key in _SECRET_KEYS:
        return REDACTED if value else value
    if value is None or isinstance(value, bool | float):  # e.g. a temperature
        return value
    if isinstance(value, dict | list):  # e.g. geolocation
        return REDACTED

    value = str(value)
    if REGEX_EMAIL_ADDRESS.match(value):
        return "nobody@nowhere.com"
    if "name" in key:
        return value[:2].ljust(len(value), "*")
    return REDACTED


def obscure_secrets(data: _T) -> _T:
    """Return a copy of some JSON with its secrets (and personal data) redacted.

    Used when logging JSON sent to (or received from) the vendor API. Its keys may
    be camelCase or snake_case.
    """

    if _DBG_DONT_OBFUSCATE:
        return data

    def recurse(data_: Any) -> Any:
        if isinstance(data_, list):
            return [recurse(i) for i in data_]
        if not isinstance(data_, dict):
            return data_

        result = {}
        for k, v in data_.items():
            key = camel_to_snake(k) if isinstance(k, str) else ""
            if key in _SECRET_KEYS or key in _PERSONAL_KEYS or "name" in key:
                result[k] = _redact(key, v)
            else:
                result[k] = recurse(v)
        return result

    return recurse(data)  # type: ignore[no-any-return]
