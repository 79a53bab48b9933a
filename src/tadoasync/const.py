"""tadoasync provides an async client for the tado° cloud API."""

from __future__ import annotations

import re
from datetime import timedelta as td
from http import HTTPStatus
from typing import Final

# all _DBG_* flags are only for dev/test and should be False for published code
_DBG_DONT_OBFUSCATE = False  # default is to redact sensitive JSON in debug output

REGEX_EMAIL_ADDRESS = re.compile(
    r"^([a-zA-Z0-9_\-\.]+)@([a-zA-Z0-9_\-\.]+)\.([a-zA-Z]{2,5})$"
)

# POST authentication url (the legacy password/refresh_token grants)
AUTH_URL: Final = "https://auth.tado.com/oauth/token"

DEFAULT_CLIENT_ID: Final = "tado-web-app"
DEFAULT_CLIENT_SECRET: Final = (  # noqa: S105
    "wZaRN7rpjn3FoNyF5IFuxg9uMzYJcvOoQ8QWiIqS3hfk6gLhVlG57j5YNoZL2Rtc"
)

# the auth server inspects the Referer, so it is sent with every grant
REFERER: Final = "https://my.tado.com/"
SCOPE: Final = "home.user"

# POST device authorization urls (the newer OAuth2 device code grant)
DEVICE_AUTH_URL: Final = "https://login.tado.com/oauth2/device_authorize"
DEVICE_TOKEN_URL: Final = "https://login.tado.com/oauth2/token"  # noqa: S105
DEVICE_CLIENT_ID: Final = "1bb50063-6b0c-4d11-bd99-387f4a91cc46"
DEVICE_SCOPE: Final = "offline_access"

GRANT_PASSWORD: Final = "password"  # noqa: S105
GRANT_REFRESH_TOKEN: Final = "refresh_token"  # noqa: S105
GRANT_DEVICE_CODE: Final = "urn:ietf:params:oauth:grant-type:device_code"

# GET/PUT/DELETE resource urls, one per API class
URL_MY_TADO: Final = "https://my.tado.com/api/v2"
URL_MINDER: Final = "https://minder.tado.com/v1"
URL_BOB: Final = "https://energy-bob.tado.com"
URL_INSIGHTS: Final = "https://energy-insights.tado.com/api"

# a vendor refresh token lives for 30 days, so an older file is of no use
DEFAULT_MAX_TOKEN_AGE: Final = td(days=30)

HEADERS_BASE: Final = {
    "Accept": "application/json",
    "Content-Type": "application/json",  # required by some endpoints, even for GETs
}
HEADERS_CRED: Final = {
    "Content-Type": "application/x-www-form-urlencoded",
    "Referer": REFERER,
}

HINT_CHECK_NETWORK = (
    "Unable to contact the vendor's server. Check your network "
    "and review the vendor's status page, https://status.tado.com."
)
HINT_WAIT_A_WHILE = (
    "You have exceeded the server's API rate limit. Wait a while "
    "and try again (consider reducing your polling interval)."
)
HINT_BAD_CREDS = (
    "Failed to authenticate. Check the username/password (and the client secret, "
    "if one was supplied)."
)

ERR_MSG_LOOKUP_BASE: dict[int, str] = {  # common to authentication / authorization
    HTTPStatus.BAD_GATEWAY: HINT_CHECK_NETWORK,
    HTTPStatus.INTERNAL_SERVER_ERROR: HINT_CHECK_NETWORK,
    HTTPStatus.SERVICE_UNAVAILABLE: HINT_CHECK_NETWORK,
    HTTPStatus.TOO_MANY_REQUESTS: HINT_WAIT_A_WHILE,
}

SZ_ACCESS_TOKEN: Final = "access_token"  # noqa: S105
SZ_ERRORS: Final = "errors"
SZ_EXPIRES_IN: Final = "expires_in"
SZ_HOMES: Final = "homes"
SZ_ID: Final = "id"
SZ_NAME: Final = "name"
SZ_REFRESH_TOKEN: Final = "refresh_token"  # noqa: S105
