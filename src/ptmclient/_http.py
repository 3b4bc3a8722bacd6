"""Small HTTP-related constants shared across ptmclient.

Constants only; imported by the transport and by every manager.
"""

from __future__ import annotations

from typing import Final

try:
    from importlib.metadata import PackageNotFoundError, version

    CLIENT_VERSION: str = version("ptm-client")
except PackageNotFoundError:
    CLIENT_VERSION = "0.0.0+unknown"

USER_AGENT: Final[str] = f"ptmclient-v{CLIENT_VERSION}"

#: Host part of every request URL; the socket transport ignores it.
BASE_URL: Final[str] = "http://c"

JSON_CONTENT_TYPE: Final[str] = "application/json"
OCTET_STREAM_CONTENT_TYPE: Final[str] = "application/octet-stream"

HEADER_FROM: Final[str] = "c11n-from"
HEADER_TO: Final[str] = "c11n-to"
HEADER_KEY: Final[str] = "c11n-key"

# Statuses treated as success for JSON endpoints.
SUCCESS_STATUS_CODES: frozenset[int] = frozenset({200, 201})

# Response bodies attached to errors are cut to this many characters.
MAX_ERROR_BODY_CHARS: Final[int] = 512
