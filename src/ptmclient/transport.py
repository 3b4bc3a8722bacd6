"""Transport handle: an HTTP client bound to the manager's Unix socket."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Any, Final

import httpx

from ptmclient._http import BASE_URL, USER_AGENT

if TYPE_CHECKING:
    from os import PathLike
    from types import TracebackType

log = logging.getLogger(__name__)

# The manager is a co-located process; anything slower than this is a hang.
MAX_TIMEOUT_S: Final[float] = 10.0


@dataclass(frozen=True)
class Timeouts:
    """Bounded timeouts for calls to the local manager."""

    dial_s: float = 1.0
    response_header_s: float = 5.0
    request_s: float = 5.0

    def __post_init__(self) -> None:
        """Reject unbounded or non-positive timeouts."""
        for name in ("dial_s", "response_header_s", "request_s"):
            value = getattr(self, name)
            if not 0 < value < MAX_TIMEOUT_S:
                raise ValueError(
                    f"Timeouts.{name} must be in (0, {MAX_TIMEOUT_S}), got {value}"
                )

    def to_httpx(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=self.dial_s,
            read=self.response_header_s,
            write=self.request_s,
            pool=self.request_s,
        )


class Transport:
    """Reusable HTTP handle with a fixed base endpoint.

    Safe for concurrent use by multiple threads. Transport errors
    (``httpx.TransportError`` and its timeouts) reach the caller unchanged;
    nothing here retries.
    """

    def __init__(self, client: httpx.Client) -> None:
        """Wrap an already configured ``httpx.Client``."""
        self._client = client

    @classmethod
    def for_socket(
        cls,
        socket_path: str | PathLike[str],
        *,
        timeouts: Timeouts | None = None,
    ) -> Transport:
        """Build a transport that dials *socket_path* for every request."""
        timeouts = timeouts or Timeouts()
        client = httpx.Client(
            transport=httpx.HTTPTransport(uds=str(socket_path)),
            base_url=BASE_URL,
            timeout=timeouts.to_httpx(),
            headers={"User-Agent": USER_AGENT},
        )
        log.debug("Transport bound to socket %s", socket_path)
        return cls(client)

    @property
    def client(self) -> httpx.Client:
        return self._client

    def full_path(self, path: str) -> str:
        return f"{str(self._client.base_url).rstrip('/')}{path}"

    def build_request(self, method: str, path: str, **kwargs: Any) -> httpx.Request:
        return self._client.build_request(method, path, **kwargs)

    def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return self._client.get(path, **kwargs)

    def do(self, request: httpx.Request) -> httpx.Response:
        """Send a pre-built request and return the read response."""
        return self._client.send(request)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> Transport:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
