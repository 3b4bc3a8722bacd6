"""Backend selection: probe the manager once and build the matching client."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

import httpx

from ptmclient.cache import PayloadCache
from ptmclient.errors import NotReadyError
from ptmclient.managers.constellation import ConstellationManager
from ptmclient.managers.tessera_v1 import TesseraV1Manager
from ptmclient.managers.tessera_v2 import TesseraV2Manager
from ptmclient.version import API_VERSION_1, API_VERSION_2, resolve_version

if TYPE_CHECKING:
    from ptmclient.managers.base import PrivateTransactionManager
    from ptmclient.managers.tessera import TesseraManager
    from ptmclient.transport import Transport

log = logging.getLogger(__name__)

UPCHECK_PATH: Final[str] = "/upcheck"
VERSION_PATH: Final[str] = "/version"

VERSION_MANAGERS: dict[str, type[TesseraManager]] = {
    API_VERSION_1: TesseraV1Manager,
    API_VERSION_2: TesseraV2Manager,
}


def select_manager(
    transport: Transport,
    *,
    cache_ttl_s: float | None = None,
) -> PrivateTransactionManager:
    """Return the manager client to use for the lifetime of the process.

    Steps:
        1. ``/upcheck`` must answer 200, otherwise ``NotReadyError``.
        2. A non-200 ``/version`` means Constellation, which predates it.
        3. Otherwise negotiate the Tessera API version via ``/version/api``.

    Args:
        transport: Handle bound to the manager's socket.
        cache_ttl_s: Optional override for the payload cache time-to-live.

    Raises:
        NotReadyError: If the liveness probe fails.
        httpx.TransportError: If the manager cannot be reached.
    """
    res = transport.get(UPCHECK_PATH)
    if res.status_code != httpx.codes.OK:
        raise NotReadyError(
            "private transaction manager is not ready",
            hint=f"{UPCHECK_PATH} answered {res.status_code}; check the manager logs.",
        )

    res = transport.get(VERSION_PATH)
    reported = res.content.decode("utf-8", errors="replace").strip()
    cache = PayloadCache() if cache_ttl_s is None else PayloadCache(ttl_seconds=cache_ttl_s)

    manager: PrivateTransactionManager
    if res.status_code != httpx.codes.OK:
        manager = ConstellationManager(transport, cache=cache)
        reported = ""
    else:
        api_version = resolve_version(transport)
        manager = VERSION_MANAGERS[api_version](transport, cache=cache)

    log.info(
        "Target private transaction manager: name=%s version=%s",
        manager.name,
        reported or "unknown",
    )
    return manager
