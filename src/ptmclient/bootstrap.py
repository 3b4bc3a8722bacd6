"""Startup wiring: build the one manager a node process will use.

Nothing here is stored globally. The caller keeps the returned manager and
passes it to whichever subsystem exchanges private payloads.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Final

from ptmclient.config import resolve_socket_path, settings_from_env
from ptmclient.managers.not_in_use import NotInUseManager
from ptmclient.selector import select_manager
from ptmclient.transport import Transport

if TYPE_CHECKING:
    from ptmclient.config import Settings
    from ptmclient.managers.base import PrivateTransactionManager

log = logging.getLogger(__name__)

DEFAULT_ENV_VAR: Final[str] = "PRIVATE_CONFIG"
IGNORE_VALUE: Final[str] = "ignore"

_DOTENV_LOADED = False


def _try_load_dotenv() -> None:
    """Load a project ``.env`` once so PRIVATE_CONFIG/PTMCLIENT_* can live there."""
    global _DOTENV_LOADED
    if _DOTENV_LOADED:
        return
    from dotenv import load_dotenv

    load_dotenv()
    _DOTENV_LOADED = True


def new_private_tx_manager(
    config_path: str | os.PathLike[str],
    settings: Settings | None = None,
) -> PrivateTransactionManager:
    """Connect to the manager named by *config_path* and select its client.

    Args:
        config_path: The manager's socket, or a TOML config file naming it.
        settings: Timeouts and cache TTL; resolved from the environment when
            omitted.

    Raises:
        ConfigurationError: If the path or settings are invalid.
        NotReadyError: If the manager fails its liveness probe.
        httpx.TransportError: If the socket cannot be reached.
    """
    settings = settings or settings_from_env()
    socket_path = resolve_socket_path(config_path)
    transport = Transport.for_socket(socket_path, timeouts=settings.timeouts())
    try:
        return select_manager(transport, cache_ttl_s=settings.cache_ttl_s)
    except BaseException:
        transport.close()
        raise


def from_environment(
    env_var: str = DEFAULT_ENV_VAR,
    settings: Settings | None = None,
) -> PrivateTransactionManager | None:
    """Build the manager configured by *env_var*.

    Returns ``None`` when the variable is unset or empty, and a
    ``NotInUseManager`` when it is ``ignore`` (any case).
    """
    _try_load_dotenv()
    cfg_path = os.environ.get(env_var, "")
    if not cfg_path:
        log.debug("%s is not set; no private transaction manager", env_var)
        return None
    if cfg_path.lower() == IGNORE_VALUE:
        log.info("%s=%s; private transaction manager not in use", env_var, cfg_path)
        return NotInUseManager()
    return new_private_tx_manager(cfg_path, settings)
