"""ptmclient: client for private transaction managers over a local socket.

Public API:
    - from_environment(): Build the manager named by PRIVATE_CONFIG
    - new_private_tx_manager(): Build the manager for a socket or config file
    - select_manager(): Probe a transport and pick the matching client
    - PrivateTransactionManager: The interface every client implements
"""

from __future__ import annotations

import logging

from ptmclient._http import CLIENT_VERSION as __version__
from ptmclient.bootstrap import from_environment, new_private_tx_manager
from ptmclient.cache import CacheItem, PayloadCache
from ptmclient.config import Settings
from ptmclient.errors import (
    APIError,
    ConfigurationError,
    DecodeError,
    NotInUseError,
    NotReadyError,
    PTMError,
    UnsupportedFeatureError,
)
from ptmclient.managers import (
    ConstellationManager,
    ManagerCapabilities,
    NotInUseManager,
    PrivateTransactionManager,
    TesseraV1Manager,
    TesseraV2Manager,
)
from ptmclient.selector import select_manager
from ptmclient.transport import Timeouts, Transport
from ptmclient.types import (
    EMPTY_HASH,
    DecryptRequest,
    EncryptedPayloadHash,
    ExtraMetadata,
    Feature,
    PrivacyFlag,
)
from ptmclient.version import resolve_version

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("ptmclient").addHandler(logging.NullHandler())

__all__ = [
    "EMPTY_HASH",
    "APIError",
    "CacheItem",
    "ConfigurationError",
    "ConstellationManager",
    "DecodeError",
    "DecryptRequest",
    "EncryptedPayloadHash",
    "ExtraMetadata",
    "Feature",
    "ManagerCapabilities",
    "NotInUseError",
    "NotInUseManager",
    "NotReadyError",
    "PTMError",
    "PayloadCache",
    "PrivacyFlag",
    "PrivateTransactionManager",
    "Settings",
    "TesseraV1Manager",
    "TesseraV2Manager",
    "Timeouts",
    "Transport",
    "UnsupportedFeatureError",
    "__version__",
    "from_environment",
    "new_private_tx_manager",
    "resolve_version",
    "select_manager",
]
