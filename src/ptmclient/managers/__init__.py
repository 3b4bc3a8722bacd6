"""Manager implementations."""

from .base import ManagerCapabilities, PrivateTransactionManager, ReceiveResult
from .constellation import ConstellationManager
from .not_in_use import NotInUseManager
from .tessera import TesseraManager
from .tessera_v1 import TesseraV1Manager
from .tessera_v2 import TesseraV2Manager

__all__ = [
    "ConstellationManager",
    "ManagerCapabilities",
    "NotInUseManager",
    "PrivateTransactionManager",
    "ReceiveResult",
    "TesseraManager",
    "TesseraV1Manager",
    "TesseraV2Manager",
]
