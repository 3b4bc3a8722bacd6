"""Tessera API 1.0 manager (no privacy enhancements)."""

from __future__ import annotations

from ptmclient.managers.tessera import TesseraManager
from ptmclient.version import API_VERSION_1


class TesseraV1Manager(TesseraManager):
    """Tessera speaking API 1.0.

    Enhanced privacy flags are rejected before any request is made, and
    signed transactions are submitted as a raw octet stream.
    """

    api_version = API_VERSION_1
