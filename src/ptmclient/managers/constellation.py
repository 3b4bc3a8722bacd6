"""Constellation manager: the legacy backend predating ``/version``.

Payloads travel as raw octet streams with addressing in ``c11n-*`` headers
instead of JSON envelopes.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import TYPE_CHECKING

from ptmclient._http import (
    HEADER_FROM,
    HEADER_KEY,
    HEADER_TO,
    OCTET_STREAM_CONTENT_TYPE,
    USER_AGENT,
)
from ptmclient.cache import CacheItem, PayloadCache, cache_key
from ptmclient.managers._errors import (
    raise_for_status,
    require_standard_private,
    unsupported,
    wrap_decode_error,
)
from ptmclient.managers.base import ManagerCapabilities
from ptmclient.types import EncryptedPayloadHash, ExtraMetadata, Feature

if TYPE_CHECKING:
    from ptmclient.managers.base import ReceiveResult
    from ptmclient.transport import Transport
    from ptmclient.types import DecryptRequest

log = logging.getLogger(__name__)

_OK = frozenset({200})


class ConstellationManager:
    """Client for Constellation's raw payload API."""

    def __init__(self, transport: Transport, *, cache: PayloadCache | None = None) -> None:
        """Bind to *transport*; each manager owns a private cache."""
        self._transport = transport
        self._cache = cache if cache is not None else PayloadCache()

    @property
    def name(self) -> str:
        return "Constellation"

    @property
    def capabilities(self) -> ManagerCapabilities:
        return ManagerCapabilities(privacy_enhancements=False)

    @property
    def cache(self) -> PayloadCache:
        return self._cache

    def has_feature(self, feature: Feature) -> bool:
        return self.capabilities.has(feature)

    def send(
        self,
        payload: bytes,
        sender: str,
        recipients: list[str],
        extra: ExtraMetadata,
    ) -> EncryptedPayloadHash:
        require_standard_private(self.name, "send", extra)

        headers = {
            HEADER_TO: ",".join(recipients),
            "Content-Type": OCTET_STREAM_CONTENT_TYPE,
            "User-Agent": USER_AGENT,
        }
        if sender:
            headers[HEADER_FROM] = sender
        request = self._transport.build_request(
            "POST", "/sendraw", content=payload, headers=headers
        )
        response = self._transport.do(request)
        raise_for_status(response, manager=self.name, phase="sendraw", accepted=_OK)

        try:
            eph = EncryptedPayloadHash(
                base64.b64decode(response.content.strip(), validate=True)
            )
            if eph.is_empty():
                raise ValueError("manager returned the empty payload hash")
        except (binascii.Error, ValueError) as e:
            raise wrap_decode_error(
                e,
                manager=self.name,
                phase="sendraw",
                response=response,
                message="unable to decode encrypted payload hash",
            ) from e

        self._cache.set(cache_key(eph), CacheItem(payload=payload, extra=extra))
        return eph

    def receive(self, eph: EncryptedPayloadHash) -> ReceiveResult:
        if eph.is_empty():
            return None, None

        key = cache_key(eph)
        item = self._cache.get(key)
        if item is not None:
            log.debug("Cache hit for %s", key)
            return item.payload, item.extra

        request = self._transport.build_request(
            "GET",
            "/receiveraw",
            headers={HEADER_KEY: eph.to_base64(), "User-Agent": USER_AGENT},
        )
        response = self._transport.do(request)
        # Not being a recipient of a payload isn't an error.
        if response.status_code == 404:
            return None, None
        raise_for_status(response, manager=self.name, phase="receiveraw", accepted=_OK)

        extra = ExtraMetadata()
        self._cache.set(key, CacheItem(payload=response.content, extra=extra))
        return response.content, extra

    def store_raw(self, payload: bytes, sender: str) -> EncryptedPayloadHash:
        del payload, sender
        raise unsupported(self.name, "store_raw")

    def send_signed_tx(
        self,
        eph: EncryptedPayloadHash,
        recipients: list[str],
        extra: ExtraMetadata,
    ) -> bytes:
        del eph, recipients, extra
        raise unsupported(self.name, "send_signed_tx")

    def receive_raw(self, eph: EncryptedPayloadHash) -> ReceiveResult:
        del eph
        raise unsupported(self.name, "receive_raw", Feature.PRIVACY_ENHANCEMENTS)

    def is_sender(self, eph: EncryptedPayloadHash) -> bool:
        del eph
        raise unsupported(self.name, "is_sender")

    def get_participants(self, eph: EncryptedPayloadHash) -> list[str]:
        del eph
        raise unsupported(self.name, "get_participants")

    def encrypt_payload(
        self,
        payload: bytes,
        sender: str,
        recipients: list[str],
        extra: ExtraMetadata,
    ) -> bytes:
        del payload, sender, recipients, extra
        raise unsupported(self.name, "encrypt_payload", Feature.PRIVACY_ENHANCEMENTS)

    def decrypt_payload(self, request: DecryptRequest) -> ReceiveResult:
        del request
        raise unsupported(self.name, "decrypt_payload", Feature.PRIVACY_ENHANCEMENTS)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
