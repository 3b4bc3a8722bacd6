"""Shared Tessera protocol implementation.

Concrete API versions subclass ``TesseraManager`` and override the pieces
whose wire format differs between versions.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import TYPE_CHECKING, ClassVar, TypeVar
from urllib.parse import quote

from pydantic import ValidationError

from ptmclient._http import (
    HEADER_TO,
    JSON_CONTENT_TYPE,
    OCTET_STREAM_CONTENT_TYPE,
    USER_AGENT,
)
from ptmclient.cache import CacheItem, PayloadCache, cache_key, incomplete_cache_key
from ptmclient.errors import APIError
from ptmclient.managers._errors import (
    raise_for_status,
    require_standard_private,
    unsupported,
    wrap_decode_error,
)
from ptmclient.managers.base import ManagerCapabilities
from ptmclient.managers.models import (
    KeyResponse,
    ReceiveResponse,
    SendRequest,
    StoreRawRequest,
    WireModel,
)
from ptmclient.types import EncryptedPayloadHash, ExtraMetadata, Feature

if TYPE_CHECKING:
    import httpx

    from ptmclient.managers.base import ReceiveResult
    from ptmclient.transport import Transport
    from ptmclient.types import DecryptRequest

log = logging.getLogger(__name__)

M = TypeVar("M", bound=WireModel)

_TRUE_STRINGS = frozenset({"1", "t", "true"})
_FALSE_STRINGS = frozenset({"0", "f", "false"})


def escape_hash(eph: EncryptedPayloadHash) -> str:
    """Base64 hash escaped for use as a single path segment."""
    return quote(eph.to_base64(), safe="+=")


def parse_bool(text: str) -> bool:
    value = text.strip().lower()
    if value in _TRUE_STRINGS:
        return True
    if value in _FALSE_STRINGS:
        return False
    raise ValueError(f"invalid boolean {text!r}")


class TesseraManager:
    """Tessera client speaking one API version over a shared transport."""

    api_version: ClassVar[str]

    def __init__(self, transport: Transport, *, cache: PayloadCache | None = None) -> None:
        """Bind to *transport*; each manager owns a private cache."""
        self._transport = transport
        self._cache = cache if cache is not None else PayloadCache()

    @property
    def name(self) -> str:
        return f"Tessera - API v{self.api_version}"

    @property
    def capabilities(self) -> ManagerCapabilities:
        return ManagerCapabilities(privacy_enhancements=False)

    @property
    def cache(self) -> PayloadCache:
        return self._cache

    def has_feature(self, feature: Feature) -> bool:
        return self.capabilities.has(feature)

    # --- requests ---

    def _json_headers(self) -> dict[str, str]:
        return {
            "Content-Type": JSON_CONTENT_TYPE,
            "Accept": JSON_CONTENT_TYPE,
            "User-Agent": USER_AGENT,
        }

    def _submit(
        self,
        method: str,
        path: str,
        body: WireModel | None,
        *,
        phase: str,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        request = self._transport.build_request(
            method,
            path,
            content=body.to_json() if body is not None else None,
            headers=self._json_headers(),
            params=params,
        )
        response = self._transport.do(request)
        raise_for_status(response, manager=self.name, phase=phase)
        return response

    def _submit_json(
        self,
        method: str,
        path: str,
        body: WireModel | None,
        response_model: type[M],
        *,
        phase: str,
        params: dict[str, str] | None = None,
    ) -> M:
        """Send a JSON request and decode the JSON reply into *response_model*."""
        response = self._submit(method, path, body, phase=phase, params=params)
        try:
            return response_model.model_validate_json(response.content)
        except ValidationError as e:
            raise wrap_decode_error(
                e, manager=self.name, phase=phase, response=response
            ) from e

    def _decode_hash(self, key: str, *, phase: str) -> EncryptedPayloadHash:
        try:
            eph = EncryptedPayloadHash.from_base64(key)
            if eph.is_empty():
                raise ValueError("manager returned the empty payload hash")
        except ValueError as e:
            raise wrap_decode_error(
                e,
                manager=self.name,
                phase=phase,
                message="unable to decode encrypted payload hash",
            ) from e
        return eph

    def _check_privacy(self, operation: str, extra: ExtraMetadata) -> None:
        if not self.has_feature(Feature.PRIVACY_ENHANCEMENTS):
            require_standard_private(self.name, operation, extra)

    # --- send ---

    def _send_request(
        self, payload: bytes, sender: str, recipients: list[str], extra: ExtraMetadata
    ) -> SendRequest:
        del extra
        return SendRequest(payload=payload, sender=sender or None, to=list(recipients))

    def send(
        self,
        payload: bytes,
        sender: str,
        recipients: list[str],
        extra: ExtraMetadata,
    ) -> EncryptedPayloadHash:
        self._check_privacy("send", extra)
        response = self._submit_json(
            "POST",
            "/send",
            self._send_request(payload, sender, recipients, extra),
            KeyResponse,
            phase="send",
        )
        eph = self._decode_hash(response.key, phase="send")
        self._cache.set(cache_key(eph), CacheItem(payload=payload, extra=extra))
        return eph

    def store_raw(self, payload: bytes, sender: str) -> EncryptedPayloadHash:
        response = self._submit_json(
            "POST",
            "/storeraw",
            StoreRawRequest(payload=payload, sender=sender or None),
            KeyResponse,
            phase="storeraw",
        )
        eph = self._decode_hash(response.key, phase="storeraw")
        # Recipients and metadata arrive later with send_signed_tx.
        self._cache.set(incomplete_cache_key(eph), CacheItem(payload=payload))
        return eph

    def _submit_signed_tx(
        self, eph: EncryptedPayloadHash, recipients: list[str], extra: ExtraMetadata
    ) -> bytes:
        """Post the stored payload's hash as an octet stream.

        The reply body is the base64 hash of the distributed payload.
        """
        del extra
        request = self._transport.build_request(
            "POST",
            "/sendsignedtx",
            content=bytes(eph),
            headers={
                HEADER_TO: ",".join(recipients),
                "Content-Type": OCTET_STREAM_CONTENT_TYPE,
                "User-Agent": USER_AGENT,
            },
        )
        response = self._transport.do(request)
        raise_for_status(
            response, manager=self.name, phase="sendsignedtx", accepted=frozenset({200})
        )
        try:
            return base64.b64decode(response.content.strip(), validate=True)
        except (binascii.Error, ValueError) as e:
            raise wrap_decode_error(
                e, manager=self.name, phase="sendsignedtx", response=response
            ) from e

    def send_signed_tx(
        self,
        eph: EncryptedPayloadHash,
        recipients: list[str],
        extra: ExtraMetadata,
    ) -> bytes:
        self._check_privacy("send_signed_tx", extra)
        returned = self._submit_signed_tx(eph, recipients, extra)
        self._complete_cache_item(eph, extra)
        return returned

    def _complete_cache_item(self, eph: EncryptedPayloadHash, extra: ExtraMetadata) -> None:
        """Promote the incomplete item left by ``store_raw`` to a complete one."""
        temp_key = incomplete_cache_key(eph)
        incomplete = self._cache.get(temp_key)
        if incomplete is None:
            log.debug("No incomplete cache item for %s; skipping merge", eph)
            return
        self._cache.replace(
            cache_key(eph),
            CacheItem(payload=incomplete.payload, extra=extra),
            drop=temp_key,
        )

    # --- receive ---

    def _extra_from_response(self, response: ReceiveResponse) -> ExtraMetadata:
        del response
        return ExtraMetadata()

    def _receive(self, eph: EncryptedPayloadHash, *, raw: bool) -> ReceiveResult:
        if eph.is_empty():
            return None, None

        key = incomplete_cache_key(eph) if raw else cache_key(eph)
        item = self._cache.get(key)
        if item is not None:
            log.debug("Cache hit for %s", key)
            return item.payload, item.extra

        phase = "receiveraw" if raw else "receive"
        try:
            response = self._submit_json(
                "GET",
                f"/transaction/{escape_hash(eph)}",
                None,
                ReceiveResponse,
                phase=phase,
                params={"isRaw": "true" if raw else "false"},
            )
        except APIError as e:
            # Not being a party to the transaction is an expected outcome.
            if e.status_code == 404:
                return None, None
            raise

        if raw:
            extra = ExtraMetadata()
        else:
            try:
                extra = self._extra_from_response(response)
            except ValueError as e:
                raise wrap_decode_error(e, manager=self.name, phase=phase) from e

        self._cache.set(key, CacheItem(payload=response.payload, extra=extra))
        return response.payload, extra

    def receive(self, eph: EncryptedPayloadHash) -> ReceiveResult:
        return self._receive(eph, raw=False)

    def receive_raw(self, eph: EncryptedPayloadHash) -> ReceiveResult:
        del eph
        raise unsupported(self.name, "receive_raw", Feature.PRIVACY_ENHANCEMENTS)

    # --- per-hash queries ---

    def _get_text(self, path: str, *, phase: str) -> tuple[httpx.Response, str]:
        request = self._transport.build_request(
            "GET", path, headers={"User-Agent": USER_AGENT}
        )
        response = self._transport.do(request)
        raise_for_status(response, manager=self.name, phase=phase, accepted=frozenset({200}))
        return response, response.content.decode("utf-8", errors="replace")

    def is_sender(self, eph: EncryptedPayloadHash) -> bool:
        response, text = self._get_text(
            f"/transaction/{escape_hash(eph)}/isSender", phase="isSender"
        )
        try:
            return parse_bool(text)
        except ValueError as e:
            raise wrap_decode_error(
                e, manager=self.name, phase="isSender", response=response
            ) from e

    def get_participants(self, eph: EncryptedPayloadHash) -> list[str]:
        _, text = self._get_text(
            f"/transaction/{escape_hash(eph)}/participants", phase="participants"
        )
        return [p for p in text.strip().split(",") if p]

    # --- encoded payloads ---

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
