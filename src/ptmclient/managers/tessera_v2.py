"""Tessera API 2.0 manager with privacy enhancements."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from ptmclient.managers._errors import wrap_decode_error
from ptmclient.managers.base import ManagerCapabilities
from ptmclient.managers.models import (
    DecryptPayloadRequest,
    DecryptPayloadResponse,
    KeyResponse,
    PrivacyFields,
    SendRequest,
    SendSignedTxRequest,
)
from ptmclient.managers.tessera import TesseraManager
from ptmclient.version import API_VERSION_2

if TYPE_CHECKING:
    import httpx

    from ptmclient.managers.base import ReceiveResult
    from ptmclient.managers.models import ReceiveResponse
    from ptmclient.types import (
        DecryptRequest,
        EncryptedPayloadHash,
        ExtraMetadata,
    )

log = logging.getLogger(__name__)


class TesseraV2Manager(TesseraManager):
    """Tessera speaking API 2.0.

    Privacy metadata (flag, affected contracts, merkle root) travels with
    ``/send`` and ``/sendsignedtx`` and comes back from ``/transaction``.
    """

    api_version = API_VERSION_2

    @property
    def capabilities(self) -> ManagerCapabilities:
        return ManagerCapabilities(privacy_enhancements=True)

    def _send_request(
        self, payload: bytes, sender: str, recipients: list[str], extra: ExtraMetadata
    ) -> SendRequest:
        return SendRequest(
            payload=payload,
            sender=sender or None,
            to=list(recipients),
            **PrivacyFields.from_extra(extra),
        )

    def _submit_signed_tx(
        self, eph: EncryptedPayloadHash, recipients: list[str], extra: ExtraMetadata
    ) -> bytes:
        response = self._submit(
            "POST",
            "/sendsignedtx",
            SendSignedTxRequest(
                hash=bytes(eph), to=list(recipients), **PrivacyFields.from_extra(extra)
            ),
            phase="sendsignedtx",
        )
        return self._decode_signed_tx_reply(response)

    def _decode_signed_tx_reply(self, response: httpx.Response) -> bytes:
        """Decode a ``{"key": ...}`` reply, falling back to a bare base64 body.

        Managers predating the JSON envelope answer with the base64 hash only.
        """
        try:
            key = KeyResponse.model_validate_json(response.content).key
        except ValidationError:
            log.debug("sendsignedtx reply is not a JSON envelope; trying raw base64")
            key = response.content.decode("ascii", errors="replace").strip()
        try:
            return base64.b64decode(key, validate=True)
        except (binascii.Error, ValueError) as e:
            raise wrap_decode_error(
                e, manager=self.name, phase="sendsignedtx", response=response
            ) from e

    def _extra_from_response(self, response: ReceiveResponse) -> ExtraMetadata:
        return response.extra()

    def receive_raw(self, eph: EncryptedPayloadHash) -> ReceiveResult:
        """Fetch a payload stored with ``store_raw``.

        Raw payloads carry no metadata yet, so the result is cached under the
        incomplete key for ``send_signed_tx`` to complete.
        """
        return self._receive(eph, raw=True)

    def encrypt_payload(
        self,
        payload: bytes,
        sender: str,
        recipients: list[str],
        extra: ExtraMetadata,
    ) -> bytes:
        response = self._submit(
            "POST",
            "/encodedpayload/create",
            self._send_request(payload, sender, recipients, extra),
            phase="encryptpayload",
        )
        return response.content

    def decrypt_payload(self, request: DecryptRequest) -> ReceiveResult:
        body = DecryptPayloadRequest(
            sender_key=request.sender_key,
            cipher_text=request.cipher_text,
            cipher_text_nonce=request.cipher_text_nonce,
            recipient_boxes=list(request.recipient_boxes),
            recipient_nonce=request.recipient_nonce,
            recipient_keys=list(request.recipient_keys),
        )
        decrypted = self._submit_json(
            "POST",
            "/encodedpayload/decrypt",
            body,
            DecryptPayloadResponse,
            phase="decryptpayload",
        )
        try:
            extra = decrypted.extra()
        except ValueError as e:
            raise wrap_decode_error(e, manager=self.name, phase="decryptpayload") from e
        return decrypted.payload, extra
