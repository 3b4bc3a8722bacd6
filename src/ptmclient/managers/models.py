"""Wire models for the JSON endpoints of the private transaction manager.

Binary fields travel as standard base64 strings.
"""

from __future__ import annotations

import base64
import binascii
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer

from ptmclient.types import EncryptedPayloadHash, ExtraMetadata, PrivacyFlag


def _decode_b64(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        try:
            return base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"invalid base64 value: {e}") from e
    return value


def _encode_b64(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


B64Bytes = Annotated[
    bytes,
    BeforeValidator(_decode_b64),
    PlainSerializer(_encode_b64, return_type=str),
]


class WireModel(BaseModel):
    """Base for wire bodies: camelCase aliases, unknown keys ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_json(self) -> bytes:
        return self.model_dump_json(by_alias=True, exclude_none=True).encode()


class PrivacyFields(WireModel):
    """Privacy attributes understood by API 2.0 managers."""

    affected_contract_transactions: list[str] | None = Field(
        default=None, alias="affectedContractTransactions"
    )
    exec_hash: str | None = Field(default=None, alias="execHash")
    privacy_flag: int | None = Field(default=None, alias="privacyFlag")

    @staticmethod
    def from_extra(extra: ExtraMetadata) -> dict[str, Any]:
        return {
            "affected_contract_transactions": [h.to_base64() for h in extra.ac_hashes],
            "exec_hash": (
                _encode_b64(extra.ac_merkle_root) if extra.ac_merkle_root else None
            ),
            "privacy_flag": int(extra.privacy_flag),
        }


class SendRequest(PrivacyFields):
    payload: B64Bytes
    sender: str | None = Field(default=None, alias="from")
    to: list[str] = Field(default_factory=list)


class StoreRawRequest(WireModel):
    payload: B64Bytes
    sender: str | None = Field(default=None, alias="from")


class SendSignedTxRequest(PrivacyFields):
    hash: B64Bytes
    to: list[str] = Field(default_factory=list)


class KeyResponse(WireModel):
    #: Base64-encoded payload hash.
    key: str


class ReceiveResponse(WireModel):
    payload: B64Bytes
    affected_contract_transactions: list[str] = Field(
        default_factory=list, alias="affectedContractTransactions"
    )
    exec_hash: str = Field(default="", alias="execHash")
    privacy_flag: int = Field(default=0, ge=0, alias="privacyFlag")

    def extra(self) -> ExtraMetadata:
        """Build metadata from the privacy attributes of the response.

        Raises:
            ValueError: When a hash field is not valid base64.
        """
        return _extra_from_wire(
            self.affected_contract_transactions, self.exec_hash, self.privacy_flag
        )


class DecryptPayloadRequest(WireModel):
    sender_key: B64Bytes = Field(alias="senderKey")
    cipher_text: B64Bytes = Field(alias="cipherText")
    cipher_text_nonce: B64Bytes = Field(alias="cipherTextNonce")
    recipient_boxes: list[B64Bytes] = Field(default_factory=list, alias="recipientBoxes")
    recipient_nonce: B64Bytes = Field(default=b"", alias="recipientNonce")
    recipient_keys: list[B64Bytes] = Field(default_factory=list, alias="recipientKeys")


class DecryptPayloadResponse(WireModel):
    payload: B64Bytes
    privacy_mode: int = Field(default=0, ge=0, alias="privacyMode")
    affected_contract_transactions: list[str] = Field(
        default_factory=list, alias="affectedContractTransactions"
    )
    exec_hash: str = Field(default="", alias="execHash")

    def extra(self) -> ExtraMetadata:
        return _extra_from_wire(
            self.affected_contract_transactions, self.exec_hash, self.privacy_mode
        )


def _extra_from_wire(
    ac_hashes: list[str], exec_hash: str, privacy_flag: int
) -> ExtraMetadata:
    merkle_root = _decode_b64(exec_hash) if exec_hash else b""
    return ExtraMetadata(
        privacy_flag=PrivacyFlag(privacy_flag),
        ac_hashes=tuple(EncryptedPayloadHash.from_base64(h) for h in ac_hashes),
        ac_merkle_root=merkle_root,
    )
