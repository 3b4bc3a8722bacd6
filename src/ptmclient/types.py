"""Core value types shared by every manager implementation."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from enum import Enum, IntFlag
from typing import Final

HASH_LENGTH: Final[int] = 64


class Feature(str, Enum):
    """Optional capabilities a manager may advertise."""

    PRIVACY_ENHANCEMENTS = "privacy_enhancements"


class PrivacyFlag(IntFlag):
    """Privacy mode requested for a private transaction.

    ``STATE_VALIDATION`` implies ``PARTY_PROTECTION``.
    """

    STANDARD_PRIVATE = 0
    PARTY_PROTECTION = 1
    STATE_VALIDATION = 3

    def is_standard_private(self) -> bool:
        return self == PrivacyFlag.STANDARD_PRIVATE

    def is_not_standard_private(self) -> bool:
        return not self.is_standard_private()

    def has(self, other: PrivacyFlag) -> bool:
        """Return True when every bit of *other* is set on this flag."""
        return (self & other) == other


@dataclass(frozen=True)
class EncryptedPayloadHash:
    """Fixed-width identifier returned by the manager for a stored payload.

    Shorter inputs are left-padded with zero bytes, longer inputs keep their
    trailing ``HASH_LENGTH`` bytes. The all-zero hash means "no payload".
    """

    value: bytes = bytes(HASH_LENGTH)

    def __post_init__(self) -> None:
        raw = bytes(self.value)
        if len(raw) > HASH_LENGTH:
            raw = raw[-HASH_LENGTH:]
        object.__setattr__(self, "value", raw.rjust(HASH_LENGTH, b"\x00"))

    @classmethod
    def from_bytes(cls, data: bytes) -> EncryptedPayloadHash:
        return cls(bytes(data))

    @classmethod
    def from_base64(cls, encoded: str) -> EncryptedPayloadHash:
        """Decode the standard base64 wire form.

        Raises:
            ValueError: If *encoded* is not valid base64.
        """
        try:
            raw = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"invalid base64 payload hash {encoded!r}: {e}") from e
        return cls(raw)

    @classmethod
    def from_hex(cls, encoded: str) -> EncryptedPayloadHash:
        text = encoded[2:] if encoded.startswith(("0x", "0X")) else encoded
        return cls(bytes.fromhex(text))

    def to_base64(self) -> str:
        return base64.b64encode(self.value).decode("ascii")

    def hex(self) -> str:
        """Return the canonical ``0x``-prefixed lowercase hex form."""
        return "0x" + self.value.hex()

    def is_empty(self) -> bool:
        return not any(self.value)

    def __bytes__(self) -> bytes:
        return self.value

    def __str__(self) -> str:
        return self.hex()


EMPTY_HASH: Final[EncryptedPayloadHash] = EncryptedPayloadHash()


@dataclass(frozen=True)
class ExtraMetadata:
    """Privacy attributes travelling alongside a private payload."""

    privacy_flag: PrivacyFlag = PrivacyFlag.STANDARD_PRIVATE
    #: Hashes of the affected contract transactions.
    ac_hashes: tuple[EncryptedPayloadHash, ...] = ()
    #: Merkle root of the affected contracts' state; empty when unused.
    ac_merkle_root: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "privacy_flag", PrivacyFlag(self.privacy_flag))
        object.__setattr__(self, "ac_hashes", tuple(self.ac_hashes))


@dataclass(frozen=True)
class DecryptRequest:
    """Encoded payload envelope accepted by ``decrypt_payload``."""

    sender_key: bytes
    cipher_text: bytes
    cipher_text_nonce: bytes
    recipient_boxes: list[bytes] = field(default_factory=list)
    recipient_nonce: bytes = b""
    recipient_keys: list[bytes] = field(default_factory=list)
