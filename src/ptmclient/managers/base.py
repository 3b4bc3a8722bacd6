"""Manager protocol: the interface the node uses to exchange private payloads."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ptmclient.types import ExtraMetadata, Feature

if TYPE_CHECKING:
    from ptmclient.types import DecryptRequest, EncryptedPayloadHash

ReceiveResult = tuple[bytes | None, ExtraMetadata | None]


@dataclass(frozen=True)
class ManagerCapabilities:
    """Feature flags exposed by managers."""

    privacy_enhancements: bool = False

    def has(self, feature: Feature) -> bool:
        if feature is Feature.PRIVACY_ENHANCEMENTS:
            return self.privacy_enhancements
        return False


@runtime_checkable
class PrivateTransactionManager(Protocol):
    """Stable contract between the node and whichever manager is running.

    One instance is chosen at startup and passed to the subsystems that need
    it; it is never swapped for the lifetime of the process.
    """

    @property
    def name(self) -> str:
        """Human-readable backend name, e.g. ``Tessera - API v2.0``."""
        ...

    @property
    def capabilities(self) -> ManagerCapabilities:
        """Feature flags used for up-front gating."""
        ...

    def has_feature(self, feature: Feature) -> bool:
        """Whether the backend implements *feature*."""
        ...

    def send(
        self,
        payload: bytes,
        sender: str,
        recipients: list[str],
        extra: ExtraMetadata,
    ) -> EncryptedPayloadHash:
        """Encrypt and distribute *payload*, returning its hash."""
        ...

    def store_raw(self, payload: bytes, sender: str) -> EncryptedPayloadHash:
        """Store *payload* before its recipients are known."""
        ...

    def send_signed_tx(
        self,
        eph: EncryptedPayloadHash,
        recipients: list[str],
        extra: ExtraMetadata,
    ) -> bytes:
        """Distribute a payload previously stored with ``store_raw``."""
        ...

    def receive(self, eph: EncryptedPayloadHash) -> ReceiveResult:
        """Return ``(payload, extra)``, or ``(None, None)`` when not a party."""
        ...

    def receive_raw(self, eph: EncryptedPayloadHash) -> ReceiveResult:
        """Return the raw payload stored with ``store_raw``."""
        ...

    def is_sender(self, eph: EncryptedPayloadHash) -> bool:
        ...

    def get_participants(self, eph: EncryptedPayloadHash) -> list[str]:
        ...

    def encrypt_payload(
        self,
        payload: bytes,
        sender: str,
        recipients: list[str],
        extra: ExtraMetadata,
    ) -> bytes:
        """Encrypt without storing; returns the encoded payload."""
        ...

    def decrypt_payload(self, request: DecryptRequest) -> ReceiveResult:
        """Decrypt an encoded payload produced by ``encrypt_payload``."""
        ...
