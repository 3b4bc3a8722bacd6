"""Manager used when the node runs without a private transaction manager."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ptmclient.errors import NotInUseError
from ptmclient.managers.base import ManagerCapabilities

if TYPE_CHECKING:
    from ptmclient.managers.base import ReceiveResult
    from ptmclient.types import (
        DecryptRequest,
        EncryptedPayloadHash,
        ExtraMetadata,
        Feature,
    )


def _not_in_use() -> NotInUseError:
    return NotInUseError(
        "private transaction manager is not in use",
        hint="Point PRIVATE_CONFIG at the manager's socket or config file.",
    )


class NotInUseManager:
    """Answers every receive with "no payload" and refuses everything else.

    Lets a node without private state still process blocks that reference
    private payloads it is not a party to.
    """

    @property
    def name(self) -> str:
        return "NotInUse"

    @property
    def capabilities(self) -> ManagerCapabilities:
        return ManagerCapabilities()

    def has_feature(self, feature: Feature) -> bool:
        return self.capabilities.has(feature)

    def send(
        self,
        payload: bytes,
        sender: str,
        recipients: list[str],
        extra: ExtraMetadata,
    ) -> EncryptedPayloadHash:
        raise _not_in_use()

    def store_raw(self, payload: bytes, sender: str) -> EncryptedPayloadHash:
        raise _not_in_use()

    def send_signed_tx(
        self,
        eph: EncryptedPayloadHash,
        recipients: list[str],
        extra: ExtraMetadata,
    ) -> bytes:
        raise _not_in_use()

    def receive(self, eph: EncryptedPayloadHash) -> ReceiveResult:  # noqa: ARG002
        return None, None

    def receive_raw(self, eph: EncryptedPayloadHash) -> ReceiveResult:
        raise _not_in_use()

    def is_sender(self, eph: EncryptedPayloadHash) -> bool:
        raise _not_in_use()

    def get_participants(self, eph: EncryptedPayloadHash) -> list[str]:
        raise _not_in_use()

    def encrypt_payload(
        self,
        payload: bytes,
        sender: str,
        recipients: list[str],
        extra: ExtraMetadata,
    ) -> bytes:
        raise _not_in_use()

    def decrypt_payload(self, request: DecryptRequest) -> ReceiveResult:
        raise _not_in_use()
