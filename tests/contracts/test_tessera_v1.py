"""Tessera API 1.0 characterization tests.

Capture the exact request shapes sent to the manager and the cache
behaviour around them, using the in-memory fake manager.
"""

from __future__ import annotations

import base64
import json
from urllib.parse import unquote

from hypothesis import given, settings
from hypothesis import strategies as st
import httpx
import pytest

from ptmclient._http import USER_AGENT
from ptmclient.cache import cache_key, incomplete_cache_key
from ptmclient.errors import APIError, DecodeError, UnsupportedFeatureError
from ptmclient.managers.tessera_v1 import TesseraV1Manager
from ptmclient.types import (
    EMPTY_HASH,
    DecryptRequest,
    EncryptedPayloadHash,
    ExtraMetadata,
    Feature,
    PrivacyFlag,
)
from tests.helpers import FakeManager, json_response, raw_path, transaction_path

pytestmark = pytest.mark.contract

ARBITRARY_HASH = EncryptedPayloadHash(b"arbitrary")
ARBITRARY_HASH_1 = EncryptedPayloadHash(b"arbitrary1")
NOT_FOUND_HASH = EncryptedPayloadHash(b"not found")
PAYLOAD = b"arbitrary private payload"
SENDER = "arbitraryFrom"
RECIPIENTS = ["arbitraryTo1", "arbitraryTo2"]
STANDARD = ExtraMetadata()
PARTY_PROTECTION = ExtraMetadata(privacy_flag=PrivacyFlag.PARTY_PROTECTION)


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode()


@pytest.fixture
def manager(fake_manager: FakeManager, transport) -> TesseraV1Manager:
    fake_manager.route("POST", "/send", json_response({"key": ARBITRARY_HASH.to_base64()}))
    fake_manager.route(
        "POST", "/storeraw", json_response({"key": ARBITRARY_HASH.to_base64()})
    )
    fake_manager.route(
        "POST",
        "/sendsignedtx",
        httpx.Response(200, content=ARBITRARY_HASH.to_base64().encode()),
    )
    fake_manager.route(
        "GET", transaction_path(ARBITRARY_HASH_1), json_response({"payload": _b64(PAYLOAD)})
    )
    return TesseraV1Manager(transport)


def _assert_json_headers(request: httpx.Request) -> None:
    assert request.headers["Content-Type"] == "application/json"
    assert request.headers["Accept"] == "application/json"
    assert request.headers["User-Agent"] == USER_AGENT


# =============================================================================
# Identification
# =============================================================================


def test_name_and_features(manager: TesseraV1Manager) -> None:
    assert manager.name == "Tessera - API v1.0"
    assert manager.has_feature(Feature.PRIVACY_ENHANCEMENTS) is False
    assert manager.capabilities.privacy_enhancements is False


# =============================================================================
# Send
# =============================================================================


def test_send_when_typical(manager: TesseraV1Manager, fake_manager: FakeManager) -> None:
    eph = manager.send(PAYLOAD, SENDER, RECIPIENTS, STANDARD)

    (request,) = fake_manager.calls("POST", "/send")
    _assert_json_headers(request)
    body = json.loads(request.content)
    assert base64.b64decode(body["payload"]) == PAYLOAD
    assert body["from"] == SENDER
    assert body["to"] == RECIPIENTS
    assert "privacyFlag" not in body
    assert eph == ARBITRARY_HASH


def test_send_omits_empty_sender(manager: TesseraV1Manager, fake_manager: FakeManager) -> None:
    manager.send(PAYLOAD, "", RECIPIENTS, STANDARD)
    body = json.loads(fake_manager.calls("POST", "/send")[0].content)
    assert "from" not in body


def test_send_then_receive_is_served_from_cache(
    manager: TesseraV1Manager, fake_manager: FakeManager
) -> None:
    eph = manager.send(PAYLOAD, SENDER, RECIPIENTS, STANDARD)

    payload, extra = manager.receive(eph)

    assert payload == PAYLOAD
    assert extra == STANDARD
    assert len(fake_manager.requests) == 1


def test_send_rejects_enhanced_privacy_without_network(
    manager: TesseraV1Manager, fake_manager: FakeManager
) -> None:
    with pytest.raises(UnsupportedFeatureError) as exc:
        manager.send(PAYLOAD, SENDER, RECIPIENTS, PARTY_PROTECTION)
    assert exc.value.feature is Feature.PRIVACY_ENHANCEMENTS
    assert fake_manager.requests == []


def test_send_accepts_created_status(manager: TesseraV1Manager, fake_manager: FakeManager) -> None:
    fake_manager.route(
        "POST", "/send", json_response({"key": ARBITRARY_HASH.to_base64()}, status_code=201)
    )
    assert manager.send(PAYLOAD, SENDER, RECIPIENTS, STANDARD) == ARBITRARY_HASH


def test_send_propagates_error_body(manager: TesseraV1Manager, fake_manager: FakeManager) -> None:
    fake_manager.route("POST", "/send", httpx.Response(500, content=b"recipient key unknown"))

    with pytest.raises(APIError) as exc:
        manager.send(PAYLOAD, SENDER, RECIPIENTS, STANDARD)

    assert exc.value.status_code == 500
    assert exc.value.body == "recipient key unknown"
    assert exc.value.phase == "send"
    assert len(manager.cache) == 0


@pytest.mark.parametrize(
    "reply",
    [
        {"key": "%%%not-base64%%%"},
        {"nokey": "x"},
        {"key": ""},
        {"key": EMPTY_HASH.to_base64()},
    ],
    ids=["invalid-base64", "missing-key", "empty-key", "all-zero-hash"],
)
def test_send_with_malformed_hash_leaves_cache_untouched(
    manager: TesseraV1Manager, fake_manager: FakeManager, reply: dict[str, str]
) -> None:
    fake_manager.route("POST", "/send", json_response(reply))

    with pytest.raises(DecodeError):
        manager.send(PAYLOAD, SENDER, RECIPIENTS, STANDARD)

    assert len(manager.cache) == 0


# =============================================================================
# StoreRaw / SendSignedTx
# =============================================================================


def test_store_raw_writes_incomplete_entry(
    manager: TesseraV1Manager, fake_manager: FakeManager
) -> None:
    eph = manager.store_raw(PAYLOAD, SENDER)

    (request,) = fake_manager.calls("POST", "/storeraw")
    _assert_json_headers(request)
    body = json.loads(request.content)
    assert base64.b64decode(body["payload"]) == PAYLOAD
    assert body["from"] == SENDER
    assert "to" not in body

    assert eph == ARBITRARY_HASH
    assert manager.cache.get(incomplete_cache_key(eph)) is not None
    assert manager.cache.get(cache_key(eph)) is None


def test_store_raw_with_malformed_hash_leaves_cache_untouched(
    manager: TesseraV1Manager, fake_manager: FakeManager
) -> None:
    fake_manager.route("POST", "/storeraw", json_response({"key": "***"}))
    with pytest.raises(DecodeError):
        manager.store_raw(PAYLOAD, SENDER)
    assert len(manager.cache) == 0


def test_store_raw_rejects_empty_hash(
    manager: TesseraV1Manager, fake_manager: FakeManager
) -> None:
    fake_manager.route("POST", "/storeraw", json_response({"key": ""}))
    with pytest.raises(DecodeError):
        manager.store_raw(PAYLOAD, SENDER)
    assert len(manager.cache) == 0


def test_store_raw_then_send_signed_tx_completes_cache_entry(
    manager: TesseraV1Manager, fake_manager: FakeManager
) -> None:
    extra = ExtraMetadata(ac_hashes=(ARBITRARY_HASH_1,))
    eph = manager.store_raw(PAYLOAD, SENDER)

    returned = manager.send_signed_tx(eph, RECIPIENTS, extra)

    (request,) = fake_manager.calls("POST", "/sendsignedtx")
    assert request.headers["Content-Type"] == "application/octet-stream"
    assert request.headers["c11n-to"] == "arbitraryTo1,arbitraryTo2"
    assert request.content == bytes(eph)
    assert returned == bytes(ARBITRARY_HASH)

    item = manager.cache.get(cache_key(eph))
    assert item is not None
    assert item.payload == PAYLOAD
    assert item.extra == extra
    assert manager.cache.get(incomplete_cache_key(eph)) is None
    assert len(manager.cache) == 1

    before = len(fake_manager.requests)
    assert manager.receive(eph) == (PAYLOAD, extra)
    assert len(fake_manager.requests) == before


def test_send_signed_tx_without_incomplete_entry_is_tolerated(
    manager: TesseraV1Manager,
) -> None:
    assert manager.send_signed_tx(ARBITRARY_HASH, RECIPIENTS, STANDARD) == bytes(
        ARBITRARY_HASH
    )
    assert len(manager.cache) == 0


def test_send_signed_tx_rejects_enhanced_privacy_without_network(
    manager: TesseraV1Manager, fake_manager: FakeManager
) -> None:
    with pytest.raises(UnsupportedFeatureError):
        manager.send_signed_tx(ARBITRARY_HASH, RECIPIENTS, PARTY_PROTECTION)
    assert fake_manager.requests == []


def test_send_signed_tx_failure_keeps_incomplete_entry(
    manager: TesseraV1Manager, fake_manager: FakeManager
) -> None:
    eph = manager.store_raw(PAYLOAD, SENDER)
    fake_manager.route("POST", "/sendsignedtx", httpx.Response(400, content=b"bad"))

    with pytest.raises(APIError) as exc:
        manager.send_signed_tx(eph, RECIPIENTS, STANDARD)

    assert exc.value.status_code == 400
    assert manager.cache.get(incomplete_cache_key(eph)) is not None
    assert manager.cache.get(cache_key(eph)) is None


def test_send_signed_tx_with_malformed_reply(
    manager: TesseraV1Manager, fake_manager: FakeManager
) -> None:
    fake_manager.route("POST", "/sendsignedtx", httpx.Response(200, content=b"!!"))
    with pytest.raises(DecodeError):
        manager.send_signed_tx(ARBITRARY_HASH, RECIPIENTS, STANDARD)


# =============================================================================
# Receive
# =============================================================================


def test_receive_when_typical(manager: TesseraV1Manager, fake_manager: FakeManager) -> None:
    payload, extra = manager.receive(ARBITRARY_HASH_1)

    (request,) = fake_manager.requests
    _assert_json_headers(request)
    assert request.method == "GET"
    assert raw_path(request) == transaction_path(ARBITRARY_HASH_1)
    assert request.url.params["isRaw"] == "false"
    assert payload == PAYLOAD
    assert extra == ExtraMetadata()

    # Second lookup is served from the cache.
    assert manager.receive(ARBITRARY_HASH_1) == (PAYLOAD, ExtraMetadata())
    assert len(fake_manager.requests) == 1


def test_receive_escapes_base64_path_segment(
    manager: TesseraV1Manager, fake_manager: FakeManager
) -> None:
    eph = EncryptedPayloadHash(b"\xff" * 64)
    assert "/" in eph.to_base64()

    manager.receive(eph)

    path = raw_path(fake_manager.requests[0])
    segment = path.removeprefix("/transaction/")
    assert "/" not in segment
    assert unquote(segment) == eph.to_base64()


def test_receive_not_found_is_not_an_error(
    manager: TesseraV1Manager, fake_manager: FakeManager
) -> None:
    assert manager.receive(NOT_FOUND_HASH) == (None, None)
    assert len(fake_manager.requests) == 1
    assert len(manager.cache) == 0


def test_receive_other_failures_are_errors(
    manager: TesseraV1Manager, fake_manager: FakeManager
) -> None:
    fake_manager.route("GET", transaction_path(ARBITRARY_HASH_1), httpx.Response(503))
    with pytest.raises(APIError) as exc:
        manager.receive(ARBITRARY_HASH_1)
    assert exc.value.status_code == 503


def test_receive_malformed_payload_is_decode_error(
    manager: TesseraV1Manager, fake_manager: FakeManager
) -> None:
    fake_manager.route(
        "GET", transaction_path(ARBITRARY_HASH_1), json_response({"payload": "@@@"})
    )
    with pytest.raises(DecodeError):
        manager.receive(ARBITRARY_HASH_1)
    assert len(manager.cache) == 0


def test_receive_empty_hash_makes_no_call(
    manager: TesseraV1Manager, fake_manager: FakeManager
) -> None:
    assert manager.receive(EMPTY_HASH) == (None, None)
    assert fake_manager.requests == []


# =============================================================================
# Unsupported operations
# =============================================================================


@pytest.mark.parametrize(
    "call",
    [
        lambda m: m.receive_raw(ARBITRARY_HASH),
        lambda m: m.encrypt_payload(PAYLOAD, SENDER, RECIPIENTS, STANDARD),
        lambda m: m.decrypt_payload(
            DecryptRequest(sender_key=b"k", cipher_text=b"c", cipher_text_nonce=b"n")
        ),
    ],
    ids=["receive_raw", "encrypt_payload", "decrypt_payload"],
)
def test_privacy_enhanced_operations_unsupported(
    manager: TesseraV1Manager, fake_manager: FakeManager, call
) -> None:
    with pytest.raises(UnsupportedFeatureError) as exc:
        call(manager)
    assert exc.value.manager == "Tessera - API v1.0"
    assert fake_manager.requests == []


# =============================================================================
# Per-hash queries
# =============================================================================


@pytest.mark.parametrize(("body", "expected"), [(b"true", True), (b"false", False)])
def test_is_sender(
    manager: TesseraV1Manager, fake_manager: FakeManager, body: bytes, expected: bool
) -> None:
    path = transaction_path(ARBITRARY_HASH, "/isSender")
    fake_manager.route("GET", path, httpx.Response(200, content=body))

    assert manager.is_sender(ARBITRARY_HASH) is expected
    assert raw_path(fake_manager.requests[0]) == path


def test_is_sender_errors(manager: TesseraV1Manager, fake_manager: FakeManager) -> None:
    path = transaction_path(ARBITRARY_HASH, "/isSender")
    with pytest.raises(APIError) as exc:
        manager.is_sender(ARBITRARY_HASH)
    assert exc.value.status_code == 404

    fake_manager.route("GET", path, httpx.Response(200, content=b"maybe"))
    with pytest.raises(DecodeError):
        manager.is_sender(ARBITRARY_HASH)


def test_get_participants(manager: TesseraV1Manager, fake_manager: FakeManager) -> None:
    path = transaction_path(ARBITRARY_HASH, "/participants")
    fake_manager.route("GET", path, httpx.Response(200, content=b"key1,key2"))

    assert manager.get_participants(ARBITRARY_HASH) == ["key1", "key2"]


def test_get_participants_non_200(manager: TesseraV1Manager, fake_manager: FakeManager) -> None:
    path = transaction_path(ARBITRARY_HASH, "/participants")
    fake_manager.route("GET", path, httpx.Response(500, content=b"boom"))
    with pytest.raises(APIError):
        manager.get_participants(ARBITRARY_HASH)


# =============================================================================
# Properties
# =============================================================================


@given(payload=st.binary(max_size=2048))
@settings(max_examples=50, deadline=None, derandomize=True)
def test_send_then_receive_returns_exact_bytes(payload: bytes) -> None:
    """Property: a sent payload comes back byte-for-byte without another request."""
    fake_manager = FakeManager()
    fake_manager.route("POST", "/send", json_response({"key": ARBITRARY_HASH.to_base64()}))

    with fake_manager.transport() as transport:
        manager = TesseraV1Manager(transport)
        eph = manager.send(payload, SENDER, RECIPIENTS, STANDARD)

        assert manager.receive(eph) == (payload, STANDARD)

    (request,) = fake_manager.requests
    assert base64.b64decode(json.loads(request.content)["payload"]) == payload
