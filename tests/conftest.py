"""Pytest configuration and fixtures.

Provides environment isolation, logging configuration and the fake manager
used by most suites. Environment fixtures are autouse.
"""

from __future__ import annotations

from contextlib import suppress
import logging
import os
from pathlib import Path
import socket
import tempfile
from typing import TYPE_CHECKING

import pytest

from tests.helpers import FakeManager

if TYPE_CHECKING:
    from collections.abc import Iterator

    from ptmclient.transport import Transport

# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests."""
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_env(monkeypatch):
    """Clear PTMCLIENT_* and PRIVATE_CONFIG to prevent test pollution."""
    for key in list(os.environ.keys()):
        if key.startswith("PTMCLIENT_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("PRIVATE_CONFIG", raising=False)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# =============================================================================
# Fake Manager
# =============================================================================


@pytest.fixture
def fake_manager() -> FakeManager:
    return FakeManager()


@pytest.fixture
def transport(fake_manager: FakeManager) -> Iterator[Transport]:
    t = fake_manager.transport()
    yield t
    t.close()


@pytest.fixture
def unix_socket() -> Iterator[Path]:
    """A bound Unix domain socket in a short temporary directory."""
    if not hasattr(socket, "AF_UNIX"):
        pytest.skip("Unix domain sockets are unavailable")
    # sun_path is limited to ~100 bytes, so avoid pytest's long tmp_path.
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "tm.ipc"
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.bind(str(path))
        try:
            yield path
        finally:
            sock.close()
