"""API version discovery and selection.

Tessera advertises the API versions it serves on ``/version/api``. The
resolver keeps the versions this client understands and picks the highest by
numeric component comparison. Any failure along the way degrades to
``DEFAULT_API_VERSION``: older managers do not serve the endpoint at all.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Final

import httpx

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ptmclient.transport import Transport

log = logging.getLogger(__name__)

API_VERSION_1: Final[str] = "1.0"
API_VERSION_2: Final[str] = "2.0"

DEFAULT_API_VERSION: Final[str] = API_VERSION_1
KNOWN_API_VERSIONS: frozenset[str] = frozenset({API_VERSION_1, API_VERSION_2})

VERSION_API_PATH: Final[str] = "/version/api"


def parse_version(version: str) -> tuple[int, ...]:
    """Split a dotted version into integer components.

    Raises:
        ValueError: For empty strings or non-numeric components.
    """
    if not version or not version.strip():
        raise ValueError("empty version")
    parts = version.strip().split(".")
    try:
        parsed = tuple(int(p) for p in parts)
    except ValueError as e:
        raise ValueError(f"invalid version {version!r}") from e
    if any(p < 0 for p in parsed):
        raise ValueError(f"invalid version {version!r}")
    return parsed


def compare_versions(a: tuple[int, ...], b: tuple[int, ...]) -> int:
    """Return -1, 0 or 1. Missing trailing components count as zero."""
    width = max(len(a), len(b))
    pa = a + (0,) * (width - len(a))
    pb = b + (0,) * (width - len(b))
    if pa == pb:
        return 0
    return 1 if pa > pb else -1


def api_versions(transport: Transport) -> list[str]:
    """Fetch the advertised API versions, degrading to the default on failure."""
    try:
        res = transport.get(VERSION_API_PATH)
    except httpx.TransportError as e:
        log.error("Error invoking the %s API: %s", VERSION_API_PATH, e)
        return [DEFAULT_API_VERSION]

    if res.status_code != httpx.codes.OK:
        log.error(
            "Invalid status code returned by the %s API: %d",
            VERSION_API_PATH,
            res.status_code,
        )
        return [DEFAULT_API_VERSION]

    try:
        versions = json.loads(res.content)
    except ValueError as e:
        log.error("Unable to deserialize the %s response: %s", VERSION_API_PATH, e)
        return [DEFAULT_API_VERSION]

    if not isinstance(versions, list) or not all(isinstance(v, str) for v in versions):
        log.error("Expected a JSON array of strings from %s", VERSION_API_PATH)
        return [DEFAULT_API_VERSION]
    if not versions:
        log.error("Expected at least one API version from %s", VERSION_API_PATH)
        return [DEFAULT_API_VERSION]
    return versions


def filter_known_versions(versions: Iterable[str]) -> list[str]:
    known: list[str] = []
    for version in versions:
        if version in KNOWN_API_VERSIONS:
            known.append(version)
        else:
            log.warning("Ignoring unknown API version %r", version)
    return known


def select_latest(versions: Iterable[str]) -> str:
    """Pick the highest known version, or the default when none survive."""
    latest: str | None = None
    latest_parsed: tuple[int, ...] = ()
    for version in filter_known_versions(versions):
        try:
            parsed = parse_version(version)
        except ValueError:
            log.error("Unable to parse API version %r; skipping", version)
            continue
        if latest is None or compare_versions(parsed, latest_parsed) > 0:
            latest = version
            latest_parsed = parsed
    if latest is None:
        log.warning(
            "No known API version advertised; using default %s", DEFAULT_API_VERSION
        )
        return DEFAULT_API_VERSION
    return latest


def resolve_version(transport: Transport) -> str:
    """Probe the manager once and return the API version to speak."""
    version = select_latest(api_versions(transport))
    log.info("Private transaction manager API version: %s", version)
    return version
