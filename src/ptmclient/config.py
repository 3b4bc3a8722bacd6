"""Configuration: validated settings and manager config file loading."""

from __future__ import annotations

import os
from pathlib import Path
import stat
import tomllib
from typing import TYPE_CHECKING, Any, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ptmclient.cache import DEFAULT_TTL_SECONDS
from ptmclient.errors import ConfigurationError
from ptmclient.transport import MAX_TIMEOUT_S, Timeouts

if TYPE_CHECKING:
    from collections.abc import Mapping

ENV_PREFIX: Final[str] = "PTMCLIENT_"


class Settings(BaseModel):
    """Client settings.

    Timeouts stay well under ten seconds: the manager is a local process, so
    a slow answer is a hang rather than network latency.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    socket_path: str | None = None
    dial_timeout_s: float = Field(default=1.0, gt=0, lt=MAX_TIMEOUT_S)
    response_header_timeout_s: float = Field(default=5.0, gt=0, lt=MAX_TIMEOUT_S)
    request_timeout_s: float = Field(default=5.0, gt=0, lt=MAX_TIMEOUT_S)
    cache_ttl_s: float = Field(default=DEFAULT_TTL_SECONDS, ge=0)

    def timeouts(self) -> Timeouts:
        return Timeouts(
            dial_s=self.dial_timeout_s,
            response_header_s=self.response_header_timeout_s,
            request_s=self.request_timeout_s,
        )


def build_settings(overrides: Mapping[str, Any] | None = None) -> Settings:
    """Validate *overrides* into ``Settings``.

    Raises:
        ConfigurationError: With the offending fields named in the message.
    """
    try:
        return Settings(**dict(overrides or {}))
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise ConfigurationError(
            f"Invalid ptmclient settings: {fields}",
            hint=f"Timeouts must be in (0, {MAX_TIMEOUT_S}) seconds; cache_ttl_s >= 0.",
        ) from e


def load_env(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Collect ``PTMCLIENT_*`` variables as raw settings values.

    Pydantic coerces the strings when the result goes through
    ``build_settings``.
    """
    env = os.environ if environ is None else environ
    config: dict[str, Any] = {}
    for key, value in env.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in Settings.model_fields:
            config[field_name] = value
    return config


def settings_from_env(
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Resolve settings with precedence defaults < environment < overrides."""
    merged = load_env(environ)
    merged.update(overrides or {})
    return build_settings(merged)


def load_manager_config(path: str | os.PathLike[str]) -> Path:
    """Read a manager TOML config and return the socket path it names.

    The file carries ``socket`` and an optional ``workdir``; a relative
    socket is resolved against the working directory.
    """
    p = Path(path)
    try:
        with p.open("rb") as fh:
            data = tomllib.load(fh)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(
            f"Unable to load private transaction manager config from {p}: {e}",
            hint="Expected a TOML file with 'socket' and 'workdir' keys.",
        ) from e

    socket = data.get("socket")
    if not isinstance(socket, str) or not socket:
        raise ConfigurationError(
            f"Private transaction manager config {p} has no 'socket' entry",
            hint="Add socket = \"tm.ipc\" (and workdir) to the config file.",
        )
    workdir = data.get("workdir", "")
    if not isinstance(workdir, str):
        raise ConfigurationError(f"'workdir' in {p} must be a string")
    return Path(workdir) / socket


def resolve_socket_path(path: str | os.PathLike[str]) -> Path:
    """Accept either the socket itself or a config file pointing at it."""
    p = Path(path)
    try:
        info = os.lstat(p)
    except OSError as e:
        raise ConfigurationError(f"Unable to read {p}: {e}") from e
    if stat.S_ISSOCK(info.st_mode):
        return p
    return load_manager_config(p)
