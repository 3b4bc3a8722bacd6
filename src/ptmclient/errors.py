"""Exception hierarchy for ptmclient."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ptmclient.types import Feature


class PTMError(Exception):
    """Base exception for all ptmclient errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(PTMError):
    """Configuration validation or resolution failed."""


class NotReadyError(PTMError):
    """The private transaction manager did not answer its liveness probe."""


class NotInUseError(PTMError):
    """The node was configured to run without a private transaction manager."""


class UnsupportedFeatureError(PTMError):
    """The selected manager does not implement the requested operation.

    Raised before any network call is made.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        feature: Feature | None = None,
        manager: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.feature = feature
        self.manager = manager


class APIError(PTMError):
    """A call to the private transaction manager failed.

    Carries the HTTP status and a truncated copy of the response body so
    callers can diagnose failures without re-issuing the request.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        status_code: int | None = None,
        body: str | None = None,
        manager: str | None = None,
        phase: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.status_code = status_code
        self.body = body
        self.manager = manager
        self.phase = phase


class DecodeError(APIError):
    """A response body or returned hash could not be decoded."""
