"""Shared manager-side error helpers.

Managers turn non-success responses and undecodable bodies into
``APIError``/``DecodeError`` here so every backend reports failures with the
same status and body metadata. Transport errors are not wrapped.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ptmclient._http import MAX_ERROR_BODY_CHARS, SUCCESS_STATUS_CODES
from ptmclient.errors import APIError, DecodeError, UnsupportedFeatureError
from ptmclient.types import Feature

if TYPE_CHECKING:
    import httpx

    from ptmclient.types import ExtraMetadata


def body_snippet(response: httpx.Response) -> str:
    """Return the response body as text, cut to a diagnosable size."""
    text = response.content.decode("utf-8", errors="replace")
    if len(text) > MAX_ERROR_BODY_CHARS:
        return text[:MAX_ERROR_BODY_CHARS] + "..."
    return text


def raise_for_status(
    response: httpx.Response,
    *,
    manager: str,
    phase: str,
    accepted: frozenset[int] = SUCCESS_STATUS_CODES,
) -> None:
    """Raise ``APIError`` unless the response status is in *accepted*."""
    if response.status_code in accepted:
        return
    body = body_snippet(response)
    status_note = f"{response.status_code} status"
    raise APIError(
        f"{manager} {phase} failed ({status_note}): {body}"
        if body
        else f"{manager} {phase} failed ({status_note})",
        status_code=response.status_code,
        body=body,
        manager=manager,
        phase=phase,
    )


def wrap_decode_error(
    exc: BaseException,
    *,
    manager: str,
    phase: str,
    response: httpx.Response | None = None,
    message: str | None = None,
) -> DecodeError:
    """Map a decoding failure into ``DecodeError`` with response context."""
    msg = message or f"unable to decode {phase} response"
    return DecodeError(
        f"{manager}: {msg}: {exc}",
        status_code=response.status_code if response is not None else None,
        body=body_snippet(response) if response is not None else None,
        manager=manager,
        phase=phase,
    )


def unsupported(manager: str, operation: str, feature: Feature | None = None) -> UnsupportedFeatureError:
    """Build the error returned for operations a backend does not implement."""
    return UnsupportedFeatureError(
        f"{manager} does not support {operation}",
        hint="Upgrade the private transaction manager to a version with privacy enhancements."
        if feature is Feature.PRIVACY_ENHANCEMENTS
        else None,
        feature=feature,
        manager=manager,
    )


def require_standard_private(manager: str, operation: str, extra: ExtraMetadata) -> None:
    """Reject enhanced privacy modes on backends without privacy enhancements."""
    if extra.privacy_flag.is_not_standard_private():
        raise unsupported(
            manager,
            f"{operation} with privacy flag {extra.privacy_flag!r}",
            Feature.PRIVACY_ENHANCEMENTS,
        )
