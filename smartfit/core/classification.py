"""
Three-tier classification of guarded call outcomes.

1. the breaker refused the call            -> CircuitOpenError, always UNAVAILABLE
2. the call raised                         -> CallFailedError, kind from the transport error
3. the reply carries an embedded failure   -> SoftError, kind from the reply's fault

Only ``to_service_error`` decides what an untrusted caller gets to read.
"""

import asyncio
from typing import Any, Mapping, Optional

import grpc

from .error_kinds import ErrorKind
from .exceptions import CallFailedError, CircuitOpenError, DependencyError, ServiceError, SoftError

PUBLIC_MESSAGES = {
    ErrorKind.UNAVAILABLE:      "service temporarily unavailable",
    ErrorKind.NOT_FOUND:        "user not found",
    ErrorKind.ALREADY_EXISTS:   "user with this email already exists",
    ErrorKind.INVALID_ARGUMENT: "invalid request",
}


def transport_error_kind(exc: BaseException) -> ErrorKind:
    """Kind of an exception raised by the guarded call itself."""
    if isinstance(exc, DependencyError):
        return exc.kind
    if isinstance(exc, grpc.RpcError) and callable(getattr(exc, "code", None)):
        kind = ErrorKind.from_status_code(exc.code())
        if kind is not ErrorKind.INTERNAL:
            return kind
        details = exc.details() if callable(getattr(exc, "details", None)) else ""
        return ErrorKind.from_message(details or "")
    return ErrorKind.INTERNAL


def classify_failure(operation: str, exc: BaseException) -> DependencyError:
    """Tiers 1 and 2: turn whatever ``execute`` raised into a DependencyError."""
    if isinstance(exc, CircuitOpenError):
        return exc
    if isinstance(exc, (CallFailedError, SoftError)):
        return exc
    return CallFailedError(operation, transport_error_kind(exc), describe(exc))


def classify_reply(operation: str, reply: Any) -> Optional[SoftError]:
    """Tier 3: a SoftError when the reply embeds a fault, else None."""
    fault = getattr(reply, "fault", None)
    if fault is None:
        return None
    return SoftError(operation, fault.kind, fault.message)


def to_service_error(failure: DependencyError, action: str,
                     overrides: Optional[Mapping[ErrorKind, str]] = None) -> ServiceError:
    """Outward error for ``failure``; never carries the dependency's own text."""
    kind = failure.kind
    if isinstance(failure, CircuitOpenError):
        kind = ErrorKind.UNAVAILABLE
    message = (overrides or {}).get(kind) or PUBLIC_MESSAGES.get(kind) or f"failed to {action}"
    return ServiceError(kind, message, cause=failure)


def describe(exc: BaseException) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return "deadline exceeded"
    if isinstance(exc, grpc.RpcError) and callable(getattr(exc, "code", None)):
        details = exc.details() if callable(getattr(exc, "details", None)) else ""
        return f"{exc.code().name}: {details}"
    return f"{exc.__class__.__name__}: {exc}"
