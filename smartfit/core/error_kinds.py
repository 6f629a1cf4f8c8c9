"""
Caller-facing error kinds.

Every failure at the gateway boundary is reduced to one of these kinds. HTTP
handlers and the gRPC servicer only ever look at the kind, never at the
dependency's raw error text.
"""

from enum import Enum
from http import HTTPStatus

import grpc


class ErrorKind(Enum):
    """Abstract outcome of a failed dependency call."""
    UNAVAILABLE = "unavailable"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    INVALID_ARGUMENT = "invalid_argument"
    INTERNAL = "internal"

    # ---------- boundary parsing ------------------------------------------ #
    @classmethod
    def from_message(cls, message: str) -> "ErrorKind":
        """Map a free-text gateway error to a kind.

        The database gateway reports failures as plain strings. This is the
        only place those strings are inspected.
        """
        text = (message or "").lower()
        if "not found" in text:
            return cls.NOT_FOUND
        if "duplicate" in text or "already exists" in text:
            return cls.ALREADY_EXISTS
        if "password is required" in text:
            return cls.INVALID_ARGUMENT
        return cls.INTERNAL

    @classmethod
    def from_status_code(cls, code: grpc.StatusCode) -> "ErrorKind":
        """Map a transport status raised by the gateway.

        UNAVAILABLE from the gateway itself is not passed through: only the
        breaker decides when the dependency is reported unavailable.
        """
        return _FROM_STATUS.get(code, cls.INTERNAL)

    # ---------- protocol mapping ------------------------------------------ #
    @property
    def http_status(self) -> HTTPStatus:
        return _HTTP_STATUS[self]

    @property
    def rpc_status(self) -> grpc.StatusCode:
        return _RPC_STATUS[self]


_FROM_STATUS = {
    grpc.StatusCode.NOT_FOUND: ErrorKind.NOT_FOUND,
    grpc.StatusCode.ALREADY_EXISTS: ErrorKind.ALREADY_EXISTS,
    grpc.StatusCode.INVALID_ARGUMENT: ErrorKind.INVALID_ARGUMENT,
}

_HTTP_STATUS = {
    ErrorKind.UNAVAILABLE: HTTPStatus.SERVICE_UNAVAILABLE,
    ErrorKind.NOT_FOUND: HTTPStatus.NOT_FOUND,
    ErrorKind.ALREADY_EXISTS: HTTPStatus.CONFLICT,
    ErrorKind.INVALID_ARGUMENT: HTTPStatus.BAD_REQUEST,
    ErrorKind.INTERNAL: HTTPStatus.INTERNAL_SERVER_ERROR,
}

_RPC_STATUS = {
    ErrorKind.UNAVAILABLE: grpc.StatusCode.UNAVAILABLE,
    ErrorKind.NOT_FOUND: grpc.StatusCode.NOT_FOUND,
    ErrorKind.ALREADY_EXISTS: grpc.StatusCode.ALREADY_EXISTS,
    ErrorKind.INVALID_ARGUMENT: grpc.StatusCode.INVALID_ARGUMENT,
    ErrorKind.INTERNAL: grpc.StatusCode.INTERNAL,
}
