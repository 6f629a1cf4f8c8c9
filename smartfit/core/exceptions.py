"""
Centralised exception definitions for the SmartFit user service.
All custom exceptions should inherit from SmartFitError.
"""

from http import HTTPStatus
from typing import Optional

import grpc

from .error_kinds import ErrorKind


class SmartFitError(Exception):
    """Base class for every custom exception thrown by this project."""


class ConfigurationError(SmartFitError):
    """Raised when configuration files or environment variables are invalid."""


class DependencyError(SmartFitError):
    """A call to a guarded dependency did not produce a usable result."""

    def __init__(self, kind: ErrorKind, detail: str = ""):
        super().__init__(detail or kind.value)
        self.kind = kind
        self.detail = detail


class CircuitOpenError(DependencyError):
    """Admission denied by the circuit breaker; no attempt was made.

    Raised both while the breaker is open and when the half-open probe quota
    is exhausted. The two cases are deliberately indistinguishable.
    """

    def __init__(self, breaker_name: str):
        super().__init__(ErrorKind.UNAVAILABLE, f"circuit breaker '{breaker_name}' is open")
        self.breaker_name = breaker_name


class CallFailedError(DependencyError):
    """The attempt was made and the dependency raised."""

    def __init__(self, operation: str, kind: ErrorKind, detail: str):
        super().__init__(kind, f"{operation}: {detail}")
        self.operation = operation


class SoftError(DependencyError):
    """The call succeeded on the wire but the reply carries a business failure."""

    def __init__(self, operation: str, kind: ErrorKind, detail: str):
        super().__init__(kind, f"{operation}: {detail}")
        self.operation = operation


class ServiceError(SmartFitError):
    """Outward-facing failure of a user service operation.

    ``message`` is safe to hand to untrusted callers.
    """

    def __init__(self, kind: ErrorKind, message: str, cause: Optional[DependencyError] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.cause = cause

    @property
    def http_status(self) -> HTTPStatus:
        return self.kind.http_status

    @property
    def rpc_status(self) -> grpc.StatusCode:
        return self.kind.rpc_status
