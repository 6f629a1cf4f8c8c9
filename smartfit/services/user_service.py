# user_service.py

import asyncio
import dataclasses
import logging
from typing import Awaitable, Callable, List, Mapping, Optional, TypeVar

from ..core.classification import classify_failure, classify_reply, to_service_error
from ..core.error_kinds import ErrorKind
from ..core.exceptions import CircuitOpenError, ServiceError
from ..core.patterns.circuit_breaker import CircuitBreaker
from ..gateway.client import UserGateway
from ..models.user_models import (
    CreateUserRequest,
    UpdateUserRequest,
    UpsertUserRequest,
    User,
    VerifyResult,
    VerifyUserRequest,
)
from .passwords import hash_password

T = TypeVar("T")

logger = logging.getLogger(__name__)

DEFAULT_CALL_TIMEOUT = 5.0  # seconds


class UserService:
    """User operations forwarded to the database gateway.

    Every operation issues exactly one gateway call, submitted to the breaker
    and bounded by ``call_timeout``. Failures surface as ServiceError whose
    kind picks the HTTP / gRPC status and whose message is safe to return.
    """

    def __init__(self, gateway: UserGateway, breaker: CircuitBreaker, *,
                 call_timeout: float = DEFAULT_CALL_TIMEOUT,
                 password_hasher: Callable[[str], str] = hash_password):
        self.gateway = gateway
        self.breaker = breaker
        self.call_timeout = call_timeout
        self._hash = password_hasher

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #
    async def list_users(self) -> List[User]:
        reply = await self._guarded("get users", self.gateway.get_all_users)
        return list(reply.users)

    async def get_user(self, user_id: int) -> User:
        reply = await self._guarded("get user", lambda: self.gateway.get_user_by_id(user_id))
        if reply.user is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "user not found")
        return reply.user

    async def create_user(self, req: CreateUserRequest) -> Optional[User]:
        if not req.full_name or not req.email or not req.password:
            raise ServiceError(ErrorKind.INVALID_ARGUMENT, "full_name, email, and password are required")

        hashed = dataclasses.replace(req, password=self._hash_password(req.password))
        reply = await self._guarded("create user", lambda: self.gateway.create_user(hashed))
        return reply.user

    async def update_user(self, user_id: int, req: UpdateUserRequest) -> Optional[User]:
        if not req.has_changes():
            raise ServiceError(ErrorKind.INVALID_ARGUMENT, "no fields to update")

        if req.password:
            req = dataclasses.replace(req, password=self._hash_password(req.password))
        reply = await self._guarded("update user", lambda: self.gateway.update_user(user_id, req))
        return reply.user

    async def delete_user(self, user_id: int) -> str:
        reply = await self._guarded("delete user", lambda: self.gateway.delete_user(user_id))
        return reply.message

    async def upsert_user(self, req: UpsertUserRequest) -> Optional[User]:
        if not req.full_name or not req.email:
            raise ServiceError(ErrorKind.INVALID_ARGUMENT, "full_name and email are required")

        if req.password:
            req = dataclasses.replace(req, password=self._hash_password(req.password))
        reply = await self._guarded(
            "upsert user",
            lambda: self.gateway.upsert_user(req),
            overrides={ErrorKind.INVALID_ARGUMENT: "password is required for new users"},
        )
        return reply.user

    async def verify_user(self, req: VerifyUserRequest) -> VerifyResult:
        """Check credentials.

        Any failure other than the breaker refusing the call reads as invalid
        credentials, so the answer never tells whether the account exists.
        """
        if not req.email or not req.password:
            return VerifyResult(valid=False, error="email and password are required")

        try:
            reply = await self._guarded("verify user", lambda: self.gateway.verify_user(req))
        except ServiceError as e:
            if e.kind is ErrorKind.UNAVAILABLE:
                raise
            return VerifyResult(valid=False)

        if not reply.valid:
            return VerifyResult(valid=False)
        return VerifyResult(valid=True, user=reply.user)

    # ------------------------------------------------------------------ #
    # Guarded call
    # ------------------------------------------------------------------ #
    async def _guarded(self, action: str, call: Callable[[], Awaitable[T]],
                       overrides: Optional[Mapping[ErrorKind, str]] = None) -> T:
        """Run one gateway call under the breaker and classify its outcome."""
        def work() -> Awaitable[T]:
            return asyncio.wait_for(call(), timeout=self.call_timeout)

        try:
            reply = await self.breaker.execute(work)
        except CircuitOpenError as e:
            logger.warning(f"Rejected {action}: {e}")
            raise to_service_error(e, action) from e
        except Exception as e:
            failure = classify_failure(action, e)
            logger.error(f"Failed to {action}: {failure.detail}")
            raise to_service_error(failure, action, overrides) from e

        soft = classify_reply(action, reply)
        if soft is not None:
            logger.warning(f"Gateway reported failure for {action}: {soft.detail}")
            raise to_service_error(soft, action, overrides) from soft
        return reply

    def _hash_password(self, password: str) -> str:
        try:
            return self._hash(password)
        except Exception as e:
            logger.error(f"Failed to hash password: {e}")
            raise ServiceError(ErrorKind.INTERNAL, "failed to hash password") from e
