# client.py

import logging
from typing import Any, List, Optional, Protocol, Tuple

import grpc

from ..models.user_models import (
    CreateUserRequest,
    DeleteReply,
    GatewayFault,
    UpdateUserRequest,
    UpsertUserRequest,
    User,
    UserReply,
    UsersReply,
    VerifyReply,
    VerifyUserRequest,
    profile_kwargs,
)

logger = logging.getLogger(__name__)


class UserGateway(Protocol):
    """Outbound user operations of the database gateway service."""

    async def get_all_users(self) -> UsersReply: ...
    async def get_user_by_id(self, user_id: int) -> UserReply: ...
    async def create_user(self, req: CreateUserRequest) -> UserReply: ...
    async def update_user(self, user_id: int, req: UpdateUserRequest) -> UserReply: ...
    async def delete_user(self, user_id: int) -> DeleteReply: ...
    async def verify_user(self, req: VerifyUserRequest) -> VerifyReply: ...
    async def upsert_user(self, req: UpsertUserRequest) -> UserReply: ...


def channel_options(settings) -> List[Tuple[str, int]]:
    """Keepalive and message-size options for the gateway channel."""
    return [
        ("grpc.keepalive_time_ms",               int(settings.GRPC_KEEPALIVE_TIME * 1000)),
        ("grpc.keepalive_timeout_ms",            int(settings.GRPC_KEEPALIVE_TIMEOUT * 1000)),
        ("grpc.keepalive_permit_without_calls",  1),
        ("grpc.max_receive_message_length",      settings.GRPC_MAX_MESSAGE_BYTES),
        ("grpc.max_send_message_length",         settings.GRPC_MAX_MESSAGE_BYTES),
    ]


def open_channel(settings) -> grpc.aio.Channel:
    logger.info(f"Dialling DB gateway at {settings.DB_GATEWAY_ADDR}")
    return grpc.aio.insecure_channel(settings.DB_GATEWAY_ADDR, options=channel_options(settings))


class GrpcUserGateway:
    """UserGateway over the generated ``UserService`` stub.

    ``messages`` is the generated ``*_pb2`` module. Each reply's ``error``
    string is turned into a GatewayFault here so nothing above this class
    looks at gateway error text.
    """

    def __init__(self, stub: Any, messages: Any, *, timeout: Optional[float] = None):
        self._stub = stub
        self._messages = messages
        self._timeout = timeout

    async def get_all_users(self) -> UsersReply:
        resp = await self._stub.GetAllUsers(self._messages.GetAllUsersRequest(), timeout=self._timeout)
        users = [u for u in (User.from_message(m) for m in resp.users) if u is not None]
        logger.debug(f"Fetched {len(users)} users from gateway")
        return UsersReply(users=users, fault=GatewayFault.from_message(resp.error))

    async def get_user_by_id(self, user_id: int) -> UserReply:
        resp = await self._stub.GetUserByID(
            self._messages.GetUserByIDRequest(id=user_id), timeout=self._timeout
        )
        return self._user_reply(resp)

    async def create_user(self, req: CreateUserRequest) -> UserReply:
        msg = self._messages.CreateUserRequest(
            full_name = req.full_name,
            email     = req.email,
            password  = req.password,
            **profile_kwargs(req),
        )
        return self._user_reply(await self._stub.CreateUser(msg, timeout=self._timeout))

    async def update_user(self, user_id: int, req: UpdateUserRequest) -> UserReply:
        msg = self._messages.UpdateUserRequest(
            id        = user_id,
            full_name = req.full_name or "",
            password  = req.password or "",
            **profile_kwargs(req),
        )
        return self._user_reply(await self._stub.UpdateUser(msg, timeout=self._timeout))

    async def delete_user(self, user_id: int) -> DeleteReply:
        resp = await self._stub.DeleteUser(
            self._messages.DeleteUserRequest(id=user_id), timeout=self._timeout
        )
        return DeleteReply(message=resp.message, fault=GatewayFault.from_message(resp.error))

    async def verify_user(self, req: VerifyUserRequest) -> VerifyReply:
        resp = await self._stub.VerifyUser(
            self._messages.VerifyUserRequest(email=req.email, password=req.password),
            timeout=self._timeout,
        )
        return VerifyReply(
            valid = bool(resp.valid),
            user  = User.from_message(resp.user) if _has_user(resp) else None,
            fault = GatewayFault.from_message(resp.error),
        )

    async def upsert_user(self, req: UpsertUserRequest) -> UserReply:
        msg = self._messages.UpsertUserRequest(
            full_name = req.full_name,
            email     = req.email,
            password  = req.password or "",
            **profile_kwargs(req),
        )
        return self._user_reply(await self._stub.UpsertUser(msg, timeout=self._timeout))

    # ---- helpers ----
    @staticmethod
    def _user_reply(resp: Any) -> UserReply:
        return UserReply(
            user  = User.from_message(resp.user) if _has_user(resp) else None,
            fault = GatewayFault.from_message(resp.error),
        )


def _has_user(resp: Any) -> bool:
    has_field = getattr(resp, "HasField", None)
    if has_field is not None:
        return has_field("user")
    return getattr(resp, "user", None) is not None

