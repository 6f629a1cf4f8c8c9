"""
gRPC surface of the user service.

Each RPC delegates to UserService and converts the result into the generated
response message. A ServiceError aborts the RPC with the status code its kind
maps to and its caller-safe message.
"""

import logging
from typing import Any, Awaitable, TypeVar

from ..core.exceptions import ServiceError
from ..models.user_models import (
    CreateUserRequest,
    UpdateUserRequest,
    UpsertUserRequest,
    VerifyUserRequest,
)
from ..services.user_service import UserService

T = TypeVar("T")


class UserServicer:
    """Implements the generated ``UserServiceServicer`` interface by duck typing."""

    def __init__(self, service: UserService, messages: Any):
        self.service = service
        self.messages = messages
        self.logger = logging.getLogger(self.__class__.__name__)

    async def GetAllUsers(self, request, context):
        users = await self._run(context, self.service.list_users())
        return self.messages.GetAllUsersResponse(users=[u.to_message(self.messages) for u in users])

    async def GetUserByID(self, request, context):
        user = await self._run(context, self.service.get_user(request.id))
        return self.messages.GetUserByIDResponse(user=user.to_message(self.messages))

    async def CreateUser(self, request, context):
        user = await self._run(context, self.service.create_user(CreateUserRequest.from_message(request)))
        return self.messages.CreateUserResponse(user=self._user(user))

    async def UpdateUser(self, request, context):
        user = await self._run(
            context, self.service.update_user(request.id, UpdateUserRequest.from_message(request))
        )
        return self.messages.UpdateUserResponse(user=self._user(user))

    async def DeleteUser(self, request, context):
        message = await self._run(context, self.service.delete_user(request.id))
        return self.messages.DeleteUserResponse(message=message)

    async def UpsertUser(self, request, context):
        user = await self._run(context, self.service.upsert_user(UpsertUserRequest.from_message(request)))
        return self.messages.UpsertUserResponse(user=self._user(user))

    async def VerifyUser(self, request, context):
        result = await self._run(context, self.service.verify_user(VerifyUserRequest.from_message(request)))
        return self.messages.VerifyUserResponse(
            valid = result.valid,
            user  = self._user(result.user),
            error = result.error,
        )

    # ---- helpers ----
    async def _run(self, context, pending: Awaitable[T]) -> T:
        try:
            return await pending
        except ServiceError as e:
            self.logger.info(f"Aborting RPC with {e.rpc_status.name}: {e.message}")
            await context.abort(e.rpc_status, e.message)
            raise

    def _user(self, user):
        return user.to_message(self.messages) if user is not None else None
