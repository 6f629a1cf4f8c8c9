"""Data models and domain objects."""

from .user_models import (
    User,
    CreateUserRequest,
    UpdateUserRequest,
    UpsertUserRequest,
    VerifyUserRequest,
    VerifyResult,
    GatewayFault,
    UserReply,
    UsersReply,
    DeleteReply,
    VerifyReply,
)

__all__ = [
    # Domain models
    'User',
    'VerifyResult',

    # Requests
    'CreateUserRequest',
    'UpdateUserRequest',
    'UpsertUserRequest',
    'VerifyUserRequest',

    # Gateway replies
    'GatewayFault',
    'UserReply',
    'UsersReply',
    'DeleteReply',
    'VerifyReply',
]
