"""Business services."""

from .user_service import UserService
from .passwords import hash_password

__all__ = [
    'UserService',
    'hash_password',
]
