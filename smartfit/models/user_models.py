from __future__ import annotations
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..core.error_kinds import ErrorKind

# Optional profile columns shared by the user record and the write requests.
PROFILE_FIELDS = (
    "phone_number",
    "sex",
    "city",
    "state_province",
    "postal_code",
    "country_code",
    "locale",
    "timezone",
    "utc_offset",
)

TIMESTAMP_FIELDS = ("last_active", "created_at", "updated_at")


###############################################################################
# 1. USER ---------------------------------------------------------------------
###############################################################################

@dataclass(frozen=True, slots=True)
class User:
    """Immutable projection of a *users* row as returned by the gateway."""
    id: int
    full_name: str
    email: str
    phone_number: Optional[str] = None
    sex: Optional[str] = None
    city: Optional[str] = None
    state_province: Optional[str] = None
    postal_code: Optional[str] = None
    country_code: Optional[str] = None
    locale: Optional[str] = None
    timezone: Optional[str] = None
    utc_offset: Optional[int] = None
    last_active: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # ---------- factory --------------------------------------------------- #
    @classmethod
    def from_message(cls, msg: Any) -> Optional["User"]:
        """Build from a generated ``User`` message; unset scalars become None."""
        if msg is None:
            return None
        return cls(
            id           = int(msg.id),
            full_name    = msg.full_name,
            email        = msg.email,
            last_active  = _parse_ts(msg, "last_active"),
            created_at   = _parse_ts(msg, "created_at"),
            updated_at   = _parse_ts(msg, "updated_at"),
            **_profile_from_message(msg),
        )

    def to_message(self, messages: Any) -> Any:
        """Build a generated ``User`` message from the ``messages`` module."""
        msg = messages.User(
            id        = self.id,
            full_name = self.full_name,
            email     = self.email,
            **profile_kwargs(self),
        )
        for name in TIMESTAMP_FIELDS:
            value = getattr(self, name)
            if value is not None:
                getattr(msg, name).FromDatetime(value)
        return msg

    def to_dict(self) -> Dict[str, Any]:
        out = {f.name: getattr(self, f.name) for f in fields(self)}
        for name in TIMESTAMP_FIELDS:
            if out[name] is not None:
                out[name] = out[name].isoformat()
        return out


###############################################################################
# 2. REQUESTS -----------------------------------------------------------------
###############################################################################

@dataclass(frozen=True, slots=True)
class CreateUserRequest:
    full_name: str
    email: str
    password: str
    phone_number: Optional[str] = None
    sex: Optional[str] = None
    city: Optional[str] = None
    state_province: Optional[str] = None
    postal_code: Optional[str] = None
    country_code: Optional[str] = None
    locale: Optional[str] = None
    timezone: Optional[str] = None
    utc_offset: Optional[int] = None

    @classmethod
    def from_message(cls, msg: Any) -> "CreateUserRequest":
        return cls(
            full_name = msg.full_name,
            email     = msg.email,
            password  = msg.password,
            **_profile_from_message(msg),
        )


@dataclass(frozen=True, slots=True)
class UpsertUserRequest:
    """Create-or-update keyed by email; password only required for new users."""
    full_name: str
    email: str
    password: Optional[str] = None
    phone_number: Optional[str] = None
    sex: Optional[str] = None
    city: Optional[str] = None
    state_province: Optional[str] = None
    postal_code: Optional[str] = None
    country_code: Optional[str] = None
    locale: Optional[str] = None
    timezone: Optional[str] = None
    utc_offset: Optional[int] = None

    @classmethod
    def from_message(cls, msg: Any) -> "UpsertUserRequest":
        return cls(
            full_name = msg.full_name,
            email     = msg.email,
            password  = msg.password or None,
            **_profile_from_message(msg),
        )


@dataclass(frozen=True, slots=True)
class UpdateUserRequest:
    """Partial update; ``None`` means leave the column alone.

    Email is the upsert key and cannot be changed through an update.
    """
    full_name: Optional[str] = None
    password: Optional[str] = None
    phone_number: Optional[str] = None
    sex: Optional[str] = None
    city: Optional[str] = None
    state_province: Optional[str] = None
    postal_code: Optional[str] = None
    country_code: Optional[str] = None
    locale: Optional[str] = None
    timezone: Optional[str] = None
    utc_offset: Optional[int] = None

    @classmethod
    def from_message(cls, msg: Any) -> "UpdateUserRequest":
        return cls(
            full_name = msg.full_name or None,
            password  = getattr(msg, "password", "") or None,
            **_profile_from_message(msg),
        )

    def has_changes(self) -> bool:
        return any(getattr(self, f.name) is not None for f in fields(self))


@dataclass(frozen=True, slots=True)
class VerifyUserRequest:
    email: str
    password: str

    @classmethod
    def from_message(cls, msg: Any) -> "VerifyUserRequest":
        return cls(email=msg.email, password=msg.password)


###############################################################################
# 3. GATEWAY REPLIES ----------------------------------------------------------
###############################################################################

@dataclass(frozen=True, slots=True)
class GatewayFault:
    """Business failure embedded in an otherwise successful gateway reply."""
    kind: ErrorKind
    message: str

    @classmethod
    def from_message(cls, text: Optional[str]) -> Optional["GatewayFault"]:
        if not text:
            return None
        return cls(kind=ErrorKind.from_message(text), message=text)


@dataclass(frozen=True, slots=True)
class UserReply:
    user: Optional[User] = None
    fault: Optional[GatewayFault] = None


@dataclass(frozen=True, slots=True)
class UsersReply:
    users: List[User] = field(default_factory=list)
    fault: Optional[GatewayFault] = None


@dataclass(frozen=True, slots=True)
class DeleteReply:
    message: str = ""
    fault: Optional[GatewayFault] = None


@dataclass(frozen=True, slots=True)
class VerifyReply:
    valid: bool = False
    user: Optional[User] = None
    fault: Optional[GatewayFault] = None


@dataclass(frozen=True, slots=True)
class VerifyResult:
    """Outward verification answer; never says why verification failed."""
    valid: bool
    user: Optional[User] = None
    error: str = ""


###############################################################################
# helpers ---------------------------------------------------------------------
###############################################################################

def _profile_from_message(msg: Any) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for name in PROFILE_FIELDS:
        value = getattr(msg, name, None)
        # proto3 scalars default to "" / 0, which the gateway treats as unset
        out[name] = value if value else None
    return out


def profile_kwargs(obj: Any) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for name in PROFILE_FIELDS:
        value = getattr(obj, name)
        if value is None:
            value = 0 if name == "utc_offset" else ""
        out[name] = value
    return out


def _parse_ts(msg: Any, name: str) -> Optional[datetime]:
    has_field = getattr(msg, "HasField", None)
    if has_field is not None and not has_field(name):
        return None
    value = getattr(msg, name, None)
    if value is None or isinstance(value, datetime):
        return value
    return value.ToDatetime(tzinfo=timezone.utc)
