"""Tests for UserService over a scripted gateway."""

import asyncio

import grpc
import pytest

from fakes import FakeGateway, FakeRpcError, ManualClock, soft
from smartfit.core.error_kinds import ErrorKind
from smartfit.core.exceptions import ServiceError
from smartfit.core.patterns.circuit_breaker import CircuitBreaker
from smartfit.core.patterns.state_machine import BreakerState
from smartfit.models.user_models import (
    CreateUserRequest,
    DeleteReply,
    UpdateUserRequest,
    UpsertUserRequest,
    UserReply,
    UsersReply,
    VerifyReply,
    VerifyUserRequest,
)
from smartfit.services.passwords import verify_password
from smartfit.services.user_service import UserService


def fake_hash(password: str) -> str:
    return f"hashed:{password}"


@pytest.fixture
def service(gateway: FakeGateway, breaker: CircuitBreaker) -> UserService:
    return UserService(gateway, breaker, call_timeout=0.5, password_hasher=fake_hash)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_list_users(service, gateway, alice):
    gateway.replies["get_all_users"] = UsersReply(users=[alice])

    assert await service.list_users() == [alice]


@pytest.mark.asyncio
async def test_get_user(service, gateway, alice):
    gateway.replies["get_user_by_id"] = UserReply(user=alice)

    assert await service.get_user(7) == alice
    assert gateway.calls == [("get_user_by_id", 7)]


@pytest.mark.asyncio
async def test_get_user_soft_not_found(service, gateway, breaker):
    gateway.replies["get_user_by_id"] = UserReply(fault=soft("user not found"))

    with pytest.raises(ServiceError) as exc_info:
        await service.get_user(99)

    assert exc_info.value.kind is ErrorKind.NOT_FOUND
    assert exc_info.value.message == "user not found"
    # a business failure still reached the dependency
    assert breaker.counts.total_successes == 1


@pytest.mark.asyncio
async def test_get_user_empty_reply_is_not_found(service, gateway):
    gateway.replies["get_user_by_id"] = UserReply()

    with pytest.raises(ServiceError) as exc_info:
        await service.get_user(99)
    assert exc_info.value.kind is ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_list_users_transport_error_is_internal(service, gateway):
    gateway.replies["get_all_users"] = FakeRpcError(grpc.StatusCode.UNAVAILABLE, "connection refused")

    with pytest.raises(ServiceError) as exc_info:
        await service.list_users()

    assert exc_info.value.kind is ErrorKind.INTERNAL
    assert exc_info.value.message == "failed to get users"


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_user_hashes_password(service, gateway, alice):
    gateway.replies["create_user"] = UserReply(user=alice)
    req = CreateUserRequest(full_name="Alice Runner", email="alice@example.com", password="s3cret")

    assert await service.create_user(req) == alice

    (_, sent), = gateway.calls
    assert sent.password == "hashed:s3cret"
    assert sent.email == "alice@example.com"


@pytest.mark.asyncio
@pytest.mark.parametrize("missing", ["full_name", "email", "password"])
async def test_create_user_requires_fields(service, gateway, missing):
    values = {"full_name": "Alice", "email": "alice@example.com", "password": "pw"}
    values[missing] = ""

    with pytest.raises(ServiceError) as exc_info:
        await service.create_user(CreateUserRequest(**values))

    assert exc_info.value.kind is ErrorKind.INVALID_ARGUMENT
    assert exc_info.value.message == "full_name, email, and password are required"
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_create_user_duplicate_email(service, gateway):
    gateway.replies["create_user"] = UserReply(
        fault=soft('pq: duplicate key value violates unique constraint "users_email_key"')
    )
    req = CreateUserRequest(full_name="Alice", email="alice@example.com", password="pw")

    with pytest.raises(ServiceError) as exc_info:
        await service.create_user(req)

    assert exc_info.value.kind is ErrorKind.ALREADY_EXISTS
    assert exc_info.value.http_status == 409
    assert "users_email_key" not in exc_info.value.message


@pytest.mark.asyncio
async def test_create_user_hash_failure_is_internal(gateway, breaker):
    def broken(password):
        raise ValueError("backend missing")

    service = UserService(gateway, breaker, password_hasher=broken)
    req = CreateUserRequest(full_name="Alice", email="alice@example.com", password="pw")

    with pytest.raises(ServiceError) as exc_info:
        await service.create_user(req)

    assert exc_info.value.kind is ErrorKind.INTERNAL
    assert exc_info.value.message == "failed to hash password"
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_default_hasher_produces_verifiable_hash(gateway, breaker, alice):
    gateway.replies["create_user"] = UserReply(user=alice)
    service = UserService(gateway, breaker)

    await service.create_user(CreateUserRequest(full_name="Alice", email="alice@example.com", password="pw"))

    (_, sent), = gateway.calls
    assert sent.password.startswith("$2")
    assert verify_password("pw", sent.password)


@pytest.mark.asyncio
async def test_update_user(service, gateway, alice):
    gateway.replies["update_user"] = UserReply(user=alice)
    req = UpdateUserRequest(city="Austin")

    assert await service.update_user(7, req) == alice
    assert gateway.calls == [("update_user", 7, req)]


@pytest.mark.asyncio
async def test_update_user_hashes_new_password(service, gateway, alice):
    gateway.replies["update_user"] = UserReply(user=alice)

    await service.update_user(7, UpdateUserRequest(password="n3w-secret"))

    (_, user_id, sent), = gateway.calls
    assert user_id == 7
    assert sent.password == "hashed:n3w-secret"


@pytest.mark.asyncio
async def test_update_user_keeps_password_unset(service, gateway, alice):
    gateway.replies["update_user"] = UserReply(user=alice)

    await service.update_user(7, UpdateUserRequest(city="Austin"))

    (_, _, sent), = gateway.calls
    assert sent.password is None


@pytest.mark.asyncio
async def test_update_user_without_changes(service, gateway):
    with pytest.raises(ServiceError) as exc_info:
        await service.update_user(7, UpdateUserRequest())

    assert exc_info.value.kind is ErrorKind.INVALID_ARGUMENT
    assert exc_info.value.message == "no fields to update"
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_delete_user(service, gateway):
    gateway.replies["delete_user"] = DeleteReply(message="user deleted successfully")

    assert await service.delete_user(7) == "user deleted successfully"


@pytest.mark.asyncio
async def test_delete_missing_user(service, gateway):
    gateway.replies["delete_user"] = DeleteReply(fault=soft("user not found"))

    with pytest.raises(ServiceError) as exc_info:
        await service.delete_user(7)
    assert exc_info.value.kind is ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_upsert_user_without_password(service, gateway, alice):
    gateway.replies["upsert_user"] = UserReply(user=alice)
    req = UpsertUserRequest(full_name="Alice", email="alice@example.com")

    assert await service.upsert_user(req) == alice
    (_, sent), = gateway.calls
    assert sent.password is None


@pytest.mark.asyncio
async def test_upsert_user_hashes_given_password(service, gateway, alice):
    gateway.replies["upsert_user"] = UserReply(user=alice)

    await service.upsert_user(UpsertUserRequest(full_name="Alice", email="alice@example.com", password="pw"))

    (_, sent), = gateway.calls
    assert sent.password == "hashed:pw"


@pytest.mark.asyncio
async def test_upsert_new_user_needs_password(service, gateway):
    gateway.replies["upsert_user"] = UserReply(fault=soft("password is required for new users"))

    with pytest.raises(ServiceError) as exc_info:
        await service.upsert_user(UpsertUserRequest(full_name="Alice", email="new@example.com"))

    assert exc_info.value.kind is ErrorKind.INVALID_ARGUMENT
    assert exc_info.value.message == "password is required for new users"


@pytest.mark.asyncio
async def test_upsert_requires_name_and_email(service):
    with pytest.raises(ServiceError) as exc_info:
        await service.upsert_user(UpsertUserRequest(full_name="", email="alice@example.com"))
    assert exc_info.value.message == "full_name and email are required"


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_verify_valid_credentials(service, gateway, alice):
    gateway.replies["verify_user"] = VerifyReply(valid=True, user=alice)

    result = await service.verify_user(VerifyUserRequest(email="alice@example.com", password="pw"))

    assert result.valid
    assert result.user == alice


@pytest.mark.asyncio
async def test_verify_wrong_password(service, gateway):
    gateway.replies["verify_user"] = VerifyReply(valid=False)

    result = await service.verify_user(VerifyUserRequest(email="alice@example.com", password="nope"))

    assert not result.valid
    assert result.user is None


@pytest.mark.asyncio
async def test_verify_unknown_user_looks_like_bad_password(service, gateway):
    gateway.replies["verify_user"] = VerifyReply(fault=soft("user not found"))

    result = await service.verify_user(VerifyUserRequest(email="ghost@example.com", password="pw"))

    assert not result.valid
    assert result.error == ""


@pytest.mark.asyncio
async def test_verify_requires_credentials(service, gateway):
    result = await service.verify_user(VerifyUserRequest(email="", password="pw"))

    assert not result.valid
    assert result.error == "email and password are required"
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_verify_reports_open_breaker(service, gateway):
    gateway.replies["verify_user"] = ConnectionError("refused")
    req = VerifyUserRequest(email="alice@example.com", password="pw")
    for _ in range(3):
        assert not (await service.verify_user(req)).valid

    with pytest.raises(ServiceError) as exc_info:
        await service.verify_user(req)
    assert exc_info.value.kind is ErrorKind.UNAVAILABLE


# ---------------------------------------------------------------------------
# Breaker integration
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_slow_gateway_times_out(gateway, breaker):
    async def hang():
        await asyncio.Event().wait()

    gateway.get_all_users = hang
    service = UserService(gateway, breaker, call_timeout=0.01)

    with pytest.raises(ServiceError) as exc_info:
        await service.list_users()

    assert exc_info.value.kind is ErrorKind.INTERNAL
    assert breaker.counts.total_failures == 1


@pytest.mark.asyncio
async def test_failures_open_breaker_and_short_circuit(service, gateway, breaker, clock: ManualClock, alice):
    gateway.replies["get_user_by_id"] = FakeRpcError(grpc.StatusCode.INTERNAL, "db down")
    for _ in range(3):
        with pytest.raises(ServiceError) as exc_info:
            await service.get_user(7)
        assert exc_info.value.kind is ErrorKind.INTERNAL

    assert breaker.state is BreakerState.OPEN
    calls_before = len(gateway.calls)

    with pytest.raises(ServiceError) as exc_info:
        await service.get_user(7)
    assert exc_info.value.kind is ErrorKind.UNAVAILABLE
    assert exc_info.value.message == "service temporarily unavailable"
    assert exc_info.value.rpc_status is grpc.StatusCode.UNAVAILABLE
    assert len(gateway.calls) == calls_before

    clock.advance(30.0)
    gateway.replies["get_user_by_id"] = UserReply(user=alice)
    for _ in range(3):
        assert await service.get_user(7) == alice
    assert breaker.state is BreakerState.CLOSED


@pytest.mark.asyncio
async def test_soft_errors_never_open_breaker(service, gateway, breaker):
    gateway.replies["get_user_by_id"] = UserReply(fault=soft("user not found"))
    for _ in range(10):
        with pytest.raises(ServiceError):
            await service.get_user(7)

    assert breaker.state is BreakerState.CLOSED
