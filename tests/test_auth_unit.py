"""Unit tests for the auth service.

Tests for:
- Password hashing and verification
- Signup uniqueness
- Sign-in success, generic failures and last-login tracking
- Session resolution and sign-out
"""

import pytest

from wildlog.service.auth import INVALID_CREDENTIALS, AuthService, hash_password
from wildlog.service.errors import AuthenticationError, ConflictError, ServerError
from wildlog.service.sessions import SessionManager
from wildlog.storage.memory import MemoryCache, MemoryStore


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def auth_service(memory_store):
    return AuthService(store=memory_store, sessions=SessionManager(MemoryCache()))


def test_password_hash_is_argon2id_and_verifies(auth_service):
    digest = hash_password("Password123!")
    assert digest.startswith("$argon2id$")
    assert "Password123!" not in digest
    assert auth_service.verify_password(digest, "Password123!")
    assert not auth_service.verify_password(digest, "password123!")


def test_verify_password_rejects_garbage_hash(auth_service):
    assert auth_service.verify_password("not-a-hash", "Password123!") is False


def test_signup_creates_account(auth_service, memory_store):
    account = auth_service.signup("alice@example.com", "Password123!")
    assert len(account.id) == 32
    assert account.last_login_at is None
    stored = memory_store.get_account(account.id)
    assert stored.password_hash != "Password123!"


def test_signup_duplicate_email_conflicts_in_any_case(auth_service):
    auth_service.signup("alice@example.com", "Password123!")
    with pytest.raises(ConflictError) as exc:
        auth_service.signup("ALICE@example.com", "Password123!")
    assert exc.value.message == "Email already registered"
    assert exc.value.detail == {"email": "This email is already in use"}


async def test_signin_issues_session_and_updates_last_login(auth_service):
    created = auth_service.signup("alice@example.com", "Password123!")
    account, token = await auth_service.signin("alice@example.com", "Password123!")
    assert account.id == created.id
    assert account.last_login_at is not None
    ctx = await auth_service.resolve_session(token)
    assert ctx.account_id == created.id
    assert ctx.token == token


async def test_signin_failures_share_one_message(auth_service):
    auth_service.signup("alice@example.com", "Password123!")
    with pytest.raises(AuthenticationError) as wrong_password:
        await auth_service.signin("alice@example.com", "Wrong123!")
    with pytest.raises(AuthenticationError) as unknown_email:
        await auth_service.signin("nobody@example.com", "Password123!")
    assert wrong_password.value.message == unknown_email.value.message == INVALID_CREDENTIALS


async def test_signin_rejects_soft_deleted_account(auth_service, memory_store):
    account = auth_service.signup("alice@example.com", "Password123!")
    memory_store.soft_delete_account(account.id)
    with pytest.raises(AuthenticationError):
        await auth_service.signin("alice@example.com", "Password123!")


async def test_signout_invalidates_session(auth_service):
    auth_service.signup("alice@example.com", "Password123!")
    _, token = await auth_service.signin("alice@example.com", "Password123!")
    await auth_service.signout(token)
    assert await auth_service.resolve_session(token) is None
    # second sign-out of the same token is a no-op
    await auth_service.signout(token)


async def test_resolve_session_without_token(auth_service):
    assert await auth_service.resolve_session(None) is None
    assert await auth_service.resolve_session("") is None


class _UnwritableCache(MemoryCache):
    async def cache_session(self, token, payload, ttl_seconds):
        raise ConnectionError("kv down")


async def test_signin_reports_server_error_when_session_store_fails(memory_store):
    service = AuthService(store=memory_store, sessions=SessionManager(_UnwritableCache()))
    service.signup("a@example.com", "Password123!")
    with pytest.raises(ServerError) as exc:
        await service.signin("a@example.com", "Password123!")
    assert exc.value.status_code == 500
    assert exc.value.message == "Internal server error"
