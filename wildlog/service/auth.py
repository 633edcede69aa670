from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Tuple

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHash, VerifyMismatchError

from wildlog.logging import get_logger
from wildlog.service.errors import AuthenticationError, ConflictError, ServerError
from wildlog.service.sessions import SessionManager
from wildlog.storage.errors import ConstraintViolation
from wildlog.storage.models import Account

logger = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
INTERNAL_ERROR = "Internal server error"

_pwd_hasher = PasswordHasher(type=Type.ID)
# verified against when the email is unknown so timing matches a real miss
_DUMMY_HASH = _pwd_hasher.hash("wildlog-dummy-password")


def hash_password(password: str) -> str:
    """Hash with argon2id; the returned string embeds salt and parameters."""
    return _pwd_hasher.hash(password)


class AccountStore(Protocol):
    def create_account(self, email: str, password_hash: str) -> Account: ...

    def get_account(self, account_id: str) -> Optional[Account]: ...

    def get_account_by_email(self, email: str) -> Optional[Account]: ...

    def touch_last_login(self, account_id: str, at: Optional[int] = None) -> Optional[int]: ...


@dataclass
class AuthContext:
    """The caller resolved from a valid session cookie."""

    account_id: str
    token: str


class AuthService:
    def __init__(self, store: AccountStore, sessions: SessionManager) -> None:
        self.store = store
        self.sessions = sessions
        self._pwd_hasher = _pwd_hasher
        self.logger = logger

    def hash_password(self, password: str) -> str:
        return hash_password(password)

    def verify_password(self, stored_hash: str, password: str) -> bool:
        try:
            return self._pwd_hasher.verify(stored_hash, password)
        except (InvalidHash, VerifyMismatchError):
            return False

    def signup(self, email: str, password: str) -> Account:
        """Create an account; the email is expected to be normalized already."""
        if self.store.get_account_by_email(email):
            raise ConflictError(
                "Email already registered",
                detail={"email": "This email is already in use"},
            )
        try:
            account = self.store.create_account(email, self.hash_password(password))
        except ConstraintViolation:
            # lost a race with a concurrent signup for the same address
            raise ConflictError(
                "Email already registered",
                detail={"email": "This email is already in use"},
            )
        self.logger.info("signup_succeeded", user_id=account.id)
        return account

    async def signin(self, email: str, password: str) -> Tuple[Account, str]:
        """Verify credentials and issue a session.

        Every failure raises the same ``AuthenticationError`` so callers
        cannot tell an unknown email from a wrong password.
        """
        account = self.store.get_account_by_email(email)
        if account is None:
            self.verify_password(_DUMMY_HASH, password)
            self.logger.info("signin_failed", reason="unknown_account")
            raise AuthenticationError(INVALID_CREDENTIALS)
        if not self.verify_password(account.password_hash, password):
            self.logger.info("signin_failed", reason="bad_password", user_id=account.id)
            raise AuthenticationError(INVALID_CREDENTIALS)
        stamp = self.store.touch_last_login(account.id)
        if stamp is None:
            # soft-deleted between lookup and update
            raise AuthenticationError(INVALID_CREDENTIALS)
        account.last_login_at = stamp
        try:
            token = await self.sessions.create(account.id)
        except Exception as exc:
            self.logger.error(
                "signin_session_store_failed", user_id=account.id, error=str(exc)
            )
            raise ServerError(INTERNAL_ERROR) from exc
        self.logger.info("signin_succeeded", user_id=account.id)
        return account, token

    async def signout(self, token: str) -> None:
        await self.sessions.destroy(token)

    async def resolve_session(self, token: Optional[str]) -> Optional[AuthContext]:
        if not token:
            return None
        session = await self.sessions.validate(token)
        if session is None:
            return None
        return AuthContext(account_id=session.user_id, token=token)

    def get_account(self, account_id: str) -> Optional[Account]:
        return self.store.get_account(account_id)
