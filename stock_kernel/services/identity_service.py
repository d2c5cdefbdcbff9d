"""
Identity collaborators -- who is calling, and what role do they hold.

Responsibility:
    Token verification and role storage live outside the reservation core.
    The core consumes them through two narrow protocols:

        TokenVerifier.verify_token(raw_token) -> Principal
        RoleDirectory.role_of(actor_id)       -> ActorRole

    This module provides the in-process implementations
    (StaticTokenVerifier, SqlRoleDirectory) and AccountService, which
    registers accounts in the ``accounts`` table.

Architecture position:
    Kernel > Services.  Token issuance and credential checks are owned by
    an external identity provider; StaticTokenVerifier stands in for it
    during development and tests.

Failure modes:
    - UnauthenticatedError: token missing, unknown or revoked.
    - AccountNotFoundError: no account for the actor.
    - InvalidAccountError: malformed email or unknown role at registration.
"""

from __future__ import annotations

import secrets
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from stock_kernel.db.engine import session_scope
from stock_kernel.domain.access_policy import ActorRole
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.exceptions import (
    AccountNotFoundError,
    InvalidAccountError,
    UnauthenticatedError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.account import Account
from stock_kernel.services.base import BaseService

logger = get_logger("services.identity")


@dataclass(frozen=True)
class Principal:
    """A verified caller."""

    actor_id: UUID
    email: str


@dataclass(frozen=True)
class AccountInfo:
    id: UUID
    email: str
    role: ActorRole
    display_name: str | None
    created_at: datetime


# ============================================================================
# Protocols
# ============================================================================


@runtime_checkable
class TokenVerifier(Protocol):
    """Resolves a bearer token to a Principal or raises UnauthenticatedError."""

    def verify_token(self, raw_token: str) -> Principal: ...


@runtime_checkable
class RoleDirectory(Protocol):
    """Resolves an actor to its marketplace role or raises AccountNotFoundError."""

    def role_of(self, actor_id: UUID) -> ActorRole: ...


# ============================================================================
# Implementations
# ============================================================================


class StaticTokenVerifier:
    """
    In-memory token table.

    Guarantees:
        - Tokens are opaque random strings from ``secrets``.
        - Safe to share between request threads.
    """

    def __init__(self, tokens: dict[str, Principal] | None = None):
        self._tokens: dict[str, Principal] = dict(tokens or {})
        self._lock = threading.Lock()

    def issue(self, principal: Principal) -> str:
        token = secrets.token_urlsafe(32)
        with self._lock:
            self._tokens[token] = principal
        return token

    def revoke(self, raw_token: str) -> None:
        with self._lock:
            self._tokens.pop(raw_token, None)

    def verify_token(self, raw_token: str) -> Principal:
        if not raw_token:
            raise UnauthenticatedError("missing bearer token")
        with self._lock:
            principal = self._tokens.get(raw_token)
        if principal is None:
            raise UnauthenticatedError("invalid or expired token")
        return principal


class SqlRoleDirectory:
    """RoleDirectory backed by the ``accounts`` table."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def role_of(self, actor_id: UUID) -> ActorRole:
        with session_scope(self._session_factory) as session:
            role = session.execute(
                select(Account.role).where(Account.id == actor_id)
            ).scalar_one_or_none()
        if role is None:
            raise AccountNotFoundError(str(actor_id))
        return ActorRole(role)


class SessionRoleDirectory:
    """RoleDirectory that reads inside an already-open session.

    For session-bound services: on SQLite a second session would wait on
    the write lock the caller's transaction already holds.
    """

    def __init__(self, session: Session):
        self._session = session

    def role_of(self, actor_id: UUID) -> ActorRole:
        role = self._session.execute(
            select(Account.role).where(Account.id == actor_id)
        ).scalar_one_or_none()
        if role is None:
            raise AccountNotFoundError(str(actor_id))
        return ActorRole(role)


class AccountService(BaseService[Account]):
    """
    Registers marketplace accounts.

    Registration is idempotent on email: registering a known email returns
    the existing account unchanged, whatever role was requested.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def _to_dto(self, account: Account) -> AccountInfo:
        return AccountInfo(
            id=account.id,
            email=account.email,
            role=ActorRole(account.role),
            display_name=account.display_name,
            created_at=account.created_at,
        )

    @staticmethod
    def _normalize_email(email: str) -> str:
        if not isinstance(email, str) or "@" not in email.strip():
            raise InvalidAccountError("email", f"not an email address: {email!r}")
        return email.strip().lower()

    def find_by_email(self, email: str) -> AccountInfo | None:
        normalized = self._normalize_email(email)
        account = self.session.execute(
            select(Account).where(Account.email == normalized)
        ).scalar_one_or_none()
        return self._to_dto(account) if account else None

    def get_by_id(self, actor_id: UUID) -> AccountInfo:
        """
        Raises:
            AccountNotFoundError: If no account has this id.
        """
        account = self.session.get(Account, actor_id)
        if account is None:
            raise AccountNotFoundError(str(actor_id))
        return self._to_dto(account)

    def register(
        self,
        email: str,
        role: ActorRole | str,
        display_name: str | None = None,
        account_id: UUID | None = None,
    ) -> AccountInfo:
        """
        Create an account, or return the one already registered for ``email``.

        Args:
            email: Verified email address from the identity provider.
            role: "exporter" or "importer".
            display_name: Optional human-readable name.
            account_id: Actor id assigned by the identity provider; a new
                UUID is generated when omitted.

        Returns:
            AccountInfo DTO.

        Raises:
            InvalidAccountError: Malformed email or unknown role.
        """
        normalized = self._normalize_email(email)
        try:
            actor_role = ActorRole(role)
        except ValueError:
            raise InvalidAccountError("role", f"unknown role: {role!r}") from None

        existing = self.find_by_email(normalized)
        if existing is not None:
            logger.info(
                "account_already_registered",
                extra={"account_id": str(existing.id), "role": existing.role.value},
            )
            return existing

        account = Account(
            id=account_id or uuid4(),
            email=normalized,
            role=actor_role.value,
            display_name=display_name,
            created_at=self._clock.now(),
        )
        self.session.add(account)
        self.session.flush()

        logger.info(
            "account_registered",
            extra={"account_id": str(account.id), "role": actor_role.value},
        )
        return self._to_dto(account)
