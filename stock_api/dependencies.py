"""
Request-scoped dependencies: the wired kernel services and the caller.
"""

from collections.abc import Iterator
from dataclasses import dataclass

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session, sessionmaker

from stock_kernel.db.engine import session_scope
from stock_kernel.domain.clock import Clock
from stock_kernel.exceptions import UnauthenticatedError
from stock_kernel.logging_config import LogContext
from stock_kernel.services.identity_service import (
    Principal,
    RoleDirectory,
    TokenVerifier,
)
from stock_kernel.services.reservation_engine import ReservationEngine

_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class HubServices:
    """Everything a route needs, wired once by create_app()."""

    session_factory: sessionmaker[Session]
    clock: Clock
    token_verifier: TokenVerifier
    role_directory: RoleDirectory
    reservation_engine: ReservationEngine


def get_services(request: Request) -> HubServices:
    return request.app.state.services


def get_session(services: HubServices = Depends(get_services)) -> Iterator[Session]:
    """Commit-or-rollback session for one request."""
    with session_scope(services.session_factory) as session:
        yield session


async def get_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    services: HubServices = Depends(get_services),
) -> Principal:
    """
    Resolve the bearer token and bind the caller's id to the log context.

    Async so the binding is made in the request task itself; sync
    dependencies run on a copied context in the threadpool.

    Raises:
        UnauthenticatedError: no bearer token, or the verifier rejects it.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthenticatedError()
    principal = services.token_verifier.verify_token(credentials.credentials)
    LogContext.set(actor_id=str(principal.actor_id))
    return principal
