"""
Import-export hub FastAPI application.

Wires configuration into the kernel (the kernel never reads configuration
itself), installs error translation and request correlation, and mounts
the routers.

Usage:
    uvicorn stock_api.app:create_app --factory --host 0.0.0.0 --port 8000
"""

from uuid import uuid4

from fastapi import FastAPI, Request
from sqlalchemy.orm import Session, sessionmaker

from stock_api.dependencies import HubServices
from stock_api.errors import install_exception_handlers
from stock_api.routes import catalog_router, health_router, imports_router
from stock_config import HubConfig, ReservationSettings, get_active_config
from stock_config.bridges import apply_logging, build_reservation_engine, init_database
from stock_kernel import __version__
from stock_kernel.db.engine import get_session_factory
from stock_kernel.db.immutability import register_immutability_listeners
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.services.identity_service import (
    RoleDirectory,
    SqlRoleDirectory,
    StaticTokenVerifier,
    TokenVerifier,
)
from stock_kernel.services.stock_ledger_store import StockLedgerStore

logger = get_logger("api.app")

REQUEST_ID_HEADER = "X-Request-ID"


def create_app(
    config: HubConfig | None = None,
    *,
    session_factory: sessionmaker[Session] | None = None,
    token_verifier: TokenVerifier | None = None,
    role_directory: RoleDirectory | None = None,
    clock: Clock | None = None,
) -> FastAPI:
    """
    Build the application.

    With no ``session_factory`` the database engine is initialized from
    ``config`` (or ``get_active_config()``).  Tests pass their own factory,
    verifier and clock.
    """
    if session_factory is None:
        config = config or get_active_config()
        apply_logging(config)
        init_database(config.database)
        session_factory = get_session_factory()

    register_immutability_listeners()

    reservation_settings = config.reservation if config else ReservationSettings()
    clock = clock or SystemClock()
    role_directory = role_directory or SqlRoleDirectory(session_factory)
    store = StockLedgerStore(session_factory, clock)

    app = FastAPI(
        title="Import-Export Hub",
        description="Inventory reservation and import ledger",
        version=__version__,
    )
    app.state.services = HubServices(
        session_factory=session_factory,
        clock=clock,
        token_verifier=token_verifier or StaticTokenVerifier(),
        role_directory=role_directory,
        reservation_engine=build_reservation_engine(
            reservation_settings, store, role_directory
        ),
    )

    @app.middleware("http")
    async def correlation_middleware(request: Request, call_next):
        """Bind X-Request-ID (generated when absent) to every log line."""
        correlation_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        with LogContext.bind(correlation_id=correlation_id):
            response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = correlation_id
        return response

    install_exception_handlers(app)
    app.include_router(imports_router)
    app.include_router(catalog_router)
    app.include_router(health_router)

    logger.info(
        "app_created",
        extra={
            "max_storage_attempts": reservation_settings.max_storage_attempts,
            "compensation_attempts": reservation_settings.compensation_attempts,
        },
    )
    return app
