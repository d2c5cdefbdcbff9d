"""FastAPI routes for the import ledger, accounts and product registration."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stock_api.dependencies import HubServices, get_principal, get_services, get_session
from stock_api.schemas import (
    AccountResponse,
    HealthResponse,
    ImporterProductTotalResponse,
    ProductImporterResponse,
    ProductResponse,
    RegisterAccountRequest,
    RegisterProductRequest,
    ReleaseResponse,
    ReserveRequest,
    ReserveResponse,
)
from stock_kernel import __version__
from stock_kernel.selectors.ledger_selector import LedgerSelector
from stock_kernel.services.catalog_service import CatalogService
from stock_kernel.services.identity_service import AccountService, Principal

# ---------------------------------------------------------------------------
# Import ledger
# ---------------------------------------------------------------------------
imports_router = APIRouter(tags=["imports"])


@imports_router.post(
    "/products/{product_id}/imports",
    status_code=201,
    response_model=ReserveResponse,
)
def reserve_stock(
    product_id: UUID,
    body: ReserveRequest,
    principal: Principal = Depends(get_principal),
    services: HubServices = Depends(get_services),
) -> ReserveResponse:
    result = services.reservation_engine.reserve(
        product_id,
        body.quantity,
        principal.actor_id,
        idempotency_key=body.idempotency_key,
    )
    return ReserveResponse(
        import_id=result.record.import_id,
        product_id=result.record.product_id,
        quantity=result.record.quantity,
        remaining_stock=result.remaining_stock,
        created_at=result.record.created_at,
        replayed=result.replayed,
    )


@imports_router.delete("/imports/{import_id}", response_model=ReleaseResponse)
def release_import(
    import_id: UUID,
    principal: Principal = Depends(get_principal),
    services: HubServices = Depends(get_services),
) -> ReleaseResponse:
    result = services.reservation_engine.release(import_id, principal.actor_id)
    return ReleaseResponse(
        import_id=result.import_id,
        restored=result.restored,
        available_quantity=result.available_quantity,
    )


@imports_router.get("/imports/mine", response_model=list[ImporterProductTotalResponse])
def my_imports(
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
) -> list[ImporterProductTotalResponse]:
    totals = LedgerSelector(session).imports_by_importer(principal.actor_id)
    return [
        ImporterProductTotalResponse(
            product_id=t.product_id,
            total_quantity=t.total_quantity,
            last_imported_at=t.last_imported_at,
            import_count=t.import_count,
        )
        for t in totals
    ]


@imports_router.get(
    "/products/{product_id}/importers",
    response_model=list[ProductImporterResponse],
)
def product_importers(
    product_id: UUID,
    session: Session = Depends(get_session),
) -> list[ProductImporterResponse]:
    importers = LedgerSelector(session).importers_of_product(product_id)
    return [
        ProductImporterResponse(
            import_id=i.import_id,
            importer_id=i.importer_id,
            quantity=i.quantity,
            imported_at=i.imported_at,
        )
        for i in importers
    ]


# ---------------------------------------------------------------------------
# Accounts and products
# ---------------------------------------------------------------------------
catalog_router = APIRouter(tags=["catalog"])


@catalog_router.post("/accounts", status_code=201, response_model=AccountResponse)
def register_account(
    body: RegisterAccountRequest,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
    services: HubServices = Depends(get_services),
) -> AccountResponse:
    account = AccountService(session, services.clock).register(
        principal.email,
        body.role,
        display_name=body.display_name,
        account_id=principal.actor_id,
    )
    return AccountResponse(
        id=account.id,
        email=account.email,
        role=account.role,
        display_name=account.display_name,
        created_at=account.created_at,
    )


def _product_response(product) -> ProductResponse:
    return ProductResponse(
        id=product.id,
        owner_id=product.owner_id,
        name=product.name,
        price=product.price,
        origin_country=product.origin_country,
        rating=product.rating,
        initial_quantity=product.initial_quantity,
        available_quantity=product.available_quantity,
        created_at=product.created_at,
    )


@catalog_router.post("/products", status_code=201, response_model=ProductResponse)
def register_product(
    body: RegisterProductRequest,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
    services: HubServices = Depends(get_services),
) -> ProductResponse:
    product = CatalogService(session, clock=services.clock).register_product(
        principal.actor_id,
        body.name,
        body.quantity,
        body.price,
        body.origin_country,
        rating=body.rating,
    )
    return _product_response(product)


@catalog_router.get("/products/{product_id}", response_model=ProductResponse)
def get_product(
    product_id: UUID,
    session: Session = Depends(get_session),
    services: HubServices = Depends(get_services),
) -> ProductResponse:
    return _product_response(
        CatalogService(session, clock=services.clock).get_product(product_id)
    )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
health_router = APIRouter(tags=["health"])


@health_router.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)
