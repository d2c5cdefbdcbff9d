"""Pydantic request/response schemas for the hub API.

These are external contracts, separate from the kernel's DTOs.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from stock_kernel.domain.access_policy import ActorRole
from stock_kernel.domain.dtos import MAX_IDEMPOTENCY_KEY_LENGTH, MAX_QUANTITY


# ---------------------------------------------------------------------------
# Import ledger
# ---------------------------------------------------------------------------
class ReserveRequest(BaseModel):
    quantity: int = Field(strict=True, ge=1, le=MAX_QUANTITY)
    idempotency_key: str | None = Field(
        default=None, min_length=1, max_length=MAX_IDEMPOTENCY_KEY_LENGTH
    )


class ReserveResponse(BaseModel):
    import_id: UUID
    product_id: UUID
    quantity: int
    remaining_stock: int
    created_at: datetime
    replayed: bool = False


class ReleaseResponse(BaseModel):
    import_id: UUID
    restored: bool = True
    available_quantity: int


class ImporterProductTotalResponse(BaseModel):
    product_id: UUID
    total_quantity: int
    last_imported_at: datetime
    import_count: int


class ProductImporterResponse(BaseModel):
    import_id: UUID
    importer_id: UUID
    quantity: int
    imported_at: datetime


# ---------------------------------------------------------------------------
# Accounts and products
# ---------------------------------------------------------------------------
class RegisterAccountRequest(BaseModel):
    role: ActorRole
    display_name: str | None = Field(default=None, max_length=200)


class AccountResponse(BaseModel):
    id: UUID
    email: str
    role: ActorRole
    display_name: str | None = None
    created_at: datetime


class RegisterProductRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    quantity: int = Field(strict=True, ge=0, le=MAX_QUANTITY)
    price: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    origin_country: str = Field(min_length=1, max_length=100)
    rating: Decimal | None = Field(default=None, ge=0, le=5)


class ProductResponse(BaseModel):
    id: UUID
    owner_id: UUID
    name: str
    price: Decimal
    origin_country: str
    rating: Decimal | None = None
    initial_quantity: int
    available_quantity: int
    created_at: datetime


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
