"""
Catalog collaborator -- just enough product registration to seed stock.

Responsibility:
    Creates products with ``initial_quantity == available_quantity`` and
    reads them back.  Search, pagination, update and delete belong to the
    full catalog and are not provided here.

Architecture position:
    Kernel > Services.  Session-bound (flush only).  After registration the
    stock counter is owned by StockLedgerStore.

Failure modes:
    - ForbiddenError: the owner is not an exporter.
    - AccountNotFoundError: the owner has no account.
    - InvalidProductError: negative quantity, non-positive price, bad rating.
    - ProductNotFoundError: get_product on an unknown id.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from uuid import UUID

from sqlalchemy.orm import Session

from stock_kernel.domain.access_policy import authorize_listing
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import MAX_QUANTITY
from stock_kernel.exceptions import InvalidProductError, ProductNotFoundError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.product import Product
from stock_kernel.services.base import BaseService
from stock_kernel.services.identity_service import RoleDirectory, SessionRoleDirectory

logger = get_logger("services.catalog")

MAX_RATING = Decimal("5.0")


@dataclass(frozen=True)
class ProductInfo:
    """Immutable DTO for a catalog product."""

    id: UUID
    owner_id: UUID
    name: str
    price: Decimal
    origin_country: str
    rating: Decimal | None
    initial_quantity: int
    available_quantity: int
    created_at: datetime


def _to_decimal(value, field: str) -> Decimal:
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidProductError(field, f"not a number: {value!r}") from None
    if not result.is_finite():
        raise InvalidProductError(field, f"not a finite number: {value!r}")
    return result


class CatalogService(BaseService[Product]):
    """
    Registers exporter listings.

    Contract:
        Only actors whose RoleDirectory role carries the ``list_products``
        capability may register a product.
    """

    def __init__(
        self,
        session: Session,
        role_directory: RoleDirectory | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self._roles = role_directory or SessionRoleDirectory(session)
        self._clock = clock or SystemClock()

    def _to_dto(self, product: Product) -> ProductInfo:
        return ProductInfo(
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

    def get_product(self, product_id: UUID) -> ProductInfo:
        product = self.session.get(Product, product_id)
        if product is None:
            raise ProductNotFoundError(str(product_id))
        return self._to_dto(product)

    def register_product(
        self,
        owner_id: UUID,
        name: str,
        quantity: int,
        price: Decimal | str | int,
        origin_country: str,
        rating: Decimal | str | None = None,
    ) -> ProductInfo:
        """
        List a new product with ``quantity`` units in stock.

        Raises:
            AccountNotFoundError: owner has no account.
            ForbiddenError: owner is not an exporter.
            InvalidProductError: malformed listing fields.
        """
        authorize_listing(owner_id, self._roles.role_of(owner_id))

        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
            raise InvalidProductError("quantity", f"must be a non-negative integer, got {quantity!r}")
        if quantity > MAX_QUANTITY:
            raise InvalidProductError("quantity", f"must be at most {MAX_QUANTITY}")
        if not name or not name.strip():
            raise InvalidProductError("name", "must not be empty")
        if not origin_country or not origin_country.strip():
            raise InvalidProductError("origin_country", "must not be empty")

        price_value = _to_decimal(price, "price")
        if price_value <= 0:
            raise InvalidProductError("price", f"must be positive, got {price_value}")

        rating_value = None
        if rating is not None:
            rating_value = _to_decimal(rating, "rating")
            if not Decimal("0") <= rating_value <= MAX_RATING:
                raise InvalidProductError("rating", f"must be between 0 and {MAX_RATING}")

        product = Product(
            owner_id=owner_id,
            name=name.strip(),
            price=price_value,
            origin_country=origin_country.strip(),
            rating=rating_value,
            initial_quantity=quantity,
            available_quantity=quantity,
            created_at=self._clock.now(),
        )
        self.session.add(product)
        self.session.flush()

        logger.info(
            "product_registered",
            extra={
                "product_id": str(product.id),
                "owner_id": str(owner_id),
                "quantity": quantity,
            },
        )
        return self._to_dto(product)
