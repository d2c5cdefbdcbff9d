"""
Module: stock_kernel.models.product
Responsibility: ORM persistence for listed products and their stock counter.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - available_quantity >= 0 (CHECK constraint; the conditional decrement
      never produces a negative value, the constraint backs it up).
    - initial_quantity and owner_id are immutable (ORM listeners in
      db/immutability.py).
    - available_quantity is written ONLY by the stock ledger store's
      conditional UPDATE statements, never through ORM attribute assignment.

Failure modes:
    - IntegrityError if a write would make available_quantity negative.
    - ImmutabilityViolationError on ORM change to owner_id/initial_quantity.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base, UtcDateTime, UUIDString


class Product(Base):
    """
    A product listed by an exporter.

    Descriptive fields (name, price, origin_country, rating) belong to the
    catalog; the reservation core only reads them.
    """

    __tablename__ = "products"

    __table_args__ = (
        CheckConstraint("available_quantity >= 0", name="ck_product_available_non_negative"),
        CheckConstraint("initial_quantity >= 0", name="ck_product_initial_non_negative"),
        Index("idx_product_owner", "owner_id"),
    )

    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    origin_country: Mapped[str] = mapped_column(String(100), nullable=False)

    rating: Mapped[Decimal | None] = mapped_column(Numeric(3, 1), nullable=True)

    # Stock at listing time; reconciliation baseline
    initial_quantity: Mapped[int] = mapped_column(nullable=False)

    available_quantity: Mapped[int] = mapped_column(nullable=False)

    created_at: Mapped[datetime] = mapped_column(UtcDateTime(), nullable=False)

    def __repr__(self) -> str:
        return (
            f"<Product {self.id} owner={self.owner_id} "
            f"available={self.available_quantity}/{self.initial_quantity}>"
        )
