"""
Module: stock_kernel.models.import_record
Responsibility: ORM persistence for the import ledger -- one row per
    reservation of stock by an importer.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - quantity > 0 (CHECK constraint) and never changes after creation.
    - reversed goes false -> true at most once; the release path guards it
      with a conditional UPDATE, the ORM listeners in db/immutability.py
      reject any other change.
    - Rows are never deleted (audit trail).
    - idempotency_key is unique when present.
    - product_id is a weak reference: no foreign key, so the catalog may
      retire a product without touching the ledger.

Failure modes:
    - IntegrityError on duplicate idempotency_key.
    - ImmutabilityViolationError on ORM UPDATE of frozen fields or DELETE.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base, UtcDateTime, UUIDString

# Fields an UPDATE may touch; everything else is frozen at creation.
IMPORT_RECORD_MUTABLE_FIELDS = frozenset({"reversed", "reversed_at"})


class ImportRecord(Base):
    """Ledger entry: stock that left a product's counter for one importer."""

    __tablename__ = "import_records"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_import_quantity_positive"),
        UniqueConstraint("idempotency_key", name="uq_import_idempotency"),
        Index("idx_import_product", "product_id"),
        Index("idx_import_importer", "importer_id"),
    )

    product_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    importer_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    quantity: Mapped[int] = mapped_column(nullable=False)

    created_at: Mapped[datetime] = mapped_column(UtcDateTime(), nullable=False)

    reversed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    reversed_at: Mapped[datetime | None] = mapped_column(UtcDateTime(), nullable=True)

    idempotency_key: Mapped[str | None] = mapped_column(String(128), nullable=True)

    @property
    def is_outstanding(self) -> bool:
        """True while the reserved stock still lives in the ledger."""
        return not self.reversed

    def __repr__(self) -> str:
        return (
            f"<ImportRecord {self.id} product={self.product_id} "
            f"importer={self.importer_id} qty={self.quantity} reversed={self.reversed}>"
        )
