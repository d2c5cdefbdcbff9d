"""
DTOs -- Pure domain data transfer objects for the reservation core.

Responsibility:
    Defines the explicit input contract for reserve/release (ReserveCommand,
    ReleaseCommand) and the immutable snapshots that cross the storage
    boundary (ProductSnapshot, ImportRecordInfo) and the results returned to
    callers (ReservationResult, ReleaseResult).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    from_model() class methods exist as boundary converters but are only
    invoked from the service/selector layer.

Invariants enforced:
    - Commands are validated on construction (via ``parse``) BEFORE any
      storage interaction: ids are UUIDs, quantity is a positive int no
      larger than MAX_QUANTITY (bool rejected), idempotency keys are
      bounded non-empty strings.
    - Services return DTOs, never live ORM entities.

Failure modes:
    - InvalidReservationRequestError on any contract violation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from stock_kernel.exceptions import InvalidReservationRequestError

if TYPE_CHECKING:
    from stock_kernel.models.import_record import ImportRecord as ImportRecordModel
    from stock_kernel.models.product import Product as ProductModel

MAX_IDEMPOTENCY_KEY_LENGTH = 128

# Quantities are stored as BIGINT.
MAX_QUANTITY = 2**63 - 1


def coerce_uuid(value: Any, field: str) -> UUID:
    """Accept a UUID or its string form; reject everything else."""
    if isinstance(value, UUID):
        return value
    if isinstance(value, str):
        try:
            return UUID(value)
        except ValueError:
            pass
    raise InvalidReservationRequestError(field, f"expected a UUID, got {value!r}")


def coerce_quantity(value: Any, field: str = "quantity") -> int:
    """A quantity is a strictly positive int (bools are not ints here)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidReservationRequestError(
            field, f"expected a positive integer, got {type(value).__name__}"
        )
    if value <= 0:
        raise InvalidReservationRequestError(field, f"must be positive, got {value}")
    if value > MAX_QUANTITY:
        raise InvalidReservationRequestError(field, f"must be at most {MAX_QUANTITY}")
    return value


def coerce_idempotency_key(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise InvalidReservationRequestError(
            "idempotency_key", "must be a non-empty string"
        )
    if len(value) > MAX_IDEMPOTENCY_KEY_LENGTH:
        raise InvalidReservationRequestError(
            "idempotency_key",
            f"must be at most {MAX_IDEMPOTENCY_KEY_LENGTH} characters",
        )
    return value


@dataclass(frozen=True)
class ReserveCommand:
    """Validated input for ReservationEngine.reserve()."""

    product_id: UUID
    quantity: int
    actor_id: UUID
    idempotency_key: str | None = None

    @classmethod
    def parse(
        cls,
        product_id: Any,
        quantity: Any,
        actor_id: Any,
        idempotency_key: Any = None,
    ) -> ReserveCommand:
        return cls(
            product_id=coerce_uuid(product_id, "product_id"),
            quantity=coerce_quantity(quantity),
            actor_id=coerce_uuid(actor_id, "actor_id"),
            idempotency_key=coerce_idempotency_key(idempotency_key),
        )


@dataclass(frozen=True)
class ReleaseCommand:
    """Validated input for ReservationEngine.release()."""

    import_id: UUID
    actor_id: UUID

    @classmethod
    def parse(cls, import_id: Any, actor_id: Any) -> ReleaseCommand:
        return cls(
            import_id=coerce_uuid(import_id, "import_id"),
            actor_id=coerce_uuid(actor_id, "actor_id"),
        )


@dataclass(frozen=True)
class ProductSnapshot:
    """What the reservation core needs to know about a product."""

    product_id: UUID
    owner_id: UUID
    name: str
    initial_quantity: int
    available_quantity: int

    @classmethod
    def from_model(cls, model: ProductModel) -> ProductSnapshot:
        return cls(
            product_id=model.id,
            owner_id=model.owner_id,
            name=model.name,
            initial_quantity=model.initial_quantity,
            available_quantity=model.available_quantity,
        )


@dataclass(frozen=True)
class ImportRecordInfo:
    """Immutable view of one ledger entry."""

    import_id: UUID
    product_id: UUID
    importer_id: UUID
    quantity: int
    created_at: datetime
    reversed: bool
    reversed_at: datetime | None = None
    idempotency_key: str | None = None

    @classmethod
    def from_model(cls, model: ImportRecordModel) -> ImportRecordInfo:
        return cls(
            import_id=model.id,
            product_id=model.product_id,
            importer_id=model.importer_id,
            quantity=model.quantity,
            created_at=model.created_at,
            reversed=model.reversed,
            reversed_at=model.reversed_at,
            idempotency_key=model.idempotency_key,
        )


@dataclass(frozen=True)
class ReservationResult:
    """Outcome of a successful reserve().

    ``remaining_stock`` is the counter value produced by the conditional
    decrement itself.  ``replayed`` is True when an idempotency key matched an
    existing record and no stock moved.
    """

    record: ImportRecordInfo
    remaining_stock: int
    replayed: bool = False

    @property
    def import_id(self) -> UUID:
        return self.record.import_id


@dataclass(frozen=True)
class ReleaseResult:
    """Outcome of a successful release()."""

    import_id: UUID
    product_id: UUID
    quantity: int
    available_quantity: int
    restored: bool = True
