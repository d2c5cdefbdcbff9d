"""
StockLedgerStore -- atomic storage primitives for the stock counter and ledger.

Responsibility:
    Owns every write to ``products.available_quantity`` and
    ``import_records``.  Each public method is ONE short transaction taken
    from the injected session factory, and each mutation is a single
    conditional SQL statement:

        try_decrement  UPDATE products SET available_quantity = available_quantity - :q
                       WHERE id = :id AND available_quantity >= :q
                       RETURNING available_quantity
        increment      UPDATE products SET available_quantity = available_quantity + :q
                       WHERE id = :id RETURNING available_quantity
        mark_reversed  UPDATE import_records SET reversed = true, reversed_at = :now
                       WHERE id = :id AND reversed = false RETURNING *

Architecture position:
    Kernel > Services -- imperative shell.  Called only by
    ReservationEngine; nothing else mutates the counter.

Invariants enforced:
    - available_quantity never goes negative: the guard lives in the
      WHERE clause, so the check and the write cannot be separated by a
      concurrent writer.  The CHECK constraint backs it up.
    - A record's reversed flag flips at most once: the second conditional
      UPDATE matches zero rows.

Failure modes:
    - OperationalError (lock timeout, serialization failure) propagates; the
      engine decides whether to retry.
    - IntegrityError from append_import on a duplicate idempotency key.
    - ProductNotFoundError from increment when the product row is gone.

Non-goals:
    - No read-then-write sequences.  No in-process locks.
"""

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from stock_kernel.db.engine import session_scope
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import ImportRecordInfo, ProductSnapshot
from stock_kernel.exceptions import ProductNotFoundError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.import_record import ImportRecord
from stock_kernel.models.product import Product

logger = get_logger("services.stock_ledger_store")


class StockLedgerStore:
    """
    Conditional-write storage for products and import records.

    Contract:
        Every method commits (or rolls back) its own transaction before
        returning; callers never see a half-applied primitive.

    Guarantees:
        - Methods return DTOs, never attached ORM instances.
        - Safe to share across threads; holds no per-call state.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_product(self, product_id: UUID) -> ProductSnapshot | None:
        with session_scope(self._session_factory) as session:
            product = session.get(Product, product_id)
            if product is None:
                return None
            return ProductSnapshot.from_model(product)

    def current_stock(self, product_id: UUID) -> int:
        with session_scope(self._session_factory) as session:
            available = session.execute(
                select(Product.available_quantity).where(Product.id == product_id)
            ).scalar_one_or_none()
        if available is None:
            raise ProductNotFoundError(str(product_id))
        return available

    def get_import(self, import_id: UUID) -> ImportRecordInfo | None:
        with session_scope(self._session_factory) as session:
            record = session.get(ImportRecord, import_id)
            if record is None:
                return None
            return ImportRecordInfo.from_model(record)

    def find_import_by_key(self, idempotency_key: str) -> ImportRecordInfo | None:
        with session_scope(self._session_factory) as session:
            record = session.execute(
                select(ImportRecord).where(
                    ImportRecord.idempotency_key == idempotency_key
                )
            ).scalar_one_or_none()
            if record is None:
                return None
            return ImportRecordInfo.from_model(record)

    # ------------------------------------------------------------------
    # Counter primitives
    # ------------------------------------------------------------------

    def try_decrement(self, product_id: UUID, quantity: int) -> int | None:
        """
        Take ``quantity`` units if at least that many are available.

        Returns:
            The remaining available quantity, or None when the guard did not
            match (product missing or stock too low).  None means nothing
            was written.
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .where(Product.available_quantity >= quantity)
            .values(available_quantity=Product.available_quantity - quantity)
            .returning(Product.available_quantity)
            .execution_options(synchronize_session=False)
        )
        with session_scope(self._session_factory) as session:
            remaining = session.execute(stmt).scalar_one_or_none()

        logger.debug(
            "stock_decrement_applied" if remaining is not None else "stock_decrement_refused",
            extra={
                "product_id": str(product_id),
                "quantity": quantity,
                "remaining": remaining,
            },
        )
        return remaining

    def increment(self, product_id: UUID, quantity: int) -> int:
        """Give ``quantity`` units back; returns the new available quantity."""
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(available_quantity=Product.available_quantity + quantity)
            .returning(Product.available_quantity)
            .execution_options(synchronize_session=False)
        )
        with session_scope(self._session_factory) as session:
            available = session.execute(stmt).scalar_one_or_none()
        if available is None:
            raise ProductNotFoundError(str(product_id))

        logger.debug(
            "stock_increment_applied",
            extra={
                "product_id": str(product_id),
                "quantity": quantity,
                "available": available,
            },
        )
        return available

    # ------------------------------------------------------------------
    # Ledger primitives
    # ------------------------------------------------------------------

    def append_import(
        self,
        product_id: UUID,
        importer_id: UUID,
        quantity: int,
        idempotency_key: str | None = None,
    ) -> ImportRecordInfo:
        """Insert a non-reversed ledger entry stamped with the clock's time."""
        with session_scope(self._session_factory) as session:
            record = ImportRecord(
                product_id=product_id,
                importer_id=importer_id,
                quantity=quantity,
                created_at=self._clock.now(),
                reversed=False,
                idempotency_key=idempotency_key,
            )
            session.add(record)
            session.flush()
            info = ImportRecordInfo.from_model(record)
        return info

    def mark_reversed(self, import_id: UUID) -> ImportRecordInfo | None:
        """
        Flip ``reversed`` false -> true.

        Returns:
            The reversed record, or None if it was already reversed (or is
            missing).  Only one concurrent caller can get a record back.
        """
        stmt = (
            update(ImportRecord)
            .where(ImportRecord.id == import_id)
            .where(ImportRecord.reversed.is_(False))
            .values(reversed=True, reversed_at=self._clock.now())
            .returning(ImportRecord)
            .execution_options(synchronize_session=False)
        )
        with session_scope(self._session_factory) as session:
            record = session.execute(stmt).scalar_one_or_none()
            if record is None:
                return None
            return ImportRecordInfo.from_model(record)
