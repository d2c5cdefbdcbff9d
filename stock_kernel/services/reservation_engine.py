"""
ReservationEngine -- reserve stock into the import ledger, and release it.

Responsibility:
    Owns the ledger/stock invariant

        available_quantity + sum(quantity of non-reversed records) == initial_quantity

    across the two-step mutations that touch both the counter and the
    ledger, including the compensation path when the second step fails.

Architecture position:
    Kernel > Services -- imperative shell.  Coordinates StockLedgerStore
    (storage primitives), RoleDirectory (identity collaborator) and the
    Access Policy Gate (domain).  Holds no locks and no mutable state;
    all coordination between concurrent callers is the storage layer's
    conditional write.

Reserve flow:
    1. Validate input                        -> InvalidReservationRequestError
    2. Load product                          -> ProductNotFoundError
    3. Idempotency replay (optional key)     -> IdempotencyKeyConflictError,
                                                AlreadyReversedError when the
                                                keyed record was released
    4. Role lookup + access policy           -> SelfImportForbiddenError / ForbiddenError
    5. Conditional decrement (committed)     -> InsufficientStockError
    6. Append import record (committed)
       on failure: increment back           -> InconsistentStateError if exhausted

Release flow:
    1. Validate input, load record           -> ImportNotFoundError
    2. Ownership check                       -> ForbiddenError
    3. Conditional flip reversed=false->true -> AlreadyReversedError
    4. Increment stock back                  -> InconsistentStateError if exhausted

Invariants enforced:
    - Validation and authorization happen before any mutation.
    - A decrement without a matching record never survives: the record
      append either succeeds, or the decrement is compensated, or the
      failure is escalated as InconsistentStateError.
    - The reversal flag is never flipped back.

Failure modes:
    - InconsistentStateError (CRITICAL log) when a stock restore exhausts
      its retry budget; operators reconcile with scripts/reconcile_stock.py.
    - OperationalError from a storage call.  Only errors that guarantee
      nothing was committed (lock timeout, deadlock, serialization
      failure) are retried; any other storage error may have committed and
      is logged at CRITICAL as storage_outcome_unknown before propagating.
"""

from typing import Callable, TypeVar
from uuid import UUID

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from stock_kernel.db.engine import is_transient_error
from stock_kernel.domain.access_policy import (
    ActorRole,
    authorize_import,
    authorize_release,
)
from stock_kernel.domain.dtos import (
    ImportRecordInfo,
    ReleaseCommand,
    ReleaseResult,
    ReservationResult,
    ReserveCommand,
)
from stock_kernel.exceptions import (
    AccountNotFoundError,
    AlreadyReversedError,
    IdempotencyKeyConflictError,
    ImportNotFoundError,
    InconsistentStateError,
    InsufficientStockError,
    ProductNotFoundError,
    StockKernelError,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.services.identity_service import RoleDirectory
from stock_kernel.services.stock_ledger_store import StockLedgerStore
from stock_kernel.utils.retry import RetryExhaustedError, retry_call

logger = get_logger("services.reservation_engine")

T = TypeVar("T")

DEFAULT_MAX_STORAGE_ATTEMPTS = 3
DEFAULT_COMPENSATION_ATTEMPTS = 5
DEFAULT_RETRY_BACKOFF_SECONDS = 0.05


class ReservationEngine:
    """
    Atomic reserve/release over the stock counter and the import ledger.

    Contract:
        ``reserve`` and ``release`` either complete fully, fail with no
        visible mutation, or raise InconsistentStateError.

    Guarantees:
        - Stateless and thread-safe; one instance serves all requests.
        - Each storage primitive runs in its own short transaction.

    Non-goals:
        - Partial release of a record.
        - Cancelling the conditional decrement once issued.
    """

    def __init__(
        self,
        store: StockLedgerStore,
        role_directory: RoleDirectory,
        *,
        max_storage_attempts: int = DEFAULT_MAX_STORAGE_ATTEMPTS,
        compensation_attempts: int = DEFAULT_COMPENSATION_ATTEMPTS,
        retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS,
    ):
        if max_storage_attempts < 1 or compensation_attempts < 1:
            raise ValueError("attempt budgets must be >= 1")
        self._store = store
        self._roles = role_directory
        self._max_storage_attempts = max_storage_attempts
        self._compensation_attempts = compensation_attempts
        self._retry_backoff_seconds = retry_backoff_seconds

    # ------------------------------------------------------------------
    # reserve
    # ------------------------------------------------------------------

    def reserve(
        self,
        product_id,
        quantity,
        actor_id,
        idempotency_key: str | None = None,
    ) -> ReservationResult:
        """
        Move ``quantity`` units of a product into the import ledger.

        Args:
            product_id: Product UUID (or its string form).
            quantity: Positive int.
            actor_id: Importer UUID (or its string form).
            idempotency_key: Optional client key; a retry with the same key
                returns the original record without moving stock again.

        Returns:
            ReservationResult with the new record and the remaining stock.

        Raises:
            InvalidReservationRequestError, ProductNotFoundError,
            IdempotencyKeyConflictError, SelfImportForbiddenError,
            ForbiddenError, InsufficientStockError, InconsistentStateError.
        """
        command = ReserveCommand.parse(product_id, quantity, actor_id, idempotency_key)

        with LogContext.bind(
            actor_id=str(command.actor_id),
            product_id=str(command.product_id),
        ):
            try:
                return self._reserve(command)
            except InconsistentStateError:
                raise
            except StockKernelError as exc:
                logger.info(
                    "reservation_rejected",
                    extra={"code": exc.code, "quantity": command.quantity},
                )
                raise

    def _reserve(self, command: ReserveCommand) -> ReservationResult:
        product = self._store.get_product(command.product_id)
        if product is None:
            raise ProductNotFoundError(str(command.product_id))

        if command.idempotency_key is not None:
            existing = self._store.find_import_by_key(command.idempotency_key)
            if existing is not None:
                return self._replay(command, existing)

        authorize_import(
            product.product_id,
            product.owner_id,
            command.actor_id,
            self._role_of(command.actor_id),
        )

        remaining = self._storage_call(
            lambda: self._store.try_decrement(command.product_id, command.quantity),
            "try_decrement",
        )
        if remaining is None:
            raise InsufficientStockError(str(command.product_id), command.quantity)

        try:
            record = self._store.append_import(
                command.product_id,
                command.actor_id,
                command.quantity,
                command.idempotency_key,
            )
        except Exception as exc:
            self._compensate_decrement(command, exc)
            if isinstance(exc, IntegrityError) and command.idempotency_key is not None:
                winner = self._store.find_import_by_key(command.idempotency_key)
                if winner is not None:
                    return self._replay(command, winner)
            raise

        logger.info(
            "reservation_committed",
            extra={
                "import_id": str(record.import_id),
                "quantity": command.quantity,
                "remaining_stock": remaining,
            },
        )
        return ReservationResult(record=record, remaining_stock=remaining)

    def _role_of(self, actor_id: UUID) -> ActorRole | None:
        try:
            return self._roles.role_of(actor_id)
        except AccountNotFoundError:
            return None

    def _replay(
        self, command: ReserveCommand, existing: ImportRecordInfo
    ) -> ReservationResult:
        if (
            existing.importer_id != command.actor_id
            or existing.product_id != command.product_id
        ):
            raise IdempotencyKeyConflictError(
                command.idempotency_key, str(existing.import_id)
            )
        if existing.reversed:
            raise AlreadyReversedError(str(existing.import_id))
        remaining = self._store.current_stock(existing.product_id)
        logger.info(
            "reservation_replayed",
            extra={
                "import_id": str(existing.import_id),
                "idempotency_key": command.idempotency_key,
            },
        )
        return ReservationResult(record=existing, remaining_stock=remaining, replayed=True)

    def _compensate_decrement(self, command: ReserveCommand, cause: BaseException) -> None:
        logger.warning(
            "compensation_started",
            extra={
                "quantity": command.quantity,
                "error": repr(cause),
            },
        )
        try:
            available = retry_call(
                lambda: self._store.increment(command.product_id, command.quantity),
                operation="compensate_decrement",
                attempts=self._compensation_attempts,
                retry_on=(SQLAlchemyError,),
                should_retry=is_transient_error,
                backoff_seconds=self._retry_backoff_seconds,
            )
        except (RetryExhaustedError, ProductNotFoundError, SQLAlchemyError) as exc:
            last_error = exc.last_error if isinstance(exc, RetryExhaustedError) else exc
            logger.critical(
                "inconsistent_state_detected",
                extra={
                    "phase": "reserve_compensation",
                    "product_id": str(command.product_id),
                    "quantity": command.quantity,
                    "actor_id": str(command.actor_id),
                    "cause": repr(cause),
                    "error": repr(last_error),
                },
            )
            raise InconsistentStateError(
                str(command.product_id),
                command.quantity,
                reason=f"stock decrement could not be compensated: {last_error!r}",
            ) from last_error

        logger.info(
            "compensation_completed",
            extra={"quantity": command.quantity, "available_quantity": available},
        )

    # ------------------------------------------------------------------
    # release
    # ------------------------------------------------------------------

    def release(self, import_id, actor_id) -> ReleaseResult:
        """
        Reverse an import record and return its quantity to stock.

        Raises:
            InvalidReservationRequestError, ImportNotFoundError,
            ForbiddenError, AlreadyReversedError, InconsistentStateError.
        """
        command = ReleaseCommand.parse(import_id, actor_id)

        with LogContext.bind(
            actor_id=str(command.actor_id),
            import_id=str(command.import_id),
        ):
            try:
                return self._release(command)
            except InconsistentStateError:
                raise
            except StockKernelError as exc:
                logger.info("release_rejected", extra={"code": exc.code})
                raise

    def _release(self, command: ReleaseCommand) -> ReleaseResult:
        record = self._store.get_import(command.import_id)
        if record is None:
            raise ImportNotFoundError(str(command.import_id))

        authorize_release(record.importer_id, command.actor_id)

        reversed_record = self._storage_call(
            lambda: self._store.mark_reversed(command.import_id),
            "mark_reversed",
        )
        if reversed_record is None:
            raise AlreadyReversedError(str(command.import_id))

        available = self._restore_released_stock(reversed_record)

        logger.info(
            "release_committed",
            extra={
                "product_id": str(reversed_record.product_id),
                "quantity": reversed_record.quantity,
                "available_quantity": available,
            },
        )
        return ReleaseResult(
            import_id=reversed_record.import_id,
            product_id=reversed_record.product_id,
            quantity=reversed_record.quantity,
            available_quantity=available,
        )

    def _restore_released_stock(self, record: ImportRecordInfo) -> int:
        try:
            return retry_call(
                lambda: self._store.increment(record.product_id, record.quantity),
                operation="restore_released_stock",
                attempts=self._compensation_attempts,
                retry_on=(SQLAlchemyError,),
                should_retry=is_transient_error,
                backoff_seconds=self._retry_backoff_seconds,
            )
        except (RetryExhaustedError, ProductNotFoundError, SQLAlchemyError) as exc:
            last_error = exc.last_error if isinstance(exc, RetryExhaustedError) else exc
            logger.critical(
                "inconsistent_state_detected",
                extra={
                    "phase": "release",
                    "product_id": str(record.product_id),
                    "import_id": str(record.import_id),
                    "quantity": record.quantity,
                    "error": repr(last_error),
                },
            )
            raise InconsistentStateError(
                str(record.product_id),
                record.quantity,
                import_id=str(record.import_id),
                reason=f"record reversed but stock not restored: {last_error!r}",
            ) from last_error

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _storage_call(self, fn: Callable[[], T], operation: str) -> T:
        """Retry a not-yet-applied storage write on transient errors."""
        try:
            return retry_call(
                fn,
                operation=operation,
                attempts=self._max_storage_attempts,
                retry_on=(OperationalError,),
                should_retry=is_transient_error,
                backoff_seconds=self._retry_backoff_seconds,
            )
        except RetryExhaustedError as exc:
            logger.error(
                "storage_call_failed",
                extra={"operation": operation, "attempts": exc.attempts},
            )
            raise exc.last_error from None
        except OperationalError as exc:
            # The write may have committed before the error surfaced.
            logger.critical(
                "storage_outcome_unknown",
                extra={"operation": operation, "error": repr(exc)},
            )
            raise
