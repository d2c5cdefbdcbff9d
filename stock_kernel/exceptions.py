"""
Typed Exception Hierarchy for the Stock Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (the HTTP layer, operator tooling, tests) must tell apart "not
enough stock" from "you may not import your own product" without parsing
messages. Every error therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (product_id, import_id, quantity, ...)

Example:
    try:
        engine.reserve(product_id, 5, actor_id)
    except InsufficientStockError as e:
        api_response(code=e.code, requested=e.requested)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    StockKernelError (base)
    |
    +-- ValidationError
    |   +-- InvalidReservationRequestError
    |   +-- IdempotencyKeyConflictError
    |   +-- InvalidAccountError
    |   +-- InvalidProductError
    |
    +-- NotFoundError
    |   +-- ProductNotFoundError
    |   +-- ImportNotFoundError
    |   +-- AccountNotFoundError
    |
    +-- StockError
    |   +-- InsufficientStockError
    |
    +-- AuthorizationError
    |   +-- UnauthenticatedError
    |   +-- SelfImportForbiddenError
    |   +-- ForbiddenError
    |
    +-- ReversalError
    |   +-- AlreadyReversedError
    |
    +-- InconsistentStateError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | INVALID_REQUEST             | Bad ids, non-positive quantity, bad key
                | IDEMPOTENCY_KEY_CONFLICT    | Key reused by another actor/product
                | INVALID_ACCOUNT             | Bad email or unknown role at registration
                | INVALID_PRODUCT             | Negative stock or bad listing fields
----------------|-----------------------------|-----------------------------------------
Not found       | PRODUCT_NOT_FOUND           | Product id does not resolve
                | IMPORT_NOT_FOUND            | Import record id does not resolve
                | ACCOUNT_NOT_FOUND           | No account for actor id / email
----------------|-----------------------------|-----------------------------------------
Stock           | INSUFFICIENT_STOCK          | Conditional decrement matched no row
----------------|-----------------------------|-----------------------------------------
Authorization   | UNAUTHENTICATED             | Missing or invalid bearer token
                | SELF_IMPORT_FORBIDDEN       | Actor owns the product
                | FORBIDDEN                   | Missing capability / not record owner
----------------|-----------------------------|-----------------------------------------
Reversal        | ALREADY_REVERSED            | Conditional flag flip matched no row
----------------|-----------------------------|-----------------------------------------
Consistency     | INCONSISTENT_STATE          | Stock restore exhausted its retries;
                |                             | operator reconciliation required
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | ORM write to a frozen ledger field

InconsistentStateError is the only fatal kind. Everything else is an
expected, user-facing condition that the caller can correct or retry.
"""


class StockKernelError(Exception):
    """
    Base exception for all stock kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "STOCK_KERNEL_ERROR"


# Validation


class ValidationError(StockKernelError):
    """Base exception for rejected input."""

    code: str = "VALIDATION_ERROR"


class InvalidReservationRequestError(ValidationError):
    """A reserve/release request violates the input contract."""

    code: str = "INVALID_REQUEST"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class IdempotencyKeyConflictError(ValidationError):
    """Idempotency key already used for a different actor or product."""

    code: str = "IDEMPOTENCY_KEY_CONFLICT"

    def __init__(self, idempotency_key: str, import_id: str):
        self.idempotency_key = idempotency_key
        self.import_id = import_id
        super().__init__(
            f"Idempotency key {idempotency_key!r} already bound to import {import_id}"
        )


class InvalidAccountError(ValidationError):
    """Account registration input is malformed."""

    code: str = "INVALID_ACCOUNT"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid account {field}: {reason}")


class InvalidProductError(ValidationError):
    """Product registration input is malformed."""

    code: str = "INVALID_PRODUCT"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid product {field}: {reason}")


# Not found


class NotFoundError(StockKernelError):
    """Base exception for unresolvable references."""

    code: str = "NOT_FOUND"


class ProductNotFoundError(NotFoundError):
    """Product with given ID was not found."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class ImportNotFoundError(NotFoundError):
    """Import record with given ID was not found."""

    code: str = "IMPORT_NOT_FOUND"

    def __init__(self, import_id: str):
        self.import_id = import_id
        super().__init__(f"Import record not found: {import_id}")


class AccountNotFoundError(NotFoundError):
    """No account is registered for the actor."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, actor_ref: str):
        self.actor_ref = actor_ref
        super().__init__(f"Account not found: {actor_ref}")


# Stock


class StockError(StockKernelError):
    """Base exception for stock counter errors."""

    code: str = "STOCK_ERROR"


class InsufficientStockError(StockError):
    """Available stock was below the requested quantity at apply time."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: str, requested: int):
        self.product_id = product_id
        self.requested = requested
        super().__init__(
            f"Insufficient stock for product {product_id}: requested {requested}"
        )


# Authorization


class AuthorizationError(StockKernelError):
    """Base exception for identity and access failures."""

    code: str = "AUTHORIZATION_ERROR"


class UnauthenticatedError(AuthorizationError):
    """The caller could not be identified."""

    code: str = "UNAUTHENTICATED"

    def __init__(self, reason: str = "unauthorized access"):
        self.reason = reason
        super().__init__(reason)


class SelfImportForbiddenError(AuthorizationError):
    """An exporter attempted to import their own product."""

    code: str = "SELF_IMPORT_FORBIDDEN"

    def __init__(self, product_id: str, actor_id: str):
        self.product_id = product_id
        self.actor_id = actor_id
        super().__init__(
            f"Actor {actor_id} owns product {product_id} and cannot import it"
        )


class ForbiddenError(AuthorizationError):
    """The actor lacks the capability or ownership the operation needs."""

    code: str = "FORBIDDEN"

    def __init__(self, actor_id: str, reason: str):
        self.actor_id = actor_id
        self.reason = reason
        super().__init__(f"Forbidden for actor {actor_id}: {reason}")


# Reversal


class ReversalError(StockKernelError):
    """Base exception for import reversal errors."""

    code: str = "REVERSAL_ERROR"


class AlreadyReversedError(ReversalError):
    """Import record was already reversed (no double refund)."""

    code: str = "ALREADY_REVERSED"

    def __init__(self, import_id: str):
        self.import_id = import_id
        super().__init__(f"Import record {import_id} is already reversed")


# Consistency


class InconsistentStateError(StockKernelError):
    """
    Ledger and stock counter diverged and could not be self-healed.

    Raised when restoring stock (reserve compensation or release) exhausts
    its retry budget. Requires operator reconciliation.
    """

    code: str = "INCONSISTENT_STATE"

    def __init__(
        self,
        product_id: str,
        quantity: int,
        import_id: str | None = None,
        reason: str = "",
    ):
        self.product_id = product_id
        self.quantity = quantity
        self.import_id = import_id
        self.reason = reason
        super().__init__(
            f"Inconsistent state for product {product_id} "
            f"(import={import_id}, quantity={quantity}): {reason}"
        )


# Immutability


class ImmutabilityError(StockKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete a frozen ledger field."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )
