"""
ORM-Level Immutability Enforcement for the import ledger.

===============================================================================
WHY THIS EXISTS
===============================================================================

The import ledger is the audit trail of stock movement.  A record's quantity
and timestamps must never change after creation, the reversal flag only ever
moves false -> true, and records are never deleted.  Products keep their
owner and their reconciliation baseline (initial_quantity) for life.

The reservation engine writes through single-statement conditional UPDATEs
and never assigns these attributes through the ORM, so these listeners guard
every OTHER code path (scripts, admin tooling, tests, future features):

    session.flush()
         |
         v
    [before_update event] --> _check_*_immutability() --> ImmutabilityViolationError
         |
         v
    [before_delete event] --> _check_*_delete() ---------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity        | Rule
--------------|---------------------------------------------------------------
ImportRecord  | Only reversed/reversed_at may change; reversed never true->false;
              | never deleted
Product       | owner_id and initial_quantity never change

===============================================================================
USAGE
===============================================================================

    from stock_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from stock_kernel.exceptions import ImmutabilityViolationError
from stock_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

PRODUCT_FROZEN_FIELDS = frozenset({"owner_id", "initial_quantity"})


def _block(entity_type: str, entity_id, operation: str, reason: str, field: str | None = None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            "field": field,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _check_import_record_immutability(mapper, connection, target):
    """
    Prevent updates to frozen ImportRecord fields and un-reversal.
    """
    from stock_kernel.models.import_record import (
        IMPORT_RECORD_MUTABLE_FIELDS,
        ImportRecord,
    )

    if not isinstance(target, ImportRecord):
        return

    insp = inspect(target)
    for attr in insp.attrs:
        if attr.key in IMPORT_RECORD_MUTABLE_FIELDS:
            continue
        if attr.history.has_changes():
            _block(
                "ImportRecord",
                target.id,
                "UPDATE",
                f"Cannot modify field '{attr.key}' on an import record",
                field=attr.key,
            )

    reversed_history = get_history(target, "reversed")
    if reversed_history.deleted and reversed_history.deleted[0] is True:
        _block(
            "ImportRecord",
            target.id,
            "UPDATE",
            "A reversed import record cannot be un-reversed",
            field="reversed",
        )


def _check_import_record_delete(mapper, connection, target):
    """
    Prevent deletion of ImportRecord rows (audit trail).
    """
    from stock_kernel.models.import_record import ImportRecord

    if not isinstance(target, ImportRecord):
        return

    _block("ImportRecord", target.id, "DELETE", "Import records cannot be deleted")


def _check_product_immutability(mapper, connection, target):
    """
    Prevent updates to a product's owner and reconciliation baseline.
    """
    from stock_kernel.models.product import Product

    if not isinstance(target, Product):
        return

    for field in PRODUCT_FROZEN_FIELDS:
        if get_history(target, field).has_changes():
            _block(
                "Product",
                target.id,
                "UPDATE",
                f"Cannot modify field '{field}' on a product",
                field=field,
            )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Call this after all models are imported but before any database
    operations begin.  Idempotent.
    """
    from stock_kernel.models.import_record import ImportRecord
    from stock_kernel.models.product import Product

    for target, event_name, listener_fn in _listener_table(ImportRecord, Product):
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    from stock_kernel.models.import_record import ImportRecord
    from stock_kernel.models.product import Product

    for target, event_name, listener_fn in _listener_table(ImportRecord, Product):
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)


def _listener_table(import_record_cls, product_cls):
    return (
        (import_record_cls, "before_update", _check_import_record_immutability),
        (import_record_cls, "before_delete", _check_import_record_delete),
        (product_cls, "before_update", _check_product_immutability),
    )
