"""
Immutability of the import ledger and of product baselines.

The engine writes through conditional UPDATE statements; these tests cover
ORM code paths that try to rewrite history.
"""

import pytest

from stock_kernel.db.engine import session_scope
from stock_kernel.exceptions import ImmutabilityViolationError
from stock_kernel.models.import_record import ImportRecord
from stock_kernel.models.product import Product


@pytest.fixture
def reserved(reservation_engine, make_product, importer):
    product = make_product(quantity=10)
    return reservation_engine.reserve(product.id, 3, importer.id)


class TestImportRecordImmutability:

    def test_quantity_cannot_be_changed(self, session_factory, reserved):
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            with session_scope(session_factory) as s:
                record = s.get(ImportRecord, reserved.import_id)
                record.quantity = 1

        assert exc_info.value.entity_type == "ImportRecord"

    def test_importer_cannot_be_changed(self, session_factory, reserved, other_importer):
        with pytest.raises(ImmutabilityViolationError):
            with session_scope(session_factory) as s:
                record = s.get(ImportRecord, reserved.import_id)
                record.importer_id = other_importer.id

    def test_reversed_record_cannot_be_unreversed(
        self, session_factory, reservation_engine, reserved, importer
    ):
        reservation_engine.release(reserved.import_id, importer.id)

        with pytest.raises(ImmutabilityViolationError):
            with session_scope(session_factory) as s:
                record = s.get(ImportRecord, reserved.import_id)
                record.reversed = False

    def test_record_cannot_be_deleted(self, session_factory, reserved):
        with pytest.raises(ImmutabilityViolationError):
            with session_scope(session_factory) as s:
                s.delete(s.get(ImportRecord, reserved.import_id))

        with session_scope(session_factory) as s:
            assert s.get(ImportRecord, reserved.import_id) is not None

    def test_reversal_through_the_orm_is_allowed(
        self, session_factory, reserved, deterministic_clock
    ):
        with session_scope(session_factory) as s:
            record = s.get(ImportRecord, reserved.import_id)
            record.reversed = True
            record.reversed_at = deterministic_clock.now()

        with session_scope(session_factory) as s:
            assert s.get(ImportRecord, reserved.import_id).reversed is True


class TestProductImmutability:

    def test_owner_cannot_be_changed(self, session_factory, make_product, other_exporter):
        product = make_product(quantity=5)

        with pytest.raises(ImmutabilityViolationError):
            with session_scope(session_factory) as s:
                s.get(Product, product.id).owner_id = other_exporter.id

    def test_initial_quantity_cannot_be_changed(self, session_factory, make_product):
        product = make_product(quantity=5)

        with pytest.raises(ImmutabilityViolationError):
            with session_scope(session_factory) as s:
                s.get(Product, product.id).initial_quantity = 50

    def test_descriptive_fields_may_change(self, session_factory, make_product):
        product = make_product(quantity=5)

        with session_scope(session_factory) as s:
            s.get(Product, product.id).name = "Sella Rice"

        with session_scope(session_factory) as s:
            assert s.get(Product, product.id).name == "Sella Rice"

    def test_violation_is_logged(self, session_factory, make_product, captured_logs):
        product = make_product(quantity=5)

        with pytest.raises(ImmutabilityViolationError):
            with session_scope(session_factory) as s:
                s.get(Product, product.id).initial_quantity = 6

        blocked = [r for r in captured_logs() if r["message"] == "immutability_violation_blocked"]
        assert blocked[0]["entity_type"] == "Product"
        assert blocked[0]["field"] == "initial_quantity"
