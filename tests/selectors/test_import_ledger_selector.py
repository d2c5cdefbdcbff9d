"""
LedgerSelector tests: per-importer totals, per-product importer lists and
stock positions.
"""

from uuid import uuid4

import pytest

from stock_kernel.db.engine import session_scope
from stock_kernel.exceptions import ProductNotFoundError
from stock_kernel.selectors.ledger_selector import LedgerSelector


@pytest.fixture
def selector(session):
    return LedgerSelector(session)


class TestImportsByImporter:

    def test_reserves_on_same_product_are_grouped(
        self, reservation_engine, make_product, importer, selector
    ):
        product = make_product(quantity=10)
        reservation_engine.reserve(product.id, 2, importer.id)
        reservation_engine.reserve(product.id, 3, importer.id)

        totals = selector.imports_by_importer(importer.id)

        assert len(totals) == 1
        assert totals[0].product_id == product.id
        assert totals[0].total_quantity == 5
        assert totals[0].import_count == 2

    def test_most_recent_product_first(
        self, reservation_engine, make_product, importer, selector, deterministic_clock
    ):
        rice = make_product(quantity=10, name="Rice")
        tea = make_product(quantity=10, name="Tea")

        reservation_engine.reserve(rice.id, 1, importer.id)
        deterministic_clock.advance(60)
        reservation_engine.reserve(tea.id, 1, importer.id)

        totals = selector.imports_by_importer(importer.id)
        assert [t.product_id for t in totals] == [tea.id, rice.id]
        assert totals[0].last_imported_at == deterministic_clock.now()

    def test_reversed_records_are_excluded(
        self, reservation_engine, make_product, importer, selector
    ):
        product = make_product(quantity=10)
        kept = reservation_engine.reserve(product.id, 2, importer.id)
        dropped = reservation_engine.reserve(product.id, 3, importer.id)
        reservation_engine.release(dropped.import_id, importer.id)

        totals = selector.imports_by_importer(importer.id)
        assert totals[0].total_quantity == kept.record.quantity
        assert totals[0].import_count == 1

    def test_other_importers_are_not_included(
        self, reservation_engine, make_product, importer, other_importer, selector
    ):
        product = make_product(quantity=10)
        reservation_engine.reserve(product.id, 4, other_importer.id)

        assert selector.imports_by_importer(importer.id) == []


class TestImportersOfProduct:

    def test_lists_outstanding_imports_newest_first(
        self, reservation_engine, make_product, importer, other_importer, selector, deterministic_clock
    ):
        product = make_product(quantity=10)
        first = reservation_engine.reserve(product.id, 1, importer.id)
        deterministic_clock.advance(5)
        second = reservation_engine.reserve(product.id, 2, other_importer.id)

        importers = selector.importers_of_product(product.id)

        assert [i.import_id for i in importers] == [second.import_id, first.import_id]
        assert importers[0].importer_id == other_importer.id
        assert importers[0].quantity == 2

    def test_reversed_imports_are_excluded(self, reservation_engine, make_product, importer, selector):
        product = make_product(quantity=10)
        reserved = reservation_engine.reserve(product.id, 1, importer.id)
        reservation_engine.release(reserved.import_id, importer.id)

        assert selector.importers_of_product(product.id) == []

    def test_unknown_product_raises(self, selector, db_engine):
        with pytest.raises(ProductNotFoundError):
            selector.importers_of_product(uuid4())


class TestStockPosition:

    def test_fresh_product_is_balanced(self, make_product, selector):
        product = make_product(quantity=8)
        position = selector.stock_position(product.id)

        assert position.initial_quantity == 8
        assert position.available_quantity == 8
        assert position.outstanding_quantity == 0
        assert position.is_balanced

    def test_unknown_product_raises(self, selector, db_engine):
        with pytest.raises(ProductNotFoundError):
            selector.stock_position(uuid4())

    def test_unbalanced_products_reports_drift(
        self, reservation_engine, make_product, importer, session_factory, store
    ):
        healthy = make_product(quantity=10, name="Healthy")
        drifted = make_product(quantity=10, name="Drifted")
        reservation_engine.reserve(healthy.id, 3, importer.id)
        # Stock taken without a ledger entry, as after exhausted compensation.
        store.try_decrement(drifted.id, 2)

        with session_scope(session_factory) as s:
            unbalanced = LedgerSelector(s).unbalanced_products()

        assert [p.product_id for p in unbalanced] == [drifted.id]
        assert unbalanced[0].discrepancy == -2
