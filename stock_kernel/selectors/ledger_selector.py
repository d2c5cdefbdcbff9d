"""
Module: stock_kernel.selectors.ledger_selector
Responsibility: Read-only queries over the import ledger: what an importer
    currently holds per product, who holds a product, and whether each
    product's counter agrees with its ledger.
Architecture position: Kernel > Selectors.  May import from models/ and
    selectors/base.py.  MUST NOT import from services/ or outer layers.

Invariants checked:
    available_quantity + sum(quantity of non-reversed records) == initial_quantity

    stock_position() and unbalanced_products() evaluate it per product in a
    single statement, so the counter and the ledger sum come from the same
    snapshot.

Failure modes:
    - ProductNotFoundError from importers_of_product()/stock_position() for
      an unknown product id.
    - Returns empty lists when no matching records exist.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select

from stock_kernel.exceptions import ProductNotFoundError
from stock_kernel.models.import_record import ImportRecord
from stock_kernel.models.product import Product
from stock_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class ImporterProductTotal:
    """Outstanding quantity one importer holds of one product."""

    product_id: UUID
    total_quantity: int
    last_imported_at: datetime
    import_count: int


@dataclass(frozen=True)
class ProductImporter:
    """One outstanding import of a product."""

    import_id: UUID
    importer_id: UUID
    quantity: int
    imported_at: datetime


@dataclass(frozen=True)
class StockPosition:
    """Counter vs. ledger for one product."""

    product_id: UUID
    initial_quantity: int
    available_quantity: int
    outstanding_quantity: int

    @property
    def is_balanced(self) -> bool:
        return (
            self.available_quantity + self.outstanding_quantity
            == self.initial_quantity
        )

    @property
    def discrepancy(self) -> int:
        """Units the counter is off by (positive: counter too high)."""
        return (
            self.available_quantity + self.outstanding_quantity
            - self.initial_quantity
        )


class LedgerSelector(BaseSelector[ImportRecord]):
    """
    Read-only ledger aggregations.

    Only non-reversed records count: a reversed record's stock is back on
    the product counter.
    """

    def imports_by_importer(self, importer_id: UUID) -> list[ImporterProductTotal]:
        """
        Per-product totals of an importer's outstanding imports.

        Returns:
            One row per product, most recently imported first.
        """
        last_imported = func.max(ImportRecord.created_at)
        stmt = (
            select(
                ImportRecord.product_id,
                func.sum(ImportRecord.quantity),
                last_imported,
                func.count(ImportRecord.id),
            )
            .where(ImportRecord.importer_id == importer_id)
            .where(ImportRecord.reversed.is_(False))
            .group_by(ImportRecord.product_id)
            .order_by(last_imported.desc(), ImportRecord.product_id)
        )

        return [
            ImporterProductTotal(
                product_id=product_id,
                total_quantity=int(total),
                last_imported_at=last_at,
                import_count=int(count),
            )
            for product_id, total, last_at, count in self.session.execute(stmt)
        ]

    def importers_of_product(self, product_id: UUID) -> list[ProductImporter]:
        """
        Outstanding imports of a product, most recent first.

        Raises:
            ProductNotFoundError: If the product does not exist.
        """
        if self.session.get(Product, product_id) is None:
            raise ProductNotFoundError(str(product_id))

        stmt = (
            select(ImportRecord)
            .where(ImportRecord.product_id == product_id)
            .where(ImportRecord.reversed.is_(False))
            .order_by(ImportRecord.created_at.desc(), ImportRecord.id)
        )

        return [
            ProductImporter(
                import_id=record.id,
                importer_id=record.importer_id,
                quantity=record.quantity,
                imported_at=record.created_at,
            )
            for record in self.session.execute(stmt).scalars()
        ]

    def _positions_stmt(self):
        outstanding = (
            select(func.coalesce(func.sum(ImportRecord.quantity), 0))
            .where(ImportRecord.product_id == Product.id)
            .where(ImportRecord.reversed.is_(False))
            .correlate(Product)
            .scalar_subquery()
        )
        return select(
            Product.id,
            Product.initial_quantity,
            Product.available_quantity,
            outstanding.label("outstanding_quantity"),
        )

    @staticmethod
    def _to_position(row) -> StockPosition:
        product_id, initial, available, outstanding = row
        return StockPosition(
            product_id=product_id,
            initial_quantity=int(initial),
            available_quantity=int(available),
            outstanding_quantity=int(outstanding),
        )

    def stock_position(self, product_id: UUID) -> StockPosition:
        """
        Raises:
            ProductNotFoundError: If the product does not exist.
        """
        row = self.session.execute(
            self._positions_stmt().where(Product.id == product_id)
        ).one_or_none()
        if row is None:
            raise ProductNotFoundError(str(product_id))
        return self._to_position(row)

    def all_positions(self) -> list[StockPosition]:
        stmt = self._positions_stmt().order_by(Product.created_at, Product.id)
        return [self._to_position(row) for row in self.session.execute(stmt)]

    def unbalanced_products(self) -> list[StockPosition]:
        """Products whose counter disagrees with their ledger."""
        return [p for p in self.all_positions() if not p.is_balanced]
