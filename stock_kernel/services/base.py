"""
BaseService -- abstract base for session-bound kernel services.

Responsibility:
    Common constructor and session-handling contract for the services that
    work inside a caller's transaction (AccountService, CatalogService).
    They use ``session.flush()``, never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    StockLedgerStore is the exception: it owns one short transaction per
    storage primitive and does not extend this class.

Failure modes:
    - A subclass that commits breaks the caller's ability to roll back a
      multi-step registration.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from stock_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for session-bound services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide aggregate read models -- those belong
          in ``stock_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
