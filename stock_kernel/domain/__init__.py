"""
Pure domain layer.

DTOs, the access policy and the clock abstraction, with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O (except SystemClock)
"""

from stock_kernel.domain.access_policy import (
    AccessDecision,
    ActorRole,
    Capability,
    authorize_import,
    authorize_listing,
    authorize_release,
    evaluate_import,
    evaluate_release,
)
from stock_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from stock_kernel.domain.dtos import (
    ImportRecordInfo,
    ProductSnapshot,
    ReleaseCommand,
    ReleaseResult,
    ReservationResult,
    ReserveCommand,
)

__all__ = [
    "AccessDecision",
    "ActorRole",
    "Capability",
    "Clock",
    "DeterministicClock",
    "ImportRecordInfo",
    "ProductSnapshot",
    "ReleaseCommand",
    "ReleaseResult",
    "ReservationResult",
    "ReserveCommand",
    "SystemClock",
    "authorize_import",
    "authorize_listing",
    "authorize_release",
    "evaluate_import",
    "evaluate_release",
]
