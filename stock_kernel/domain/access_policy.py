"""
Access Policy Gate -- who may reserve and who may release stock.

Responsibility:
    The single place where import authorization is decided.  Replaces role
    checks scattered across request handlers with pure decision functions
    over records the caller has already fetched.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Role lookups come
    from the identity collaborator (RoleDirectory); this module only judges.

Rules:
    - An actor may not import a product they own (checked FIRST, so an
      exporter importing its own listing is told exactly that).
    - An actor must hold the ``import`` capability (the importer role).
    - Only the importer who created an import record may release it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from stock_kernel.exceptions import ForbiddenError, SelfImportForbiddenError


class ActorRole(str, Enum):
    """Marketplace roles held in the identity collaborator's role storage."""

    EXPORTER = "exporter"
    IMPORTER = "importer"


class Capability(str, Enum):
    IMPORT = "import"
    LIST_PRODUCTS = "list_products"


CAPABILITIES: dict[ActorRole, frozenset[Capability]] = {
    ActorRole.EXPORTER: frozenset({Capability.LIST_PRODUCTS}),
    ActorRole.IMPORTER: frozenset({Capability.IMPORT}),
}


def has_capability(role: ActorRole | None, capability: Capability) -> bool:
    if role is None:
        return False
    return capability in CAPABILITIES.get(role, frozenset())


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of a policy check. ``code`` is empty when allowed."""

    allowed: bool
    code: str = ""
    reason: str = ""

    @classmethod
    def allow(cls) -> AccessDecision:
        return cls(allowed=True)


def evaluate_import(
    owner_id: UUID,
    actor_id: UUID,
    role: ActorRole | None,
) -> AccessDecision:
    """Decide whether ``actor_id`` (holding ``role``) may import the product."""
    if actor_id == owner_id:
        return AccessDecision(
            allowed=False,
            code=SelfImportForbiddenError.code,
            reason="actor owns the product",
        )
    if not has_capability(role, Capability.IMPORT):
        return AccessDecision(
            allowed=False,
            code=ForbiddenError.code,
            reason=f"role {role.value if role else None!r} lacks the import capability",
        )
    return AccessDecision.allow()


def authorize_import(
    product_id: UUID,
    owner_id: UUID,
    actor_id: UUID,
    role: ActorRole | None,
) -> None:
    """Raise unless the import is allowed.

    Raises:
        SelfImportForbiddenError: actor owns the product.
        ForbiddenError: actor lacks the importer capability.
    """
    decision = evaluate_import(owner_id, actor_id, role)
    if decision.allowed:
        return
    if decision.code == SelfImportForbiddenError.code:
        raise SelfImportForbiddenError(str(product_id), str(actor_id))
    raise ForbiddenError(str(actor_id), decision.reason)


def evaluate_release(record_importer_id: UUID, actor_id: UUID) -> AccessDecision:
    if actor_id != record_importer_id:
        return AccessDecision(
            allowed=False,
            code=ForbiddenError.code,
            reason="actor does not own the import record",
        )
    return AccessDecision.allow()


def authorize_release(record_importer_id: UUID, actor_id: UUID) -> None:
    """Raise ForbiddenError unless ``actor_id`` created the import record."""
    decision = evaluate_release(record_importer_id, actor_id)
    if not decision.allowed:
        raise ForbiddenError(str(actor_id), decision.reason)


def authorize_listing(actor_id: UUID, role: ActorRole | None) -> None:
    """Raise ForbiddenError unless the actor may list products."""
    if not has_capability(role, Capability.LIST_PRODUCTS):
        raise ForbiddenError(str(actor_id), "only exporters may list products")
