"""
Module: stock_kernel.models.account
Responsibility: Role storage for the identity collaborator -- which actor is
    an exporter and which is an importer.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - email is unique (one account per verified identity).
    - role is one of ActorRole's values.
"""

from datetime import datetime

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base, UtcDateTime


class Account(Base):
    """A marketplace participant; ``id`` is the actor id used everywhere else."""

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("email", name="uq_account_email"),
    )

    email: Mapped[str] = mapped_column(String(320), nullable=False)

    # "exporter" | "importer"
    role: Mapped[str] = mapped_column(String(20), nullable=False)

    display_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    created_at: Mapped[datetime] = mapped_column(UtcDateTime(), nullable=False)

    def __repr__(self) -> str:
        return f"<Account {self.id} {self.email} role={self.role}>"
