"""
User Directory API: User SQLAlchemy Model
============================================

What:  ORM model representing the `users` table.
How:   Inherits from the shared DeclarativeBase; `Database.create_tables()`
       builds the table from this definition.
Who:   Used by UserService for every CRUD operation.

Table Design:
    - id: UUID assigned by the storage layer at insertion; exposed to
      clients as an opaque string
    - name / dob / address / description: required free-text fields
    - created_at: written once at insertion, never part of an UPDATE
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from userapi.database import Base


# Columns EditAUser is allowed to overwrite
EDITABLE_FIELDS = ("name", "dob", "address", "description")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    A single user record.

    Lifecycle:
        1. Inserted by CreateUser with created_at stamped
        2. Read by GetAUser / GetAllUsers
        3. Business fields replaced by EditAUser (created_at untouched)
        4. Removed by DeleteAUser
    """

    __tablename__ = "users"

    # ── Identity ──────────────────────────────────────────────────────────
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Store-assigned identifier",
    )

    # ── Business fields (all required) ────────────────────────────────────
    # Unbounded: the API puts no length limit on any field
    name: Mapped[str] = mapped_column(Text, nullable=False)
    dob: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Date of birth as supplied by the client (not parsed)",
    )
    address: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    # ── Timestamps ────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        comment="When this user was created (UTC); never updated",
    )

    # GET /users returns records in creation order
    __table_args__ = (
        Index("idx_users_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name='{self.name}', created_at='{self.created_at}')>"
