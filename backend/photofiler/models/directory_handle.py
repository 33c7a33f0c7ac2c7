"""
PhotoFiler Backend: Directory Handle SQLAlchemy Model
======================================================

What:  ORM model for the `directory_handles` key-value table.
How:   One row per versioned key; `value` holds the JSON-encoded
       DirectoryReference record `{"uri": ..., "name": ...}`.
Who:   Used by DirectoryHandleStore and by Alembic for schema management.

Table Design:
    - key: Primary key, fixed versioned name (e.g. photofiler.root_folder_v1).
      A new record shape gets a new key, so old rows never collide with it.
    - value: Raw JSON text. Parsed by the store, which fails soft on bad data.
    - updated_at: Last overwrite (UTC).
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from photofiler.database import Base


class DirectoryHandleRecord(Base):
    """A persisted directory reference, addressed by its versioned key."""

    __tablename__ = "directory_handles"

    key: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
        comment="Versioned record key, e.g. photofiler.root_folder_v1",
    )

    value: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment='JSON-encoded DirectoryReference: {"uri": ..., "name": ...}',
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
        comment="When this record was last written (UTC)",
    )

    def __repr__(self) -> str:
        return f"<DirectoryHandleRecord(key='{self.key}', updated_at='{self.updated_at}')>"
