"""Key-value entry SQLAlchemy model backing the local store."""

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class KeyValueEntry(Base):
    """A single key holding an opaque text value.

    The tracked-code list lives under one well-known key and is
    rewritten wholesale on every mutation.
    """

    __tablename__ = "kv_store"

    key: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
        comment="Well-known storage key",
    )
    value: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Serialized payload",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
        comment="Last write time",
    )

    def __repr__(self) -> str:
        return f"<KeyValueEntry {self.key} ({len(self.value)} chars)>"
