"""Declarative base shared by the company and index tables"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Metadata root; ``create_all`` on it builds the whole schema"""

    type_annotation_map = {
        datetime: DateTime(timezone=True),
        uuid.UUID: Uuid(as_uuid=True),
    }


class TimestampMixin:
    """Row creation and last-update times, filled in by the database"""

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now()
    )


class ScreenerRecord(Base, TimestampMixin):
    """
    Abstract row with a client-generated UUID key.

    Keys are assigned on flush so composition and log rows can reference
    a definition inside the same transaction.
    """

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)

    def __repr__(self) -> str:
        label = getattr(self, "ticker", None) or getattr(self, "asset_ticker", None)
        return f"<{type(self).__name__}({label or self.id})>"
