from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

JSON_TYPE = JSON().with_variant(JSONB, "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(Base):
    """One record of the document store, addressed by (collection path, id)."""

    __tablename__ = "documents"

    collection = Column(String(512), primary_key=True)
    id = Column(String(64), primary_key=True)
    data = Column(JSON_TYPE, nullable=False, default=dict)
    # Python-side defaults keep microsecond resolution for insertion order.
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (Index("idx_documents_collection_created", "collection", "created_at"),)
