"""
SQLAlchemy ORM Models.

The document store keeps one row per document path.
"""
from sqlalchemy import JSON, Column, DateTime, Integer, String, func
from sqlalchemy.orm import declarative_base

Base = declarative_base()


# =============================================================================
# DOCUMENT MODEL
# =============================================================================

class DocumentModel(Base):
    """
    Document database model.

    `version` increases on every write and drives optimistic transactions.
    """

    __tablename__ = "documents"

    path = Column(String(512), primary_key=True)
    value = Column(JSON, nullable=False)
    version = Column(Integer, nullable=False, default=1)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self):
        return f"<DocumentModel(path={self.path}, version={self.version})>"
