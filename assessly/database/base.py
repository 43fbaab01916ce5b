"""
Declarative base for the storage tables.
"""

from typing import Any, Dict
from sqlalchemy import Column, DateTime, JSON, MetaData, String
from sqlalchemy.orm import declarative_base

from assessly.common.utils import utcnow

# Constraint names stay stable across SQLite and PostgreSQL migrations
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}

metadata = MetaData(naming_convention=convention)

Base = declarative_base(metadata=metadata)


class ModelBase(Base):
    """
    Base class for document tables.

    Every row stores the full entity in ``data``; the scalar columns a
    table adds are copies of entity fields used for lookups and constraints.
    """

    __abstract__ = True

    id = Column(String(64), primary_key=True)
    data = Column(JSON, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def update(self, data: Dict[str, Any]) -> None:
        """Copy the known column values from ``data``."""
        for key, value in data.items():
            if hasattr(self, key):
                setattr(self, key, value)
