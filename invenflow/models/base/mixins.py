from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import declared_attr, relationship
from sqlalchemy.sql import func

from invenflow.utils import time_utils


class TimestampMixin:
    # Python-side defaults: values are known after flush without a refresh
    created_at = Column(
        DateTime(timezone=True),
        default=time_utils.utc_now,
        server_default=func.now(),
        nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=time_utils.utc_now,
        onupdate=time_utils.utc_now,
    )


class SoftDeleteMixin:
    is_deleted = Column(Boolean, default=False, nullable=False)


class AuditMixin:
    """Who created / last touched the row. Loaded eagerly for list views."""

    @declared_attr
    def created_by_id(cls):
        return Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    @declared_attr
    def updated_by_id(cls):
        return Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    @declared_attr
    def created_by(cls):
        return relationship(
            "User",
            foreign_keys=[cls.created_by_id],
            lazy="selectin"
        )

    @declared_attr
    def updated_by(cls):
        return relationship(
            "User",
            foreign_keys=[cls.updated_by_id],
            lazy="selectin"
        )

    @property
    def created_by_username(self) -> str | None:
        return self.created_by.username if self.created_by else None

    @property
    def updated_by_username(self) -> str | None:
        return self.updated_by.username if self.updated_by else None
