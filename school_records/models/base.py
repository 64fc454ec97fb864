from sqlalchemy.orm import as_declarative, declared_attr
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import DateTime, Boolean, func
from sqlalchemy.dialects.postgresql import UUID
import uuid


@as_declarative()
class Base:
    """Shared columns for school records tables."""
    __abstract__ = True

    id: Mapped[uuid.UUID]

    @declared_attr
    def __tablename__(cls) -> str:
        return cls.__name__.lower()

    # Client-side uuid4 so ids are known before flush on SQLite too
    id = mapped_column(UUID(as_uuid=True), primary_key=True, index=True, default=uuid.uuid4)
    # "Most recent record" for score updates is decided by created_at
    created_at = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Catalog, directory and result queries all filter on this
    is_deleted = mapped_column(Boolean, default=False, nullable=False, index=True)
