"""Base model with common fields for all models."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import MetaData, String, func, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, registry

# Custom naming conventions for constraints
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# Registry shares the metadata so every table picks up the conventions
mapper_registry: registry = registry(metadata=metadata)


def new_id() -> str:
    """Generate an opaque string id."""
    return str(uuid4())


class BaseModel(DeclarativeBase):
    """Base model with common fields.

    Ids are opaque strings. Most repositories generate them; link tables
    and the audit log rely on the server default.
    """

    registry = mapper_registry
    metadata = metadata

    # Mark as abstract so child classes are concrete tables
    __abstract__ = True

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=new_id,
        server_default=text("gen_random_uuid()::text"),
    )


class TimestampMixin:
    """created_at/updated_at columns maintained by the database."""

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(
        server_default=func.now(), onupdate=func.now()
    )
