"""SQLAlchemy models: clients, buckets, files. Portable types (Postgres in prod, SQLite in tests)."""
import uuid
from datetime import datetime, timezone
from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def gen_file_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Client(Base):
    """IAM-like API client. Its name is the top-level storage directory, hence unique."""
    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    client_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    client_secret_hash: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    buckets: Mapped[list["Bucket"]] = relationship("Bucket", back_populates="client")


class Bucket(Base):
    __tablename__ = "buckets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    client_id: Mapped[str] = mapped_column(String(64), ForeignKey("clients.client_id"), nullable=False)
    # [{"AllowedOrigins": [...], "AllowedMethods": [...], "AllowedHeaders": [...], "ExposeHeaders": [...]}]
    cors_policy: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    # Glob patterns for keys served without a signed URL, e.g. ["images/*", "*.jpg"]
    public_paths: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    client: Mapped["Client"] = relationship("Client", back_populates="buckets")
    files: Mapped[list["File"]] = relationship("File", back_populates="bucket")

    __table_args__ = (
        UniqueConstraint("name", "client_id", name="uq_buckets_name_client"),
        Index("ix_buckets_name", "name"),
    )


class File(Base):
    """Object record. Physical path is derived (<client name>/<bucket name>/<key>), never stored."""
    __tablename__ = "files"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=gen_file_id)
    file_name: Mapped[str] = mapped_column(Text, nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    mimetype: Mapped[str] = mapped_column(Text, nullable=False)
    client_id: Mapped[str] = mapped_column(String(64), ForeignKey("clients.client_id"), nullable=False)
    bucket_id: Mapped[int] = mapped_column(Integer, ForeignKey("buckets.id"), nullable=False)
    key: Mapped[str] = mapped_column(Text, nullable=False, default="")
    owner_entity_type: Mapped[str] = mapped_column(Text, nullable=False)
    owner_entity_id: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    # Set once the signed upload has been redeemed and the bytes written
    uploaded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    bucket: Mapped["Bucket"] = relationship("Bucket", back_populates="files")

    __table_args__ = (
        Index("ix_files_client_id", "client_id"),
        Index("ix_files_bucket_key", "bucket_id", "key"),
        Index("ix_files_owner_entity", "owner_entity_type", "owner_entity_id"),
        Index("ix_files_deleted_at", "deleted_at"),
    )
