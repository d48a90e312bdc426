# models_legacy.py
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import String, Text, TIMESTAMP, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column
from db import Base, JsonDocument


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LegacyBrdRecord(Base):
    __tablename__ = "legacy_brds"

    brd_id: Mapped[str] = mapped_column(String(128), primary_key=True)

    main_json: Mapped[dict | None] = mapped_column(JsonDocument, nullable=True)                # LegacyEntityInfo as dict
    sites_json: Mapped[list] = mapped_column(JsonDocument, nullable=False, default=list)        # list[LegacyEntityInfo]

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), default=_utcnow, onupdate=_utcnow, nullable=False
    )


class SiteRecord(Base):
    __tablename__ = "sites"
    __table_args__ = (
        UniqueConstraint("brd_id", "site_id", name="sites_brd_site_uq"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    brd_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    site_id: Mapped[str] = mapped_column(String(128), nullable=False)
    site_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    identifier_code: Mapped[str | None] = mapped_column(String(128), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Nested form snapshot, replaced wholesale on every prefill
    brd_form: Mapped[dict] = mapped_column(JsonDocument, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), default=_utcnow, onupdate=_utcnow, nullable=False
    )
