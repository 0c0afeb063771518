# app/models.py
from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# -----------------------------
# Core enums
# -----------------------------
class SyncStatus(str, enum.Enum):
    ok = "ok"
    failed = "failed"


# -----------------------------
# Models
# -----------------------------
class PropertyProviderSetting(Base):
    """
    One row per provider key. Written by admin scripts, read-only to search.
    """
    __tablename__ = "property_provider_settings"
    __table_args__ = (UniqueConstraint("provider_key", name="uq_provider_settings_key"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # plain string so an unknown key in the table is skipped instead of failing the load
    provider_key: Mapped[str] = mapped_column(String(40), index=True)
    name: Mapped[str] = mapped_column(String(120), default="")

    # QUIET BY DEFAULT
    enabled: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    api_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    api_secret: Mapped[str | None] = mapped_column(Text, nullable=True)

    # e.g. {"dataset": "stellar", "default_state": "PR"}
    additional_config_json: Mapped[str] = mapped_column(Text, default="{}")

    # display order only
    priority: Mapped[int] = mapped_column(Integer, default=0)

    last_sync_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_sync_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    last_sync_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class SearchSettingsRow(Base):
    """Singleton row; the first row by id wins."""

    __tablename__ = "search_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    max_properties_total: Mapped[int] = mapped_column(Integer, default=60)
    # NULL => auto-distribute across active providers
    max_properties_per_provider: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_properties_for_ai: Mapped[int] = mapped_column(Integer, default=60)
    min_properties_per_provider: Mapped[int] = mapped_column(Integer, default=5)

    updated_by: Mapped[str | None] = mapped_column(String(120), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class LocalListing(Base):
    """
    Listings stored locally (Xposure Puerto Rico import). Searched by the
    xposure provider; never written by the search path.
    """
    __tablename__ = "properties"
    __table_args__ = (UniqueConstraint("idx_source", "mls_id", name="uq_properties_source_mls"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    mls_id: Mapped[str] = mapped_column(String(80))
    idx_source: Mapped[str] = mapped_column(String(40), index=True)

    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    address: Mapped[str] = mapped_column(String(255), default="")
    city: Mapped[str] = mapped_column(String(80), default="", index=True)
    state: Mapped[str] = mapped_column(String(40), default="")
    zip_code: Mapped[str] = mapped_column(String(10), default="")
    country: Mapped[str] = mapped_column(String(2), default="PR")
    neighborhood: Mapped[str | None] = mapped_column(String(120), nullable=True)

    property_type: Mapped[str] = mapped_column(String(40), default="residential")
    listing_type: Mapped[str] = mapped_column(String(10), default="sale")  # sale|rent

    price: Mapped[float] = mapped_column(Float, default=0.0)
    bedrooms: Mapped[int] = mapped_column(Integer, default=0)
    bathrooms: Mapped[float] = mapped_column(Float, default=0.0)
    square_feet: Mapped[int] = mapped_column(Integer, default=0)
    lot_size: Mapped[float | None] = mapped_column(Float, nullable=True)
    year_built: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # JSON-encoded string lists
    amenities_json: Mapped[str] = mapped_column(Text, default="[]")
    features_json: Mapped[str] = mapped_column(Text, default="[]")
    images_json: Mapped[str] = mapped_column(Text, default="[]")

    agent_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    agent_email: Mapped[str | None] = mapped_column(String(120), nullable=True)
    agent_phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    agent_company: Mapped[str | None] = mapped_column(String(120), nullable=True)

    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    status: Mapped[str] = mapped_column(String(20), default="active", index=True)
    featured: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
