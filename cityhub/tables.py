"""
Row definitions for the platform tables the service reads and writes.

The tables themselves are owned by the hosted Postgres instance. These
mappings let the SQL data store address them and give the in-memory store
the same column defaults, unique keys and cascades.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# text[] on Postgres, a JSON list elsewhere.
TextArray = JSON().with_variant(postgresql.ARRAY(Text), "postgresql")
JsonDocument = JSON().with_variant(postgresql.JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> str:
    return str(uuid.uuid4())


def _uuid_pk() -> Column:
    return Column(Uuid(as_uuid=False), primary_key=True, default=new_uuid)


class UserRow(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=False), primary_key=True)
    email = Column(String, nullable=True, index=True)
    full_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    role = Column(String, nullable=False, default="user")
    profile_image = Column(String, nullable=True)
    gender = Column(String, nullable=True)
    dob = Column(Date, nullable=True)
    membership = Column(String, nullable=True)
    membership_tier = Column(String, nullable=True, default="none")
    membership_started = Column(Date, nullable=True)
    membership_expiry = Column(Date, nullable=True)
    corporate_code = Column(String, nullable=True)
    corporate_code_status = Column(String, nullable=True, default="pending")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    last_login = Column(DateTime(timezone=True), nullable=True)
    last_opened = Column(DateTime(timezone=True), nullable=True)


class RestaurantRow(Base):
    __tablename__ = "restaurants"

    id = _uuid_pk()
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True)
    phone = Column(String, nullable=True)
    city = Column(String, nullable=True)
    area = Column(String, nullable=True)
    full_address = Column(String, nullable=True)
    cuisines = Column(TextArray, nullable=False, default=list)
    cost_for_two = Column(Integer, nullable=True)
    distance = Column(Float, nullable=True)
    rating = Column(Float, nullable=True)
    offer = Column(String, nullable=True)
    facilities = Column(TextArray, nullable=False, default=list)
    highlights = Column(TextArray, nullable=False, default=list)
    worth_visit = Column(TextArray, nullable=False, default=list)
    opening_hours = Column(JsonDocument, nullable=True, default=dict)
    reviews = Column(JsonDocument, nullable=True, default=list)
    menu = Column(JsonDocument, nullable=True, default=list)
    food_images = Column(TextArray, nullable=False, default=list)
    ambience_images = Column(TextArray, nullable=False, default=list)
    cover_image = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    booking_enabled = Column(Boolean, nullable=False, default=True)
    avg_duration_minutes = Column(Integer, nullable=False, default=90)
    max_bookings_per_slot = Column(Integer, nullable=True)
    advance_booking_days = Column(Integer, nullable=False, default=30)
    owner_user_id = Column(
        Uuid(as_uuid=False), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True)


class StoreRow(Base):
    __tablename__ = "stores"

    id = _uuid_pk()
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True)
    category = Column(String, nullable=True)
    subcategory = Column(String, nullable=True)
    tags = Column(TextArray, nullable=False, default=list)
    city = Column(String, nullable=True)
    region = Column(String, nullable=True)
    country = Column(String, nullable=True)
    location_name = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_featured = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer, nullable=True)
    owner_user_id = Column(
        Uuid(as_uuid=False), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True)


class StorePaymentDetailsRow(Base):
    __tablename__ = "store_payment_details"

    id = _uuid_pk()
    store_id = Column(
        Uuid(as_uuid=False),
        ForeignKey("stores.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    account_name = Column(String, nullable=True)
    upi_id = Column(String, nullable=True)
    details = Column(JsonDocument, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class StoreCatalogueItemRow(Base):
    __tablename__ = "store_catalogue_items"

    id = _uuid_pk()
    store_id = Column(
        Uuid(as_uuid=False),
        ForeignKey("stores.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String, nullable=False)
    price = Column(Float, nullable=True)
    image_url = Column(String, nullable=True)
    sort_order = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class HomeHeroOfferRow(Base):
    __tablename__ = "homeherooffers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=True)
    type = Column(String, nullable=True)
    media_url = Column(String, nullable=True)
    priority = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class SpotlightItemRow(Base):
    __tablename__ = "spotlight_items"

    id = _uuid_pk()
    title = Column(String, nullable=True)
    subtitle = Column(String, nullable=True)
    media_type = Column(String, nullable=False, default="image")
    media_url = Column(String, nullable=True)
    thumbnail_url = Column(String, nullable=True)
    module_type = Column(String, nullable=False, default="global")
    order_index = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True)


class SubscriptionRow(Base):
    __tablename__ = "subscription"

    id = _uuid_pk()
    plan_name = Column(String, nullable=False)


class CorporateRow(Base):
    __tablename__ = "corporate"

    id = _uuid_pk()
    name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    city = Column(String, nullable=True)
    area = Column(String, nullable=True)
    full_address = Column(String, nullable=True)
    owner_user_id = Column(
        Uuid(as_uuid=False), ForeignKey("users.id"), nullable=False
    )
    owner_email = Column(String, nullable=False)
    plan = Column(String, nullable=True)
    seats = Column(Integer, nullable=False, default=0)
    subscription_start = Column(Date, nullable=True)
    subscription_expiry = Column(Date, nullable=True)
    subscription_status = Column(String, nullable=True, default="active")
    is_active = Column(Boolean, nullable=False, default=True)
    employees = Column(JsonDocument, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


TABLES = Base.metadata.tables
