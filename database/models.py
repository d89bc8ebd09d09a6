"""
SQLAlchemy ORM models for users, inventories, items, comments and
third-party connections.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, relationship

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JsonType = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    user_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False)
    display_name = Column(String(128))
    password_hash = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    inventories = relationship("Inventory", back_populates="creator", cascade="all, delete-orphan", passive_deletes=True)
    connections = relationship("UserConnection", cascade="all, delete-orphan", passive_deletes=True)


class Category(Base):
    __tablename__ = "categories"

    category_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(64), unique=True, nullable=False)


class Inventory(Base):
    __tablename__ = "inventories"

    inventory_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    is_public = Column(Boolean, nullable=False, default=True)
    tags = Column(JsonType, default=list)
    category_id = Column(Integer, ForeignKey("categories.category_id", ondelete="SET NULL"), nullable=True)
    creator_id = Column(Uuid(as_uuid=True), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)

    custom_id_prefix = Column(String(32), nullable=False)
    custom_id_format = Column(String(128), nullable=False, default="{prefix}-{counter}")
    counter_start = Column(Integer, nullable=False, default=1)
    # Last counter handed out; NULL only on rows created before the column existed
    last_counter = Column(Integer, nullable=True)

    string_field1_name = Column(String(128))
    string_field1_active = Column(Boolean, nullable=False, default=False)
    string_field2_name = Column(String(128))
    string_field2_active = Column(Boolean, nullable=False, default=False)
    string_field3_name = Column(String(128))
    string_field3_active = Column(Boolean, nullable=False, default=False)

    number_field1_name = Column(String(128))
    number_field1_active = Column(Boolean, nullable=False, default=False)
    number_field2_name = Column(String(128))
    number_field2_active = Column(Boolean, nullable=False, default=False)
    number_field3_name = Column(String(128))
    number_field3_active = Column(Boolean, nullable=False, default=False)

    bool_field1_name = Column(String(128))
    bool_field1_active = Column(Boolean, nullable=False, default=False)
    bool_field2_name = Column(String(128))
    bool_field2_active = Column(Boolean, nullable=False, default=False)
    bool_field3_name = Column(String(128))
    bool_field3_active = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    creator = relationship("User", back_populates="inventories")
    category = relationship("Category")
    items = relationship("Item", back_populates="inventory", cascade="all, delete-orphan", passive_deletes=True)
    comments = relationship("Comment", back_populates="inventory", cascade="all, delete-orphan", passive_deletes=True)


class Item(Base):
    __tablename__ = "items"
    __table_args__ = (
        UniqueConstraint("inventory_id", "custom_id", name="uq_items_inventory_custom_id"),
        Index("ix_items_inventory_created", "inventory_id", "created_at"),
    )

    item_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    inventory_id = Column(Uuid(as_uuid=True), ForeignKey("inventories.inventory_id", ondelete="CASCADE"), nullable=False)
    custom_id = Column(String(160), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    created_by_id = Column(Uuid(as_uuid=True), ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)

    string_value1 = Column(Text)
    string_value2 = Column(Text)
    string_value3 = Column(Text)
    number_value1 = Column(Float)
    number_value2 = Column(Float)
    number_value3 = Column(Float)
    bool_value1 = Column(Boolean)
    bool_value2 = Column(Boolean)
    bool_value3 = Column(Boolean)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    inventory = relationship("Inventory", back_populates="items")
    created_by = relationship("User")


class Comment(Base):
    __tablename__ = "comments"

    comment_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    inventory_id = Column(Uuid(as_uuid=True), ForeignKey("inventories.inventory_id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    inventory = relationship("Inventory", back_populates="comments")
    user = relationship("User")


class UserConnection(Base):
    __tablename__ = "user_connections"
    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_user_connections_user_provider"),
    )

    connection_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    provider = Column(String(32), nullable=False)
    account_label = Column(String(128))
    account_id = Column(String(256))
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text)
    token_type = Column(String(32), default="Bearer")
    expires_at = Column(DateTime(timezone=True))
    instance_url = Column(String(512))
    scopes = Column(JsonType, default=list)
    provider_meta = Column(JsonType, default=dict)
    status = Column(String(16), nullable=False, default="active")
    connected_at = Column(DateTime(timezone=True), default=_utcnow)
    last_refreshed = Column(DateTime(timezone=True))
    last_used_at = Column(DateTime(timezone=True))
    error_message = Column(Text)

    user = relationship("User", overlaps="connections")
