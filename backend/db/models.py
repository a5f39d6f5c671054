"""
Stock Inventory Database Models

Tables:
  1. products   - Product catalog + cached total_stock
  2. locations  - Storage locations (warehouses, shelves, rooms)
  3. batches    - Tracked quantity of a product at a location
  4. movements  - Immutable audit trail of quantity transfers
  5. alerts     - Derived stock / expiry alerts

products.total_stock is a cache written only by the stock level
recalculator (inventory/stock_levels.py). It equals the sum of batch
quantities at the time of the last recalculation.
"""

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    TypeDecorator,
    text,
    types,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

from db.session import Base


class GUID(TypeDecorator):
    """Platform-independent UUID type.

    Uses PostgreSQL UUID when available, stores as CHAR(36) on SQLite.
    """

    impl = types.String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_UUID(as_uuid=True))
        return dialect.type_descriptor(types.String(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if dialect.name == "postgresql":
            return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
        return str(value) if isinstance(value, uuid.UUID) else str(uuid.UUID(str(value)))

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(str(value))


class RelatedType(str, enum.Enum):
    """Kind of entity an alert points at."""

    PRODUCT = "product"
    BATCH = "batch"


@dataclass(frozen=True)
class AlertTarget:
    """Tagged reference to the entity an alert is about."""

    kind: RelatedType
    id: uuid.UUID

    @classmethod
    def product(cls, product_id: uuid.UUID) -> "AlertTarget":
        return cls(RelatedType.PRODUCT, product_id)

    @classmethod
    def batch(cls, batch_id: uuid.UUID) -> "AlertTarget":
        return cls(RelatedType.BATCH, batch_id)


# ─── 1. Products ────────────────────────────────────────────────────────────


class Product(Base):
    __tablename__ = "products"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    sku = Column(String(100), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    category = Column(String(100))
    unit = Column(String(30), nullable=False, default="units")
    reorder_point = Column(Integer, nullable=False, default=10)
    total_stock = Column(Integer, nullable=False, default=0)  # cache, see module docstring
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_products_low_stock", "total_stock", "reorder_point"),
        CheckConstraint("reorder_point >= 0", name="ck_product_reorder_point_positive"),
    )


# ─── 2. Locations ───────────────────────────────────────────────────────────


class Location(Base):
    __tablename__ = "locations"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    code = Column(String(50), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)


# ─── 3. Batches ─────────────────────────────────────────────────────────────


class Batch(Base):
    __tablename__ = "batches"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    product_id = Column(GUID(), ForeignKey("products.id"), nullable=False)
    location_id = Column(GUID(), ForeignKey("locations.id"), nullable=False)
    batch_number = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    expiry_date = Column(DateTime)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_batches_product", "product_id"),
        Index("ix_batches_expiry", "expiry_date"),
        CheckConstraint("quantity >= 0", name="ck_batch_quantity_positive"),
    )


# ─── 4. Movements ───────────────────────────────────────────────────────────


class Movement(Base):
    """Quantity moved out of a batch from one location to another. Append-only."""

    __tablename__ = "movements"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    batch_id = Column(GUID(), ForeignKey("batches.id"), nullable=False)
    source_location_id = Column(GUID(), ForeignKey("locations.id"), nullable=False)
    destination_location_id = Column(GUID(), ForeignKey("locations.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    notes = Column(Text)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_movements_batch", "batch_id"),
        CheckConstraint("quantity > 0", name="ck_movement_quantity_positive"),
        CheckConstraint("source_location_id <> destination_location_id", name="ck_movement_distinct_locations"),
    )


# ─── 5. Alerts ──────────────────────────────────────────────────────────────

UNRESOLVED_PREDICATE = "resolved = false"


class Alert(Base):
    __tablename__ = "alerts"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    alert_type = Column(String(50), nullable=False)  # stock, expiry, ...
    alert_level = Column(String(20), nullable=False)
    message = Column(Text, nullable=False)
    related_id = Column(GUID(), nullable=False)
    related_type = Column(String(20), nullable=False)
    resolved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    resolved_at = Column(DateTime)

    __table_args__ = (
        # At most one unresolved alert per (related entity, alert_type).
        Index(
            "uq_alerts_unresolved_target",
            "related_id",
            "alert_type",
            unique=True,
            postgresql_where=text(UNRESOLVED_PREDICATE),
            sqlite_where=text(UNRESOLVED_PREDICATE),
        ),
        Index("ix_alerts_resolved_created", "resolved", "created_at"),
        CheckConstraint("alert_level IN ('low', 'medium', 'high')", name="ck_alert_level"),
        CheckConstraint("related_type IN ('product', 'batch')", name="ck_alert_related_type"),
    )

    @property
    def target(self) -> AlertTarget:
        return AlertTarget(RelatedType(self.related_type), self.related_id)
