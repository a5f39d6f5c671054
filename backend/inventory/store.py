"""
Inventory Store — data-access interface for the recomputation jobs.

The jobs never reach for a global client: an ``InventoryStore`` is
constructed by the caller (API dependency, Celery task, test) and passed in.

Every write commits on its own. There is no transaction spanning several
rows, so a failure halfway through a job leaves earlier writes in place.
"""

import uuid
from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

import structlog
from sqlalchemy import insert, select, text, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import UNRESOLVED_PREDICATE, Alert, AlertTarget, Batch, Product

logger = structlog.get_logger()

_CONFLICT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class DataAccessError(Exception):
    """A read or write against the inventory store failed."""


class InventoryStore(Protocol):
    async def list_products(self) -> Sequence[Product]: ...

    async def get_product(self, product_id: uuid.UUID) -> Product | None: ...

    async def list_batches_for_product(self, product_id: uuid.UUID) -> Sequence[Batch]: ...

    async def set_total_stock(self, product_id: uuid.UUID, total: int) -> None: ...

    async def list_expiring_batches(self, start: datetime, end: datetime) -> Sequence[Batch]: ...

    async def list_low_stock_products(self) -> Sequence[Product]: ...

    async def create_alert_if_absent(
        self,
        target: AlertTarget,
        alert_type: str,
        alert_level: str,
        message: str,
    ) -> Alert | None: ...


class SqlInventoryStore:
    """``InventoryStore`` backed by an async SQLAlchemy session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _fetch(self, query, what: str) -> Sequence:
        try:
            result = await self.session.execute(query)
            return result.scalars().all()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise DataAccessError(f"Error fetching {what}: {exc}") from exc

    async def list_products(self) -> Sequence[Product]:
        return await self._fetch(select(Product).order_by(Product.name), "products")

    async def get_product(self, product_id: uuid.UUID) -> Product | None:
        rows = await self._fetch(select(Product).where(Product.id == product_id), f"product {product_id}")
        return rows[0] if rows else None

    async def list_batches_for_product(self, product_id: uuid.UUID) -> Sequence[Batch]:
        return await self._fetch(
            select(Batch).where(Batch.product_id == product_id),
            f"batches for product {product_id}",
        )

    async def set_total_stock(self, product_id: uuid.UUID, total: int) -> None:
        try:
            await self.session.execute(
                update(Product)
                .where(Product.id == product_id)
                .values(total_stock=total, updated_at=datetime.utcnow())
            )
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise DataAccessError(f"Error updating stock for product {product_id}: {exc}") from exc

    async def list_expiring_batches(self, start: datetime, end: datetime) -> Sequence[Batch]:
        """Batches still holding stock whose expiry falls strictly between start and end."""
        return await self._fetch(
            select(Batch)
            .where(
                Batch.expiry_date > start,
                Batch.expiry_date < end,
                Batch.quantity > 0,
            )
            .order_by(Batch.expiry_date),
            "expiring batches",
        )

    async def list_low_stock_products(self) -> Sequence[Product]:
        return await self._fetch(
            select(Product).where(Product.total_stock < Product.reorder_point).order_by(Product.name),
            "low stock products",
        )

    async def create_alert_if_absent(
        self,
        target: AlertTarget,
        alert_type: str,
        alert_level: str,
        message: str,
    ) -> Alert | None:
        """
        Insert an unresolved alert unless one already exists for the same
        target and type. Returns None when the alert already exists.

        The partial unique index on alerts makes this a single atomic
        statement, so concurrent job runs cannot both insert.
        """
        values = {
            "id": uuid.uuid4(),
            "alert_type": alert_type,
            "alert_level": alert_level,
            "message": message,
            "related_id": target.id,
            "related_type": target.kind.value,
            "resolved": False,
            "created_at": datetime.utcnow(),
        }
        dialect = self.session.get_bind().dialect.name
        conflict_insert = _CONFLICT_INSERTS.get(dialect)

        try:
            if conflict_insert is not None:
                stmt = (
                    conflict_insert(Alert.__table__)
                    .values(**values)
                    .on_conflict_do_nothing(
                        index_elements=["related_id", "alert_type"],
                        index_where=text(UNRESOLVED_PREDICATE),
                    )
                    .returning(Alert.__table__.c.id)
                )
                inserted_id = (await self.session.execute(stmt)).scalar_one_or_none()
            else:
                try:
                    await self.session.execute(insert(Alert.__table__).values(**values))
                    inserted_id = values["id"]
                except IntegrityError:
                    await self.session.rollback()
                    inserted_id = None
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise DataAccessError(f"Error creating {alert_type} alert for {target.kind.value} {target.id}: {exc}") from exc

        if inserted_id is None:
            logger.debug(
                "alerts.already_open",
                alert_type=alert_type,
                related_type=target.kind.value,
                related_id=str(target.id),
            )
            return None
        return await self.session.get(Alert, values["id"])
