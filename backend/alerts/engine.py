"""
Alert Engine — Expiry and low-stock detection with idempotent alert creation.

Alert Types:
  - expiry: batch with stock left expires within the expiry window
  - stock:  product total_stock below its reorder point

Alerts are deduplicated per (related entity, alert_type): while an
unresolved alert exists for a target, no new one is created. The store
enforces this atomically (see inventory/store.py).

The low-stock pass reads the cached products.total_stock, so it reflects
the state of the last stock level recalculation.
"""

import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog

from core.config import get_settings
from db.models import AlertTarget
from inventory.store import InventoryStore

logger = structlog.get_logger()

ALERT_TYPE_STOCK = "stock"
ALERT_TYPE_EXPIRY = "expiry"

# ──────────────────────────────────────────────────────────────────────────
# Severity Rules
# ──────────────────────────────────────────────────────────────────────────


def classify_stock_severity(total_stock: int) -> str:
    """Out of stock is high, merely below the reorder point is medium."""
    return "high" if total_stock <= 0 else "medium"


def classify_expiry_severity(days_until_expiry: int, high_within_days: int = 7) -> str:
    return "high" if days_until_expiry <= high_within_days else "medium"


def days_until(expiry_date: datetime, now: datetime) -> int:
    """Whole days until expiry, rounded up."""
    return math.ceil((expiry_date - now) / timedelta(days=1))


def stock_alert_message(name: str, sku: str, total_stock: int, reorder_point: int) -> str:
    return (
        f"{name} ({sku}) is below reorder point. "
        f"Current stock: {total_stock}, Reorder point: {reorder_point}"
    )


def expiry_alert_message(batch_number: str, name: str, sku: str, days: int) -> str:
    return f"Batch {batch_number} of {name} ({sku}) will expire in {days} days"


# ──────────────────────────────────────────────────────────────────────────
# Generator
# ──────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ExpiringBatchRow:
    id: uuid.UUID
    product_id: uuid.UUID
    batch_number: str
    expiry_date: datetime


@dataclass(frozen=True)
class LowStockRow:
    id: uuid.UUID
    name: str
    sku: str
    total_stock: int
    reorder_point: int


@dataclass
class AlertGenerationResult:
    expiry_alerts: int = 0
    stock_alerts: int = 0

    @property
    def alerts_generated(self) -> int:
        return self.expiry_alerts + self.stock_alerts


class AlertGenerator:
    """
    Two independent scan-and-alert passes:
      A. batches expiring within the window that still hold stock
      B. products whose cached total_stock is below the reorder point

    Per-item failures are logged and skipped. A failure to load either
    scan set aborts the run; alerts inserted before that stay in place.
    """

    def __init__(
        self,
        store: InventoryStore,
        window_days: int | None = None,
        high_severity_days: int | None = None,
    ):
        settings = get_settings()
        self.store = store
        self.window_days = window_days if window_days is not None else settings.expiry_window_days
        self.high_severity_days = (
            high_severity_days if high_severity_days is not None else settings.expiry_high_severity_days
        )

    async def run(self, now: datetime | None = None) -> AlertGenerationResult:
        now = now or datetime.utcnow()
        log = logger.bind(request_id=str(uuid.uuid4()))
        log.info("alert_generation.started", now=now.isoformat())

        result = AlertGenerationResult()
        result.expiry_alerts = await self._expiry_pass(now, log)
        result.stock_alerts = await self._low_stock_pass(log)

        log.info(
            "alert_generation.completed",
            alerts_generated=result.alerts_generated,
            expiry_alerts=result.expiry_alerts,
            stock_alerts=result.stock_alerts,
        )
        return result

    async def _expiry_pass(self, now: datetime, log) -> int:
        fetched = await self.store.list_expiring_batches(now, now + timedelta(days=self.window_days))
        # Plain copies survive the rollback of a failed per-item write.
        batches = [ExpiringBatchRow(b.id, b.product_id, b.batch_number, b.expiry_date) for b in fetched]
        log.info("alert_generation.expiring_batches", count=len(batches))

        created = 0
        for batch in batches:
            try:
                if await self._alert_for_batch(batch, now, log):
                    created += 1
            except Exception as exc:
                log.error("alert_generation.batch_failed", batch_id=str(batch.id), error=str(exc))
        return created

    async def _alert_for_batch(self, batch: ExpiringBatchRow, now: datetime, log) -> bool:
        product = await self.store.get_product(batch.product_id)
        if product is None:
            log.error(
                "alert_generation.product_missing",
                batch_id=str(batch.id),
                product_id=str(batch.product_id),
            )
            return False

        days = days_until(batch.expiry_date, now)
        alert = await self.store.create_alert_if_absent(
            AlertTarget.batch(batch.id),
            ALERT_TYPE_EXPIRY,
            classify_expiry_severity(days, self.high_severity_days),
            expiry_alert_message(batch.batch_number, product.name, product.sku, days),
        )
        return alert is not None

    async def _low_stock_pass(self, log) -> int:
        products = [
            LowStockRow(p.id, p.name, p.sku, p.total_stock, p.reorder_point)
            for p in await self.store.list_low_stock_products()
        ]
        log.info("alert_generation.low_stock_products", count=len(products))

        created = 0
        for product in products:
            try:
                alert = await self.store.create_alert_if_absent(
                    AlertTarget.product(product.id),
                    ALERT_TYPE_STOCK,
                    classify_stock_severity(product.total_stock),
                    stock_alert_message(product.name, product.sku, product.total_stock, product.reorder_point),
                )
            except Exception as exc:
                log.error("alert_generation.product_failed", product_id=str(product.id), error=str(exc))
                continue
            if alert is not None:
                created += 1
        return created
