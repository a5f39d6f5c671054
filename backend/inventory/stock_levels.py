"""
Stock Level Recalculator — keeps products.total_stock in sync with batches.

For each product in scope:
  1. Sum the quantities of its batches (missing quantity counts as 0)
  2. Write the sum into products.total_stock
  3. If the sum is below the reorder point, raise a "stock" alert
     unless an unresolved one already exists

A failure on one product is logged and the loop moves on. Only a failure
to load the product list aborts the run.
"""

import uuid
from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from alerts.engine import (
    ALERT_TYPE_STOCK,
    classify_stock_severity,
    stock_alert_message,
)
from db.models import AlertTarget, Batch
from inventory.store import InventoryStore

logger = structlog.get_logger()


@dataclass
class StockCheckResult:
    products_checked: int
    low_stock_products: int


@dataclass(frozen=True)
class ProductRow:
    """Plain copy of the product fields a stock check reads."""

    id: uuid.UUID
    name: str
    sku: str
    reorder_point: int


def sum_batch_quantities(batches: Iterable[Batch]) -> int:
    return sum(batch.quantity or 0 for batch in batches)


class StockLevelRecalculator:
    """Recompute cached product totals and raise low-stock alerts."""

    def __init__(self, store: InventoryStore):
        self.store = store

    async def run(self, product_id: uuid.UUID | None = None) -> StockCheckResult:
        log = logger.bind(request_id=str(uuid.uuid4()))
        log.info("stock_check.started", product_id=str(product_id) if product_id else None)

        if product_id is not None:
            product = await self.store.get_product(product_id)
            products = [product] if product is not None else []
        else:
            products = await self.store.list_products()

        # A store rollback expires every ORM instance in the session, so the
        # loop works on plain copies.
        rows = [ProductRow(p.id, p.name, p.sku, p.reorder_point) for p in products]
        log.info("stock_check.products_loaded", count=len(rows))

        low_stock = 0
        for product in rows:
            try:
                batches = await self.store.list_batches_for_product(product.id)
                total = sum_batch_quantities(batches)
                await self.store.set_total_stock(product.id, total)
            except Exception as exc:
                log.error("stock_check.product_failed", product_id=str(product.id), error=str(exc))
                continue

            if total >= product.reorder_point:
                continue

            low_stock += 1
            try:
                alert = await self.store.create_alert_if_absent(
                    AlertTarget.product(product.id),
                    ALERT_TYPE_STOCK,
                    classify_stock_severity(total),
                    stock_alert_message(product.name, product.sku, total, product.reorder_point),
                )
            except Exception as exc:
                log.error("stock_check.alert_failed", product_id=str(product.id), error=str(exc))
                continue

            if alert is not None:
                log.info(
                    "stock_check.alert_created",
                    product_id=str(product.id),
                    total_stock=total,
                    reorder_point=product.reorder_point,
                    alert_level=alert.alert_level,
                )

        result = StockCheckResult(products_checked=len(rows), low_stock_products=low_stock)
        log.info(
            "stock_check.completed",
            products_checked=result.products_checked,
            low_stock_products=result.low_stock_products,
        )
        return result
