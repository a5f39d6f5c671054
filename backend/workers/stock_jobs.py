"""
Stock Job Workers — scheduled triggers for the recomputation jobs.

Same jobs as POST /functions/check-stock-levels and
POST /functions/generate-alerts, run from Celery beat instead of HTTP.
Each run opens its own engine and disposes it afterwards.
"""

import asyncio
from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from workers.celery_app import celery_app

logger = structlog.get_logger()


async def _with_store(job):
    from core.config import get_settings
    from inventory.store import SqlInventoryStore

    settings = get_settings()
    engine = create_async_engine(settings.database_url)
    try:
        session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        async with session_factory() as db:
            return await job(SqlInventoryStore(db))
    finally:
        await engine.dispose()


@celery_app.task(
    name="workers.stock_jobs.check_stock_levels",
    bind=True,
    max_retries=2,
    default_retry_delay=60,
    acks_late=True,
)
def check_stock_levels(self, product_id: str | None = None):
    """Recompute products.total_stock and raise low-stock alerts."""
    import uuid

    from inventory.stock_levels import StockLevelRecalculator

    run_id = self.request.id or "manual"
    scope = uuid.UUID(product_id) if product_id else None

    async def _run(store):
        return await StockLevelRecalculator(store).run(scope)

    try:
        result = asyncio.run(_with_store(_run))
    except Exception as exc:
        logger.error("worker.check_stock_levels_failed", run_id=run_id, error=str(exc), exc_info=True)
        raise self.retry(exc=exc)

    summary = {
        "status": "success",
        "run_id": run_id,
        "products_checked": result.products_checked,
        "low_stock_products": result.low_stock_products,
        "completed_at": datetime.now(timezone.utc).isoformat(),
    }
    logger.info("worker.check_stock_levels_completed", **summary)
    return summary


@celery_app.task(
    name="workers.stock_jobs.generate_alerts",
    bind=True,
    max_retries=2,
    default_retry_delay=60,
    acks_late=True,
)
def generate_alerts(self):
    """Run the expiry and low-stock alert passes."""
    from alerts.engine import AlertGenerator

    run_id = self.request.id or "manual"

    async def _run(store):
        return await AlertGenerator(store).run()

    try:
        result = asyncio.run(_with_store(_run))
    except Exception as exc:
        logger.error("worker.generate_alerts_failed", run_id=run_id, error=str(exc), exc_info=True)
        raise self.retry(exc=exc)

    summary = {
        "status": "success",
        "run_id": run_id,
        "alerts_generated": result.alerts_generated,
        "expiry_alerts": result.expiry_alerts,
        "stock_alerts": result.stock_alerts,
        "completed_at": datetime.now(timezone.utc).isoformat(),
    }
    logger.info("worker.generate_alerts_completed", **summary)
    return summary
