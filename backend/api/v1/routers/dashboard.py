"""
Dashboard Router — headline counts for the inventory overview.
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from alerts.engine import ALERT_TYPE_EXPIRY, ALERT_TYPE_STOCK
from api.deps import get_db
from api.v1.routers.alerts import AlertResponse
from db.models import Alert, Batch, Location, Product

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])

LOW_STOCK_PREVIEW = 5
RECENT_ALERTS_PREVIEW = 5


class LowStockProduct(BaseModel):
    id: UUID
    name: str
    sku: str
    unit: str
    total_stock: int
    reorder_point: int

    model_config = {"from_attributes": True}


class DashboardSummary(BaseModel):
    products: int
    locations: int
    batches: int
    unresolved_alerts: int
    low_stock_alerts: int
    expiry_alerts: int
    low_stock_products: list[LowStockProduct]
    recent_alerts: list[AlertResponse]


async def _count(db: AsyncSession, query) -> int:
    return (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0


@router.get("/summary", response_model=DashboardSummary)
async def get_summary(db: AsyncSession = Depends(get_db)):
    """
    Counts of each entity and of open alerts, plus a preview of products
    at or below their reorder point (based on the cached total_stock) and
    the newest unresolved alerts.
    """
    open_alerts = select(Alert).where(Alert.resolved.is_(False))

    low_stock = await db.execute(
        select(Product)
        .where(Product.total_stock <= Product.reorder_point)
        .order_by(Product.total_stock - Product.reorder_point, Product.name)
        .limit(LOW_STOCK_PREVIEW)
    )
    recent = await db.execute(
        open_alerts.order_by(Alert.created_at.desc()).limit(RECENT_ALERTS_PREVIEW)
    )

    return DashboardSummary(
        products=await _count(db, select(Product)),
        locations=await _count(db, select(Location)),
        batches=await _count(db, select(Batch)),
        unresolved_alerts=await _count(db, open_alerts),
        low_stock_alerts=await _count(db, open_alerts.where(Alert.alert_type == ALERT_TYPE_STOCK)),
        expiry_alerts=await _count(db, open_alerts.where(Alert.alert_type == ALERT_TYPE_EXPIRY)),
        low_stock_products=[LowStockProduct.model_validate(p) for p in low_stock.scalars().all()],
        recent_alerts=[AlertResponse.model_validate(a) for a in recent.scalars().all()],
    )
