"""
Alerts Router — browse and resolve stock / expiry alerts.

Alerts are created only by the recomputation jobs (see /functions).
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db
from db.models import Alert, Product
from inventory.search import filter_alerts, index_by_id

router = APIRouter(prefix="/api/v1/alerts", tags=["alerts"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class AlertResponse(BaseModel):
    id: UUID
    alert_type: str
    alert_level: str
    message: str
    related_id: UUID
    related_type: str
    resolved: bool
    created_at: datetime
    resolved_at: datetime | None

    model_config = {"from_attributes": True}


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/", response_model=list[AlertResponse])
async def list_alerts(
    search: str | None = None,
    status: Literal["all", "resolved", "unresolved"] = "all",
    alert_type: str | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """List alerts, newest first, with search and resolved/unresolved filter."""
    query = select(Alert).order_by(Alert.created_at.desc())
    if alert_type:
        query = query.where(Alert.alert_type == alert_type)
    alerts = (await db.execute(query)).scalars().all()

    products = index_by_id((await db.execute(select(Product))).scalars().all())
    matched = filter_alerts(alerts, products, search, status)
    return matched[skip : skip + limit]


@router.get("/{alert_id}", response_model=AlertResponse)
async def get_alert(alert_id: UUID, db: AsyncSession = Depends(get_db)):
    alert = await db.get(Alert, alert_id)
    if not alert:
        raise HTTPException(status_code=404, detail="Alert not found")
    return alert


@router.patch("/{alert_id}/resolve", response_model=AlertResponse)
async def resolve_alert(alert_id: UUID, db: AsyncSession = Depends(get_db)):
    """Mark an alert handled. The next job run may raise a fresh one for the same target."""
    alert = await db.get(Alert, alert_id)
    if not alert:
        raise HTTPException(status_code=404, detail="Alert not found")
    if alert.resolved:
        raise HTTPException(status_code=400, detail="Alert is already resolved")

    alert.resolved = True
    alert.resolved_at = datetime.utcnow()
    await db.commit()
    await db.refresh(alert)
    return alert
