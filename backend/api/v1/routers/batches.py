"""
Batches Router — CRUD for tracked product quantities at locations.

Changing a batch quantity does not touch products.total_stock; that cache
is refreshed by POST /functions/check-stock-levels.
"""

from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db
from db.models import Batch, Location, Product
from inventory.search import filter_batches, index_by_id

router = APIRouter(prefix="/api/v1/batches", tags=["batches"])


class BatchCreate(BaseModel):
    product_id: UUID
    location_id: UUID
    batch_number: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(0, ge=0)
    expiry_date: datetime | None = None


class BatchUpdate(BaseModel):
    location_id: UUID | None = None
    batch_number: str | None = Field(None, min_length=1, max_length=100)
    quantity: int | None = Field(None, ge=0)
    expiry_date: datetime | None = None


class BatchResponse(BaseModel):
    id: UUID
    product_id: UUID
    location_id: UUID
    batch_number: str
    quantity: int
    expiry_date: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


async def _get_or_404(db: AsyncSession, batch_id: UUID) -> Batch:
    batch = await db.get(Batch, batch_id)
    if not batch:
        raise HTTPException(status_code=404, detail="Batch not found")
    return batch


async def _require(db: AsyncSession, model, entity_id: UUID, label: str) -> None:
    if await db.get(model, entity_id) is None:
        raise HTTPException(status_code=422, detail=f"{label} {entity_id} does not exist")


def _naive_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@router.get("/", response_model=list[BatchResponse])
async def list_batches(
    search: str | None = None,
    product_id: UUID | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """List batches, searching batch number, product name/SKU and location name/code."""
    query = select(Batch).order_by(Batch.expiry_date, Batch.batch_number)
    if product_id:
        query = query.where(Batch.product_id == product_id)
    batches = (await db.execute(query)).scalars().all()

    if search:
        products = index_by_id((await db.execute(select(Product))).scalars().all())
        locations = index_by_id((await db.execute(select(Location))).scalars().all())
        batches = filter_batches(batches, products, locations, search)
    return list(batches)[skip : skip + limit]


@router.get("/{batch_id}", response_model=BatchResponse)
async def get_batch(batch_id: UUID, db: AsyncSession = Depends(get_db)):
    return await _get_or_404(db, batch_id)


@router.post("/", response_model=BatchResponse, status_code=201)
async def create_batch(body: BatchCreate, db: AsyncSession = Depends(get_db)):
    await _require(db, Product, body.product_id, "Product")
    await _require(db, Location, body.location_id, "Location")

    data = body.model_dump()
    data["expiry_date"] = _naive_utc(data["expiry_date"])
    batch = Batch(**data)
    db.add(batch)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise HTTPException(status_code=409, detail=f"Could not create batch: {exc.orig}")
    await db.refresh(batch)
    return batch


@router.patch("/{batch_id}", response_model=BatchResponse)
async def update_batch(
    batch_id: UUID,
    update: BatchUpdate,
    db: AsyncSession = Depends(get_db),
):
    batch = await _get_or_404(db, batch_id)
    changes = update.model_dump(exclude_unset=True)
    if changes.get("location_id"):
        await _require(db, Location, changes["location_id"], "Location")
    if "expiry_date" in changes:
        changes["expiry_date"] = _naive_utc(changes["expiry_date"])

    for field, value in changes.items():
        if value is None and field != "expiry_date":
            continue
        setattr(batch, field, value)
    batch.updated_at = datetime.utcnow()
    await db.commit()
    await db.refresh(batch)
    return batch


@router.delete("/{batch_id}", status_code=204)
async def delete_batch(batch_id: UUID, db: AsyncSession = Depends(get_db)):
    batch = await _get_or_404(db, batch_id)
    await db.delete(batch)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Batch has recorded movements")
