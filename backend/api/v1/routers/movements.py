"""
Movements Router — record and browse stock movements.

Movements are append-only: there are no update or delete endpoints.
"""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db
from db.models import Batch, Location, Movement, Product
from inventory.movements import MovementRequest, MovementValidationError, record_movement
from inventory.search import filter_movements, index_by_id

router = APIRouter(prefix="/api/v1/movements", tags=["movements"])


class MovementCreate(BaseModel):
    batch_id: UUID
    source_location_id: UUID
    destination_location_id: UUID
    quantity: int = Field(..., gt=0)
    notes: str | None = None


class MovementResponse(BaseModel):
    id: UUID
    batch_id: UUID
    source_location_id: UUID
    destination_location_id: UUID
    quantity: int
    notes: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


@router.get("/", response_model=list[MovementResponse])
async def list_movements(
    search: str | None = None,
    batch_id: UUID | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """Newest first. Search covers batch, product, both locations and notes."""
    query = select(Movement).order_by(Movement.created_at.desc())
    if batch_id:
        query = query.where(Movement.batch_id == batch_id)
    movements = (await db.execute(query)).scalars().all()

    batches = index_by_id((await db.execute(select(Batch))).scalars().all())
    products = index_by_id((await db.execute(select(Product))).scalars().all())
    locations = index_by_id((await db.execute(select(Location))).scalars().all())
    matched = filter_movements(movements, batches, products, locations, search)
    return matched[skip : skip + limit]


@router.get("/{movement_id}", response_model=MovementResponse)
async def get_movement(movement_id: UUID, db: AsyncSession = Depends(get_db)):
    movement = await db.get(Movement, movement_id)
    if not movement:
        raise HTTPException(status_code=404, detail="Movement not found")
    return movement


@router.post("/", response_model=MovementResponse, status_code=201)
async def create_movement(body: MovementCreate, db: AsyncSession = Depends(get_db)):
    """Move quantity out of a batch; rejected with 422 before any write if invalid."""
    try:
        return await record_movement(db, MovementRequest(**body.model_dump()))
    except MovementValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
