"""
Locations Router — CRUD for storage locations.
"""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db
from db.models import Location
from inventory.search import filter_locations

router = APIRouter(prefix="/api/v1/locations", tags=["locations"])


class LocationCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None


class LocationUpdate(BaseModel):
    code: str | None = Field(None, min_length=1, max_length=50)
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None


class LocationResponse(BaseModel):
    id: UUID
    code: str
    name: str
    description: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


async def _get_or_404(db: AsyncSession, location_id: UUID) -> Location:
    location = await db.get(Location, location_id)
    if not location:
        raise HTTPException(status_code=404, detail="Location not found")
    return location


@router.get("/", response_model=list[LocationResponse])
async def list_locations(
    search: str | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Location).order_by(Location.code))
    locations = filter_locations(result.scalars().all(), search)
    return locations[skip : skip + limit]


@router.get("/{location_id}", response_model=LocationResponse)
async def get_location(location_id: UUID, db: AsyncSession = Depends(get_db)):
    return await _get_or_404(db, location_id)


@router.post("/", response_model=LocationResponse, status_code=201)
async def create_location(body: LocationCreate, db: AsyncSession = Depends(get_db)):
    location = Location(**body.model_dump())
    db.add(location)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="A location with this code already exists")
    await db.refresh(location)
    return location


@router.patch("/{location_id}", response_model=LocationResponse)
async def update_location(
    location_id: UUID,
    update: LocationUpdate,
    db: AsyncSession = Depends(get_db),
):
    location = await _get_or_404(db, location_id)
    for field, value in update.model_dump(exclude_unset=True).items():
        if value is None and field != "description":
            continue
        setattr(location, field, value)
    location.updated_at = datetime.utcnow()
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="A location with this code already exists")
    await db.refresh(location)
    return location


@router.delete("/{location_id}", status_code=204)
async def delete_location(location_id: UUID, db: AsyncSession = Depends(get_db)):
    location = await _get_or_404(db, location_id)
    await db.delete(location)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Location still holds batches")
