"""
Movements — validated transfer of batch quantity between locations.

A movement takes quantity out of a batch at its source location and
credits the batch with the same product and batch number at the
destination, creating that batch if needed. The movement row itself is
an append-only audit record.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import Batch, Location, Movement

logger = structlog.get_logger()


class MovementValidationError(ValueError):
    """The movement request was rejected before anything was written."""


@dataclass
class MovementRequest:
    batch_id: uuid.UUID
    source_location_id: uuid.UUID
    destination_location_id: uuid.UUID
    quantity: int
    notes: str | None = None


def validate_movement(request: MovementRequest, batch: Batch) -> None:
    if request.quantity <= 0:
        raise MovementValidationError("Quantity must be greater than zero.")
    if request.quantity > (batch.quantity or 0):
        raise MovementValidationError(f"Cannot move more than available quantity ({batch.quantity or 0}).")
    if request.source_location_id == request.destination_location_id:
        raise MovementValidationError("Source and destination locations cannot be the same.")
    if request.source_location_id != batch.location_id:
        raise MovementValidationError("Source location must be the batch's current location.")


async def record_movement(db: AsyncSession, request: MovementRequest) -> Movement:
    """Validate, then write the movement and both batch quantity changes in one commit."""
    batch = await db.get(Batch, request.batch_id)
    if batch is None:
        raise MovementValidationError(f"Batch {request.batch_id} not found.")
    validate_movement(request, batch)

    destination = await db.get(Location, request.destination_location_id)
    if destination is None:
        raise MovementValidationError(f"Destination location {request.destination_location_id} not found.")

    result = await db.execute(
        select(Batch).where(
            Batch.product_id == batch.product_id,
            Batch.location_id == destination.id,
            Batch.batch_number == batch.batch_number,
        )
    )
    target = result.scalars().first()
    now = datetime.utcnow()
    if target is None:
        target = Batch(
            product_id=batch.product_id,
            location_id=destination.id,
            batch_number=batch.batch_number,
            quantity=0,
            expiry_date=batch.expiry_date,
        )
        db.add(target)

    batch.quantity = (batch.quantity or 0) - request.quantity
    batch.updated_at = now
    target.quantity = (target.quantity or 0) + request.quantity
    target.updated_at = now

    movement = Movement(
        batch_id=batch.id,
        source_location_id=request.source_location_id,
        destination_location_id=destination.id,
        quantity=request.quantity,
        notes=request.notes,
        created_at=now,
    )
    db.add(movement)
    await db.commit()
    await db.refresh(movement)

    logger.info(
        "movement.recorded",
        movement_id=str(movement.id),
        batch_id=str(batch.id),
        destination_batch_id=str(target.id),
        quantity=request.quantity,
    )
    return movement
