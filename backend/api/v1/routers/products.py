"""
Products Router — CRUD for the product catalog.

total_stock is read-only here; only the stock level check writes it.
"""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db
from db.models import Product
from inventory.search import filter_products

router = APIRouter(prefix="/api/v1/products", tags=["products"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class ProductCreate(BaseModel):
    sku: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    category: str | None = None
    unit: str = Field("units", min_length=1, max_length=30)
    reorder_point: int = Field(10, ge=0)


class ProductUpdate(BaseModel):
    sku: str | None = Field(None, min_length=1, max_length=100)
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    category: str | None = None
    unit: str | None = Field(None, min_length=1, max_length=30)
    reorder_point: int | None = Field(None, ge=0)


class ProductResponse(BaseModel):
    id: UUID
    sku: str
    name: str
    description: str | None
    category: str | None
    unit: str
    reorder_point: int
    total_stock: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


async def _get_or_404(db: AsyncSession, product_id: UUID) -> Product:
    product = await db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


async def _commit_unique(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="A product with this SKU already exists")


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/", response_model=list[ProductResponse])
async def list_products(
    search: str | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """List products, optionally searching name, SKU and category."""
    result = await db.execute(select(Product).order_by(Product.name))
    products = filter_products(result.scalars().all(), search)
    return products[skip : skip + limit]


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Get a single product by ID."""
    return await _get_or_404(db, product_id)


@router.post("/", response_model=ProductResponse, status_code=201)
async def create_product(
    product: ProductCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a new product."""
    db_product = Product(**product.model_dump())
    db.add(db_product)
    await _commit_unique(db)
    await db.refresh(db_product)
    return db_product


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: UUID,
    update: ProductUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Update a product."""
    product = await _get_or_404(db, product_id)

    for field, value in update.model_dump(exclude_unset=True).items():
        if value is None and field not in ("description", "category"):
            continue
        setattr(product, field, value)
    product.updated_at = datetime.utcnow()

    await _commit_unique(db)
    await db.refresh(product)
    return product


@router.delete("/{product_id}", status_code=204)
async def delete_product(
    product_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Delete a product."""
    product = await _get_or_404(db, product_id)
    await db.delete(product)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Product still has batches")
