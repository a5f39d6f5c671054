"""
Functions Router — HTTP triggers for the recomputation jobs.

Each trigger accepts POST (run the job) and OPTIONS (CORS preflight).
Every other method gets a 405 JSON body instead of FastAPI's default.
"""

import json
import uuid

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from alerts.engine import AlertGenerator
from api.deps import get_store
from inventory.stock_levels import StockLevelRecalculator
from inventory.store import SqlInventoryStore

logger = structlog.get_logger()

router = APIRouter(prefix="/functions", tags=["functions"])

ROUTED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}
PREFLIGHT_HEADERS = {
    **CORS_HEADERS,
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "*",
}


def _json(status_code: int, body: dict) -> JSONResponse:
    return JSONResponse(body, status_code=status_code, headers=CORS_HEADERS)


def _error(status_code: int, message: str) -> JSONResponse:
    return _json(status_code, {"status": "error", "message": message})


def _reject_non_post(request: Request) -> Response | None:
    if request.method == "OPTIONS":
        return Response(status_code=204, headers=PREFLIGHT_HEADERS)
    if request.method != "POST":
        return _error(405, "Only POST requests are allowed")
    return None


async def _requested_product_id(request: Request) -> uuid.UUID | None:
    raw = await request.body()
    if not raw.strip():
        return None
    payload = json.loads(raw)
    if not isinstance(payload, dict) or payload.get("product_id") is None:
        return None
    return uuid.UUID(str(payload["product_id"]))


@router.api_route("/check-stock-levels", methods=ROUTED_METHODS)
async def check_stock_levels(
    request: Request,
    store: SqlInventoryStore = Depends(get_store),
):
    """Recompute every product's total_stock (or one, via {"product_id": ...})."""
    rejected = _reject_non_post(request)
    if rejected is not None:
        return rejected

    try:
        product_id = await _requested_product_id(request)
    except ValueError as exc:
        return _error(400, f"Invalid request body: {exc}")

    try:
        result = await StockLevelRecalculator(store).run(product_id)
    except Exception as exc:
        logger.error("functions.check_stock_levels_failed", error=str(exc), exc_info=True)
        return _error(500, f"Failed to check stock levels: {exc}")

    return _json(
        200,
        {
            "status": "success",
            "message": (
                f"Successfully checked {result.products_checked} products, "
                f"found {result.low_stock_products} low stock products"
            ),
            "products_checked": result.products_checked,
            "low_stock_products": result.low_stock_products,
        },
    )


@router.api_route("/generate-alerts", methods=ROUTED_METHODS)
async def generate_alerts(
    request: Request,
    store: SqlInventoryStore = Depends(get_store),
):
    """Run the expiry and low-stock passes and report how many alerts were inserted."""
    rejected = _reject_non_post(request)
    if rejected is not None:
        return rejected

    try:
        result = await AlertGenerator(store).run()
    except Exception as exc:
        logger.error("functions.generate_alerts_failed", error=str(exc), exc_info=True)
        return _error(500, f"Failed to generate alerts: {exc}")

    return _json(
        200,
        {
            "status": "success",
            "message": f"Successfully generated {result.alerts_generated} alerts",
            "alerts_generated": result.alerts_generated,
        },
    )
