"""
Read-side search helpers for list views.

Rows are fetched in full, indexed by id for cross-references, then
filtered in memory: a row matches when its searchable fields, joined
with spaces, contain the search term case-insensitively.
"""

import uuid
from collections.abc import Iterable, Sequence
from typing import Any

ALERT_STATUSES = ("all", "resolved", "unresolved")


def index_by_id(rows: Iterable[Any]) -> dict[uuid.UUID, Any]:
    return {row.id: row for row in rows}


def matches_search(fields: Iterable[str | None], term: str | None) -> bool:
    if not term:
        return True
    haystack = " ".join(f for f in fields if f).lower()
    return term.lower() in haystack


def filter_products(products: Sequence, term: str | None) -> list:
    return [p for p in products if matches_search((p.name, p.sku, p.category), term)]


def filter_locations(locations: Sequence, term: str | None) -> list:
    return [loc for loc in locations if matches_search((loc.name, loc.code, loc.description), term)]


def filter_batches(
    batches: Sequence,
    products: dict[uuid.UUID, Any],
    locations: dict[uuid.UUID, Any],
    term: str | None,
) -> list:
    matched = []
    for batch in batches:
        product = products.get(batch.product_id)
        location = locations.get(batch.location_id)
        fields = (
            batch.batch_number,
            product.name if product else None,
            product.sku if product else None,
            location.name if location else None,
            location.code if location else None,
        )
        if matches_search(fields, term):
            matched.append(batch)
    return matched


def filter_movements(
    movements: Sequence,
    batches: dict[uuid.UUID, Any],
    products: dict[uuid.UUID, Any],
    locations: dict[uuid.UUID, Any],
    term: str | None,
) -> list:
    """Movements whose batch is not in ``batches`` are dropped."""
    matched = []
    for movement in movements:
        batch = batches.get(movement.batch_id)
        if batch is None:
            continue
        product = products.get(batch.product_id)
        source = locations.get(movement.source_location_id)
        destination = locations.get(movement.destination_location_id)
        fields = (
            batch.batch_number,
            product.name if product else None,
            product.sku if product else None,
            source.name if source else None,
            source.code if source else None,
            destination.name if destination else None,
            destination.code if destination else None,
            movement.notes,
        )
        if matches_search(fields, term):
            matched.append(movement)
    return matched


def filter_alerts(
    alerts: Sequence,
    products: dict[uuid.UUID, Any],
    term: str | None,
    status: str = "all",
) -> list:
    """
    Search alerts by related product name/sku, message and type, then keep
    only the requested status: "all", "resolved" or "unresolved".
    """
    if status not in ALERT_STATUSES:
        raise ValueError(f"Unknown alert status filter: {status!r}")

    matched = []
    for alert in alerts:
        product = products.get(alert.related_id) if alert.related_type == "product" else None
        fields = (
            product.name if product else None,
            product.sku if product else None,
            alert.message,
            alert.alert_type,
        )
        if not matches_search(fields, term):
            continue
        if status == "resolved" and not alert.resolved:
            continue
        if status == "unresolved" and alert.resolved:
            continue
        matched.append(alert)
    return matched
