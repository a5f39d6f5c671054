"""
API Integration Tests — Batch CRUD and movement recording.
"""

import uuid

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
class TestBatchesIntegration:
    async def test_list_ordered_by_expiry(self, client: AsyncClient, seeded_db):
        resp = await client.get("/api/v1/batches/")
        assert resp.status_code == 200
        assert [b["batch_number"] for b in resp.json()] == ["MILK-001", "MILK-002"]

    async def test_filter_by_product(self, client: AsyncClient, seeded_db, add_product, add_batch):
        other = await add_product(name="Butter")
        await add_batch(other, seeded_db["warehouse"])

        resp = await client.get(f"/api/v1/batches/?product_id={seeded_db['product'].id}")
        assert len(resp.json()) == 2

    async def test_search_by_location_code(self, client: AsyncClient, seeded_db, add_batch):
        await add_batch(seeded_db["product"], seeded_db["backroom"], batch_number="MILK-003")

        resp = await client.get("/api/v1/batches/?search=br-1")
        assert [b["batch_number"] for b in resp.json()] == ["MILK-003"]

    async def test_create_batch(self, client: AsyncClient, seeded_db):
        resp = await client.post(
            "/api/v1/batches/",
            json={
                "product_id": str(seeded_db["product"].id),
                "location_id": str(seeded_db["backroom"].id),
                "batch_number": "MILK-900",
                "quantity": 6,
                "expiry_date": "2026-04-01T00:00:00Z",
            },
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["quantity"] == 6
        assert data["expiry_date"].startswith("2026-04-01T00:00:00")

    async def test_create_does_not_touch_total_stock(self, client: AsyncClient, seeded_db):
        await client.post(
            "/api/v1/batches/",
            json={
                "product_id": str(seeded_db["product"].id),
                "location_id": str(seeded_db["warehouse"].id),
                "batch_number": "MILK-901",
                "quantity": 50,
            },
        )
        resp = await client.get(f"/api/v1/products/{seeded_db['product'].id}")
        assert resp.json()["total_stock"] == 0

    async def test_create_with_unknown_product(self, client: AsyncClient, seeded_db):
        resp = await client.post(
            "/api/v1/batches/",
            json={
                "product_id": str(uuid.uuid4()),
                "location_id": str(seeded_db["warehouse"].id),
                "batch_number": "X-1",
            },
        )
        assert resp.status_code == 422

    async def test_negative_quantity_rejected(self, client: AsyncClient, seeded_db):
        batch_id = seeded_db["batches"][0].id
        resp = await client.patch(f"/api/v1/batches/{batch_id}", json={"quantity": -1})
        assert resp.status_code == 422

    async def test_update_and_clear_expiry(self, client: AsyncClient, seeded_db):
        batch_id = seeded_db["batches"][0].id
        resp = await client.patch(f"/api/v1/batches/{batch_id}", json={"quantity": 3, "expiry_date": None})
        assert resp.status_code == 200
        data = resp.json()
        assert data["quantity"] == 3
        assert data["expiry_date"] is None

    async def test_delete_batch(self, client: AsyncClient, seeded_db):
        batch_id = seeded_db["batches"][1].id
        resp = await client.delete(f"/api/v1/batches/{batch_id}")
        assert resp.status_code == 204
        resp = await client.get(f"/api/v1/batches/{batch_id}")
        assert resp.status_code == 404


@pytest.mark.asyncio
class TestMovementsIntegration:
    def _body(self, seeded_db, **overrides):
        body = {
            "batch_id": str(seeded_db["batches"][0].id),
            "source_location_id": str(seeded_db["warehouse"].id),
            "destination_location_id": str(seeded_db["backroom"].id),
            "quantity": 2,
            "notes": "shelf refill",
        }
        body.update(overrides)
        return body

    async def test_record_movement(self, client: AsyncClient, seeded_db):
        resp = await client.post("/api/v1/movements/", json=self._body(seeded_db))
        assert resp.status_code == 201
        movement = resp.json()
        assert movement["quantity"] == 2

        resp = await client.get(f"/api/v1/batches/{seeded_db['batches'][0].id}")
        assert resp.json()["quantity"] == 6

        resp = await client.get(f"/api/v1/movements/{movement['id']}")
        assert resp.status_code == 200

    async def test_over_quantity_is_rejected_without_writes(self, client: AsyncClient, seeded_db):
        resp = await client.post("/api/v1/movements/", json=self._body(seeded_db, quantity=9))
        assert resp.status_code == 422
        assert resp.json()["detail"] == "Cannot move more than available quantity (8)."

        resp = await client.get("/api/v1/movements/")
        assert resp.json() == []
        resp = await client.get(f"/api/v1/batches/{seeded_db['batches'][0].id}")
        assert resp.json()["quantity"] == 8

    async def test_same_location_rejected(self, client: AsyncClient, seeded_db):
        body = self._body(seeded_db, destination_location_id=str(seeded_db["warehouse"].id))
        resp = await client.post("/api/v1/movements/", json=body)
        assert resp.status_code == 422

    async def test_zero_quantity_rejected(self, client: AsyncClient, seeded_db):
        resp = await client.post("/api/v1/movements/", json=self._body(seeded_db, quantity=0))
        assert resp.status_code == 422

    async def test_search_movements(self, client: AsyncClient, seeded_db):
        await client.post("/api/v1/movements/", json=self._body(seeded_db))

        resp = await client.get("/api/v1/movements/?search=refill")
        assert len(resp.json()) == 1
        resp = await client.get("/api/v1/movements/?search=nowhere")
        assert resp.json() == []

    async def test_movements_are_append_only(self, client: AsyncClient, seeded_db):
        resp = await client.post("/api/v1/movements/", json=self._body(seeded_db))
        movement_id = resp.json()["id"]

        resp = await client.delete(f"/api/v1/movements/{movement_id}")
        assert resp.status_code == 405
