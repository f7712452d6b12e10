from __future__ import annotations

import pytest

from locator_api.repositories.facility_repository import SEED_FACILITIES, FacilityRepository
from locator_api.repositories.layered_facility_repository import LayeredFacilityRepository
from locator_api.repositories.product_repository import ProductRepository
from pharmacy_engine.availability import resolve_product
from pharmacy_engine.models import FacilityRecord

MANHATTAN_BOX = (40.6, 40.9, -74.1, -73.9)


class StaticRepository:
    def __init__(self, rows: list[FacilityRecord], error: Exception | None = None) -> None:
        self.rows = rows
        self.error = error

    async def find_in_bounding_box(self, min_lat, max_lat, min_lng, max_lng, active_only=True):
        if self.error:
            raise self.error
        return list(self.rows)

    async def find_by_id(self, facility_id):
        if self.error:
            raise self.error
        return next((row for row in self.rows if row.id == facility_id), None)


@pytest.mark.asyncio
async def test_in_memory_store_filters_box_and_active_flag() -> None:
    repository = FacilityRepository()

    active = await repository.find_in_bounding_box(*MANHATTAN_BOX)
    everything = await repository.find_in_bounding_box(*MANHATTAN_BOX, active_only=False)

    assert "ph-005" not in {row.id for row in active}
    assert "ph-005" in {row.id for row in everything}
    assert all(MANHATTAN_BOX[0] <= row.lat <= MANHATTAN_BOX[1] for row in everything)


@pytest.mark.asyncio
async def test_sqlalchemy_store_seeds_and_queries(tmp_path) -> None:
    repository = FacilityRepository(database_url=f"sqlite+aiosqlite:///{tmp_path / 'pharmacies.db'}")

    rows = await repository.find_in_bounding_box(*MANHATTAN_BOX)
    detail = await repository.find_by_id("ph-001")

    assert [row.id for row in rows] == sorted(
        item.id
        for item in SEED_FACILITIES
        if item.is_active and MANHATTAN_BOX[0] <= item.lat <= MANHATTAN_BOX[1] and MANHATTAN_BOX[2] <= item.lng <= MANHATTAN_BOX[3]
    )
    assert detail is not None
    assert detail.services == ("Vaccinations", "Photo", "Prescription Delivery")
    assert await repository.find_by_id("missing") is None


@pytest.mark.asyncio
async def test_layered_store_prefers_primary_fields() -> None:
    primary = StaticRepository([FacilityRecord(id="a", name="Local Name", address="", lat=40.7, lng=-74.0)])
    secondary = StaticRepository(
        [
            FacilityRecord(id="a", name="Remote Name", address="1 Main St", lat=40.0, lng=-74.5, rating=4.0),
            FacilityRecord(id="b", name="Remote Only", address="2 Main St", lat=40.71, lng=-74.0),
        ]
    )
    repository = LayeredFacilityRepository(primary, secondary)

    rows = await repository.find_in_bounding_box(*MANHATTAN_BOX)

    assert [row.id for row in rows] == ["a", "b"]
    assert rows[0].name == "Local Name"
    assert rows[0].address == "1 Main St"
    assert rows[0].rating == 4.0
    assert rows[0].lat == 40.7


@pytest.mark.asyncio
async def test_layered_store_survives_secondary_failure() -> None:
    local = FacilityRecord(id="a", name="Local", address="x", lat=40.7, lng=-74.0)
    repository = LayeredFacilityRepository(StaticRepository([local]), StaticRepository([], error=RuntimeError("down")))

    assert await repository.find_in_bounding_box(*MANHATTAN_BOX) == [local]
    assert await repository.find_by_id("a") == local


@pytest.mark.asyncio
async def test_layered_store_falls_back_to_secondary_detail() -> None:
    remote = FacilityRecord(id="r", name="Remote", address="y", lat=40.7, lng=-74.0)
    repository = LayeredFacilityRepository(StaticRepository([]), StaticRepository([remote]))

    assert await repository.find_by_id("r") == remote
    assert await repository.find_by_id("missing") is None


@pytest.mark.asyncio
async def test_product_catalog_resolution_order() -> None:
    catalog = ProductRepository()

    exact = await resolve_product(catalog, "ADVIL")
    by_ingredient = await resolve_product(catalog, "acetaminophen")
    by_brand = await resolve_product(catalog, "glucophage")
    unknown = await resolve_product(catalog, "unobtainium")

    assert exact is not None and exact.id == "prd-002"
    assert by_ingredient is not None and by_ingredient.id == "prd-001"
    assert by_brand is not None and by_brand.id == "prd-005"
    assert unknown is None
