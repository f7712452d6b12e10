from __future__ import annotations

from typing import Any

from pharmacy_engine.models import FacilityRecord

from locator_api.clients.facility_provider_client import FacilityProviderClient

_FLAG_FIELDS = (
    "is_24_hours",
    "has_delivery",
    "has_drive_through",
    "accepts_insurance",
    "has_consultation",
)
_TEXT_FIELDS = (
    "city",
    "state",
    "zip_code",
    "phone_number",
    "website_url",
    "operating_hours",
    "emergency_hours",
    "chain_name",
)


def facility_from_payload(item: dict[str, Any]) -> FacilityRecord:
    rating = item.get("rating")
    return FacilityRecord(
        id=str(item["id"]),
        name=str(item.get("name") or ""),
        address=str(item.get("address") or ""),
        lat=float(item["lat"]),
        lng=float(item["lng"]),
        rating=float(rating) if rating is not None else None,
        is_active=bool(item.get("is_active", True)),
        services=tuple(str(tag) for tag in item.get("services") or ()),
        **{name: bool(item.get(name, False)) for name in _FLAG_FIELDS},
        **{name: (str(item[name]) if item.get(name) is not None else None) for name in _TEXT_FIELDS},
    )


class ExternalFacilityRepository:
    def __init__(self, client: FacilityProviderClient) -> None:
        self._client = client

    async def find_in_bounding_box(
        self,
        min_lat: float,
        max_lat: float,
        min_lng: float,
        max_lng: float,
        active_only: bool = True,
    ) -> list[FacilityRecord]:
        rows = await self._client.fetch_in_bounding_box(
            min_lat=min_lat,
            max_lat=max_lat,
            min_lng=min_lng,
            max_lng=max_lng,
            active_only=active_only,
        )
        return [facility_from_payload(item) for item in rows]

    async def find_by_id(self, facility_id: str) -> FacilityRecord | None:
        row = await self._client.fetch_facility(facility_id)
        return facility_from_payload(row) if row else None
