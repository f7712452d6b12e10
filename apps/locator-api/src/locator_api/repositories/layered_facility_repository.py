from __future__ import annotations

import logging

from pharmacy_engine.merge import merge_preferring
from pharmacy_engine.models import FacilityRecord

from locator_api.repositories.facility_repository import FacilityRepositoryLike

logger = logging.getLogger(__name__)


class LayeredFacilityRepository:
    """Authoritative store first, secondary source for gaps.

    Fields present in the primary record always win. Blank primary fields are
    filled from the secondary record with the same id, and secondary-only
    records are appended after the primary ones. A failing secondary source
    is logged and skipped; primary failures propagate.
    """

    def __init__(self, primary: FacilityRepositoryLike, secondary: FacilityRepositoryLike) -> None:
        self._primary = primary
        self._secondary = secondary

    async def find_in_bounding_box(
        self,
        min_lat: float,
        max_lat: float,
        min_lng: float,
        max_lng: float,
        active_only: bool = True,
    ) -> list[FacilityRecord]:
        primary_rows = await self._primary.find_in_bounding_box(min_lat, max_lat, min_lng, max_lng, active_only)
        try:
            secondary_rows = await self._secondary.find_in_bounding_box(
                min_lat, max_lat, min_lng, max_lng, active_only
            )
        except Exception:
            logger.warning("secondary_facility_source_failed", extra={"component": "locator_api"}, exc_info=True)
            return primary_rows

        secondary_by_id = {row.id: row for row in secondary_rows}
        merged = [merge_preferring(row, secondary_by_id.pop(row.id, None)) for row in primary_rows]
        return merged + list(secondary_by_id.values())

    async def find_by_id(self, facility_id: str) -> FacilityRecord | None:
        primary = await self._primary.find_by_id(facility_id)
        try:
            secondary = await self._secondary.find_by_id(facility_id)
        except Exception:
            logger.warning(
                "secondary_facility_source_failed",
                extra={"component": "locator_api", "facility_id": facility_id},
                exc_info=True,
            )
            return primary
        if primary is None:
            return secondary
        return merge_preferring(primary, secondary)
