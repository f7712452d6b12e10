from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from fastapi import APIRouter, Depends, Query
from geo_engine.models import GeoPoint, InvalidCoordinateError
from pydantic import ValidationError

from locator_api.dependencies import get_search_service
from locator_api.errors import ApiError, InvalidRequestError
from locator_api.response import success_response
from locator_api.schemas.pharmacy import SearchRequest, SearchResult
from locator_api.services.pharmacy_search_service import (
    DEFAULT_MIN_CONFIDENCE,
    OPEN_NOW_MAX_RESULTS,
    OPEN_NOW_RADIUS_KM,
    PharmacySearchService,
)

router = APIRouter(prefix="/v1/pharmacies", tags=["pharmacies"])

REQUEST_TIMEOUT_SECONDS = 10.0

T = TypeVar("T")


async def _with_deadline(operation: Awaitable[T]) -> T:
    try:
        return await asyncio.wait_for(operation, timeout=REQUEST_TIMEOUT_SECONDS)
    except TimeoutError as exc:
        raise ApiError("UPSTREAM_TIMEOUT", "Search timed out", 504) from exc


def _search_payload(results: list[SearchResult], request: SearchRequest) -> dict:
    meta = {"count": len(results), "sort_by": request.sort_by.value}
    return success_response([item.model_dump(mode="json") for item in results], meta=meta)


def nearby_query(
    lat: float,
    lng: float,
    radius_km: float | None = None,
    max_results: int | None = None,
    open_now: bool | None = None,
    is_24_hours: bool | None = None,
    has_delivery: bool | None = None,
    has_drive_through: bool | None = None,
    accepts_insurance: bool | None = None,
    chain_name: str | None = None,
    services: list[str] = Query(default=[]),
    medicine_name: str | None = None,
    sort_by: str = "DISTANCE",
) -> SearchRequest:
    try:
        return SearchRequest(
            latitude=lat,
            longitude=lng,
            radius_km=radius_km,
            max_results=max_results,
            open_now=open_now,
            is_24_hours=is_24_hours,
            has_delivery=has_delivery,
            has_drive_through=has_drive_through,
            accepts_insurance=accepts_insurance,
            chain_name=chain_name,
            services=tuple(services),
            medicine_name=medicine_name,
            sort_by=sort_by,
        )
    except ValidationError as exc:
        message = "; ".join(err["msg"] for err in exc.errors())
        raise ApiError("VALIDATION_ERROR", message, 422) from exc


@router.get("/nearby")
async def find_nearby(
    request: SearchRequest = Depends(nearby_query),
    service: PharmacySearchService = Depends(get_search_service),
) -> dict:
    results = await _with_deadline(service.search(request))
    return _search_payload(results, request)


@router.post("/nearby")
async def search_nearby(
    request: SearchRequest,
    service: PharmacySearchService = Depends(get_search_service),
) -> dict:
    results = await _with_deadline(service.search(request))
    return _search_payload(results, request)


@router.get("/with-medicine")
async def find_with_medicine(
    request: SearchRequest = Depends(nearby_query),
    min_confidence: float = Query(default=DEFAULT_MIN_CONFIDENCE, ge=0.0, le=1.0),
    service: PharmacySearchService = Depends(get_search_service),
) -> dict:
    results = await _with_deadline(service.search_with_product(request, min_confidence=min_confidence))
    payload = _search_payload(results, request)
    payload["meta"]["min_confidence"] = min_confidence
    return payload


@router.get("/open-now")
async def find_open_now(
    lat: float,
    lng: float,
    radius_km: float = OPEN_NOW_RADIUS_KM,
    max_results: int = OPEN_NOW_MAX_RESULTS,
    service: PharmacySearchService = Depends(get_search_service),
) -> dict:
    results = await _with_deadline(service.search_open_now(lat, lng, radius_km=radius_km, max_results=max_results))
    return success_response([item.model_dump(mode="json") for item in results], meta={"count": len(results)})


@router.get("/{facility_id}/availability")
async def get_availability_summary(
    facility_id: str,
    medicine: list[str] = Query(default=[]),
    service: PharmacySearchService = Depends(get_search_service),
) -> dict:
    summary = await _with_deadline(service.availability_summary(facility_id, medicine))
    if summary is None:
        raise ApiError("NOT_FOUND", "Pharmacy not found", 404)
    data = {name: item.model_dump(mode="json") for name, item in summary.items()}
    return success_response(data, meta={"facility_id": facility_id, "count": len(data)})


@router.get("/{facility_id}")
async def get_pharmacy(
    facility_id: str,
    lat: float | None = None,
    lng: float | None = None,
    service: PharmacySearchService = Depends(get_search_service),
) -> dict:
    if (lat is None) != (lng is None):
        raise InvalidRequestError("lat/lng", "must be given together")
    origin = None
    if lat is not None and lng is not None:
        try:
            origin = GeoPoint(lat=lat, lng=lng)
        except InvalidCoordinateError as exc:
            raise InvalidRequestError(exc.field, exc.reason) from exc

    result = await _with_deadline(service.get_details(facility_id, origin))
    if result is None:
        raise ApiError("NOT_FOUND", "Pharmacy not found", 404)
    return success_response(result.model_dump(mode="json"), meta={})
