"""Heuristic estimate of whether a pharmacy stocks a given medicine.

The confidence starts at ``BASE_CONFIDENCE`` and each rule in
``AVAILABILITY_RULES`` adds a signed adjustment. The sum is clamped to
[0, 1] and bucketed into a ``StockLevel``. This is an estimate, not
inventory data.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol, TypeVar

from pharmacy_engine.models import AvailabilityEstimate, FacilityRecord, ProductRecord, StockLevel

logger = logging.getLogger(__name__)

BASE_CONFIDENCE = 0.5
UNRESOLVED_CONFIDENCE = 0.1
LIKELY_AVAILABLE_THRESHOLD = 0.6

COMMONLY_STOCKED_TERMS = (
    "paracetamol",
    "acetaminophen",
    "ibuprofen",
    "aspirin",
    "tylenol",
    "advil",
    "motrin",
    "benadryl",
    "claritin",
    "zyrtec",
    "sudafed",
    "pepto bismol",
    "tums",
    "rolaids",
    "cough drops",
    "throat lozenges",
)

MAJOR_CHAINS = (
    "cvs",
    "walgreens",
    "rite aid",
    "walmart",
    "target",
    "costco",
    "sam's club",
    "kroger",
    "safeway",
    "publix",
)

CATEGORY_ADJUSTMENTS = {
    "analgesic": 0.15,
    "nsaid": 0.15,
    "antihistamine": 0.15,
    "antibiotic": 0.1,
    "antidiabetic": 0.1,
    "cardiovascular": 0.05,
    "psychiatric": 0.05,
    "oncology": -0.1,
    "rare disease": -0.1,
}


class ProductCatalogLike(Protocol):
    async def find_by_exact_name(self, name: str) -> list[ProductRecord]: ...

    async def search_all_fields(self, term: str) -> list[ProductRecord]: ...

    async def find_by_generic_name(self, term: str) -> list[ProductRecord]: ...

    async def find_by_brand_alias(self, term: str) -> list[ProductRecord]: ...


@dataclass(frozen=True)
class AvailabilityRule:
    name: str
    adjust: Callable[[FacilityRecord, ProductRecord], float]


def _contains_any(value: str | None, terms: tuple[str, ...]) -> bool:
    if not value:
        return False
    lowered = value.lower()
    return any(term in lowered for term in terms)


def over_the_counter(_: FacilityRecord, product: ProductRecord) -> float:
    return 0.2 if not product.requires_prescription else 0.0


def commonly_stocked(_: FacilityRecord, product: ProductRecord) -> float:
    if _contains_any(product.name, COMMONLY_STOCKED_TERMS) or _contains_any(
        product.generic_name, COMMONLY_STOCKED_TERMS
    ):
        return 0.3
    return 0.0


def chain_reliability(facility: FacilityRecord, _: ProductRecord) -> float:
    if facility.chain_name is None:
        return 0.0
    if _contains_any(facility.chain_name, MAJOR_CHAINS):
        return 0.2
    if _contains_any(facility.chain_name, ("independent", "local")):
        return 0.1
    return 0.05


def service_breadth(facility: FacilityRecord, _: ProductRecord) -> float:
    return min(0.1, len(facility.services) * 0.02)


def open_24_hours(facility: FacilityRecord, _: ProductRecord) -> float:
    return 0.1 if facility.is_24_hours else 0.0


def consultation(facility: FacilityRecord, _: ProductRecord) -> float:
    return 0.05 if facility.has_consultation else 0.0


def category(_: FacilityRecord, product: ProductRecord) -> float:
    if not product.category:
        return 0.0
    return CATEGORY_ADJUSTMENTS.get(product.category.strip().lower(), 0.0)


AVAILABILITY_RULES: tuple[AvailabilityRule, ...] = (
    AvailabilityRule("over_the_counter", over_the_counter),
    AvailabilityRule("commonly_stocked", commonly_stocked),
    AvailabilityRule("chain_reliability", chain_reliability),
    AvailabilityRule("service_breadth", service_breadth),
    AvailabilityRule("open_24_hours", open_24_hours),
    AvailabilityRule("consultation", consultation),
    AvailabilityRule("category", category),
)


def score_adjustments(
    facility: FacilityRecord,
    product: ProductRecord,
    rules: tuple[AvailabilityRule, ...] = AVAILABILITY_RULES,
) -> dict[str, float]:
    return {rule.name: rule.adjust(facility, product) for rule in rules}


def calculate_confidence(
    facility: FacilityRecord,
    product: ProductRecord,
    rules: tuple[AvailabilityRule, ...] = AVAILABILITY_RULES,
) -> float:
    raw = BASE_CONFIDENCE + sum(score_adjustments(facility, product, rules).values())
    return max(0.0, min(1.0, round(raw, 4)))


def classify_stock_level(confidence: float) -> StockLevel:
    if confidence < 0.3:
        return StockLevel.OUT_OF_STOCK
    if confidence < 0.5:
        return StockLevel.LOW
    if confidence < 0.8:
        return StockLevel.MEDIUM
    return StockLevel.HIGH


def estimate_availability(
    facility: FacilityRecord,
    product: ProductRecord | None,
    medicine_name: str,
    computed_at: datetime,
) -> AvailabilityEstimate:
    if product is None:
        return AvailabilityEstimate(
            medicine_name=medicine_name,
            likely_available=False,
            confidence=UNRESOLVED_CONFIDENCE,
            stock_level=StockLevel.UNKNOWN,
            computed_at=computed_at,
        )
    confidence = calculate_confidence(facility, product)
    return AvailabilityEstimate(
        medicine_name=medicine_name,
        likely_available=confidence > LIKELY_AVAILABLE_THRESHOLD,
        confidence=confidence,
        stock_level=classify_stock_level(confidence),
        computed_at=computed_at,
    )


async def resolve_product(catalog: ProductCatalogLike, name: str) -> ProductRecord | None:
    """Exact name, then cross-field search, then generic name, then brand alias."""
    term = name.strip()
    if not term:
        return None
    lookups = (
        catalog.find_by_exact_name,
        catalog.search_all_fields,
        catalog.find_by_generic_name,
        catalog.find_by_brand_alias,
    )
    try:
        for lookup in lookups:
            matches = await lookup(term)
            if matches:
                return matches[0]
    except Exception:
        logger.exception("product_lookup_failed", extra={"component": "pharmacy_engine", "medicine_name": term})
    return None


async def estimate_many(
    facility: FacilityRecord,
    catalog: ProductCatalogLike,
    medicine_names: Iterable[str],
    computed_at: datetime,
) -> dict[str, AvailabilityEstimate]:
    """Estimate several medicines at one pharmacy, keyed by the trimmed name.

    Blank and repeated names are skipped. Each name resolves on its own, so an
    unknown medicine only makes its own entry UNKNOWN.
    """
    summary: dict[str, AvailabilityEstimate] = {}
    for raw_name in medicine_names:
        name = raw_name.strip()
        if not name or name in summary:
            continue
        product = await resolve_product(catalog, name)
        summary[name] = estimate_availability(facility, product, name, computed_at)
    return summary


class _HasAvailability(Protocol):
    @property
    def availability(self) -> Any: ...


H = TypeVar("H", bound=_HasAvailability)


def filter_by_min_confidence(results: Iterable[H], min_confidence: float) -> list[H]:
    """Drop results without an estimate or below ``min_confidence``."""
    return [
        item
        for item in results
        if item.availability is not None and item.availability.confidence >= min_confidence
    ]
