from pharmacy_engine.availability import (
    AVAILABILITY_RULES,
    AvailabilityRule,
    ProductCatalogLike,
    calculate_confidence,
    classify_stock_level,
    estimate_availability,
    estimate_many,
    filter_by_min_confidence,
    resolve_product,
)
from pharmacy_engine.filters import apply_filters, build_predicates
from pharmacy_engine.merge import merge_preferring
from pharmacy_engine.models import (
    AvailabilityEstimate,
    FacilityCriteria,
    FacilityRecord,
    ProductRecord,
    SortKey,
    StockLevel,
)
from pharmacy_engine.opening_hours import ScheduleParseError, is_open_at, is_open_now, parse_time
from pharmacy_engine.ranking import rank

__all__ = [
    "AVAILABILITY_RULES",
    "AvailabilityEstimate",
    "AvailabilityRule",
    "FacilityCriteria",
    "FacilityRecord",
    "ProductCatalogLike",
    "ProductRecord",
    "ScheduleParseError",
    "SortKey",
    "StockLevel",
    "apply_filters",
    "build_predicates",
    "calculate_confidence",
    "classify_stock_level",
    "estimate_availability",
    "estimate_many",
    "filter_by_min_confidence",
    "is_open_at",
    "is_open_now",
    "merge_preferring",
    "parse_time",
    "rank",
    "resolve_product",
]
