from dataclasses import dataclass

from pharmacy_engine.models import SortKey
from pharmacy_engine.ranking import rank


@dataclass(frozen=True)
class _Result:
    name: str | None
    distance_km: float
    rating: float | None = None
    is_open_now: bool = False


def test_open_first_puts_open_results_ahead_of_nearer_closed_ones() -> None:
    closed_near = _Result("closed", 1.0, is_open_now=False)
    open_far = _Result("open", 5.0, is_open_now=True)

    assert rank([closed_near, open_far], SortKey.OPEN_FIRST) == [open_far, closed_near]


def test_open_first_orders_each_partition_by_distance() -> None:
    results = [
        _Result("a", 3.0, is_open_now=True),
        _Result("b", 2.0, is_open_now=False),
        _Result("c", 1.0, is_open_now=True),
        _Result("d", 0.5, is_open_now=False),
    ]

    assert [item.name for item in rank(results, SortKey.OPEN_FIRST)] == ["c", "a", "d", "b"]


def test_distance_is_ascending_and_stable() -> None:
    results = [_Result("a", 2.0), _Result("b", 1.0), _Result("c", 2.0)]

    ranked = rank(results, SortKey.DISTANCE)

    assert [item.name for item in ranked] == ["b", "a", "c"]
    assert [item.distance_km for item in ranked] == sorted(item.distance_km for item in results)


def test_rating_is_descending_with_unrated_last() -> None:
    results = [_Result("a", 1.0, rating=None), _Result("b", 1.0, rating=3.5), _Result("c", 1.0, rating=4.8)]

    assert [item.name for item in rank(results, SortKey.RATING)] == ["c", "b", "a"]


def test_name_is_case_insensitive_with_blank_last() -> None:
    results = [_Result("walgreens", 1.0), _Result("", 1.0), _Result("CVS", 1.0), _Result(None, 1.0), _Result("Apex", 1.0)]

    assert [item.name for item in rank(results, SortKey.NAME)] == ["Apex", "CVS", "walgreens", "", None]


def test_legacy_sort_name_maps_to_open_first() -> None:
    assert SortKey("OPENING_HOURS") is SortKey.OPEN_FIRST
    assert SortKey("rating") is SortKey.RATING
