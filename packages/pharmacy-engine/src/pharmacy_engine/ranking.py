from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, Protocol, TypeVar

from pharmacy_engine.models import SortKey


class Rankable(Protocol):
    @property
    def name(self) -> str | None: ...

    @property
    def distance_km(self) -> float: ...

    @property
    def rating(self) -> float | None: ...

    @property
    def is_open_now(self) -> bool: ...


R = TypeVar("R", bound=Rankable)


def _by_distance(item: Rankable) -> tuple[Any, ...]:
    return (item.distance_km,)


def _by_rating(item: Rankable) -> tuple[Any, ...]:
    return (item.rating is None, -(item.rating or 0.0))


def _by_name(item: Rankable) -> tuple[Any, ...]:
    return (not item.name, (item.name or "").casefold())


def _open_first(item: Rankable) -> tuple[Any, ...]:
    return (not item.is_open_now, item.distance_km)


_SORT_KEYS: dict[SortKey, Callable[[Rankable], tuple[Any, ...]]] = {
    SortKey.DISTANCE: _by_distance,
    SortKey.RATING: _by_rating,
    SortKey.NAME: _by_name,
    SortKey.OPEN_FIRST: _open_first,
}


def rank(results: Iterable[R], sort_by: SortKey) -> list[R]:
    """Stable sort; ties keep their input order."""
    return sorted(results, key=_SORT_KEYS[sort_by])
