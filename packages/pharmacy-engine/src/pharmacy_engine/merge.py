from __future__ import annotations

import dataclasses
from typing import Any, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    if isinstance(value, (tuple, list, dict, set)) and not value:
        return True
    return False


def merge_preferring(primary: T, fallback: T | None) -> T:
    """Fill blank fields of ``primary`` from ``fallback``.

    Works on dataclasses and pydantic models. A field is blank when it is
    None, an empty string or an empty collection. Booleans and numbers are
    never blank, so ``False`` and ``0`` from the primary source stick.
    """
    if fallback is None:
        return primary
    if isinstance(primary, BaseModel):
        updates = {
            name: getattr(fallback, name)
            for name in type(primary).model_fields
            if _is_blank(getattr(primary, name)) and not _is_blank(getattr(fallback, name, None))
        }
        return primary.model_copy(update=updates) if updates else primary
    if dataclasses.is_dataclass(primary) and not isinstance(primary, type):
        updates = {
            field.name: getattr(fallback, field.name)
            for field in dataclasses.fields(primary)
            if _is_blank(getattr(primary, field.name)) and not _is_blank(getattr(fallback, field.name, None))
        }
        return dataclasses.replace(primary, **updates) if updates else primary
    raise TypeError(f"cannot merge {type(primary).__name__}")
