"""
Redis Cache Manager — Value Codec

Values are stored as UTF-8 JSON. Encoding goes through pydantic-core so that
pydantic models, dataclasses, datetimes and plain containers all serialize the
same way; decoding validates the payload against the caller's target type with
a cached TypeAdapter.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from pydantic import TypeAdapter
from pydantic_core import PydanticSerializationError, to_json

from ..errors import CacheSerializationError

logger = logging.getLogger(__name__)


@lru_cache(maxsize=256)
def _cached_adapter(type_: Any) -> TypeAdapter[Any]:
    return TypeAdapter(type_)


def get_adapter(type_: Any) -> TypeAdapter[Any]:
    """Return a TypeAdapter for ``type_``, reusing one per hashable type."""
    try:
        return _cached_adapter(type_)
    except TypeError:
        # Unhashable type expressions cannot be cached
        return TypeAdapter(type_)


def encode(value: Any) -> bytes:
    """
    Serialize a value to JSON bytes.

    Raises:
        CacheSerializationError: If the value has no JSON representation
    """
    try:
        return to_json(value)
    except PydanticSerializationError as e:
        raise CacheSerializationError(
            f"Cannot serialize value of type {type(value).__name__}: {e}",
            details={"value_type": type(value).__name__},
        ) from e


def decode(data: str | bytes, type_: Any = None) -> Any:
    """
    Deserialize JSON into ``type_`` (plain JSON types when ``type_`` is None).

    Raises:
        pydantic.ValidationError: If the payload is not valid JSON or does not
            match ``type_``. Callers on the read path turn this into a miss.
    """
    return get_adapter(Any if type_ is None else type_).validate_json(data)
