"""
Redis Cache Manager — Value Codec Tests
"""

from dataclasses import dataclass
from datetime import date

import pytest
from pydantic import BaseModel, ValidationError

from redis_cache_manager.cache.serialization import decode, encode, get_adapter
from redis_cache_manager.errors import CacheSerializationError


class Item(BaseModel):
    sku: str
    quantity: int


class Order(BaseModel):
    placed_on: date
    items: list[Item]


@dataclass
class Point:
    x: int
    y: int


def test_encode_produces_compact_json() -> None:
    assert encode({"a": 1, "b": [1, 2]}) == b'{"a":1,"b":[1,2]}'


def test_encode_model_and_dataclass() -> None:
    assert encode(Item(sku="A-1", quantity=2)) == b'{"sku":"A-1","quantity":2}'
    assert decode(encode(Point(1, 2)), Point) == Point(1, 2)


def test_decode_without_type_returns_plain_json() -> None:
    assert decode(b'{"sku":"A-1","quantity":2}') == {"sku": "A-1", "quantity": 2}


def test_decode_into_nested_types() -> None:
    order = Order(placed_on=date(2024, 1, 2), items=[Item(sku="A", quantity=1)])

    assert decode(encode(order), Order) == order


def test_decode_accepts_str() -> None:
    assert decode('"text"', str) == "text"


def test_decode_invalid_json_raises_validation_error() -> None:
    with pytest.raises(ValidationError):
        decode(b"{oops")


def test_encode_unserializable_raises() -> None:
    with pytest.raises(CacheSerializationError) as exc_info:
        encode(object())
    assert exc_info.value.details["value_type"] == "object"


def test_adapters_are_reused() -> None:
    assert get_adapter(list[Item]) is get_adapter(list[Item])
