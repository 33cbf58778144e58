# pyright: standard

from typing import TypeVar

import msgspec

T = TypeVar("T")


def to_pretty_json(obj: object, indent: int = 2) -> str:
    """Encode an object to indented JSON text, as stored on disk."""
    return msgspec.json.format(msgspec.json.encode(obj), indent=indent).decode("utf-8")


def convert(obj: object, type_spec: type[T]) -> T:
    """Convert an object to the specified type using msgspec."""
    return msgspec.convert(obj, type_spec)
