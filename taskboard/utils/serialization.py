"""Serialization utilities for converting between records and dictionaries.

This module provides helper functions for converting dataclasses to/from
dictionaries and JSON strings for key-value storage.
"""

from dataclasses import asdict, fields, is_dataclass
from enum import Enum
from typing import Any, Dict, Type, TypeVar
import json

T = TypeVar('T')


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def to_dict(obj: Any) -> Dict[str, Any]:
    """Convert a dataclass instance to a JSON-ready dictionary.

    Enum members are replaced by their values.
    """
    if is_dataclass(obj):
        return _plain(asdict(obj))
    elif hasattr(obj, 'to_dict'):
        return obj.to_dict()
    else:
        return obj


def from_dict(cls: Type[T], data: Dict[str, Any]) -> T:
    """Create a dataclass instance from a dictionary.

    Keys that are not fields of ``cls`` are dropped.
    """
    if is_dataclass(cls):
        field_names = {f.name for f in fields(cls)}
        filtered_data = {k: v for k, v in data.items() if k in field_names}
        return cls(**filtered_data)
    else:
        return cls(**data)


def to_json(obj: Any, indent: int = None) -> str:
    """Convert an object to a JSON string."""
    return json.dumps(to_dict(obj), indent=indent, default=str)


def from_json(cls: Type[T], json_str: str) -> T:
    """Create an object from a JSON string.

    Uses ``cls.from_dict`` when the class defines one.

    Raises:
        ValueError: If the payload is not valid JSON or not an object.
    """
    data = json.loads(json_str)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    if hasattr(cls, 'from_dict'):
        return cls.from_dict(data)
    return from_dict(cls, data)
