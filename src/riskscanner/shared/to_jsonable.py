from __future__ import annotations

from dataclasses import fields, is_dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path


def to_jsonable(obj):
    """Convert various Python objects to JSON-serializable format.

    Handles:
    - Basic types (str, int, float, bool, None)
    - Enums (by value), datetimes (ISO 8601), paths
    - Collections (list, tuple, set, dict)
    - Pydantic models
    - Dataclasses (declared fields)

    Args:
        obj: Any Python object

    Returns:
        A JSON-serializable version of the object
    """
    if obj is None or isinstance(obj, (str, int, float, bool)) and not isinstance(obj, Enum):
        return obj
    elif isinstance(obj, Enum):
        return to_jsonable(obj.value)
    elif isinstance(obj, datetime):
        return obj.isoformat()
    elif isinstance(obj, Path):
        return str(obj)
    elif isinstance(obj, (list, tuple, set, frozenset)):
        return [to_jsonable(item) for item in obj]
    elif isinstance(obj, dict):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    elif hasattr(obj, 'model_dump'):  # Pydantic v2
        return to_jsonable(obj.model_dump())
    elif is_dataclass(obj) and not isinstance(obj, type):
        # Shallow walk keeps nested enums/datetimes intact for the branches above
        return {f.name: to_jsonable(getattr(obj, f.name)) for f in fields(obj)}
    else:
        return str(obj)
