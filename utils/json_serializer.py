"""
JSON Serialization Utilities
Handles serialization of analysis payloads and other non-JSON-serializable types
"""

from datetime import datetime, date
from enum import Enum
from typing import Any, Dict
import logging

from pydantic import BaseModel

logger = logging.getLogger(__name__)

def serialize_for_json(data: Any) -> Any:
    """
    Recursively serialize data structure to be JSON-compatible.
    Converts datetime objects to ISO format strings, enums to their values and
    pydantic models to their camelCase dictionaries.

    Args:
        data: Any data structure that may contain datetime objects

    Returns:
        JSON-serializable version of the data
    """
    if data is None:
        return None

    if isinstance(data, BaseModel):
        return serialize_for_json(data.model_dump(by_alias=True))

    if isinstance(data, Enum):
        return data.value

    if isinstance(data, datetime):
        return data.isoformat()

    if isinstance(data, date):
        return data.isoformat()

    if isinstance(data, dict):
        return {key: serialize_for_json(value) for key, value in data.items()}

    if isinstance(data, (list, tuple)):
        return [serialize_for_json(item) for item in data]

    if isinstance(data, (str, int, float, bool)):
        return data

    # For other types, try to convert to string
    try:
        return str(data)
    except Exception as e:
        logger.warning(f"Could not serialize object of type {type(data)}: {e}")
        return f"<non-serializable: {type(data).__name__}>"

def prepare_result_for_storage(result: Any) -> Dict[str, Any]:
    """
    Prepare an analysis result for storage in the `full_result` JSON column.

    Args:
        result: AnalysisResult model or an already-built dictionary

    Returns:
        Dictionary with camelCase keys and only JSON-native values
    """
    if not result:
        return {}

    return serialize_for_json(result)
