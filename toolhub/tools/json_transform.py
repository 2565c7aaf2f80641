import json
import locale
import re
from enum import Enum
from functools import cmp_to_key
from typing import Any, Dict, List, Optional

from pydantic import Field

from toolhub.tools.base import BuiltinTool, ToolParams

_INDEXED_SEGMENT = re.compile(r"^(.+)\[(\d+)\]$")


class TransformOperation(str, Enum):
    QUERY = "query"
    PICK = "pick"
    FLATTEN = "flatten"
    SORT = "sort"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class JsonTransformParams(ToolParams):
    data: str = Field(..., description="JSON string to transform")
    operation: TransformOperation = Field(
        ...,
        description=(
            "Operation: 'query' = get value by dot-path, 'pick' = select specific keys, "
            "'flatten' = flatten nested object, 'sort' = sort array"
        ),
    )
    path: Optional[str] = Field(
        None,
        description="Dot-notation path for query operation (e.g. 'user.address.city', 'items[0].name')",
    )
    keys: Optional[List[str]] = Field(None, description="Array of key names for pick operation")
    sort_by: Optional[str] = Field(
        None,
        description="Dot-path field to sort by (for sort operation on arrays of objects)",
    )
    order: SortOrder = Field(SortOrder.ASC, description="Sort order: 'asc' or 'desc'")


def _child(current: Any, key: str) -> Any:
    if isinstance(current, dict):
        return current.get(key)
    if isinstance(current, list) and key.isdigit():
        index = int(key)
        return current[index] if index < len(current) else None
    return None


def get_by_path(data: Any, path: str) -> Any:
    """Look up a dot/bracket path such as ``items[0].name``; None when absent."""
    current = data
    for part in path.split("."):
        if not isinstance(current, (dict, list)):
            return None
        match = _INDEXED_SEGMENT.match(part)
        if match:
            current = _child(current, match.group(1))
            if not isinstance(current, list):
                return None
            current = _child(current, match.group(2))
        else:
            current = _child(current, part)
    return current


def pick_keys(data: Dict[str, Any], keys: List[str]) -> Dict[str, Any]:
    return {key: data[key] for key in keys if key in data}


def flatten_object(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for key, value in data.items():
        new_key = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            result.update(flatten_object(value, new_key))
        else:
            result[new_key] = value
    return result


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if _is_number(value):
        return str(int(value)) if float(value).is_integer() else str(value)
    return json.dumps(value)


def sort_items(items: List[Any], sort_by: Optional[str] = None, order: SortOrder = SortOrder.ASC) -> List[Any]:
    """Stable sort; numbers compare numerically, everything else as locale text."""
    direction = -1 if order == SortOrder.DESC else 1

    def _key_value(item):
        return get_by_path(item, sort_by) if sort_by else item

    def _compare(a, b):
        val_a, val_b = _key_value(a), _key_value(b)
        if _is_number(val_a) and _is_number(val_b):
            outcome = (val_a > val_b) - (val_a < val_b)
        else:
            outcome = locale.strcoll(_as_text(val_a), _as_text(val_b))
        return direction * outcome

    return sorted(items, key=cmp_to_key(_compare))


async def transform_json(params: JsonTransformParams, context) -> dict:
    try:
        parsed = json.loads(params.data)
    except ValueError:
        return {"success": False, "error": "Invalid JSON data"}

    if params.operation == TransformOperation.QUERY:
        if not params.path:
            return {"success": False, "error": "'path' is required for query operation"}
        return {"success": True, "path": params.path, "result": get_by_path(parsed, params.path)}

    if params.operation == TransformOperation.PICK:
        if params.keys is None:
            return {"success": False, "error": "'keys' array is required for pick operation"}
        if not isinstance(parsed, dict):
            return {"success": False, "error": "Pick operation requires a JSON object (not array)"}
        return {"success": True, "result": pick_keys(parsed, params.keys)}

    if params.operation == TransformOperation.FLATTEN:
        if not isinstance(parsed, dict):
            return {"success": False, "error": "Flatten operation requires a JSON object (not array)"}
        return {"success": True, "result": flatten_object(parsed)}

    if not isinstance(parsed, list):
        return {"success": False, "error": "Sort operation requires a JSON array"}
    return {"success": True, "result": sort_items(parsed, params.sort_by, params.order)}


json_transform_tool = BuiltinTool(
    name="json_transform",
    display_name="JSON Transform",
    description=(
        "Query, pick, flatten, or sort JSON data. Use this to extract specific fields, "
        "restructure data, or sort arrays from JSON input."
    ),
    parameters=JsonTransformParams,
    handler=transform_json,
)
