from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


def parse_json_list(raw: Any, *, field: str = "value") -> list:
    """Decode a JSON-array text column into a list.

    Accepts a native list (returned as-is), JSON text, or None. Anything that
    does not decode to a list yields ``[]`` and a warning; nothing raises.
    """
    if raw is None or raw == "":
        return []
    if isinstance(raw, (list, tuple)):
        return list(raw)
    if not isinstance(raw, str):
        logger.warning("json_list_unexpected_type field=%s type=%s", field, type(raw).__name__)
        return []
    try:
        value = json.loads(raw)
    except ValueError:
        logger.warning("json_list_parse_failed field=%s", field)
        return []
    if not isinstance(value, list):
        logger.warning("json_list_not_a_list field=%s", field)
        return []
    return value


def parse_amenities(raw: Any) -> list[str]:
    return [str(item) for item in parse_json_list(raw, field="amenities") if item is not None]


def dump_json_list(values: Any) -> str | None:
    if values is None:
        return None
    return json.dumps(list(values))
