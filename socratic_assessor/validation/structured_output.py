"""
Structured Output - Best-effort decoding of JSON embedded in model output.

Models are asked for a single JSON object or array but frequently wrap it in
prose or markdown fences, or return something that is not JSON at all. Every
call site decodes through `decode_structured` (or `require_structured`, which
raises ParseError) and supplies its own default when decoding fails.
"""
import json
import re
from typing import Any, Dict, List, Optional, Tuple
import logging

from ..errors import ParseError

logger = logging.getLogger(__name__)

_FENCED_BLOCK = re.compile(r'```(?:json)?\s*([\s\S]*?)\s*```')

_EXPECTED_TYPES = {
    "object": (dict, '{'),
    "array": (list, '['),
}


def decode_structured(text: Optional[str], expect: str = "object") -> Tuple[Any, bool]:
    """
    Decode the first JSON value of the expected type found in text.

    Tries a fenced ```json block first, then scans for the first position
    from which a complete JSON value of the expected type can be decoded.

    Args:
        text: Raw model output
        expect: "object" or "array"

    Returns:
        (value, True) on success, (None, False) otherwise. Never raises.
    """
    if expect not in _EXPECTED_TYPES:
        raise ValueError(f"Unsupported structured type: {expect}")

    if not text or not isinstance(text, str):
        return None, False

    expected_type, opener = _EXPECTED_TYPES[expect]

    for match in _FENCED_BLOCK.finditer(text):
        try:
            value = json.loads(match.group(1))
        except json.JSONDecodeError:
            continue
        if isinstance(value, expected_type):
            return value, True

    decoder = json.JSONDecoder()
    position = text.find(opener)
    while position != -1:
        try:
            value, _ = decoder.raw_decode(text, position)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, expected_type):
            return value, True
        position = text.find(opener, position + 1)

    logger.debug(f"No decodable JSON {expect} in model output ({len(text)} chars)")
    return None, False


def decode_object(text: Optional[str]) -> Tuple[Any, bool]:
    """Decode the first JSON object in text."""
    return decode_structured(text, "object")


def decode_array(text: Optional[str]) -> Tuple[Any, bool]:
    """Decode the first JSON array in text."""
    return decode_structured(text, "array")


def require_structured(text: Optional[str], expect: str = "object", what: str = "model output") -> Any:
    """
    Like decode_structured, but raises ParseError instead of returning a flag.

    Callers catch ParseError and substitute their documented defaults.
    """
    value, ok = decode_structured(text, expect)
    if not ok:
        raise ParseError(f"Could not parse {what}")
    return value


def list_field(data: Dict[str, Any], key: str) -> List[str]:
    """Non-empty string items of a list field; any other shape yields []."""
    value = data.get(key)
    if not isinstance(value, list):
        if value is not None:
            logger.debug(f"Ignoring non-list '{key}' field: {type(value).__name__}")
        return []
    return [str(item) for item in value if item not in (None, "") and not isinstance(item, (dict, list))]
