"""
Validation Module - Tolerant decoding of structured model output.
"""
from .structured_output import (
    decode_structured,
    decode_object,
    decode_array,
    require_structured,
    list_field,
)

__all__ = ["decode_structured", "decode_object", "decode_array", "require_structured", "list_field"]
