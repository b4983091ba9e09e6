"""
Conversion between display strings and field values
"""
from typing import Union

from profile_sharing.core.errors import EncodingOverflow
from profile_sharing.models.field import FIELD_MODULUS, FieldValue

# Longest UTF-8 payload that always fits below the modulus
MAX_SAFE_BYTES = (FIELD_MODULUS.bit_length() - 1) // 8


def encode(text: str) -> FieldValue:
    """
    Encode a string as a field element.

    The UTF-8 bytes are read as one big-endian hex number. An empty string
    becomes the single byte 0x00, so the hex literal is never empty.

    Raises:
        EncodingOverflow: the encoded integer is not below the field modulus
    """
    if not isinstance(text, str):
        raise TypeError(f"encode() expects str, got {type(text).__name__}")
    hex_text = text.encode("utf-8").hex() or "00"
    try:
        return FieldValue(int(hex_text, 16))
    except EncodingOverflow as e:
        e.metadata.update({"byte_length": len(hex_text) // 2, "max_safe_bytes": MAX_SAFE_BYTES})
        raise


def decode(field: FieldValue) -> str:
    """
    Best-effort inverse of encode() for display.

    Lossy: leading NUL bytes do not survive, and both "" and "\\x00" encode
    to zero, which decodes to "". Bytes that are not valid UTF-8 are replaced.
    """
    if field.value == 0:
        return ""
    raw = field.value.to_bytes((field.value.bit_length() + 7) // 8, "big")
    return raw.decode("utf-8", errors="replace")


def as_field(value: Union[str, FieldValue]) -> FieldValue:
    """Encode display strings; pass already-encoded values through"""
    if isinstance(value, FieldValue):
        return value
    return encode(value)


def random_field() -> FieldValue:
    """Uniformly random field element for nonces and deployment salts"""
    return FieldValue.random()
