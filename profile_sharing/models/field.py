"""
Field element value accepted by contract methods
"""
from __future__ import annotations

import secrets
from dataclasses import dataclass

from profile_sharing.core.errors import EncodingOverflow

# BN254 scalar field modulus
FIELD_MODULUS = 0x30644E72E131A029B85045B68181585D2833E84879B9709143E1F593F0000001
FIELD_HEX_WIDTH = 64


@dataclass(frozen=True, order=True)
class FieldValue:
    """
    Unsigned integer strictly below FIELD_MODULUS.

    INVARIANT: 0 <= value < FIELD_MODULUS, checked on construction.
    """
    value: int

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise TypeError(f"FieldValue requires an int, got {type(self.value).__name__}")
        if self.value < 0:
            raise EncodingOverflow(f"Field value must be non-negative, got {self.value}")
        if self.value >= FIELD_MODULUS:
            raise EncodingOverflow(
                f"Value 0x{self.value:x} is not below the field modulus",
                metadata={"bit_length": self.value.bit_length()}
            )

    @classmethod
    def from_hex(cls, text: str) -> FieldValue:
        """Parse a hex string, with or without 0x prefix"""
        raw = text[2:] if text[:2].lower() == "0x" else text
        if not raw:
            raise ValueError("Empty hex literal")
        return cls(int(raw, 16))

    @classmethod
    def random(cls) -> FieldValue:
        return cls(secrets.randbelow(FIELD_MODULUS))

    def to_hex(self) -> str:
        """0x-prefixed, zero-padded to the full field width"""
        return f"0x{self.value:0{FIELD_HEX_WIDTH}x}"

    def to_bytes(self) -> bytes:
        return self.value.to_bytes(FIELD_HEX_WIDTH // 2, "big")

    def __int__(self) -> int:
        return self.value

    def __str__(self) -> str:
        return self.to_hex()
