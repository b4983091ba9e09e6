"""
Profile record as returned by get_profile
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Sequence, Union

from profile_sharing.models.field import FieldValue

PROFILE_FIELDS = ("name", "bio", "age", "nonce")


def to_field(raw: Union[FieldValue, int, str]) -> FieldValue:
    """Coerce a simulate() return value (hex string, decimal string or int) into a FieldValue"""
    if isinstance(raw, FieldValue):
        return raw
    if isinstance(raw, bool):
        raise TypeError("Boolean is not a field value")
    if isinstance(raw, int):
        return FieldValue(raw)
    if isinstance(raw, str):
        text = raw.strip()
        if text[:2].lower() == "0x":
            return FieldValue.from_hex(text)
        return FieldValue(int(text, 10))
    raise TypeError(f"Cannot interpret {type(raw).__name__} as a field value")


@dataclass(frozen=True)
class ProfileRecord:
    """Fields are stored as the contract sees them; name and bio are encoded strings"""
    name: FieldValue
    bio: FieldValue
    age: int
    nonce: FieldValue

    @classmethod
    def from_result(cls, raw: Union[Mapping[str, Any], Sequence[Any]]) -> ProfileRecord:
        """
        Build a record from a simulate() result.

        Accepts a struct-shaped mapping or a positional sequence in
        (name, bio, age, nonce) order.
        """
        if isinstance(raw, Mapping):
            missing = [f for f in PROFILE_FIELDS if f not in raw]
            if missing:
                raise ValueError(f"Profile result is missing fields: {', '.join(missing)}")
            values = [raw[f] for f in PROFILE_FIELDS]
        elif isinstance(raw, Sequence) and not isinstance(raw, (str, bytes)):
            if len(raw) != len(PROFILE_FIELDS):
                raise ValueError(f"Profile result must have {len(PROFILE_FIELDS)} members, got {len(raw)}")
            values = list(raw)
        else:
            raise ValueError(f"Unexpected profile result type: {type(raw).__name__}")

        name, bio, age, nonce = values
        return cls(
            name=to_field(name),
            bio=to_field(bio),
            age=int(to_field(age)),
            nonce=to_field(nonce),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name.to_hex(),
            "bio": self.bio.to_hex(),
            "age": self.age,
            "nonce": self.nonce.to_hex(),
        }
