"""
Shared helpers: key hashing, field values and the data used to synthesize them
"""

import datetime
import random
from dataclasses import dataclass
from enum import Enum
from typing import Union

FNV_OFFSET_BASIS_64 = 0xCBF29CE484222325
FNV_PRIME_64 = 1099511628211
_MASK_64 = 0xFFFFFFFFFFFFFFFF

BASE_DATE = datetime.date(2012, 2, 1)

# Printable ASCII, space through '~'
_PRINTABLE_CODES = range(32, 127)

FIRST_NAMES = (
    "James", "Mary", "John", "Patricia", "Robert", "Jennifer", "Michael", "Linda",
    "William", "Elizabeth", "David", "Barbara", "Richard", "Susan", "Joseph", "Jessica",
    "Thomas", "Sarah", "Charles", "Karen",
)
LAST_NAMES = (
    "Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis",
    "Rodriguez", "Martinez", "Hernandez", "Lopez", "Gonzalez", "Wilson", "Anderson",
    "Thomas", "Taylor", "Moore", "Jackson", "Martin", "Lee", "Perez", "Thompson",
    "White", "Harris",
)

EXTENDED_FIELDS = ("intkey", "stringkey", "datekey")


class InvariantViolation(Exception):
    """A call-time defect, such as asking for a value of a field that does not exist."""
    pass


def get_key_prefix():
    return "user"


def fnv_hash64(value: int) -> int:
    """
    64-bit FNV-1a over the eight little-endian bytes of value.
    The result is the absolute value of the signed 64-bit hash.
    """
    hashval = FNV_OFFSET_BASIS_64
    for _ in range(8):
        octet = value & 0xFF
        value >>= 8
        hashval ^= octet
        hashval = (hashval * FNV_PRIME_64) & _MASK_64
    if hashval >= 1 << 63:
        hashval -= 1 << 64
    return abs(hashval)


def derive_rng(seed_source: random.Random) -> random.Random:
    """Child generator seeded from seed_source, so one run seed reproduces every stream."""
    return random.Random(seed_source.getrandbits(64))


def random_payload(length: int, rng: random.Random) -> bytes:
    return bytes(rng.choices(_PRINTABLE_CODES, k=length))


def random_name(seed: int) -> str:
    """Deterministic pseudo-name; distinct for every seed below len(FIRST_NAMES) * len(LAST_NAMES)."""
    first = FIRST_NAMES[seed % len(FIRST_NAMES)]
    last = LAST_NAMES[(seed // len(FIRST_NAMES)) % len(LAST_NAMES)]
    return f"{first} {last}"


def days_offset_date(days: int, num_distinct: int) -> datetime.date:
    """
    Map a day offset in [1, num_distinct] to a date around BASE_DATE.
    Offsets in the lower half land before the base date, the rest after it.
    """
    if days < num_distinct // 2:
        days -= num_distinct
    return BASE_DATE + datetime.timedelta(days=days)


class FieldKind(Enum):
    BYTES = "bytes"
    INTEGER = "integer"
    TEXT = "text"
    DATE = "date"


@dataclass(frozen=True)
class FieldValue:
    """A record field: a byte payload or one of the typed scalars used by secondary lookups."""
    kind: FieldKind
    value: Union[bytes, int, str, datetime.date]

    @classmethod
    def of_bytes(cls, data: bytes) -> "FieldValue":
        return cls(FieldKind.BYTES, data)

    @classmethod
    def of_int(cls, number: int) -> "FieldValue":
        return cls(FieldKind.INTEGER, number)

    @classmethod
    def of_text(cls, text: str) -> "FieldValue":
        return cls(FieldKind.TEXT, text)

    @classmethod
    def of_date(cls, day: datetime.date) -> "FieldValue":
        return cls(FieldKind.DATE, day)

    def __len__(self) -> int:
        if self.kind is FieldKind.BYTES or self.kind is FieldKind.TEXT:
            return len(self.value)
        return 1

