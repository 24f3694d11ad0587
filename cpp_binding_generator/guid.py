"""
GUID attribute decoding and formatting
"""

import re
from typing import NamedTuple

from .constants import GUID_ATTRIBUTE
from .errors import MalformedAttributeError


_GUID_PATTERN = re.compile(r"[0-9A-Fa-f]{8}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{12}")

# (start, end) offsets of each Data4 byte in the canonical string
_DATA4_SLICES = [(19, 21), (21, 23), (24, 26), (26, 28), (28, 30), (30, 32), (32, 34), (34, 36)]


class Guid(NamedTuple):
    data1: int
    data2: int
    data3: int
    data4: tuple[int, ...]


def parse_guid(text: str) -> Guid:
    """Parse the canonical 8-4-4-4-12 hex form"""
    if not _GUID_PATTERN.match(text):
        raise MalformedAttributeError(f"Invalid GuidAttribute blob: '{text}'", attribute=GUID_ATTRIBUTE[1])
    return Guid(
        int(text[0:8], 16),
        int(text[9:13], 16),
        int(text[14:18], 16),
        tuple(int(text[start:end], 16) for start, end in _DATA4_SLICES),
    )


def format_guid(guid: Guid) -> str:
    """Format as four comma-separated hex groups"""
    data4 = ",".join(f"0x{byte:02X}" for byte in guid.data4)
    return f"0x{guid.data1:08X},0x{guid.data2:04X},0x{guid.data3:04X},{{ {data4} }}"


def guid_string_from_attribute(attribute, type_name: str | None = None) -> str:
    """Return the literal string carried by a GuidAttribute"""
    if len(attribute.args) != 1 or not isinstance(attribute.args[0], str):
        raise MalformedAttributeError(
            f"GuidAttribute expects one string argument, got {len(attribute.args)}",
            type_name=type_name,
            attribute=GUID_ATTRIBUTE[1],
        )
    return attribute.args[0]
