"""
Teletext Utils Models - Data structures and type definitions.

Contains:
- Enums for control bits, page functions, packet codings and cycle types
- Enums for enhancement triplet classification
- The default colour look-up table
- Dataclasses for page links and for metadata gathered while loading
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, Optional


# =============================================================================
# Page header control bits
# =============================================================================


class ControlBit(IntEnum):
    """Page header control bits C4-C14, in the order they are stored"""

    C4_ERASE_PAGE = 0
    C5_NEWSFLASH = 1
    C6_SUBTITLE = 2
    C7_SUPPRESS_HEADER = 3
    C8_UPDATE = 4
    C9_INTERRUPTED_SEQUENCE = 5
    C10_INHIBIT_DISPLAY = 6
    C11_SERIAL_MAGAZINE = 7
    C12_NOS = 8
    C13_NOS = 9
    C14_NOS = 10


CONTROL_BIT_COUNT = 11


# =============================================================================
# Page function and coding (EN 300 706 9.4.2.1)
# =============================================================================


class PageFunction(IntEnum):
    """Page function as carried by X/28/0 and the TTI PF command"""

    UNKNOWN = -1
    LEVEL_ONE_PAGE = 0
    DATA_BROADCASTING = 1
    GLOBAL_POP = 2
    NORMAL_POP = 3
    GLOBAL_DRCS = 4
    NORMAL_DRCS = 5
    MOT = 6
    MIP = 7
    BASIC_TOP_TABLE = 8
    ADDITIONAL_INFORMATION_TABLE = 9
    MULTI_PAGE_TABLE = 10
    MULTI_PAGE_EXTENSION_TABLE = 11
    TRIGGER_MESSAGES = 12


class PacketCoding(IntEnum):
    """Coding of packets X/1 to X/25"""

    UNKNOWN = -1
    CODING_7BIT = 0
    CODING_8BIT = 1
    CODING_18BIT = 2
    CODING_4BIT = 3
    CODING_4BIT_THEN_7BIT = 4
    CODING_PER_PACKET = 5


class CycleType(IntEnum):
    """Whether a subpage cycle value counts page cycles or seconds"""

    CYCLES = 0
    SECONDS = 1


# =============================================================================
# Enhancement triplets
# =============================================================================


class TripletError(IntEnum):
    """Error found in a triplet while walking the enhancement list"""

    NO_ERROR = 0
    ACTIVE_POSITION_MOVED_UP = 1
    ACTIVE_POSITION_MOVED_LEFT = 2
    INVOKE_POINTER_INVALID = 3
    INVOKE_TYPE_MISMATCH = 4
    ORIGIN_MODIFIER_ALONE = 5


TRIPLET_ERROR_MESSAGES = {
    TripletError.NO_ERROR: "",
    TripletError.ACTIVE_POSITION_MOVED_UP: "Active Position can't move up",
    TripletError.ACTIVE_POSITION_MOVED_LEFT: "Active Position can't move left within row",
    TripletError.INVOKE_POINTER_INVALID: "Invocation not pointing to Object Definition",
    TripletError.INVOKE_TYPE_MISMATCH: "Invoked and Defined Object types don't match",
    TripletError.ORIGIN_MODIFIER_ALONE: "Origin Modifier not followed by Object Invocation",
}


class ObjectSource(IntEnum):
    """Source of an invoked object, bits 3-4 of the triplet address"""

    INVALID = 0
    LOCAL = 1
    POP = 2
    GPOP = 3


class ObjectType(IntEnum):
    """Object types, in mode order (0x11/0x15 active ... 0x13/0x17 passive)"""

    ACTIVE = 0
    ADAPTIVE = 1
    PASSIVE = 2


# =============================================================================
# Colour look-up table
# =============================================================================

# 12-bit RGB entries, CLUTs 0 and 1 (Level 3.5) then CLUTs 2 and 3 (Level 2.5).
# Entry 8 is transparent and cannot be redefined.
DEFAULT_CLUT = (
    0x000, 0xF00, 0x0F0, 0xFF0, 0x00F, 0xF0F, 0x0FF, 0xFFF,
    0x000, 0x700, 0x070, 0x770, 0x007, 0x707, 0x077, 0x777,
    0xF05, 0xF70, 0x0F7, 0xFFB, 0x0CA, 0x500, 0x652, 0xC77,
    0x333, 0xF77, 0x7F7, 0xFF7, 0x77F, 0xF7F, 0x7FF, 0xDDD,
)

CLUT_SIZE = 32
TRANSPARENT_CLUT_INDEX = 8


# =============================================================================
# Page links
# =============================================================================

# Page xFF with subcode 3F7F means "no specific page/subpage"
NULL_PAGE_NUMBER = 0x0FF
ANY_SUBPAGE = 0x3F7F


@dataclass
class FastTextLink:
    """X/27/0 link. The magazine (bits 8-10) is relative to the page's own."""

    page_number: int = NULL_PAGE_NUMBER
    subpage_number: int = ANY_SUBPAGE


@dataclass
class ComposeLink:
    """X/27/4-5 compositional link to a (G)POP or (G)DRCS page"""

    function: int = 0
    level_2p5: bool = False
    level_3p5: bool = False
    page_number: int = NULL_PAGE_NUMBER
    subpage_codes: int = 0x0000


# =============================================================================
# Loader metadata
# =============================================================================


@dataclass
class LoadMetadata:
    """
    Document level values found by a loader, applied once the subpages
    have been built. Per-subpage dicts are keyed by subpage index.
    """

    description: Optional[str] = None
    page_number: Optional[int] = None
    fastext_absolute: bool = False
    page_function: Optional[PageFunction] = None
    packet_coding: Optional[PacketCoding] = None
    regions: Dict[int, int] = field(default_factory=dict)
    cycle_values: Dict[int, int] = field(default_factory=dict)
    cycle_types: Dict[int, CycleType] = field(default_factory=dict)
