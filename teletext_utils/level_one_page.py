"""
LevelOnePage - a Level 1 to 3.5 displayable teletext page.

Structured access to the packets of a normal page:

- X/0 to X/24: 25x40 character grid
- X/26: enhancement triplets (see x26_triplets)
- X/27/0: six FastText (FLOF) links
- X/27/4 and X/27/5: eight compositional links
- X/28/0 and X/28/4: character sets, side panels, default colours and CLUT

Any other packet (X/25, X/27/1-3, X/28/1 etc.) is kept as raw bytes by
PacketPage. Packets produced here are 40 bytes of 6-bit (or 4-bit) values
with byte 0 left as 0; the codecs add designation codes and line coding.

References:
    - ETSI EN 300 706 V1.2.1 - Enhanced Teletext specification, 9.4 and 9.6
"""

import logging
from typing import List, Optional

from teletext_utils.models import (
    CLUT_SIZE,
    DEFAULT_CLUT,
    TRANSPARENT_CLUT_INDEX,
    ComposeLink,
    ControlBit,
    CycleType,
    FastTextLink,
    PacketCoding,
    PageFunction,
)
from teletext_utils.packet_page import (
    DESIGNATION_CODES,
    DESIGNATION_FAMILIES,
    DISPLAY_PACKETS,
    PacketPage,
    normalise_packet,
)
from teletext_utils.x26_triplets import X26TripletList

logger = logging.getLogger(__name__)

ROWS = 25
COLUMNS = 40

FASTTEXT_LINKS = 6
COMPOSE_LINKS = 8

# Second character set 0xF means "no second G0 set", its NOS is then 7
NO_SECOND_CHAR_SET = 0xF
NO_SECOND_NOS = 0x7

LEVEL_1_5_MODES = frozenset([0x04, 0x07, 0x1F, 0x22, 0x2F] + list(range(0x30, 0x40)))
LEVEL_2_5_MODES = frozenset(
    [
        0x00,  # Full screen colour
        0x01,  # Full row colour
        0x10,  # Origin modifier
        0x11, 0x12, 0x13,  # Invoke object
        0x15, 0x16, 0x17,  # Define object
        0x18,  # DRCS mode
        0x20,  # Foreground colour
        0x21,  # G1 character
        0x23,  # Background colour
        0x27,  # Flash functions
        0x28,  # G0 and G2 charset designation
        0x29,  # G0 character at Level 2.5
        0x2B,  # G3 character at Level 2.5
        0x2C,  # Display attributes
        0x2D,  # DRCS character
    ]
)


def _default_compose_link(index: int) -> ComposeLink:
    # The first four links are fixed to functions GPOP, POP, GDRCS, DRCS
    return ComposeLink(function=index if index < 4 else 0, level_2p5=False, level_3p5=index >= 4)


class LevelOnePage(PacketPage):
    """A displayable page with its enhancement data."""

    def __init__(self):
        super().__init__()
        self._grid: List[bytearray] = [bytearray(b" " * COLUMNS) for _ in range(ROWS)]
        self.enhancements = X26TripletList()

        self.fast_text_links: List[FastTextLink] = [FastTextLink() for _ in range(FASTTEXT_LINKS)]
        self.compose_links: List[ComposeLink] = [_default_compose_link(i) for i in range(COMPOSE_LINKS)]

        self.cycle_value = 20
        self.cycle_type = CycleType.SECONDS

        self.default_char_set = 0
        self._default_nos = 0
        self._second_char_set = NO_SECOND_CHAR_SET
        self.second_nos = NO_SECOND_NOS

        self.default_screen_colour = 0
        self.default_row_colour = 0
        self.black_background_subst = False
        self.colour_table_remap = 0

        self.left_side_panel_displayed = False
        self.right_side_panel_displayed = False
        self.side_panel_status_l25 = True
        self.side_panel_columns = 0

        self._clut: List[int] = list(DEFAULT_CLUT)

    @classmethod
    def from_packet_page(cls, other: PacketPage) -> "LevelOnePage":
        """
        Build a LevelOnePage from raw packets, as produced by the loaders.

        Packets are replayed first and the control bits last, so the NOS
        bits from the page header win over the one in X/28/0.
        """
        page = cls()
        for y in range(DISPLAY_PACKETS):
            if other.packet_exists(y):
                page.set_packet(y, other.packet(y))
        for family in DESIGNATION_FAMILIES:
            for d in range(DESIGNATION_CODES):
                if other.packet_exists(family, d):
                    page.set_packet(family, other.packet(family, d), d)
        for bit in ControlBit:
            page.set_control_bit(bit, other.control_bit(bit))
        return page

    def page_function(self) -> PageFunction:
        return PageFunction.LEVEL_ONE_PAGE

    def packet_coding(self) -> PacketCoding:
        return PacketCoding.CODING_7BIT

    # --------------------------------------------------------------------- #
    # Simple fields with side effects
    # --------------------------------------------------------------------- #
    @property
    def default_nos(self) -> int:
        return self._default_nos

    @default_nos.setter
    def default_nos(self, value: int) -> None:
        self._default_nos = value & 0x07

    @property
    def second_char_set(self) -> int:
        return self._second_char_set

    @second_char_set.setter
    def second_char_set(self, value: int) -> None:
        self._second_char_set = value
        if value == NO_SECOND_CHAR_SET:
            self.second_nos = NO_SECOND_NOS

    def character(self, row: int, column: int) -> int:
        return self._grid[row][column]

    def set_character(self, row: int, column: int, character: int) -> None:
        self._grid[row][column] = character & 0xFF
        self._notify_packet(row, None)

    def set_enhancements(self, enhancements: X26TripletList) -> None:
        """Swap in an edited list, e.g. the result of insert_triplets()."""
        self.enhancements = enhancements
        self._notify_enhancements()

    # --------------------------------------------------------------------- #
    # Colour look-up table
    # --------------------------------------------------------------------- #
    def clut(self, index: int, render_level: int = 3) -> int:
        """
        Colour of a CLUT entry as seen by a decoder of a given level.

        Level 3.5 decoders see every redefinition, Level 2.5 only CLUTs 2
        and 3, lower levels only the default palette.
        """
        if render_level == 2:
            return self._clut[index] if index >= 16 else DEFAULT_CLUT[index]
        return self._clut[index] if render_level == 3 else DEFAULT_CLUT[index]

    def set_clut(self, index: int, colour: int) -> None:
        if index == TRANSPARENT_CLUT_INDEX:
            return
        self._clut[index] = colour & 0xFFF

    def is_palette_default(self, first: int = 0, last: int = CLUT_SIZE - 1) -> bool:
        return all(self._clut[i] == DEFAULT_CLUT[i] for i in range(first, last + 1))

    def _x28_flags_set(self) -> bool:
        return bool(
            self.left_side_panel_displayed
            or self.right_side_panel_displayed
            or self.default_screen_colour != 0
            or self.default_row_colour != 0
            or self.black_background_subst
            or self.colour_table_remap != 0
            or self.default_char_set != 0
            or self.second_char_set != NO_SECOND_CHAR_SET
        )

    # --------------------------------------------------------------------- #
    # Control bits C12-C14 are the default NOS
    # --------------------------------------------------------------------- #
    def control_bit(self, bit: int) -> bool:
        if bit == ControlBit.C12_NOS:
            return bool(self._default_nos & 0x01)
        if bit == ControlBit.C13_NOS:
            return bool(self._default_nos & 0x02)
        if bit == ControlBit.C14_NOS:
            return bool(self._default_nos & 0x04)
        return super().control_bit(bit)

    def set_control_bit(self, bit: int, active: bool) -> bool:
        nos_bits = {ControlBit.C12_NOS: 0x01, ControlBit.C13_NOS: 0x02, ControlBit.C14_NOS: 0x04}
        if bit in nos_bits:
            mask = nos_bits[ControlBit(bit)]
            self._default_nos &= ~mask & 0x07
            if active:
                self._default_nos |= mask
            self._notify_control_bit(ControlBit(bit))
            return True
        return super().set_control_bit(bit, active)

    # --------------------------------------------------------------------- #
    # Packets
    # --------------------------------------------------------------------- #
    def packet(self, packet_number: int, designation_code: Optional[int] = None) -> bytes:
        if 0 <= packet_number < ROWS:
            return bytes(self._grid[packet_number])

        if packet_number == 26 and designation_code is not None:
            if not self.enhancements.packet_needed(designation_code):
                return bytes(40)
            return self.enhancements.to_packet(designation_code)

        if packet_number == 27 and designation_code == 0:
            return self._fast_text_packet()

        if packet_number == 27 and designation_code in (4, 5):
            return self._compose_link_packet(designation_code)

        if packet_number == 28 and designation_code in (0, 4):
            return self._x28_packet(designation_code)

        return super().packet(packet_number, designation_code)

    def set_packet(
        self, packet_number: int, payload: bytes, designation_code: Optional[int] = None
    ) -> bool:
        if 0 <= packet_number < ROWS:
            self._grid[packet_number][:] = normalise_packet(payload)
            self._notify_packet(packet_number, None)
            return True

        if packet_number == 26 and designation_code is not None:
            self.enhancements.load_packet(designation_code, normalise_packet(payload))
            self._notify_enhancements()
            return True

        if packet_number == 27 and designation_code == 0:
            self._set_fast_text_packet(normalise_packet(payload))
        elif packet_number == 27 and designation_code in (4, 5):
            self._set_compose_link_packet(designation_code, normalise_packet(payload))
        elif packet_number == 28 and designation_code in (0, 4):
            self._set_x28_packet(designation_code, normalise_packet(payload))
        else:
            logger.debug(f"LevelOnePage storing raw packet X/{packet_number}/{designation_code}")
            return super().set_packet(packet_number, payload, designation_code)

        self._notify_packet(packet_number, designation_code)
        return True

    def packet_exists(self, packet_number: int, designation_code: Optional[int] = None) -> bool:
        if 0 <= packet_number < ROWS:
            return any(c != 0x20 for c in self._grid[packet_number])

        if packet_number == 26 and designation_code is not None:
            return self.enhancements.packet_needed(designation_code)

        if packet_number == 27 and designation_code == 0:
            return any((link.page_number & 0xFF) != 0xFF for link in self.fast_text_links)

        if packet_number == 27 and designation_code in (4, 5):
            links = self.compose_links[0:6] if designation_code == 4 else self.compose_links[6:8]
            return any((link.page_number & 0xFF) != 0xFF for link in links)

        if packet_number == 28 and designation_code == 0:
            return self._x28_flags_set() or not self.is_palette_default(16, 31)

        if packet_number == 28 and designation_code == 4:
            return not self.is_palette_default(0, 15)

        return super().packet_exists(packet_number, designation_code)

    def clear_packet(self, packet_number: int, designation_code: Optional[int] = None) -> bool:
        if 0 <= packet_number < ROWS:
            self._grid[packet_number][:] = b" " * COLUMNS
            self._notify_packet(packet_number, None)
            return True
        return super().clear_packet(packet_number, designation_code)

    def is_empty(self) -> bool:
        if not self.enhancements.is_empty():
            return False
        if not self.is_palette_default():
            return False
        return all(c == 0x20 for row in self._grid for c in row)

    # ------------------------------------------------------------------ #
    # X/27/0 FastText links
    # ------------------------------------------------------------------ #
    def _fast_text_packet(self) -> bytes:
        result = bytearray(40)
        for i, link in enumerate(self.fast_text_links):
            page, sub = link.page_number, link.subpage_number
            result[i * 6 + 1] = page & 0x00F
            result[i * 6 + 2] = (page & 0x0F0) >> 4
            result[i * 6 + 3] = sub & 0x000F
            result[i * 6 + 4] = ((sub & 0x0070) >> 4) | ((page & 0x100) >> 5)
            result[i * 6 + 5] = (sub & 0x0F00) >> 8
            result[i * 6 + 6] = ((sub & 0x3000) >> 12) | ((page & 0x600) >> 7)
        result[37] = 0xF
        result[38] = result[39] = 0
        return bytes(result)

    def _set_fast_text_packet(self, pkt: bytes) -> None:
        for i, link in enumerate(self.fast_text_links):
            relative_magazine = (pkt[i * 6 + 4] >> 3) | ((pkt[i * 6 + 6] & 0x0C) >> 1)
            link.page_number = (relative_magazine << 8) | (pkt[i * 6 + 2] << 4) | pkt[i * 6 + 1]
            link.subpage_number = (
                pkt[i * 6 + 3]
                | ((pkt[i * 6 + 4] & 0x07) << 4)
                | (pkt[i * 6 + 5] << 8)
                | ((pkt[i * 6 + 6] & 0x03) << 12)
            )
            if link.subpage_number != 0x3F7F:
                logger.debug(
                    f"FastText link {i} has custom subpage number {link.subpage_number:x}, "
                    "it will NOT be saved in TTI files"
                )

    def set_fast_text_link_page_number(self, link_number: int, page_number: int) -> None:
        self.fast_text_links[link_number].page_number = page_number
        self._notify_packet(27, 0)

    # ------------------------------------------------------------------ #
    # X/27/4 and X/27/5 compositional links
    # ------------------------------------------------------------------ #
    def _compose_link_packet(self, designation_code: int) -> bytes:
        result = bytearray(40)
        first = 0 if designation_code == 4 else 6
        count = 6 if designation_code == 4 else 2
        for i in range(count):
            link = self.compose_links[first + i]
            result[i * 6 + 1] = (int(link.level_3p5) << 3) | (int(link.level_2p5) << 2) | (link.function & 0x03)
            result[i * 6 + 2] = ((link.page_number & 0x100) >> 3) | 0x10 | (link.page_number & 0x00F)
            result[i * 6 + 3] = ((link.page_number & 0x0F0) >> 2) | ((link.page_number & 0x600) >> 9)
            result[i * 6 + 4] = (link.subpage_codes & 0x000F) << 2
            result[i * 6 + 5] = (link.subpage_codes & 0x03F0) >> 4
            result[i * 6 + 6] = (link.subpage_codes & 0xFC00) >> 10
        return bytes(result)

    def _set_compose_link_packet(self, designation_code: int, pkt: bytes) -> None:
        first = 0 if designation_code == 4 else 6
        count = 6 if designation_code == 4 else 2
        for i in range(count):
            link = self.compose_links[first + i]
            function = pkt[i * 6 + 1] & 0x03
            if first + i >= 4:
                link.function = function
            elif function != i:
                logger.debug(
                    f"X/27/4 link {first + i} is fixed at function {i}, ignoring function {function}"
                )
            link.level_2p5 = bool(pkt[i * 6 + 1] & 0x04)
            link.level_3p5 = bool(pkt[i * 6 + 1] & 0x08)
            link.page_number = (
                ((pkt[i * 6 + 3] & 0x03) << 9)
                | ((pkt[i * 6 + 2] & 0x20) << 3)
                | ((pkt[i * 6 + 3] & 0x3C) << 2)
                | (pkt[i * 6 + 2] & 0x0F)
            )
            link.subpage_codes = (pkt[i * 6 + 4] >> 2) | (pkt[i * 6 + 5] << 4) | (pkt[i * 6 + 6] << 10)

    def set_compose_link_page_number(self, link_number: int, page_number: int) -> None:
        self.compose_links[link_number].page_number = page_number
        self._notify_packet(27, 4 if link_number < 6 else 5)

    # ------------------------------------------------------------------ #
    # X/28/0 and X/28/4 page enhancements
    # ------------------------------------------------------------------ #
    def _x28_packet(self, designation_code: int) -> bytes:
        offset = 16 if designation_code == 0 else 0
        clut = self._clut
        result = bytearray(40)

        result[1] = 0x00
        result[2] = ((self.default_char_set & 0x3) << 4) | (self.default_nos << 1)
        result[3] = ((self.second_char_set & 0x1) << 5) | (self.second_nos << 2) | (self.default_char_set >> 2)
        result[4] = (
            (int(self.side_panel_status_l25) << 5)
            | (int(self.right_side_panel_displayed) << 4)
            | (int(self.left_side_panel_displayed) << 3)
            | (self.second_char_set >> 1)
        )
        result[5] = self.side_panel_columns | ((clut[offset] & 0x300) >> 4)

        for c in range(16):
            colour = clut[offset + c]
            result[c * 2 + 6] = ((colour & 0x0F0) >> 2) | ((colour & 0xF00) >> 10)
            # The low red bits of the next entry share this byte
            next_red = (clut[offset + c + 1] & 0x300) >> 4 if c < 15 else 0
            result[c * 2 + 7] = next_red | (colour & 0x00F)

        result[37] = ((self.default_screen_colour & 0x03) << 4) | (clut[offset + 15] & 0x00F)
        result[38] = ((self.default_row_colour & 0x07) << 3) | (self.default_screen_colour >> 2)
        result[39] = (
            (self.colour_table_remap << 3)
            | (int(self.black_background_subst) << 2)
            | (self.default_row_colour >> 3)
        )

        return bytes(b & 0x3F for b in result)

    def _set_x28_packet(self, designation_code: int, pkt: bytes) -> None:
        offset = 16 if designation_code == 0 else 0

        self.default_char_set = ((pkt[2] >> 4) & 0x3) | ((pkt[3] << 2) & 0xC)
        self.default_nos = (pkt[2] >> 1) & 0x7
        self._second_char_set = ((pkt[3] >> 5) & 0x1) | ((pkt[4] << 1) & 0xE)
        self.second_nos = (pkt[3] >> 2) & 0x7

        self.left_side_panel_displayed = bool((pkt[4] >> 3) & 1)
        self.right_side_panel_displayed = bool((pkt[4] >> 4) & 1)
        self.side_panel_status_l25 = bool((pkt[4] >> 5) & 1)
        self.side_panel_columns = pkt[5] & 0xF

        for c in range(16):
            self._clut[offset + c] = (
                ((pkt[c * 2 + 5] << 4) & 0x300)
                | ((pkt[c * 2 + 6] << 10) & 0xC00)
                | ((pkt[c * 2 + 6] << 2) & 0x0F0)
                | (pkt[c * 2 + 7] & 0x00F)
            )

        self.default_screen_colour = (pkt[37] >> 4) | ((pkt[38] << 2) & 0x1C)
        self.default_row_colour = (pkt[38] >> 3) | ((pkt[39] << 3) & 0x18)
        self.black_background_subst = bool((pkt[39] >> 2) & 1)
        self.colour_table_remap = (pkt[39] >> 3) & 7

    # ------------------------------------------------------------------ #
    # Level classification
    # ------------------------------------------------------------------ #
    def level_required(self) -> int:
        """
        Lowest presentation level that can show everything on this page.

        Returns:
            0 (Level 1), 1 (Level 1.5), 2 (Level 2.5) or 3 (Level 3.5)
        """
        # X/28/4 present i.e. CLUTs 0 or 1 redefined
        if not self.is_palette_default(0, 15):
            return 3

        level_seen = 2 if (not self.is_palette_default(16, 31) or self._x28_flags_set()) else 0

        if self.enhancements.is_empty():
            return level_seen

        for triplet in self.enhancements:
            mode = triplet.mode_ext

            # Font style
            if mode == 0x2E:
                return 3

            if level_seen == 0 and mode in LEVEL_1_5_MODES:
                level_seen = 1

            if level_seen < 2 and mode in LEVEL_2_5_MODES:
                level_seen = 2

            # Parameters that are "required at Level 3.5 only"
            if level_seen == 2:
                if 0x15 <= mode <= 0x17 and (triplet.address & 0x18) == 0x10:
                    return 3
                if mode == 0x18 and (triplet.data & 0x30) == 0x20:
                    return 3

        return level_seen
