"""
Softel EP1 binary page format.

Layout of one page:

    FE 01 <language>            page header
    CA <offset lo> <offset hi>  only if enhancements follow, else 00 00 00
    C2 00 <length lo> <length hi>
    <enhancement packets>       40 bytes each, EP1 triplet layout
    <24 rows of 40 bytes>       rows 0-23, 7-bit characters
    <40 spaces> 00 00           page end

A multi page file starts with "JWC" and the number of pages.

EP1 triplets store a 6-bit address, 5-bit mode and 7-bit data in that
order, and a termination marker has address 0x7F instead of 0x3F.
"""

import io
import logging
from typing import Dict, List

from teletext_utils.level_one_page import LevelOnePage
from teletext_utils.models import ControlBit, LoadMetadata
from teletext_utils.packet_page import PacketPage
from teletext_utils.page_set import PageSet
from teletext_utils.PageFormats.PageFormat import LoadResult, PageFormat, SaveContext

logger = logging.getLogger(__name__)

PAGE_HEADER = b"\xfe\x01"
MULTI_PAGE_HEADER = b"JWC"
ENHANCEMENTS_FLAG = 0xCA
ENHANCEMENTS_HEADER = 0xC2
EP1_ROWS = 24

# Key: (character set << 3) | NOS, value: EP1 language code
LANGUAGE_CODES: Dict[int, int] = {
    0x00: 0x09, 0x01: 0x0D, 0x02: 0x18, 0x03: 0x11, 0x04: 0x0B, 0x05: 0x17, 0x06: 0x07,
    0x08: 0x14, 0x09: 0x0D, 0x0A: 0x18, 0x0B: 0x11, 0x0C: 0x0B, 0x0E: 0x07,
    0x10: 0x09, 0x11: 0x0D, 0x12: 0x18, 0x13: 0x11, 0x14: 0x0B, 0x15: 0x17, 0x16: 0x1C,
    0x1D: 0x1E, 0x1F: 0x16,
    0x21: 0x0D, 0x22: 0xFF, 0x23: 0xFF, 0x26: 0x07,
    0x36: 0x1C, 0x37: 0x0E,
    0x40: 0x09, 0x44: 0x0B,
}

ENGLISH = 0x00
ENGLISH_LANGUAGE_CODE = LANGUAGE_CODES[ENGLISH]


def language_from_code(language_code: int) -> int:
    """
    Map an EP1 language code to (character set << 3) | NOS.

    Several character set/NOS pairs share a code; the lowest one is used.
    Unknown codes map to English.
    """
    for key in sorted(LANGUAGE_CODES):
        if LANGUAGE_CODES[key] == language_code:
            return key
    return ENGLISH


def ep1_unshuffle_packet(raw: bytes) -> bytes:
    """
    Turn a packet of EP1 triplets into a 6-bit triplet packet.

    Once a final termination marker is found it is repeated to the end of
    the packet, whatever follows it in the file.
    """
    packet = bytearray(40)
    terminator = None
    for c in range(1, 39, 3):
        if terminator is not None:
            packet[c : c + 3] = terminator
            continue
        packet[c] = raw[c]
        packet[c + 1] = raw[c + 1] | ((raw[c + 2] & 0x01) << 5)
        packet[c + 2] = raw[c + 2] >> 1
        if raw[c + 1] == 0x1F and raw[c] == 0x7F:
            packet[c] = 0x3F
            if raw[c + 2] & 0x01:
                terminator = bytes(packet[c : c + 3])
    return bytes(packet)


def ep1_shuffle_packet(packet: bytes) -> bytes:
    """Inverse of ep1_unshuffle_packet, for bytes 1-39 of a 6-bit triplet packet."""
    result = bytearray(packet)
    for c in range(1, 40, 3):
        result[c + 2] = ((packet[c + 2] & 0x3F) << 1) | ((packet[c + 1] & 0x20) >> 5)
        result[c + 1] = packet[c + 1] & 0x1F
        if result[c + 1] == 0x1F and result[c] == 0x3F:
            result[c] = 0x7F
    return bytes(result)


class EP1Format(PageFormat):
    format_id = "ep1"
    format_description = "Softel EP1"
    format_extensions = ("ep1", "epx")

    # --------------------------------------------------------------------- #
    # Loading
    # --------------------------------------------------------------------- #
    def _read(self, buffer: io.BytesIO, size: int) -> bytes:
        chunk = buffer.read(size)
        if len(chunk) != size:
            raise self._fail("EP1 file is truncated.")
        return chunk

    def load(self, data: bytes) -> LoadResult:
        warnings: List[str] = []
        re_export_warning = False
        metadata = LoadMetadata()
        page = PacketPage()
        buffer = io.BytesIO(data)

        header = self._read(buffer, 6)
        if header[:3] == MULTI_PAGE_HEADER:
            # Byte 3 is the number of pages, the first page header follows
            logger.debug(f"EP1 multi page file with {header[3]} pages")
            header = self._read(buffer, 6)
            warnings.append("More than one page in EP1/EPX file, only first full page loaded.")
            re_export_warning = True

        if header[:2] != PAGE_HEADER:
            raise self._fail("No EP1 page header found.")

        if header[2] not in LANGUAGE_CODES.values():
            warnings.append(f"Unknown EP1 language code {header[2]:02X}, loaded as English.")
        language = language_from_code(header[2])
        metadata.regions[0] = language >> 3
        national_option = language & 0x07
        page.set_control_bit(ControlBit.C12_NOS, bool(national_option & 0x1))
        page.set_control_bit(ControlBit.C13_NOS, bool(national_option & 0x2))
        page.set_control_bit(ControlBit.C14_NOS, bool(national_option & 0x4))

        if header[3] == ENHANCEMENTS_FLAG:
            enhancements_header = self._read(buffer, 4)
            length = enhancements_header[2] | (enhancements_header[3] << 8)
            # Packets are taken to be saved in designation code order
            for d in range((length + 39) // 40):
                page.set_packet(26, ep1_unshuffle_packet(self._read(buffer, 40)), d)

        for row in range(EP1_ROWS):
            line = self._read(buffer, 40)
            if any(byte != 0x20 for byte in line):
                page.set_packet(row, line)

        return LoadResult(
            pages=PageSet.from_packet_pages([page], metadata),
            warnings=warnings,
            re_export_warning=re_export_warning,
        )

    # --------------------------------------------------------------------- #
    # Saving
    # --------------------------------------------------------------------- #
    def get_warnings(self, subpage: LevelOnePage) -> List[str]:
        """Features of a subpage that EP1 cannot carry."""
        warnings = []
        if ((subpage.default_char_set << 3) | subpage.default_nos) not in LANGUAGE_CODES:
            warnings.append("Page language not supported, will be exported as English.")
        if subpage.packet_exists(24) or subpage.packet_exists(27, 0):
            warnings.append("FLOF display row and page links will not be exported.")
        if subpage.packet_exists(27, 4) or subpage.packet_exists(27, 5):
            warnings.append("X/27/4-5 compositional links will not be exported.")
        if subpage.packet_exists(28, 0) or subpage.packet_exists(28, 4):
            warnings.append("X/28 page enhancements will not be exported.")
        return warnings

    def write_all_subpages(self, ctx: SaveContext) -> None:
        if len(ctx.pages.subpages) > 1:
            ctx.warnings.append("EP1 holds one page, only the first subpage was exported.")
        self.write_subpage(ctx, ctx.pages.subpages[0], 0)

    def write_subpage_start(self, ctx: SaveContext, subpage: LevelOnePage, subpage_number: int) -> None:
        ctx.warnings.extend(self.get_warnings(subpage))
        language = (subpage.default_char_set << 3) | subpage.default_nos
        language_code = LANGUAGE_CODES.get(language, ENGLISH_LANGUAGE_CODE)
        self.write_raw_data(ctx, PAGE_HEADER + bytes([language_code]))

    def write_subpage_body(self, ctx: SaveContext, subpage: LevelOnePage) -> None:
        x26_packets = 0
        while x26_packets < 16 and subpage.packet_exists(26, x26_packets):
            x26_packets += 1

        if x26_packets:
            # Offset from here to the start of the rows
            rows_offset = x26_packets * 40 + 4
            self.write_raw_data(ctx, bytes((ENHANCEMENTS_FLAG, rows_offset & 0xFF, rows_offset >> 8)))
            length = x26_packets * 40
            self.write_raw_data(ctx, bytes((ENHANCEMENTS_HEADER, 0x00, length & 0xFF, length >> 8)))
            for d in range(x26_packets):
                packet = bytearray(ep1_shuffle_packet(subpage.packet(26, d)))
                packet[0] = d
                self.write_raw_data(ctx, bytes(packet))
        else:
            self.write_raw_data(ctx, bytes(3))

        for row in range(EP1_ROWS):
            if subpage.packet_exists(row):
                self.write_raw_data(ctx, subpage.packet(row))
            else:
                self.write_raw_data(ctx, b" " * 40)

    def write_subpage_end(self, ctx: SaveContext, subpage: LevelOnePage) -> None:
        self.write_raw_data(ctx, b" " * 40 + bytes(2))
