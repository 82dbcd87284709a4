"""
t42 packet stream.

A t42 file is a sequence of 42 byte records, each one teletext packet as
received off air after clock run-in and framing code:

    0-1    MRAG: magazine and packet number, Hamming 8/4
    2-41   packet body

The body of X/0 starts with the page number, subcode and control bits
(8 bytes, Hamming 8/4) followed by 32 odd parity header characters.
X/1-X/24 are odd parity characters; X/26, X/27/4-15 and X/28 carry a
Hamming 8/4 designation code and 13 Hamming 24/18 triplets; X/27/0-3
carry a designation code and six Hamming 8/4 page links.

Only the first page found in the stream is loaded.
"""

import io
import logging
from typing import Iterator, List, Optional

from teletext_utils.hamming import HAMMING_8_4_INVALID, hamming_8_4_decode, hamming_8_4_encode
from teletext_utils.level_one_page import LevelOnePage
from teletext_utils.models import ControlBit, LoadMetadata
from teletext_utils.packet_page import PacketPage
from teletext_utils.page_set import PageSet
from teletext_utils.PageFormats.helpers import (
    t42_decode_triplet,
    t42_format_18bit_packet,
    t42_format_4bit_packet,
    t42_format_7bit_packet,
    to_bcd,
)
from teletext_utils.PageFormats.PageFormat import LoadResult, PageFormat, SaveContext

logger = logging.getLogger(__name__)

RECORD_SIZE = 42

# Same magazine, page FF, subcode 3F7F
NEUTRAL_LINK = bytes((0xF, 0xF, 0xF, 0x7, 0xF, 0x3))


def magazine_of(page_number: int) -> int:
    """Transmitted magazine number, 0-7 (magazine 8 is sent as 0)."""
    magazine = (page_number & 0xF00) >> 8
    return 0 if magazine == 8 else magazine & 0x07


class T42Format(PageFormat):
    format_id = "t42"
    format_description = "t42 packet stream"
    format_extensions = ("t42",)

    def __init__(self, header_text: bool = False):
        """
        Args:
            header_text: Save row 0 of each subpage as the header row
                         characters of X/0 instead of spaces
        """
        self.header_text = header_text

    # --------------------------------------------------------------------- #
    # Loading
    # --------------------------------------------------------------------- #
    def read_records(self, data: bytes) -> Iterator[bytearray]:
        """Yield each whole 42 byte packet record of the stream."""
        buffer = io.BytesIO(data)
        while True:
            record = buffer.read(RECORD_SIZE)
            if len(record) < RECORD_SIZE:
                # End of stream, or less than one record left
                break
            yield bytearray(record)

    def load(self, data: bytes) -> LoadResult:
        warnings: List[str] = []
        re_export_warning = False
        metadata = LoadMetadata()
        page = PacketPage()

        found_magazine = -1
        found_page_number = -1
        first_header_found = False
        body_packets_found = False

        for line in self.read_records(data):
            mrag0, _ = hamming_8_4_decode(line[0])
            mrag1, _ = hamming_8_4_decode(line[1])
            if HAMMING_8_4_INVALID in (mrag0, mrag1):
                continue
            magazine = mrag0 & 0x07
            packet_number = (mrag0 >> 3) | (mrag1 << 1)

            if packet_number == 0:
                header = [hamming_8_4_decode(byte)[0] for byte in line[2:10]]
                if HAMMING_8_4_INVALID in (header[0], header[1]):
                    continue
                read_page_number = (header[1] << 4) | header[0]

                if read_page_number == 0xFF:
                    # Time filling header
                    continue

                if first_header_found:
                    if magazine != found_magazine:
                        # Another magazine sent in parallel
                        continue
                    if read_page_number == found_page_number and body_packets_found:
                        # Our page is being sent again
                        break
                    if read_page_number != found_page_number:
                        warnings.append("More than one page in .t42 file, only first full page loaded.")
                        re_export_warning = True
                        break
                    continue

                found_magazine = magazine
                found_page_number = read_page_number
                first_header_found = True
                metadata.page_number = ((magazine or 8) << 8) | read_page_number

                self._read_control_bits(page, header)
                self._read_header_row(page, line)
                continue

            if not first_header_found:
                continue

            # Whole magazine packets are not part of the page
            if packet_number > 28:
                continue

            body_packets_found = True

            if packet_number <= 25:
                page.set_packet(packet_number, bytes(byte & 0x7F for byte in line[2:]))
                continue

            designation_code, _ = hamming_8_4_decode(line[2])
            if designation_code == HAMMING_8_4_INVALID:
                logger.debug(f"X/{packet_number} with undecodable designation code skipped")
                continue

            if packet_number == 27 and designation_code < 4:
                body = self._decode_links(line, designation_code, warnings)
            else:
                body = self._decode_triplets(line, packet_number, designation_code, warnings)
            page.set_packet(packet_number, body, designation_code)

        if not first_header_found:
            raise self._fail("No X/0 found.")
        if not body_packets_found:
            raise self._fail("X/0 found, but no page body packets were found.")

        return LoadResult(
            pages=PageSet.from_packet_pages([page], metadata),
            warnings=warnings,
            re_export_warning=re_export_warning,
        )

    def _read_control_bits(self, page: PacketPage, header: List[int]) -> None:
        # header holds the decoded nibbles of bytes 2-9 of the record
        page.set_control_bit(ControlBit.C4_ERASE_PAGE, bool(header[3] & 0x08))
        page.set_control_bit(ControlBit.C5_NEWSFLASH, bool(header[5] & 0x04))
        page.set_control_bit(ControlBit.C6_SUBTITLE, bool(header[5] & 0x08))
        for i in range(4):
            page.set_control_bit(ControlBit.C7_SUPPRESS_HEADER + i, bool(header[6] & (1 << i)))
        page.set_control_bit(ControlBit.C11_SERIAL_MAGAZINE, bool(header[7] & 0x01))
        page.set_control_bit(ControlBit.C12_NOS, bool(header[7] & 0x08))
        page.set_control_bit(ControlBit.C13_NOS, bool(header[7] & 0x04))
        page.set_control_bit(ControlBit.C14_NOS, bool(header[7] & 0x02))

    def _read_header_row(self, page: PacketPage, line: bytearray) -> None:
        header_text = False
        for i in range(10, RECORD_SIZE):
            if line[i] != 0x20:
                line[i] &= 0x7F
                header_text = True
        if header_text:
            # Page address and control bits become spaces in row 0
            row = b" " * 8 + bytes(line[10:])
            page.set_packet(0, row)

    def _decode_links(self, line: bytearray, designation_code: int, warnings: List[str]) -> bytes:
        body = bytearray(40)
        body[0] = designation_code
        for i in range(6):
            first = 3 + i * 6
            link = [hamming_8_4_decode(byte)[0] for byte in line[first : first + 6]]
            if HAMMING_8_4_INVALID in link:
                warnings.append(f"X/27/{designation_code} link {i} has a decoding error, replaced with no link.")
                link = list(NEUTRAL_LINK)
            body[first - 2 : first + 4] = bytes(link)
        body[37:40] = line[39:42]
        return bytes(body)

    def _decode_triplets(
        self, line: bytearray, packet_number: int, designation_code: int, warnings: List[str]
    ) -> bytes:
        body = bytearray(40)
        body[0] = designation_code
        for i in range(13):
            first = 3 + i * 3
            fields, ok = t42_decode_triplet(line[first : first + 3])
            if not ok:
                warnings.append(f"X/{packet_number}/{designation_code} triplet {i} has a decoding error, replaced.")
                # Dummy triplet for enhancements, zeros elsewhere
                fields = (41, 0x1E, 0x00) if packet_number == 26 else (0, 0, 0)
            body[first - 2 : first + 1] = bytes(fields)
        return bytes(body)

    # --------------------------------------------------------------------- #
    # Saving
    # --------------------------------------------------------------------- #
    def write_subpage_start(self, ctx: SaveContext, subpage: LevelOnePage, subpage_number: int) -> None:
        subcode = to_bcd(subpage_number)
        page_number = ctx.pages.page_number
        bit = subpage.control_bit

        header = bytearray(10)
        header[0] = magazine_of(page_number)
        header[1] = 0
        header[2] = page_number & 0x00F
        header[3] = (page_number & 0x0F0) >> 4
        header[4] = subcode & 0xF
        header[5] = ((subcode >> 4) & 0x7) | (int(bit(ControlBit.C4_ERASE_PAGE)) << 3)
        header[6] = (subcode >> 8) & 0xF
        header[7] = (
            ((subcode >> 12) & 0x3)
            | (int(bit(ControlBit.C5_NEWSFLASH)) << 2)
            | (int(bit(ControlBit.C6_SUBTITLE)) << 3)
        )
        header[8] = (
            int(bit(ControlBit.C7_SUPPRESS_HEADER))
            | (int(bit(ControlBit.C8_UPDATE)) << 1)
            | (int(bit(ControlBit.C9_INTERRUPTED_SEQUENCE)) << 2)
            | (int(bit(ControlBit.C10_INHIBIT_DISPLAY)) << 3)
        )
        header[9] = (
            int(bit(ControlBit.C11_SERIAL_MAGAZINE))
            | (int(bit(ControlBit.C14_NOS)) << 1)
            | (int(bit(ControlBit.C13_NOS)) << 2)
            | (int(bit(ControlBit.C12_NOS)) << 3)
        )

        if self.header_text and subpage.packet_exists(0):
            characters = t42_format_7bit_packet(subpage.packet(0)[8:])
        else:
            # Spaces are valid odd parity
            characters = b" " * 32

        self.write_raw_data(ctx, t42_format_4bit_packet(bytes(header)) + characters)

    def write_packet(
        self, ctx: SaveContext, packet: bytes, packet_number: int, designation_code: Optional[int] = None
    ) -> None:
        if designation_code is not None:
            packet = bytes([hamming_8_4_encode(designation_code)]) + packet[1:]
        magazine = magazine_of(ctx.pages.page_number)
        mrag = bytes(
            (
                hamming_8_4_encode(magazine | ((packet_number & 0x01) << 3)),
                hamming_8_4_encode(packet_number >> 1),
            )
        )
        self.write_raw_data(ctx, mrag + packet)

    def format_7bit_packet(self, packet: bytes) -> bytes:
        return t42_format_7bit_packet(packet)

    def format_4bit_packet(self, packet: bytes) -> bytes:
        return t42_format_4bit_packet(packet)

    def format_18bit_packet(self, packet: bytes) -> bytes:
        return t42_format_18bit_packet(packet)
