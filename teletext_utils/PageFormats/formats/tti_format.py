"""
MRG Systems TTI text format.

A TTI file is a list of CRLF terminated commands, one subpage after another:

    DE,<description>
    PN,<page><subpage>      e.g. PN,19801 - starts a subpage
    SC,<subcode>
    PS,<status>             hex page status word
    RE,<region>
    CT,<value>,<C|T>        cycle value in cycles or seconds (timed)
    PF,<function>,<coding>  page function and coding for non Level 1 pages
    FL,<6 page numbers>     FastText links, absolute page numbers
    OL,<row>,<data>         one packet

Display rows escape control codes as ESC + (code | 0x40). Designation
packets store their 6-bit values with bit 6 set, the first byte being the
designation code (0x40-0x4F).
"""

import logging
from typing import List, Optional

from teletext_utils.level_one_page import LevelOnePage
from teletext_utils.models import ANY_SUBPAGE, CycleType, LoadMetadata, PacketCoding, PageFunction
from teletext_utils.packet_page import PacketPage
from teletext_utils.page_set import MAX_PAGE_NUMBER, MIN_PAGE_NUMBER, PageSet
from teletext_utils.PageFormats.helpers import (
    apply_page_status,
    page_status_from_page,
    tti_format_6bit_packet,
    tti_format_7bit_packet,
    tti_parse_7bit_line,
)
from teletext_utils.PageFormats.PageFormat import LoadResult, PageFormat, SaveContext

logger = logging.getLogger(__name__)

# Address 41, mode 0x1E, data 0 as TTI characters
DUMMY_TRIPLET_TEXT = b"i^@"


def _parse_int(text: bytes, base: int = 10) -> Optional[int]:
    try:
        return int(text.decode("ascii"), base)
    except (UnicodeDecodeError, ValueError):
        return None


class TTIFormat(PageFormat):
    format_id = "tti"
    format_description = "MRG Systems TTI"
    format_extensions = ("tti", "ttix")

    # --------------------------------------------------------------------- #
    # Loading
    # --------------------------------------------------------------------- #
    def load(self, data: bytes) -> LoadResult:
        warnings: List[str] = []
        metadata = LoadMetadata()
        pages: List[PacketPage] = [PacketPage()]
        page = pages[0]

        page_number = 0
        first_subpage_found = False
        body_packets_found = False
        cycle_commands = 0

        for raw_line in data.splitlines():
            line = raw_line.strip()
            if not line:
                continue

            command, argument = line[:3], line[3:]

            if command == b"DE,":
                metadata.description = argument.decode("utf-8", errors="replace")

            elif command == b"PN,":
                if not first_subpage_found:
                    read_page_number = _parse_int(argument[:3], 16)
                    if read_page_number is not None and MIN_PAGE_NUMBER <= read_page_number <= MAX_PAGE_NUMBER:
                        # Kept to check that M/29 packets come from page xFF
                        page_number = read_page_number
                        metadata.page_number = read_page_number
                    first_subpage_found = True
                else:
                    # PN is taken as the first command of each subpage
                    page = PacketPage()
                    pages.append(page)

            elif command == b"SC,":
                logger.debug(f"TTI subcode {argument!r} ignored, subpages are numbered on save")

            elif command == b"PS,":
                status = _parse_int(argument[:4], 16)
                if status is not None:
                    apply_page_status(page, status)

            elif command == b"RE,":
                region = _parse_int(argument)
                if region is not None and 0 <= region <= 15:
                    metadata.regions[len(pages) - 1] = region

            elif command == b"CT," and (line.endswith(b",C") or line.endswith(b",T")):
                cycle_value = _parse_int(argument[:-2])
                if cycle_value is not None and 1 <= cycle_value <= 99:
                    metadata.cycle_values[len(pages) - 1] = cycle_value
                    metadata.cycle_types[len(pages) - 1] = (
                        CycleType.CYCLES if line.endswith(b",C") else CycleType.SECONDS
                    )
                    cycle_commands += 1

            elif command == b"PF,":
                self._read_page_function(argument, metadata)

            elif command == b"FL,":
                if self._read_fast_text_links(argument, page):
                    metadata.fastext_absolute = True

            elif command == b"OL,":
                if self._read_packet(line, page, page_number, warnings):
                    body_packets_found = True

        if not body_packets_found:
            raise self._fail("No OL lines found")

        # A single CT command in a file of several subpages is meant for all of them
        if len(pages) > 1 and cycle_commands == 1:
            index = next(iter(metadata.cycle_values))
            for i in range(len(pages)):
                metadata.cycle_values[i] = metadata.cycle_values[index]
                metadata.cycle_types[i] = metadata.cycle_types[index]

        return LoadResult(pages=PageSet.from_packet_pages(pages, metadata), warnings=warnings)

    def _read_page_function(self, argument: bytes, metadata: LoadMetadata) -> None:
        parts = argument.split(b",")
        if len(parts) != 2:
            return
        function, coding = _parse_int(parts[0]), _parse_int(parts[1])
        if function is not None and PageFunction.LEVEL_ONE_PAGE <= function <= PageFunction.TRIGGER_MESSAGES:
            metadata.page_function = PageFunction(function)
        if coding is not None and PacketCoding.CODING_7BIT <= coding <= PacketCoding.CODING_PER_PACKET:
            metadata.packet_coding = PacketCoding(coding)

    def _read_fast_text_links(self, argument: bytes, page: PacketPage) -> bool:
        links = argument.split(b",")
        if len(links) != 6:
            return False

        # All 0xF is page xFF:3F7F, i.e. no page specified
        packet = bytearray([0xF] * 40)
        packet[0] = 0x0
        packet[38] = packet[39] = 0x0

        any_link = False
        for i, link in enumerate(links):
            link_page = _parse_int(link, 16)
            # Page 0 means "no link" and leaves the slot as xFF
            if link_page is None or not MIN_PAGE_NUMBER <= link_page <= MAX_PAGE_NUMBER:
                continue
            packet[i * 6 + 1] = link_page & 0x00F
            packet[i * 6 + 2] = (link_page & 0x0F0) >> 4
            packet[i * 6 + 4] = 0x7 | ((link_page & 0x100) >> 5)
            packet[i * 6 + 6] = 0x3 | ((link_page & 0x600) >> 7)
            any_link = True

        if any_link:
            page.set_packet(27, bytes(packet), 0)
        return True

    def _read_packet(self, line: bytes, page: PacketPage, page_number: int, warnings: List[str]) -> bool:
        second_comma = line.find(b",", 3)
        if second_comma not in (4, 5):
            return False

        packet_number = _parse_int(line[3:second_comma])
        if packet_number is None or not 0 <= packet_number <= 29:
            return False

        payload = bytearray(line[second_comma + 1 :])

        if packet_number <= 25:
            page.set_packet(packet_number, tti_parse_7bit_line(bytes(payload)))
            return True

        if not payload or not 0x40 <= payload[0] <= 0x4F:
            logger.debug(f"OL,{packet_number} line without a designation code skipped")
            return False
        designation_code = payload[0] & 0x3F

        if len(payload) < 40:
            if packet_number == 26:
                # Trim to whole triplets, then fill with dummy triplets
                del payload[(len(payload) // 3 * 3) + 1 :]
                while len(payload) < 40:
                    payload += DUMMY_TRIPLET_TEXT
            else:
                payload = payload.ljust(40, b"@")

        for i in range(1, min(len(payload), 40)):
            payload[i] &= 0x3F

        # Whole magazine M/29 packets are imported as the page's X/28
        if packet_number == 29:
            if (page_number & 0xFF) != 0xFF:
                warnings.append(f"M/29/{designation_code} packet found, but page number was not xFF.")
            packet_number = 28

        page.set_packet(packet_number, bytes(payload), designation_code)
        return True

    # --------------------------------------------------------------------- #
    # Saving
    # --------------------------------------------------------------------- #
    def write_string(self, ctx: SaveContext, command: str) -> None:
        self.write_raw_data(ctx, command.encode("utf-8") + b"\r\n")

    def write_document_start(self, ctx: SaveContext) -> None:
        if ctx.pages.description:
            self.write_string(ctx, f"DE,{ctx.pages.description}")

    def write_subpage_start(self, ctx: SaveContext, subpage: LevelOnePage, subpage_number: int) -> None:
        self.write_string(ctx, f"PN,{ctx.pages.page_number:03x}{subpage_number & 0xFF:02d}")

        # Magazine Organisation Table and Magazine Inventory Page have no subpages
        if ctx.pages.page_function not in (PageFunction.MOT, PageFunction.MIP):
            self.write_string(ctx, f"SC,{subpage_number:04d}")

        self.write_string(ctx, f"PS,{page_status_from_page(subpage):04x}")

        if ctx.pages.page_function == PageFunction.LEVEL_ONE_PAGE:
            cycle_type = "C" if subpage.cycle_type == CycleType.CYCLES else "T"
            self.write_string(ctx, f"CT,{subpage.cycle_value},{cycle_type}")
        else:
            self.write_string(ctx, f"PF,{int(ctx.pages.page_function)},{int(ctx.pages.packet_coding)}")

    def write_subpage_body(self, ctx: SaveContext, subpage: LevelOnePage) -> None:
        # X/27/0 is written as a readable FL command instead
        write_fl_command = (
            ctx.pages.page_function == PageFunction.LEVEL_ONE_PAGE and subpage.packet_exists(27, 0)
        )

        self.write_x27_packets(ctx, subpage, first=1 if write_fl_command else 0)
        self.write_x28_packets(ctx, subpage)
        if ctx.pages.page_function == PageFunction.LEVEL_ONE_PAGE:
            self.write_x26_packets(ctx, subpage)
            self.write_x1_to_x25_packets(ctx, subpage)
        else:
            self.write_x1_to_x25_packets(ctx, subpage)
            self.write_x26_packets(ctx, subpage)

        if write_fl_command:
            self.write_string(ctx, self._fast_text_command(ctx, subpage))

    def _fast_text_command(self, ctx: SaveContext, subpage: LevelOnePage) -> str:
        links = []
        for i, link in enumerate(subpage.fast_text_links):
            if link.subpage_number != ANY_SUBPAGE:
                ctx.warnings.append(
                    f"FastText link {i} subpage {link.subpage_number:04X} not saved, FL holds page numbers only."
                )
            # Stored relative to our magazine, FL holds absolute page numbers
            absolute = link.page_number ^ (ctx.pages.page_number & 0x700)
            if (absolute & 0x700) == 0x000:
                absolute |= 0x800
            links.append(f"{absolute:03x}")
        return "FL," + ",".join(links)

    def write_packet(
        self, ctx: SaveContext, packet: bytes, packet_number: int, designation_code: Optional[int] = None
    ) -> None:
        if designation_code is not None:
            packet = bytes([designation_code | 0x40]) + packet[1:]
        self.write_raw_data(ctx, b"OL," + str(packet_number).encode("ascii") + b"," + packet + b"\r\n")

    def format_7bit_packet(self, packet: bytes) -> bytes:
        return tti_format_7bit_packet(packet)

    def format_4bit_packet(self, packet: bytes) -> bytes:
        return tti_format_6bit_packet(packet)

    def format_18bit_packet(self, packet: bytes) -> bytes:
        return tti_format_6bit_packet(packet)


class M29Format(TTIFormat):
    """
    Export of one subpage's X/28/0, X/28/1 and X/28/4 as magazine wide
    M/29 packets on page mFF, for broadcast systems that take them.
    """

    format_id = "m29"
    format_description = "MRG Systems TTI with M/29 packets"
    can_load = False

    def load(self, data: bytes) -> LoadResult:
        return PageFormat.load(self, data)

    def write_all_subpages(self, ctx: SaveContext) -> None:
        self.write_subpage(ctx, ctx.pages.subpages[0], 0)

    def write_subpage_start(self, ctx: SaveContext, subpage: LevelOnePage, subpage_number: int) -> None:
        self.write_string(ctx, f"PN,{ctx.pages.page_number >> 8:x}ff00")
        self.write_string(ctx, "PS,8000")

    def write_subpage_body(self, ctx: SaveContext, subpage: LevelOnePage) -> None:
        for d in (0, 1, 4):
            if subpage.packet_exists(28, d):
                self.write_packet(ctx, self.format_18bit_packet(subpage.packet(28, d)), 29, d)
