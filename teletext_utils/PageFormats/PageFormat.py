"""
PageFormat - base class of the file format codecs.

A codec turns file bytes into a PageSet (load) and a PageSet back into
file bytes (save). Loading returns the pages along with human-readable
warnings; a file that yields no usable page raises TeletextLoadError.

Saving walks the page set the same way for every format:

    document start
    for each subpage:
        subpage start, X/27, X/28, X/26, X/1-25, subpage end
    document end

Subclasses override the steps and the three packet codings they need.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from teletext_utils.errors import TeletextLoadError
from teletext_utils.level_one_page import LevelOnePage
from teletext_utils.models import PacketCoding, PageFunction
from teletext_utils.packet_page import DESIGNATION_CODES
from teletext_utils.page_set import PageSet


@dataclass
class LoadResult:
    pages: PageSet
    warnings: List[str] = field(default_factory=list)
    # The file held more than was loaded, so saving back over it loses data
    re_export_warning: bool = False


@dataclass
class SaveResult:
    data: bytes
    warnings: List[str] = field(default_factory=list)


@dataclass
class SaveContext:
    """Everything a save in progress writes to or reads from."""

    pages: PageSet
    out: bytearray = field(default_factory=bytearray)
    warnings: List[str] = field(default_factory=list)


class PageFormat:
    """Base codec. The defaults write packets as-is with no framing."""

    format_id = ""
    format_description = ""
    format_extensions: Tuple[str, ...] = ()
    can_load = True

    def description(self) -> str:
        return self.format_description

    def extensions(self) -> List[str]:
        return list(self.format_extensions)

    def file_dialog_filter(self) -> str:
        return f"{self.description()} (*." + " *.".join(self.extensions()) + ")"

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.format_id}>"

    # --------------------------------------------------------------------- #
    # Loading
    # --------------------------------------------------------------------- #
    def load(self, data: bytes) -> LoadResult:
        raise TeletextLoadError(f"{self.description()} files can only be exported", self.format_id)

    def _fail(self, message: str) -> TeletextLoadError:
        return TeletextLoadError(message, self.format_id)

    # --------------------------------------------------------------------- #
    # Saving
    # --------------------------------------------------------------------- #
    def save(self, pages: PageSet, subpage_index: Optional[int] = None) -> SaveResult:
        """
        Encode a page set.

        Args:
            pages: The page set to save
            subpage_index: Save only this subpage (numbered 0) instead of all

        Returns:
            SaveResult with the file bytes and any warnings
        """
        ctx = SaveContext(pages=pages)
        self.write_document_start(ctx)
        if subpage_index is None:
            self.write_all_subpages(ctx)
        else:
            self.write_subpage(ctx, pages.subpages[subpage_index], 0)
        self.write_document_end(ctx)
        return SaveResult(data=bytes(ctx.out), warnings=ctx.warnings)

    def write_all_subpages(self, ctx: SaveContext) -> None:
        count = len(ctx.pages.subpages)
        for index, subpage in enumerate(ctx.pages.subpages):
            self.write_subpage(ctx, subpage, 0 if count == 1 else index + 1)

    def write_subpage(self, ctx: SaveContext, subpage: LevelOnePage, subpage_number: int) -> None:
        self.write_subpage_start(ctx, subpage, subpage_number)
        self.write_subpage_body(ctx, subpage)
        self.write_subpage_end(ctx, subpage)

    def write_document_start(self, ctx: SaveContext) -> None:
        pass

    def write_document_end(self, ctx: SaveContext) -> None:
        pass

    def write_subpage_start(self, ctx: SaveContext, subpage: LevelOnePage, subpage_number: int) -> None:
        pass

    def write_subpage_end(self, ctx: SaveContext, subpage: LevelOnePage) -> None:
        pass

    def write_subpage_body(self, ctx: SaveContext, subpage: LevelOnePage) -> None:
        self.write_x27_packets(ctx, subpage)
        self.write_x28_packets(ctx, subpage)
        if ctx.pages.page_function == PageFunction.LEVEL_ONE_PAGE:
            self.write_x26_packets(ctx, subpage)
            self.write_x1_to_x25_packets(ctx, subpage)
        else:
            self.write_x1_to_x25_packets(ctx, subpage)
            self.write_x26_packets(ctx, subpage)

    def write_x27_packets(self, ctx: SaveContext, subpage: LevelOnePage, first: int = 0) -> None:
        # X/27/0-3 are Hamming 8/4 links, X/27/4-15 are triplets
        for d in range(first, 4):
            if subpage.packet_exists(27, d):
                self.write_packet(ctx, self.format_4bit_packet(subpage.packet(27, d)), 27, d)
        for d in range(max(first, 4), DESIGNATION_CODES):
            if subpage.packet_exists(27, d):
                self.write_packet(ctx, self.format_18bit_packet(subpage.packet(27, d)), 27, d)

    def write_x28_packets(self, ctx: SaveContext, subpage: LevelOnePage) -> None:
        for d in range(DESIGNATION_CODES):
            if subpage.packet_exists(28, d):
                self.write_packet(ctx, self.format_18bit_packet(subpage.packet(28, d)), 28, d)

    def write_x26_packets(self, ctx: SaveContext, subpage: LevelOnePage) -> None:
        for d in range(DESIGNATION_CODES):
            if subpage.packet_exists(26, d):
                self.write_packet(ctx, self.format_18bit_packet(subpage.packet(26, d)), 26, d)

    def write_x1_to_x25_packets(self, ctx: SaveContext, subpage: LevelOnePage) -> None:
        # (G)POP and (G)DRCS pages carry triplets or pixel data in X/1-25
        if ctx.pages.packet_coding == PacketCoding.CODING_18BIT:
            formatter = self.format_18bit_packet
        elif ctx.pages.packet_coding == PacketCoding.CODING_4BIT:
            formatter = self.format_4bit_packet
        else:
            formatter = self.format_7bit_packet
        for y in range(1, 26):
            if subpage.packet_exists(y):
                self.write_packet(ctx, formatter(subpage.packet(y)), y)

    def format_7bit_packet(self, packet: bytes) -> bytes:
        return packet

    def format_4bit_packet(self, packet: bytes) -> bytes:
        return packet

    def format_18bit_packet(self, packet: bytes) -> bytes:
        return packet

    def write_packet(
        self, ctx: SaveContext, packet: bytes, packet_number: int, designation_code: Optional[int] = None
    ) -> None:
        self.write_raw_data(ctx, packet)

    def write_raw_data(self, ctx: SaveContext, data: bytes) -> None:
        ctx.out += data
