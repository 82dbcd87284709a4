"""
PageSet - one teletext page number with its ordered subpages.

This is what the codecs load into and save from. It carries the values
that belong to the whole page rather than to a subpage: page number,
description, page function and packet coding.
"""

import logging
from typing import List, Optional

from teletext_utils.level_one_page import LevelOnePage
from teletext_utils.models import LoadMetadata, PacketCoding, PageFunction
from teletext_utils.packet_page import PacketPage

logger = logging.getLogger(__name__)

DEFAULT_PAGE_NUMBER = 0x198
MIN_PAGE_NUMBER = 0x100
MAX_PAGE_NUMBER = 0x8FF


def _magazine(page_number: int) -> int:
    # Magazine 8 is transmitted as 0
    magazine = page_number & 0xF00
    return 0x000 if magazine == 0x800 else magazine


class PageSet:
    """Ordered subpages sharing a page number."""

    def __init__(
        self,
        subpages: Optional[List[LevelOnePage]] = None,
        page_number: int = DEFAULT_PAGE_NUMBER,
        description: str = "",
        page_function: PageFunction = PageFunction.LEVEL_ONE_PAGE,
        packet_coding: PacketCoding = PacketCoding.CODING_7BIT,
    ):
        self.subpages: List[LevelOnePage] = list(subpages) if subpages else [LevelOnePage()]
        self.page_number = page_number
        self.description = description
        self.page_function = page_function
        self.packet_coding = packet_coding

    def __len__(self) -> int:
        return len(self.subpages)

    def __iter__(self):
        return iter(self.subpages)

    def __getitem__(self, index: int) -> LevelOnePage:
        return self.subpages[index]

    def set_page_number(self, page_number: int) -> None:
        """
        Change the page number, keeping magazine relative links pointing
        at the same absolute pages.

        Args:
            page_number: 0x100 to 0x8FF
        """
        if not MIN_PAGE_NUMBER <= page_number <= MAX_PAGE_NUMBER:
            raise ValueError(f"Page number must be 100-8FF, got {page_number:X}")

        magazine_flip = _magazine(self.page_number) ^ _magazine(page_number)
        self.page_number = page_number

        if not magazine_flip:
            return
        for subpage in self.subpages:
            for i, link in enumerate(subpage.fast_text_links):
                subpage.set_fast_text_link_page_number(i, link.page_number ^ magazine_flip)
            for i, link in enumerate(subpage.compose_links):
                subpage.set_compose_link_page_number(i, link.page_number ^ magazine_flip)

    def level_required(self) -> int:
        """Highest level required by any subpage."""
        return max(subpage.level_required() for subpage in self.subpages)

    # --------------------------------------------------------------------- #
    # Building from loader output
    # --------------------------------------------------------------------- #
    @classmethod
    def from_packet_pages(
        cls, pages: List[PacketPage], metadata: Optional[LoadMetadata] = None
    ) -> "PageSet":
        """
        Turn the raw pages produced by a loader into a PageSet and apply
        the values the loader gathered along the way.
        """
        page_set = cls(subpages=[LevelOnePage.from_packet_page(page) for page in pages])
        if metadata is not None:
            page_set.apply_metadata(metadata)
        return page_set

    def apply_metadata(self, metadata: LoadMetadata) -> None:
        if metadata.description:
            self.description = metadata.description
        if metadata.page_number is not None:
            self.page_number = metadata.page_number
        if metadata.page_function is not None:
            self.page_function = metadata.page_function
        if metadata.packet_coding is not None:
            self.packet_coding = metadata.packet_coding

        # Absolute FastText page numbers become relative to our magazine
        if metadata.fastext_absolute:
            magazine_flip = self.page_number & 0x700
            for subpage in self.subpages:
                for i, link in enumerate(subpage.fast_text_links):
                    subpage.set_fast_text_link_page_number(i, link.page_number ^ magazine_flip)

        for index, subpage in enumerate(self.subpages):
            if index in metadata.regions:
                subpage.default_char_set = metadata.regions[index]
            if index in metadata.cycle_values:
                subpage.cycle_value = metadata.cycle_values[index]
            if index in metadata.cycle_types:
                subpage.cycle_type = metadata.cycle_types[index]

        logger.debug(
            f"Applied load metadata to page {self.page_number:03X} with {len(self.subpages)} subpage(s)"
        )
