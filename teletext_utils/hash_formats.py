"""
Hash string export for the edit.tf and zxnet online editors.

export_hash_string_page() packs the 25x40 grid at 7 bits per character
into 1167 URL-safe base64 digits:

    #<flags>:<digits>

export_hash_string_packets() appends the packets those editors understand
as ":X280=", ":X284=", ":X26=" and ":PS=" sections.
"""

from typing import List

from teletext_utils.level_one_page import COLUMNS, ROWS, LevelOnePage
from teletext_utils.PageFormats.helpers import page_status_from_page

BASE64_DIGITS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
HASH_DIGITS = (ROWS * COLUMNS * 7 + 5) // 6


def export_hash_string_page(page: LevelOnePage) -> str:
    digits: List[int] = [0] * HASH_DIGITS
    # Black foreground (0x00 or 0x10) needs the editor's "black" flag
    black_foreground = False

    for r in range(ROWS):
        row = page.packet(r) if page.packet_exists(r) else b" " * COLUMNS
        for c in range(COLUMNS):
            character = row[c]
            if character in (0x00, 0x10):
                black_foreground = True
            for b in range(7):
                total_bits = (r * COLUMNS + c) * 7 + b
                bit = (character >> (6 - b)) & 0x01
                digits[total_bits // 6] |= bit << (5 - (total_bits % 6))

    flags = 8 if black_foreground else 0
    return f"#{flags:x}:" + "".join(BASE64_DIGITS[d] for d in digits)


def _clut_hex(page: LevelOnePage, which_clut: int) -> str:
    return "".join(f"{page.clut(i):03x}" for i in range(which_clut * 8, which_clut * 8 + 8))


def export_hash_string_packets(page: LevelOnePage) -> str:
    result = ""

    if page.packet_exists(28, 0) or page.packet_exists(28, 4):
        # X/28/0 and X/28/4 only differ in the CLUTs they define
        begin = f"00{(page.default_char_set << 3) | page.default_nos:02X}"
        begin += f"{(page.second_char_set << 3) | page.second_nos:02X}"
        begin += (
            f"{int(page.left_side_panel_displayed)}{int(page.right_side_panel_displayed)}"
            f"{int(page.side_panel_status_l25)}{page.side_panel_columns:x}"
        )
        end = (
            f"{page.default_screen_colour:02x}{page.default_row_colour:02x}"
            f"{int(page.black_background_subst)}{page.colour_table_remap}"
        )

        if page.packet_exists(28, 0):
            result += ":X280=" + begin + _clut_hex(page, 2) + _clut_hex(page, 3) + end
        if page.packet_exists(28, 4):
            result += ":X284=" + begin + _clut_hex(page, 0) + _clut_hex(page, 1) + end

    if not page.enhancements.is_empty():
        result += ":X26="
        for triplet in page.enhancements:
            if not triplet.is_valid():
                continue
            result += BASE64_DIGITS[triplet.data >> 1]
            result += BASE64_DIGITS[triplet.mode | ((triplet.data & 1) << 5)]
            result += BASE64_DIGITS[triplet.address]

    result += f":PS={page_status_from_page(page):x}"
    return result
