# =============================================================================
# Shared helper functions to create test teletext pages and files
# =============================================================================

from teletext_utils.hamming import hamming_8_4_encode, odd_parity
from teletext_utils.level_one_page import LevelOnePage
from teletext_utils.page_set import PageSet
from teletext_utils.x26_triplets import X26Triplet, X26TripletList

# Termination marker without "more follows"
TERMINATOR = (63, 0x1F, 0x07)


def make_triplet_list(*triplets) -> X26TripletList:
    """Create a triplet list from (address, mode, data) tuples."""
    return X26TripletList([X26Triplet(*t) for t in triplets])


def make_level_one_page(rows: dict = None, triplets: list = None) -> LevelOnePage:
    """
    Create a page with text rows and enhancement triplets.

    rows maps a row number to its text, padded with spaces to 40 bytes.
    """
    page = LevelOnePage()
    for row, text in (rows or {}).items():
        page.set_packet(row, text.ljust(40))
    if triplets:
        page.set_enhancements(make_triplet_list(*triplets))
    return page


def make_page_set(page_number: int = 0x198, subpages: list = None, description: str = "") -> PageSet:
    if subpages is None:
        subpages = [make_level_one_page({1: b"Hello"})]
    return PageSet(subpages=subpages, page_number=page_number, description=description)


# =============================================================================
# TTI
# =============================================================================


def make_tti_file(*lines) -> bytes:
    """Join TTI command lines with CRLF, str lines are encoded as latin-1."""
    encoded = [line.encode("latin-1") if isinstance(line, str) else line for line in lines]
    return b"\r\n".join(encoded) + b"\r\n"


# =============================================================================
# t42
# =============================================================================


def make_mrag(magazine: int, packet_number: int) -> bytes:
    return bytes(
        (
            hamming_8_4_encode((magazine & 0x07) | ((packet_number & 0x01) << 3)),
            hamming_8_4_encode(packet_number >> 1),
        )
    )


def make_t42_header(
    page_number: int = 0x00,
    magazine: int = 1,
    erase: bool = False,
    nos: int = 0,
    text: bytes = b"",
) -> bytes:
    """Create a 42-byte X/0 record. page_number is the two digit page within the magazine."""
    nibbles = [
        page_number & 0x0F,
        (page_number >> 4) & 0x0F,
        0,
        0x08 if erase else 0,
        0,
        0,
        0,
        ((nos & 0x01) << 3) | ((nos & 0x02) << 1) | ((nos & 0x04) >> 1),
    ]
    header = bytes(hamming_8_4_encode(n) for n in nibbles)
    characters = bytes(odd_parity(c) for c in text.ljust(32)[:32])
    return make_mrag(magazine, 0) + header + characters


def make_t42_row(row: int, text: bytes, magazine: int = 1) -> bytes:
    """Create a 42-byte display row record."""
    return make_mrag(magazine, row) + bytes(odd_parity(c) for c in text.ljust(40)[:40])


# =============================================================================
# EP1
# =============================================================================


def make_ep1_file(
    rows: dict = None,
    language_code: int = 0x09,  # English
    enhancements: bytes = b"",
    multi_page: bool = False,
) -> bytes:
    """Create an EP1 page; enhancements are raw EP1 packets of 40 bytes each."""
    data = bytearray()
    if multi_page:
        data += b"JWC" + bytes((2, 0, 0))

    data += b"\xfe\x01" + bytes([language_code])
    if enhancements:
        offset = len(enhancements) + 4
        data += bytes((0xCA, offset & 0xFF, offset >> 8))
        data += bytes((0xC2, 0x00, len(enhancements) & 0xFF, len(enhancements) >> 8))
        data += enhancements
    else:
        data += bytes(3)

    for row in range(24):
        data += (rows or {}).get(row, b"").ljust(40)[:40]

    data += b" " * 40 + bytes(2)
    return bytes(data)
