"""
Page Format Helpers
- Packet line codings shared by the codecs:
    - TTI text escaping of 7-bit packets and 6-bit triplet/link packets
    - t42 odd parity, Hamming 8/4 and Hamming 24/18 packet coding
    - TTI "PS" page status word <-> header control bits
"""

from typing import Tuple

from teletext_utils.hamming import (
    HAMMING_UNCORRECTABLE,
    hamming_24_18_decode,
    hamming_24_18_encode,
    hamming_8_4_encode,
    odd_parity,
)
from teletext_utils.models import ControlBit
from teletext_utils.packet_page import PacketPage

ESC = 0x1B


# =============================================================================
# TTI line coding
# =============================================================================


def tti_format_7bit_packet(packet: bytes) -> bytes:
    """
    Escape control codes of a display row for a TTI OL line.

    TTI files are plain text, so a byte below 0x20 is written as ESC
    followed by the byte with bit 6 set.
    """
    result = bytearray()
    for byte in packet:
        if byte < 0x20:
            result.append(ESC)
            result.append(byte | 0x40)
        else:
            result.append(byte)
    return bytes(result)


def tti_format_6bit_packet(packet: bytes) -> bytes:
    """
    Set bit 6 of bytes 1-39 of a triplet or link packet.

    Byte 0 is left alone, the writer replaces it with the designation code.
    """
    return bytes(packet[:1]) + bytes(byte | 0x40 for byte in packet[1:])


def tti_parse_7bit_line(line: bytes) -> bytes:
    """
    Undo TTI escaping of an OL,1-25 line and return the 40 byte row.

    Accepts the three ways editors store control codes: ESC + (code | 0x40),
    bytes with bit 7 set, and 0x10 standing in for 0x0D.
    """
    result = bytearray()
    i = 0
    while i < len(line) and len(result) < 40:
        byte = line[i]
        if byte & 0x80:
            byte &= 0x7F
        elif byte == 0x10:
            byte = 0x0D
        elif byte == ESC and i + 1 < len(line):
            i += 1
            byte = line[i] & 0xBF
        result.append(byte)
        i += 1
    # Trailing spaces may have been stripped from the line
    return bytes(result.ljust(40, b" "))


# =============================================================================
# t42 packet coding
# =============================================================================


def t42_format_7bit_packet(packet: bytes) -> bytes:
    return bytes(odd_parity(byte) for byte in packet)


def t42_format_4bit_packet(packet: bytes) -> bytes:
    return bytes(hamming_8_4_encode(byte) for byte in packet)


def t42_format_18bit_packet(packet: bytes) -> bytes:
    """Hamming 24/18 encode the 13 triplets in bytes 1-39, leaving byte 0."""
    result = bytearray(packet)
    for c in range(1, 40, 3):
        value = (packet[c] & 0x3F) | ((packet[c + 1] & 0x3F) << 6) | ((packet[c + 2] & 0x3F) << 12)
        result[c : c + 3] = hamming_24_18_encode(value)
    return bytes(result)


def t42_decode_triplet(encoded: bytes) -> Tuple[Tuple[int, int, int], bool]:
    """
    Decode one Hamming 24/18 coded triplet into its three 6-bit fields.

    Returns:
        Tuple of ((byte0, byte1, byte2), ok)
        - ok is False if the triplet had an uncorrectable error
    """
    value, errors = hamming_24_18_decode(encoded[0], encoded[1], encoded[2])
    if errors == HAMMING_UNCORRECTABLE:
        return (0, 0, 0), False
    return (value & 0x3F, (value >> 6) & 0x3F, value >> 12), True


# =============================================================================
# Page status word
# =============================================================================


def page_status_from_page(page: PacketPage) -> int:
    """
    Build the TTI page status word from the header control bits.

    Bit 15 "transmit page" is always set, C4 is bit 14, C5-C11 are bits
    0-6 and the NOS bits C12-C14 are stored backwards in bits 9-7.
    """
    status = 0x8000 | (int(page.control_bit(ControlBit.C4_ERASE_PAGE)) << 14)
    for bit in range(ControlBit.C5_NEWSFLASH, ControlBit.C11_SERIAL_MAGAZINE + 1):
        status |= int(page.control_bit(bit)) << (bit - 1)
    status |= int(page.control_bit(ControlBit.C12_NOS)) << 9
    status |= int(page.control_bit(ControlBit.C13_NOS)) << 8
    status |= int(page.control_bit(ControlBit.C14_NOS)) << 7
    return status


def apply_page_status(page: PacketPage, status: int) -> None:
    """Set the header control bits of a page from a TTI page status word."""
    page.set_control_bit(ControlBit.C4_ERASE_PAGE, bool(status & 0x4000))
    for bit in range(ControlBit.C5_NEWSFLASH, ControlBit.C11_SERIAL_MAGAZINE + 1):
        page.set_control_bit(bit, bool(status & (1 << (bit - 1))))
    page.set_control_bit(ControlBit.C12_NOS, bool(status & 0x0200))
    page.set_control_bit(ControlBit.C13_NOS, bool(status & 0x0100))
    page.set_control_bit(ControlBit.C14_NOS, bool(status & 0x0080))


def to_bcd(value: int) -> int:
    """Read the decimal digits of value as hex digits, e.g. 12 -> 0x12."""
    return int(str(value), 16)
