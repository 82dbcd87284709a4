"""
Hamming 8/4 and Hamming 24/18 coding for teletext packets.

Hamming 8/4 protects 4 data bits with 4 protection bits. It corrects single
bit errors and detects double bit errors. It is used for the magazine and
packet address, the page header, designation codes and X/27/0-3 links.

Hamming 24/18 protects 18 data bits with 6 protection bits. It is used for
the enhancement triplets of X/26, X/27/4-15 and X/28 packets.

Both decoders report errors the same way, as a second tuple element:
    0 = no error, 1 = single bit error corrected, 2 = uncorrectable

References:
    - ETSI EN 300 706 V1.2.1 - Enhanced Teletext specification, 8.2 and 8.3
"""

from typing import Tuple

HAMMING_NO_ERROR = 0
HAMMING_CORRECTED = 1
HAMMING_UNCORRECTABLE = 2

# Sentinel nibble for an uncorrectable Hamming 8/4 byte, outside 0-15
HAMMING_8_4_INVALID = 0xFF

# Index: nibble (0-15), value: encoded byte.
# Bits from LSB: P1, D1, P2, D2, P3, D3, P4, D4
HAMMING_8_4_ENCODE: Tuple[int, ...] = (
    0x15,
    0x02,
    0x49,
    0x5E,
    0x64,
    0x73,
    0x38,
    0x2F,
    0xD0,
    0xC7,
    0x8C,
    0x9B,
    0xA1,
    0xB6,
    0xFD,
    0xEA,
)


def _bit_count(value: int) -> int:
    return bin(value).count("1")


def _build_hamming_8_4_table() -> Tuple[Tuple[int, int], ...]:
    # Codewords are at least 4 bits apart, so a byte one bit away from a
    # codeword is a correctable error and anything further is not.
    table = []
    for byte in range(256):
        decoded = (HAMMING_8_4_INVALID, HAMMING_UNCORRECTABLE)
        for nibble, codeword in enumerate(HAMMING_8_4_ENCODE):
            distance = _bit_count(byte ^ codeword)
            if distance <= 1:
                decoded = (nibble, distance)
                break
        table.append(decoded)
    return tuple(table)


# Index: input byte (0-255)
# Value: (decoded_nibble, error_count)
HAMMING_8_4_TABLE: Tuple[Tuple[int, int], ...] = _build_hamming_8_4_table()


def hamming_8_4_encode(nibble: int) -> int:
    """Encode the low 4 bits of nibble as a Hamming 8/4 byte."""
    return HAMMING_8_4_ENCODE[nibble & 0x0F]


def hamming_8_4_decode(byte: int) -> Tuple[int, int]:
    """
    Decode a Hamming 8/4 encoded byte using lookup table.

    Args:
        byte: The encoded byte (0-255)

    Returns:
        Tuple of (decoded_nibble, error_count)
        - decoded_nibble: 4-bit decoded value (0-15), or HAMMING_8_4_INVALID
        - error_count: 0=no error, 1=corrected, 2=uncorrectable
    """
    return HAMMING_8_4_TABLE[byte & 0xFF]


# Bit positions 1-24 of a 24/18 codeword, LSB of the first byte is position 1.
# Protection bits sit at 1, 2, 4, 8, 16 (P1-P5) and 24 (P6).
HAMMING_24_18_DATA_POSITIONS: Tuple[int, ...] = (
    3, 5, 6, 7,
    9, 10, 11, 12, 13, 14, 15,
    17, 18, 19, 20, 21, 22, 23,
)


def _check_parity(word: int, check: int) -> int:
    """Parity of the codeword bits at positions 1-23 that have the check bit set."""
    parity = 0
    for position in range(1, 24):
        if position & check:
            parity ^= (word >> (position - 1)) & 1
    return parity


def hamming_24_18_encode(value: int) -> bytes:
    """
    Encode 18 data bits as a 3 byte Hamming 24/18 codeword.

    The triplet fields of a 40 byte packet are 6 bits each, so callers
    usually pass ``b0 | (b1 << 6) | (b2 << 12)``.

    Args:
        value: Data value, masked to 18 bits

    Returns:
        3 encoded bytes in transmission order
    """
    value &= 0x3FFFF
    word = 0
    for i, position in enumerate(HAMMING_24_18_DATA_POSITIONS):
        if (value >> i) & 1:
            word |= 1 << (position - 1)

    # P1-P5 give odd parity over their check groups, P6 over the whole word
    for i in range(5):
        check = 1 << i
        if not _check_parity(word, check):
            word |= 1 << (check - 1)
    if not _bit_count(word) & 1:
        word |= 1 << 23

    return bytes((word & 0xFF, (word >> 8) & 0xFF, (word >> 16) & 0xFF))


def _build_hamming_24_18_correction() -> Tuple[int, ...]:
    # Index: 6-bit syndrome, F (overall parity failed) in bit 5 and the
    # failed check groups in bits 0-4. Value: codeword bit to flip, 0 for
    # none, -1 for uncorrectable.
    table = []
    for syndrome in range(64):
        position = syndrome & 0x1F
        if syndrome == 0:
            table.append(0)
        elif not syndrome & 0x20:
            table.append(-1)
        elif position == 0:
            # Only P6 itself is wrong
            table.append(1 << 23)
        elif position <= 23:
            table.append(1 << (position - 1))
        else:
            table.append(-1)
    return tuple(table)


HAMMING_24_18_CORRECTION: Tuple[int, ...] = _build_hamming_24_18_correction()


def hamming_24_18_decode(byte0: int, byte1: int, byte2: int) -> Tuple[int, int]:
    """
    Decode a Hamming 24/18 codeword.

    Args:
        byte0, byte1, byte2: The three encoded bytes in transmission order

    Returns:
        Tuple of (value, error_count)
        - value: 18-bit decoded data. Left uncorrected when the error count is 2.
        - error_count: 0=no error, 1=corrected, 2=uncorrectable (two or more bits)
    """
    word = (byte0 & 0xFF) | ((byte1 & 0xFF) << 8) | ((byte2 & 0xFF) << 16)

    syndrome = 0
    for i in range(5):
        if not _check_parity(word, 1 << i):
            syndrome |= 1 << i
    if not _bit_count(word) & 1:
        syndrome |= 0x20

    correction = HAMMING_24_18_CORRECTION[syndrome]
    if correction < 0:
        errors = HAMMING_UNCORRECTABLE
    else:
        word ^= correction
        errors = HAMMING_CORRECTED if correction else HAMMING_NO_ERROR

    value = 0
    for i, position in enumerate(HAMMING_24_18_DATA_POSITIONS):
        value |= ((word >> (position - 1)) & 1) << i

    return value, errors


def odd_parity(byte: int) -> int:
    """Return the low 7 bits of byte with bit 7 set to give odd parity."""
    byte &= 0x7F
    if not _bit_count(byte) & 1:
        byte |= 0x80
    return byte


def reverse_bits(byte: int) -> int:
    """Reverse the bit order of a byte (LSB first <-> MSB first)."""
    byte = ((byte & 0xF0) >> 4) | ((byte & 0x0F) << 4)
    byte = ((byte & 0xCC) >> 2) | ((byte & 0x33) << 2)
    byte = ((byte & 0xAA) >> 1) | ((byte & 0x55) << 1)
    return byte
