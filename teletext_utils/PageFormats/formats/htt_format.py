"""
HMS SD-Teletext HTT capture format.

Each t42 packet is stored as a 45 byte record: the prefix AA AA E4 then the
42 packet bytes with their bit order reversed. Everything else is t42.
"""

import io
from typing import Iterator

from teletext_utils.hamming import reverse_bits
from teletext_utils.PageFormats.formats.t42_format import RECORD_SIZE, T42Format
from teletext_utils.PageFormats.PageFormat import SaveContext

HTT_PREFIX = b"\xaa\xaa\xe4"
HTT_RECORD_SIZE = len(HTT_PREFIX) + RECORD_SIZE


class HTTFormat(T42Format):
    format_id = "htt"
    format_description = "HMS SD-Teletext HTT"
    format_extensions = ("htt",)

    def read_records(self, data: bytes) -> Iterator[bytearray]:
        buffer = io.BytesIO(data)
        while True:
            record = buffer.read(HTT_RECORD_SIZE)
            if len(record) < HTT_RECORD_SIZE:
                break
            # A record without the prefix ends the stream
            if record[:3] != HTT_PREFIX:
                break
            yield bytearray(reverse_bits(byte) for byte in record[3:])

    def write_raw_data(self, ctx: SaveContext, data: bytes) -> None:
        ctx.out += HTT_PREFIX + bytes(reverse_bits(byte) for byte in data)
