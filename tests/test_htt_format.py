from teletext_utils.hamming import reverse_bits
from teletext_utils.models import ControlBit
from teletext_utils.PageFormats.formats.htt_format import HTT_PREFIX, HTT_RECORD_SIZE, HTTFormat

from helpers_for_testing import TERMINATOR, make_level_one_page, make_page_set, make_t42_header, make_t42_row


def to_htt(*records: bytes) -> bytes:
    """Wrap t42 records as HTT records."""
    return b"".join(HTT_PREFIX + bytes(reverse_bits(b) for b in record) for record in records)


# =============================================================================
# Tests for HTTFormat
# =============================================================================


class TestHTTLoad:
    """Tests for HTTFormat.load()."""

    def test_load_page(self):
        """HTT records should load like the t42 packets they wrap."""
        data = to_htt(make_t42_header(0x98, erase=True), make_t42_row(1, b"Hello"))

        result = HTTFormat().load(data)

        assert result.pages.page_number == 0x198
        assert result.pages[0].packet(1) == b"Hello".ljust(40)
        assert result.pages[0].control_bit(ControlBit.C4_ERASE_PAGE)

    def test_missing_prefix_ends_stream(self):
        """A record without the AA AA E4 prefix should end the stream."""
        bad = bytearray(to_htt(make_t42_row(2, b"Lost")))
        bad[0] = 0x00
        data = to_htt(make_t42_header(0x98), make_t42_row(1, b"Hello")) + bytes(bad)

        page = HTTFormat().load(data).pages[0]

        assert page.packet(1) == b"Hello".ljust(40)
        assert not page.packet_exists(2)


class TestHTTSave:
    """Tests for HTTFormat.save()."""

    def test_save_records(self):
        """Every record should carry the prefix and reversed t42 bytes."""
        pages = make_page_set(page_number=0x198)

        data = HTTFormat().save(pages).data

        assert len(data) == 2 * HTT_RECORD_SIZE
        assert data[0:3] == HTT_PREFIX
        assert data[HTT_RECORD_SIZE : HTT_RECORD_SIZE + 3] == HTT_PREFIX
        assert data[3] == reverse_bits(make_t42_header(0x98)[0])

    def test_round_trip(self):
        """A saved page should load back with the same content."""
        page = make_level_one_page({1: b"\x01Hello"}, triplets=[(41, 0x04, 5), TERMINATOR])
        page.set_control_bit(ControlBit.C5_NEWSFLASH, True)
        pages = make_page_set(page_number=0x3C0, subpages=[page])

        loaded = HTTFormat().load(HTTFormat().save(pages).data).pages

        assert loaded.page_number == 0x3C0
        assert loaded[0].packet(1) == page.packet(1)
        assert loaded[0].enhancements == page.enhancements
        assert loaded[0].control_bit(ControlBit.C5_NEWSFLASH)

    def test_header_text(self):
        """HTTFormat should accept header_text like T42Format."""
        pages = make_page_set(subpages=[make_level_one_page({0: b"        Header", 1: b"Body"})])

        loaded = HTTFormat().load(HTTFormat(header_text=True).save(pages).data).pages[0]

        assert loaded.packet(0) == pages[0].packet(0)
