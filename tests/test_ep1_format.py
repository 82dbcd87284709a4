import pytest
from teletext_utils.errors import TeletextLoadError
from teletext_utils.level_one_page import LevelOnePage
from teletext_utils.PageFormats.formats.ep1_format import (
    EP1Format,
    ep1_shuffle_packet,
    ep1_unshuffle_packet,
    language_from_code,
)

from helpers_for_testing import TERMINATOR, make_ep1_file, make_level_one_page, make_page_set, make_triplet_list


def make_ep1_enhancements(*triplets) -> bytes:
    packet = bytearray(ep1_shuffle_packet(make_triplet_list(*triplets).to_packet(0)))
    packet[0] = 0
    return bytes(packet)


# =============================================================================
# Tests for EP1 helpers
# =============================================================================


class TestLanguageFromCode:
    """Tests for language_from_code()."""

    def test_english(self):
        """Code 0x09 should be English, the lowest matching key."""
        assert language_from_code(0x09) == 0x00

    def test_shared_code_uses_lowest_key(self):
        """Codes shared by several sets should map to the lowest key."""
        assert language_from_code(0x0D) == 0x01

    def test_unknown_code(self):
        """Unknown codes should map to English."""
        assert language_from_code(0x55) == 0x00


class TestTripletShuffle:
    """Tests for ep1_shuffle_packet() and ep1_unshuffle_packet()."""

    def test_shuffle_layout(self):
        """EP1 stores data shifted left with the mode's bit 5 in bit 0."""
        packet = make_triplet_list((41, 0x04, 5), TERMINATOR).to_packet(0)

        shuffled = ep1_shuffle_packet(packet)

        assert shuffled[1:4] == bytes((41, 0x04, 5))
        assert shuffled[4:7] == bytes((0x7F, 0x1F, 0x07))

    def test_unshuffle_restores_packet(self):
        """Unshuffling should give back the 6-bit packet."""
        packet = make_triplet_list((41, 0x04, 5), (10, 0x00, 0x41), TERMINATOR).to_packet(0)

        assert ep1_unshuffle_packet(ep1_shuffle_packet(packet)) == packet

    def test_unshuffle_repeats_final_marker(self):
        """Bytes after a final termination marker should be replaced by it."""
        raw = bytearray(make_ep1_enhancements((41, 0x04, 5), TERMINATOR))
        raw[7:10] = bytes((1, 2, 3))

        packet = ep1_unshuffle_packet(bytes(raw))

        assert packet[7:10] == bytes((63, 0x3F, 3))


# =============================================================================
# Tests for EP1Format - loading
# =============================================================================


class TestEP1Load:
    """Tests for EP1Format.load()."""

    def test_load_rows(self):
        """The 24 rows should be loaded, blank rows left empty."""
        data = make_ep1_file(rows={1: b"Hello", 23: b"Bottom"})

        result = EP1Format().load(data)
        page = result.pages[0]

        assert page.packet(1) == b"Hello".ljust(40)
        assert page.packet(23) == b"Bottom".ljust(40)
        assert not page.packet_exists(2)
        assert result.warnings == []

    def test_load_language(self):
        """The language code should set character set and NOS."""
        page = EP1Format().load(make_ep1_file(rows={1: b"Text"}, language_code=0x1E)).pages[0]

        assert page.default_char_set == 3
        assert page.default_nos == 5

    def test_unknown_language_warns(self):
        """An unknown language should load as English with a warning."""
        result = EP1Format().load(make_ep1_file(rows={1: b"Text"}, language_code=0x55))

        assert result.warnings == ["Unknown EP1 language code 55, loaded as English."]
        assert result.pages[0].default_char_set == 0
        assert result.pages[0].default_nos == 0

    def test_load_enhancements(self):
        """Enhancement packets should load into the triplet list."""
        data = make_ep1_file(rows={1: b"Text"}, enhancements=make_ep1_enhancements((41, 0x04, 5), TERMINATOR))

        page = EP1Format().load(data).pages[0]

        assert page.enhancements == make_triplet_list((41, 0x04, 5), TERMINATOR)
        assert page.packet(1) == b"Text".ljust(40)

    def test_multi_page_file_warns(self):
        """A JWC file should load its first page with a re-export warning."""
        result = EP1Format().load(make_ep1_file(rows={1: b"First"}, multi_page=True))

        assert result.warnings == ["More than one page in EP1/EPX file, only first full page loaded."]
        assert result.re_export_warning
        assert result.pages[0].packet(1) == b"First".ljust(40)

    def test_missing_header(self):
        """A file not starting with FE 01 should fail to load."""
        with pytest.raises(TeletextLoadError, match="No EP1 page header found."):
            EP1Format().load(b"\x00" * 1008)

    def test_truncated(self):
        """A file cut short should fail to load."""
        with pytest.raises(TeletextLoadError, match="EP1 file is truncated."):
            EP1Format().load(make_ep1_file()[:500])


# =============================================================================
# Tests for EP1Format - saving
# =============================================================================


class TestEP1Save:
    """Tests for EP1Format.save()."""

    def test_save_layout(self):
        """A plain page should be header, no enhancements, 24 rows and the end marker."""
        pages = make_page_set(subpages=[make_level_one_page({1: b"Hello"})])

        result = EP1Format().save(pages)

        assert result.data[:6] == b"\xfe\x01\x09\x00\x00\x00"
        assert result.data[6 + 40 : 6 + 80] == b"Hello".ljust(40)
        assert result.data[-42:] == b" " * 40 + b"\x00\x00"
        assert len(result.data) == 6 + 24 * 40 + 42
        assert result.warnings == []

    def test_save_enhancements(self):
        """Enhancements should be preceded by offset and length."""
        pages = make_page_set(subpages=[make_level_one_page({1: b"Hello"}, triplets=[(41, 0x04, 5), TERMINATOR])])

        data = EP1Format().save(pages).data

        assert data[3:6] == bytes((0xCA, 44, 0))
        assert data[6:10] == bytes((0xC2, 0x00, 40, 0))
        assert data[10] == 0
        assert data[11:14] == bytes((41, 0x04, 5))

    def test_save_language(self):
        """The page's character set and NOS should pick the language code."""
        page = LevelOnePage()
        page.default_char_set = 3
        page.default_nos = 5

        data = EP1Format().save(make_page_set(subpages=[page])).data

        assert data[2] == 0x1E

    def test_unsupported_features_warn(self):
        """Features EP1 cannot hold should be reported."""
        page = LevelOnePage()
        page.default_char_set = 7
        page.default_nos = 7
        page.set_fast_text_link_page_number(0, 0x100)

        result = EP1Format().save(make_page_set(subpages=[page]))

        assert "Page language not supported, will be exported as English." in result.warnings
        assert "FLOF display row and page links will not be exported." in result.warnings
        assert "X/28 page enhancements will not be exported." in result.warnings
        assert result.data[2] == 0x09

    def test_only_first_subpage(self):
        """Only the first subpage should be saved."""
        pages = make_page_set(subpages=[make_level_one_page({1: b"A"}), make_level_one_page({1: b"B"})])

        result = EP1Format().save(pages)

        assert len(result.data) == 6 + 24 * 40 + 42
        assert "EP1 holds one page, only the first subpage was exported." in result.warnings

    def test_round_trip(self):
        """A saved page should load back with the same content."""
        page = make_level_one_page({0: b"Header", 1: b"\x01Hello"}, triplets=[(41, 0x04, 5), (10, 0x00, 0x41), TERMINATOR])
        page.default_nos = 1

        loaded = EP1Format().load(EP1Format().save(make_page_set(subpages=[page])).data).pages[0]

        assert loaded.packet(0) == page.packet(0)
        assert loaded.packet(1) == page.packet(1)
        assert loaded.enhancements == page.enhancements
        assert loaded.default_nos == 1
