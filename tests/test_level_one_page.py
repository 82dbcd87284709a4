from teletext_utils.level_one_page import COLUMNS, NO_SECOND_CHAR_SET, NO_SECOND_NOS, LevelOnePage
from teletext_utils.models import DEFAULT_CLUT, ControlBit, CycleType
from teletext_utils.packet_page import PacketPage, PageObserver
from teletext_utils.x26_triplets import X26Triplet

from helpers_for_testing import TERMINATOR, make_level_one_page, make_triplet_list


# =============================================================================
# Tests for LevelOnePage - defaults and grid
# =============================================================================


class TestLevelOnePageDefaults:
    """Tests for a new LevelOnePage."""

    def test_defaults(self):
        """A new page should have the documented defaults."""
        page = LevelOnePage()

        assert page.cycle_value == 20
        assert page.cycle_type == CycleType.SECONDS
        assert page.default_char_set == 0
        assert page.default_nos == 0
        assert page.second_char_set == NO_SECOND_CHAR_SET
        assert page.second_nos == NO_SECOND_NOS
        assert page.side_panel_status_l25
        assert page.is_empty()

    def test_default_links(self):
        """Links should point nowhere, with compose links 0-3 at fixed functions."""
        page = LevelOnePage()

        assert all(link.page_number == 0x0FF for link in page.fast_text_links)
        assert all(link.subpage_number == 0x3F7F for link in page.fast_text_links)
        assert [link.function for link in page.compose_links[:4]] == [0, 1, 2, 3]
        assert page.compose_links[4].level_3p5
        assert not page.compose_links[0].level_3p5

    def test_no_packets_exist(self):
        """Nothing should need saving on a new page."""
        page = LevelOnePage()

        assert not page.packet_exists(1)
        assert not page.packet_exists(26, 0)
        assert not page.packet_exists(27, 0)
        assert not page.packet_exists(27, 4)
        assert not page.packet_exists(28, 0)
        assert not page.packet_exists(28, 4)


class TestLevelOnePageGrid:
    """Tests for character grid access."""

    def test_set_character(self):
        """set_character() should show up in the row packet."""
        page = LevelOnePage()

        page.set_character(3, 0, 0x01)
        page.set_character(3, 1, ord("A"))

        assert page.character(3, 1) == ord("A")
        assert page.packet(3) == b"\x01A" + b" " * (COLUMNS - 2)
        assert page.packet_exists(3)

    def test_set_row_packet(self):
        """Row packets should be stored in the grid."""
        page = make_level_one_page({1: b"Hello"})

        assert page.character(1, 0) == ord("H")
        assert page.packet(1) == b"Hello".ljust(40)

    def test_clear_row(self):
        """clear_packet() should blank a row to spaces."""
        page = make_level_one_page({1: b"Hello"})

        page.clear_packet(1)

        assert not page.packet_exists(1)
        assert page.is_empty()

    def test_raw_packets_kept(self):
        """Packets the page does not interpret should be stored as-is."""
        page = LevelOnePage()

        page.set_packet(27, b"\x01" * 40, 1)

        assert page.packet_exists(27, 1)
        assert page.packet(27, 1) == b"\x01" * 40


# =============================================================================
# Tests for LevelOnePage - character sets and control bits
# =============================================================================


class TestLevelOnePageNOS:
    """Tests for the NOS bits and character set fields."""

    def test_control_bits_set_default_nos(self):
        """C12-C14 should be bits 0-2 of the default NOS."""
        page = LevelOnePage()

        page.set_control_bit(ControlBit.C13_NOS, True)

        assert page.default_nos == 2
        page.set_control_bit(ControlBit.C12_NOS, True)
        assert page.default_nos == 3
        page.set_control_bit(ControlBit.C13_NOS, False)
        assert page.default_nos == 1

    def test_default_nos_sets_control_bits(self):
        """The default NOS should read back through the control bits."""
        page = LevelOnePage()

        page.default_nos = 5

        assert page.control_bit(ControlBit.C12_NOS)
        assert not page.control_bit(ControlBit.C13_NOS)
        assert page.control_bit(ControlBit.C14_NOS)

    def test_default_nos_masked(self):
        """The default NOS should be limited to 3 bits."""
        page = LevelOnePage()

        page.default_nos = 9

        assert page.default_nos == 1

    def test_no_second_char_set_forces_nos(self):
        """Setting no second character set should force its NOS to 7."""
        page = LevelOnePage()
        page.second_char_set = 1
        page.second_nos = 3

        page.second_char_set = NO_SECOND_CHAR_SET

        assert page.second_nos == NO_SECOND_NOS

    def test_other_control_bits(self):
        """Other control bits should be stored by the page."""
        page = LevelOnePage()

        page.set_control_bit(ControlBit.C8_UPDATE, True)

        assert page.control_bit(ControlBit.C8_UPDATE)
        assert page.default_nos == 0


# =============================================================================
# Tests for LevelOnePage - CLUT
# =============================================================================


class TestLevelOnePageClut:
    """Tests for the colour look-up table."""

    def test_set_clut(self):
        """set_clut() should redefine an entry."""
        page = LevelOnePage()

        page.set_clut(16, 0x123)

        assert page.clut(16) == 0x123
        assert not page.is_palette_default(16, 31)
        assert page.is_palette_default(0, 15)

    def test_transparent_entry_fixed(self):
        """Entry 8 should not be redefinable."""
        page = LevelOnePage()

        page.set_clut(8, 0xFFF)

        assert page.clut(8) == DEFAULT_CLUT[8]
        assert page.is_palette_default()

    def test_render_levels(self):
        """Lower level decoders should see fewer redefinitions."""
        page = LevelOnePage()
        page.set_clut(0, 0x123)
        page.set_clut(16, 0x456)

        assert page.clut(0, render_level=3) == 0x123
        assert page.clut(0, render_level=2) == DEFAULT_CLUT[0]
        assert page.clut(16, render_level=2) == 0x456
        assert page.clut(16, render_level=1) == DEFAULT_CLUT[16]

    def test_redefined_clut_makes_page_not_empty(self):
        """A redefined palette should count as content."""
        page = LevelOnePage()

        page.set_clut(20, 0x000)

        assert not page.is_empty()


# =============================================================================
# Tests for LevelOnePage - X/27 links
# =============================================================================


class TestFastTextLinks:
    """Tests for the X/27/0 packet."""

    def test_fast_text_packet_round_trip(self):
        """Links should survive building and decoding X/27/0."""
        page = LevelOnePage()
        page.set_fast_text_link_page_number(0, 0x1A0)
        page.set_fast_text_link_page_number(5, 0x0FF)
        page.fast_text_links[1].page_number = 0x7B3
        page.fast_text_links[1].subpage_number = 0x0001

        other = LevelOnePage()
        other.set_packet(27, page.packet(27, 0), 0)

        assert other.fast_text_links == page.fast_text_links
        assert other.packet(27, 0) == page.packet(27, 0)

    def test_fast_text_packet_layout(self):
        """The link control byte should be set and all bytes 4-bit."""
        page = LevelOnePage()
        page.set_fast_text_link_page_number(0, 0x1A0)

        packet = page.packet(27, 0)

        assert packet[1:7] == bytes((0x0, 0xA, 0xF, 0xF, 0xF, 0x3))
        assert packet[37] == 0xF
        assert all(byte <= 0x0F for byte in packet)

    def test_fast_text_packet_exists(self):
        """X/27/0 should exist once any link points at a page."""
        page = LevelOnePage()

        page.set_fast_text_link_page_number(2, 0x150)

        assert page.packet_exists(27, 0)


class TestComposeLinks:
    """Tests for the X/27/4 and X/27/5 packets."""

    def test_compose_link_round_trip(self):
        """Compose links should survive building and decoding X/27/4 and X/27/5."""
        page = LevelOnePage()
        page.compose_links[4].function = 1
        page.compose_links[4].level_2p5 = True
        page.set_compose_link_page_number(4, 0x2AB)
        page.compose_links[4].subpage_codes = 0x1234
        page.set_compose_link_page_number(6, 0x155)

        other = LevelOnePage()
        other.set_packet(27, page.packet(27, 4), 4)
        other.set_packet(27, page.packet(27, 5), 5)

        assert other.compose_links == page.compose_links
        assert all(byte <= 0x3F for byte in page.packet(27, 4))

    def test_compose_link_packet_exists(self):
        """Each packet should exist only for its own links."""
        page = LevelOnePage()

        page.set_compose_link_page_number(6, 0x155)

        assert page.packet_exists(27, 5)
        assert not page.packet_exists(27, 4)

    def test_fixed_functions_kept(self):
        """Links 0-3 should keep their fixed function when decoded."""
        page = LevelOnePage()
        packet = bytearray(page.packet(27, 4))
        packet[1] = (packet[1] & 0x0C) | 0x03

        page.set_packet(27, bytes(packet), 4)

        assert page.compose_links[0].function == 0


# =============================================================================
# Tests for LevelOnePage - X/28
# =============================================================================


class TestX28Packets:
    """Tests for the X/28/0 and X/28/4 packets."""

    def make_enhanced_page(self) -> LevelOnePage:
        page = LevelOnePage()
        page.default_char_set = 2
        page.default_nos = 3
        page.second_char_set = 1
        page.second_nos = 4
        page.left_side_panel_displayed = True
        page.side_panel_columns = 5
        page.default_screen_colour = 20
        page.default_row_colour = 17
        page.black_background_subst = True
        page.colour_table_remap = 5
        page.set_clut(16, 0x123)
        page.set_clut(31, 0xABC)
        return page

    def test_x28_0_round_trip(self):
        """Decoding and re-encoding X/28/0 should give the same 40 bytes."""
        page = self.make_enhanced_page()
        packet = page.packet(28, 0)

        other = LevelOnePage()
        other.set_packet(28, packet, 0)

        assert len(packet) == 40
        assert all(byte <= 0x3F for byte in packet)
        assert other.packet(28, 0) == packet

    def test_x28_0_fields_decoded(self):
        """X/28/0 should carry the page-wide settings and CLUTs 2 and 3."""
        other = LevelOnePage()
        other.set_packet(28, self.make_enhanced_page().packet(28, 0), 0)

        assert other.default_char_set == 2
        assert other.default_nos == 3
        assert other.second_char_set == 1
        assert other.second_nos == 4
        assert other.left_side_panel_displayed
        assert not other.right_side_panel_displayed
        assert other.side_panel_columns == 5
        assert other.default_screen_colour == 20
        assert other.default_row_colour == 17
        assert other.black_background_subst
        assert other.colour_table_remap == 5
        assert other.clut(16) == 0x123
        assert other.clut(31) == 0xABC
        assert other.clut(17) == DEFAULT_CLUT[17]

    def test_x28_4_carries_cluts_0_and_1(self):
        """X/28/4 should carry CLUTs 0 and 1."""
        page = LevelOnePage()
        page.set_clut(3, 0x456)

        other = LevelOnePage()
        other.set_packet(28, page.packet(28, 4), 4)

        assert page.packet_exists(28, 4)
        assert not page.packet_exists(28, 0)
        assert other.clut(3) == 0x456

    def test_x28_0_exists_for_flags(self):
        """X/28/0 should exist when a page-wide setting is not default."""
        page = LevelOnePage()

        page.default_row_colour = 1

        assert page.packet_exists(28, 0)


# =============================================================================
# Tests for LevelOnePage - enhancements and level
# =============================================================================


class TestEnhancements:
    """Tests for X/26 packets on a page."""

    def test_x26_packets_follow_list(self):
        """X/26 packets should exist for each started group of 13 triplets."""
        page = make_level_one_page(triplets=[(41, 0x04, 0)] * 13 + [TERMINATOR])

        assert page.packet_exists(26, 0)
        assert page.packet_exists(26, 1)
        assert not page.packet_exists(26, 2)
        assert page.packet(26, 2) == bytes(40)

    def test_set_x26_packet(self):
        """Setting X/26 should load the triplet list."""
        source = make_triplet_list((41, 0x04, 5), TERMINATOR)
        page = LevelOnePage()

        page.set_packet(26, source.to_packet(0), 0)

        assert page.enhancements == source

    def test_set_enhancements_notifies(self):
        """set_enhancements() should notify observers."""

        class Observer(PageObserver):
            called = False

            def enhancements_changed(self, page):
                Observer.called = True

        page = LevelOnePage()
        page.add_observer(Observer())

        page.set_enhancements(make_triplet_list(TERMINATOR))

        assert Observer.called


class TestLevelRequired:
    """Tests for level_required()."""

    def test_blank_page_is_level_1(self):
        """A blank page should need Level 1."""
        assert LevelOnePage().level_required() == 0

    def test_set_active_position_is_level_1p5(self):
        """Level 1.5 modes alone should need Level 1.5."""
        assert make_level_one_page(triplets=[(41, 0x04, 0), TERMINATOR]).level_required() == 1

    def test_full_row_colour_is_level_2p5(self):
        """Level 2.5 modes should need Level 2.5."""
        assert make_level_one_page(triplets=[(41, 0x01, 0), TERMINATOR]).level_required() == 2

    def test_font_style_is_level_3p5(self):
        """Mode 0x2E should need Level 3.5."""
        assert make_level_one_page(triplets=[(5, 0x0E, 0)]).level_required() == 3

    def test_x28_flags_are_level_2p5(self):
        """Page-wide settings should need Level 2.5."""
        page = LevelOnePage()

        page.default_screen_colour = 1

        assert page.level_required() == 2

    def test_clut_0_redefined_is_level_3p5(self):
        """Redefining CLUTs 0 or 1 should need Level 3.5."""
        page = LevelOnePage()

        page.set_clut(0, 0x123)

        assert page.level_required() == 3

    def test_drcs_mode_level_3p5(self):
        """Normal DRCS downloading mode should need Level 3.5."""
        page = make_level_one_page(triplets=[(41, 0x18, 0x20), TERMINATOR])

        assert page.level_required() == 3


# =============================================================================
# Tests for LevelOnePage.from_packet_page
# =============================================================================


class TestFromPacketPage:
    """Tests for from_packet_page()."""

    def test_packets_and_control_bits_copied(self):
        """Rows, designation packets and control bits should be taken over."""
        raw = PacketPage()
        raw.set_packet(1, b"Hello".ljust(40))
        raw.set_packet(26, make_triplet_list((41, 0x04, 5), TERMINATOR).to_packet(0), 0)
        raw.set_control_bit(ControlBit.C4_ERASE_PAGE, True)

        page = LevelOnePage.from_packet_page(raw)

        assert page.packet(1) == b"Hello".ljust(40)
        assert page.enhancements[0] == X26Triplet(41, 0x04, 5)
        assert page.control_bit(ControlBit.C4_ERASE_PAGE)

    def test_header_nos_wins_over_x28(self):
        """NOS bits from the header should override the X/28/0 NOS."""
        source = LevelOnePage()
        source.default_char_set = 1
        source.default_nos = 6
        raw = PacketPage()
        raw.set_packet(28, source.packet(28, 0), 0)
        raw.set_control_bit(ControlBit.C12_NOS, True)

        page = LevelOnePage.from_packet_page(raw)

        assert page.default_char_set == 1
        assert page.default_nos == 1
