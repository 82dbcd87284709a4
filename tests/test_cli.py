import pytest
from click.testing import CliRunner
from teletext_utils.cli.errors import ExitCode
from teletext_utils.cli.ttxpage import __version__, main
from teletext_utils.PageFormats.formats.t42_format import T42Format

from helpers_for_testing import make_t42_row, make_tti_file


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def tti_path(tmp_path):
    path = tmp_path / "P198.tti"
    path.write_bytes(
        make_tti_file("DE,Weather", "PN,19801", "OL,0,        P198", "OL,1,Hello", "PN,19802", "OL,1,World")
    )
    return path


# =============================================================================
# Tests for the main group
# =============================================================================


class TestMain:
    """Tests for the ttxpage group options."""

    def test_version(self, runner):
        """--version should print the package version."""
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_formats(self, runner):
        """formats should list every codec with its modes."""
        result = runner.invoke(main, ["formats"])

        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert [line.split()[0] for line in lines] == ["tti", "t42", "ep1", "htt", "m29"]
        assert lines[0].endswith("load/save")
        assert lines[-1].endswith("save")


# =============================================================================
# Tests for the info command
# =============================================================================


class TestInfo:
    """Tests for ttxpage info."""

    def test_info(self, runner, tti_path):
        """info should show the page number, description and subpages."""
        result = runner.invoke(main, ["info", str(tti_path)])

        assert result.exit_code == 0, result.output
        assert "Page number:   198" in result.output
        assert "Description:   Weather" in result.output
        assert "Subpages:      2" in result.output
        assert "Subpage 2: level 1, 0 triplets" in result.output

    def test_unknown_extension(self, runner, tmp_path):
        """A file with no matching codec should be an argument error."""
        path = tmp_path / "page.stl"
        path.write_bytes(b"\x00" * 10)

        result = runner.invoke(main, ["info", str(path)])

        assert result.exit_code == ExitCode.INVALID_ARGS

    def test_load_error(self, runner, tmp_path):
        """An undecodable file should exit with the format error code."""
        path = tmp_path / "capture.t42"
        path.write_bytes(make_t42_row(1, b"Text"))

        result = runner.invoke(main, ["info", str(path)])

        assert result.exit_code == ExitCode.FORMAT_ERROR
        assert "No X/0 found." in result.output

    def test_format_option(self, runner, tmp_path, tti_path):
        """--format should override the file extension."""
        path = tmp_path / "page.bin"
        path.write_bytes(tti_path.read_bytes())

        result = runner.invoke(main, ["info", "-f", "TTI", str(path)])

        assert result.exit_code == 0, result.output
        assert "Page number:   198" in result.output

    def test_invalid_format_option(self, runner, tti_path):
        """An unregistered --format should be rejected by click."""
        result = runner.invoke(main, ["info", "-f", "stl", str(tti_path)])

        assert result.exit_code == 2
        assert "Invalid format 'stl'" in result.output


# =============================================================================
# Tests for the convert command
# =============================================================================


class TestConvert:
    """Tests for ttxpage convert."""

    def test_convert_by_extension(self, runner, tmp_path, tti_path):
        """The output codec should be picked from the output extension."""
        output = tmp_path / "P198.t42"

        result = runner.invoke(main, ["convert", str(tti_path), str(output)])

        assert result.exit_code == 0, result.output
        assert "Converted" in result.output
        pages = T42Format().load(output.read_bytes()).pages
        assert pages.page_number == 0x198
        assert pages[0].packet(1) == b"Hello".ljust(40)

    def test_convert_single_subpage(self, runner, tmp_path, tti_path):
        """--subpage should save only that subpage."""
        output = tmp_path / "P198.t42"

        result = runner.invoke(main, ["convert", "-s", "2", str(tti_path), str(output)])

        assert result.exit_code == 0, result.output
        pages = T42Format().load(output.read_bytes()).pages
        assert len(pages) == 1
        assert pages[0].packet(1) == b"World".ljust(40)

    def test_subpage_out_of_range(self, runner, tmp_path, tti_path):
        """A subpage past the last one should be an argument error."""
        result = runner.invoke(main, ["convert", "-s", "3", str(tti_path), str(tmp_path / "out.t42")])

        assert result.exit_code == ExitCode.INVALID_ARGS
        assert not (tmp_path / "out.t42").exists()

    def test_header_text(self, runner, tmp_path, tti_path):
        """--header-text should send row 0 in the t42 header."""
        output = tmp_path / "P198.t42"

        result = runner.invoke(main, ["convert", "--header-text", str(tti_path), str(output)])

        assert result.exit_code == 0, result.output
        page = T42Format().load(output.read_bytes()).pages[0]
        assert page.packet(0) == b"        P198".ljust(40)

    def test_header_text_needs_packet_format(self, runner, tmp_path, tti_path):
        """--header-text should be refused for formats without an X/0 header."""
        result = runner.invoke(main, ["convert", "--header-text", "--to", "ep1", str(tti_path), str(tmp_path / "out")])

        assert result.exit_code == ExitCode.INVALID_ARGS
        assert "--header-text" in result.output


# =============================================================================
# Tests for the triplets and hash commands
# =============================================================================


class TestTriplets:
    """Tests for ttxpage triplets."""

    def test_no_triplets(self, runner, tti_path):
        """A page without enhancements should say so."""
        result = runner.invoke(main, ["triplets", str(tti_path)])

        assert result.exit_code == 0, result.output
        assert "No enhancement triplets" in result.output


class TestHash:
    """Tests for ttxpage hash."""

    def test_hash(self, runner, tti_path):
        """hash should print the page digits then the packet sections."""
        result = runner.invoke(main, ["hash", "-s", "2", str(tti_path)])

        assert result.exit_code == 0, result.output
        line = result.output.strip()
        assert line.startswith("#0:")
        assert ":PS=" in line
