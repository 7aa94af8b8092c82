"""
Tests for console output tokenizing and the startup ("Done") marker.
"""

import pytest

from mc_launcher.console_parser import (
    ConsoleParser,
    MAX_PENDING,
    parse_unit,
    scan_tags,
    strip_control,
)

DONE_LINE = "[12:00:00] [Server thread/INFO]: Done (3.21s)! For help, type \"help\" or \"?\""


class TestParseUnit:

    def test_ready_line(self):
        line = parse_unit(DONE_LINE)

        assert line.event.tags == ["12:00:00", "Server thread/INFO"]
        assert line.event.message == "Done (3.21s)! For help, type \"help\" or \"?\""
        assert line.ready
        assert line.ready_after == pytest.approx(3.21)

    def test_ready_marker_is_case_insensitive(self):
        assert parse_unit("[10:00:00] [Server thread/INFO]: DONE (12.5S)!").ready

    def test_ordinary_line_is_not_ready(self):
        line = parse_unit("[12:00:01] [Server thread/INFO]: Starting minecraft server version 1.12.2")

        assert not line.ready
        assert line.event.message == "Starting minecraft server version 1.12.2"

    def test_forge_line_with_module_tag(self):
        line = parse_unit("[12:00:02] [Server thread/INFO] [FML]: Forge Mod Loader version 14.23.5.2847 loading")

        assert line.event.tags == ["12:00:02", "Server thread/INFO", "FML"]
        assert line.event.message == "Forge Mod Loader version 14.23.5.2847 loading"

    def test_line_without_prefix_keeps_text(self):
        line = parse_unit("Unknown command. Try /help for a list of commands")

        assert line.event.tags == []
        assert line.event.message == "Unknown command. Try /help for a list of commands"

    @pytest.mark.parametrize("raw", ["", " ", "\r", "\x1b[m>"])
    def test_empty_lines_are_suppressed(self, raw):
        assert parse_unit(raw).event is None

    def test_prompt_and_colors_are_stripped(self):
        line = parse_unit("\x1b[m>\x1b[32m[12:00:03] [Server thread/INFO]: <Steve> hi\x1b[0m")

        assert line.event.tags == ["12:00:03", "Server thread/INFO"]
        assert line.event.message == "<Steve> hi"

    def test_raw_text_is_kept_for_the_log(self):
        assert parse_unit(DONE_LINE + "\r").raw == DONE_LINE

    def test_leading_carriage_return_before_prefix(self):
        line = parse_unit("\r[12:00:00] [Server thread/INFO]: hello\r")

        assert line.event.message == "hello"

    def test_prefix_in_the_middle_of_a_line_is_removed(self):
        assert parse_unit("[1:0:0] [a/INFO]: one [1:0:1] [a/INFO]: two").event.message == "one two"


class TestScanTags:

    def test_tags_in_order(self):
        assert scan_tags("[a] text [b/c] more [d:e.f]") == ["a", "b/c", "d:e.f"]

    def test_brackets_with_other_characters_are_not_tags(self):
        assert scan_tags("[not-a-tag] [ok] [] [x=y]") == ["ok"]

    def test_nested_opening_bracket(self):
        assert scan_tags("[[inner]") == ["inner"]

    def test_unterminated_bracket(self):
        assert scan_tags("[open and never closed") == []


class TestConsoleParser:

    def test_line_split_across_chunks(self):
        parser = ConsoleParser()

        first = parser.feed(b"[12:00:00] [Server thread/INFO]: Do")
        second = parser.feed(b"ne (1.00s)! For help\r\n")

        assert first == []
        assert len(second) == 1
        assert second[0].ready
        assert second[0].event.message == "Done (1.00s)! For help"

    def test_several_lines_in_one_chunk(self):
        parser = ConsoleParser()

        lines = parser.feed(b"[1:0:0] [a/INFO]: one\r\n[1:0:1] [a/INFO]: two\r\n[1:0:2] [a/INF")

        assert [l.event.message for l in lines] == ["one", "two"]
        assert [l.event.message for l in parser.flush()] == ["[1:0:2] [a/INF"]
        assert parser.flush() == []

    def test_prompt_redraw_in_front_of_a_line(self):
        parser = ConsoleParser()

        lines = parser.feed(
            b"[12:00:00] [Server thread/INFO]: one\r\n>\r[12:00:01] [Server thread/INFO]: two\r\n"
        )

        assert [l.event.message for l in lines] == ["one", "two"]
        assert lines[1].event.tags == ["12:00:01", "Server thread/INFO"]

    def test_line_starting_with_carriage_return(self):
        lines = ConsoleParser().feed(b"\r[12:00:00] [Server thread/INFO]: hello\r\n")

        assert [l.event.message for l in lines] == ["hello"]

    def test_chunk_mode_parses_each_chunk_once(self):
        parser = ConsoleParser(line_buffered=False)

        lines = parser.feed(b"[1:0:0] [a/INFO]: one\r\n[1:0:1] [a/INFO]: two\r\n")

        assert len(lines) == 1
        assert lines[0].event.tags == ["1:0:0", "a/INFO", "1:0:1", "a/INFO"]
        assert lines[0].event.message == "onetwo"

    def test_chunk_mode_splits_a_line_in_two(self):
        parser = ConsoleParser(line_buffered=False)

        a = parser.feed(b"[12:00:00] [Server thread/INFO]: Do")
        b = parser.feed(b"ne (1.00s)!\r\n")

        assert not a[0].ready
        assert not b[0].ready

    def test_latin1_decoding(self):
        parser = ConsoleParser()

        lines = parser.feed(b"[1:0:0] [a/INFO]: caf\xe9\n")

        assert lines[0].event.message == "caf\xe9"

    def test_overlong_line_is_emitted(self):
        parser = ConsoleParser()

        lines = parser.feed(b"x" * (MAX_PENDING + 10))

        assert len(lines) == 1
        assert parser.flush() == []


def test_strip_control_removes_csi_sequences():
    assert strip_control("\x1b[1;31mred\x1b[0m \x1b[2K") == "red "
