from mc_launcher.log_reader import decode_cursor, encode_cursor, read_from_cursor, read_tail


def _write(path, text):
    path.write_bytes(text.encode("latin-1"))


def test_cursor_encoding():
    assert decode_cursor(encode_cursor(1234)) == 1234
    assert decode_cursor("not-a-cursor") is None


def test_tail(tmp_path):
    log = tmp_path / "console.log"
    _write(log, "a\nb\nc\nd\n")

    chunk = read_tail(log, tail_lines=2)

    assert chunk.entries == ["c", "d"]
    assert chunk.truncated
    assert decode_cursor(chunk.cursor) == log.stat().st_size


def test_partial_line_is_held_back(tmp_path):
    log = tmp_path / "console.log"
    _write(log, "done\nhalf")

    first = read_from_cursor(log, encode_cursor(0))
    assert first.entries == ["done"]

    with log.open("ab") as f:
        f.write(b" line\n")
    second = read_from_cursor(log, first.cursor)

    assert second.entries == ["half line"]


def test_max_lines_resumes_where_it_stopped(tmp_path):
    log = tmp_path / "console.log"
    _write(log, "".join(f"line {i}\n" for i in range(5)))

    first = read_from_cursor(log, encode_cursor(0), max_lines=3)
    second = read_from_cursor(log, first.cursor, max_lines=3)

    assert first.entries == ["line 0", "line 1", "line 2"]
    assert first.truncated
    assert second.entries == ["line 3", "line 4"]
    assert not second.truncated


def test_rotated_log_restarts_from_the_beginning(tmp_path):
    log = tmp_path / "console.log"
    _write(log, "x" * 50 + "\n")
    cursor = read_tail(log).cursor

    _write(log, "fresh\n")

    assert read_from_cursor(log, cursor).entries == ["fresh"]


def test_overlong_line_is_returned(tmp_path):
    log = tmp_path / "console.log"
    _write(log, "y" * 32)

    chunk = read_from_cursor(log, encode_cursor(0), max_bytes=16)

    assert chunk.entries == ["y" * 16]
    assert chunk.truncated
    assert decode_cursor(chunk.cursor) == 16


def test_latin1_bytes_survive(tmp_path):
    log = tmp_path / "console.log"
    log.write_bytes(b"\xa7aHello\n")

    assert read_tail(log).entries == ["\xa7aHello"]
