from dumpfs.content import MAX_CONTENT_SIZE, count_lines, format_file_size, read_text_file


def test_count_lines():
    assert count_lines("") == 0
    assert count_lines("a") == 1
    assert count_lines("a\n") == 1
    assert count_lines("a\nb") == 2
    assert count_lines("\n\n") == 2


def test_format_file_size():
    assert format_file_size(512) == "512 bytes"
    assert format_file_size(1536) == "1.50 KB"
    assert format_file_size(2 * 1024 * 1024) == "2.00 MB"
    assert format_file_size(3 * 1024 ** 3) == "3.00 GB"


def test_reads_and_counts(tmp_path):
    path = tmp_path / "f.txt"
    path.write_bytes("x\nyé\n".encode("utf-8"))
    text = read_text_file(path)
    assert text.readable
    assert text.content == "x\nyé\n"
    assert text.lines == 2
    assert text.chars == 5


def test_oversized_file_gets_placeholder(tmp_path):
    path = tmp_path / "big.txt"
    path.write_bytes(b"a" * (2 * 1024 * 1024))
    text = read_text_file(path)
    assert not text.readable
    assert text.content == "File too large to include content. Size: 2.00 MB"
    assert (text.lines, text.chars) == (0, 0)


def test_file_at_the_ceiling_is_read(tmp_path):
    path = tmp_path / "edge.txt"
    path.write_bytes(b"abcd")
    assert read_text_file(path, max_size=4).content == "abcd"
    assert not read_text_file(path, max_size=3).readable
    assert MAX_CONTENT_SIZE == 1024 * 1024


def test_decode_failure_gets_placeholder(tmp_path):
    path = tmp_path / "bad.txt"
    path.write_bytes(b"ok\xff")
    text = read_text_file(path)
    assert not text.readable
    assert text.content.startswith("Failed to read file content")
    assert (text.lines, text.chars) == (0, 0)


def test_missing_file_gets_placeholder(tmp_path):
    text = read_text_file(tmp_path / "gone.txt")
    assert text.content.startswith("Failed to open file")
    assert text.lines == 0
