import xml.etree.ElementTree as ET
from datetime import datetime, timezone

from dumpfs.config import Config
from dumpfs.repo import RepoInfo
from dumpfs.scanner import Scanner
from dumpfs.types import BinaryNode, DirectoryNode, FileNode, Metadata, SymlinkNode
from dumpfs.writer import TextWriter, XmlWriter, cdata, strip_invalid_xml_chars, write_output

from conftest import make_undecodable_file

META = Metadata(size=6, modified=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc), permissions="644")


def sample_root():
    sub = DirectoryNode("c", "c", META, [FileNode("d.txt", "c/d.txt", META, "x\ny\n")])
    return DirectoryNode("proj", ".", META, [
        sub,
        FileNode("a.txt", "a.txt", META, "hello ]]> world\n"),
        BinaryNode("b.bin", "b.bin", META),
        SymlinkNode("link", "link", META, "a.txt"),
    ])


def parse(text):
    return ET.fromstring(text.encode("utf-8"))


def test_cdata_splits_terminator():
    assert cdata("a]]>b") == "<![CDATA[a]]]]><![CDATA[>b]]>"


def test_strip_invalid_xml_chars():
    assert strip_invalid_xml_chars("a\x00b\x1fc\td") == "abc\td"


def test_xml_structure():
    doc = parse(XmlWriter().render(sample_root()))
    assert doc.tag == "directory_scan"
    assert doc.get("timestamp")
    assert doc.find("system_info/hostname") is not None
    assert doc.find("system_info/git_repository") is None

    overview = doc.find("overview/directory")
    assert overview.get("name") == "proj"
    assert [child.get("name") for child in overview] == ["c", "a.txt", "b.bin", "link"]

    tree = doc.find("directory")
    assert tree.get("path") == "."
    assert tree.find("metadata/size").text == "6"
    assert tree.find("metadata/modified").text == "2024-01-02T03:04:05+00:00"
    assert tree.find("metadata/permissions").text == "644"

    files = {el.get("path"): el for el in tree.iter("file")}
    assert files["a.txt"].find("content").text == "hello ]]> world\n"
    assert files["c/d.txt"].find("content").text == "x\ny\n"
    assert tree.find("contents/binary").get("name") == "b.bin"
    assert tree.find("contents/symlink/target").text == "a.txt"


def test_xml_without_metadata_and_with_repo():
    repo = RepoInfo("https://github.com/o/r.git", "github.com", "o", "r")
    doc = parse(XmlWriter(include_metadata=False, repo=repo).render(sample_root()))
    assert not list(doc.iter("metadata"))
    assert doc.find("system_info/git_repository/owner").text == "o"
    assert doc.find("system_info/git_repository/name").text == "r"


def test_xml_drops_control_characters_from_content():
    root = DirectoryNode("p", ".", META, [FileNode("f", "f", META, "a\x00b")])
    doc = parse(XmlWriter().render(root))
    assert doc.find("directory/contents/file/content").text == "ab"


def test_text_writer():
    text = TextWriter().render(sample_root())
    assert text.startswith("# Directory scan: proj\n")
    assert "├── c/" in text
    assert "│   └── d.txt" in text
    assert "├── b.bin [binary]" in text
    assert "└── link -> a.txt" in text
    assert "=== c/d.txt === (6 bytes" in text
    assert "[binary file omitted]" in text
    assert "[symlink to a.txt]" in text


def test_text_writer_without_metadata():
    text = TextWriter(include_metadata=False).render(sample_root())
    assert "=== a.txt ===\nhello ]]> world\n" in text


def test_write_output_picks_format(tmp_path):
    out = tmp_path / "dump.txt"
    config = Config(target_dir=tmp_path, output_file=out, output_format="text")
    assert write_output(config, sample_root()) == out
    assert out.read_text(encoding="utf-8").startswith("# Directory scan")

    out_xml = tmp_path / "dump.xml"
    write_output(Config(target_dir=tmp_path, output_file=out_xml), sample_root())
    assert parse(out_xml.read_text(encoding="utf-8")).tag == "directory_scan"


def test_undecodable_names_serialize(tmp_path):
    root = tmp_path / "proj"
    root.mkdir()
    make_undecodable_file(root)
    tree = Scanner(Config(target_dir=root, output_file=tmp_path / "unused.xml")).scan()

    out_xml = tmp_path / "dump.xml"
    write_output(Config(target_dir=root, output_file=out_xml), tree)
    doc = parse(out_xml.read_text(encoding="utf-8"))
    assert doc.find("directory/contents/file").get("name") == "bad\ufffd.txt"

    out_txt = tmp_path / "dump.txt"
    write_output(Config(target_dir=root, output_file=out_txt, output_format="text"), tree)
    assert "=== bad\ufffd.txt ===" in out_txt.read_text(encoding="utf-8")
