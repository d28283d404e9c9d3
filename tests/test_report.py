from dumpfs.report import ScanReport, format_number, format_report, truncate_path
from dumpfs.repo import RepoInfo
from dumpfs.stats import FileReportInfo, ScannerStatistics


def make_report(n_files, **kwargs):
    details = {f"src/file{i}.py": FileReportInfo(lines=i, chars=i * 100) for i in range(n_files)}
    stats = ScannerStatistics(
        files_processed=n_files,
        total_lines=sum(d.lines for d in details.values()),
        total_chars=sum(d.chars for d in details.values()),
        file_details=details,
        **kwargs,
    )
    return ScanReport.from_statistics(stats, "out.xml", 0.25)


def test_format_number():
    assert format_number(999) == "999"
    assert format_number(1500) == "1.5K"
    assert format_number(2_500_000) == "2.5M"


def test_truncate_path():
    assert truncate_path("src/main.py") == "src/main.py"
    long_path = "/".join(["segment%02d" % i for i in range(12)])
    short = truncate_path(long_path)
    assert short.startswith(".../")
    assert short.endswith("segment11")
    assert len(short) <= 60


def test_small_scan_lists_every_file():
    text = format_report(make_report(3))
    assert text.startswith("PROCESSED FILES")
    assert "src/file2.py" in text
    assert "EXTRACTION COMPLETE" in text
    assert "(estimated)" in text
    assert "Cache Hit Rate" not in text


def test_large_scan_shows_top_files():
    text = format_report(make_report(20))
    assert text.startswith("TOP 10 LARGEST FILES BY CHARACTER COUNT")
    assert "src/file19.py" in text
    assert "src/file5.py" not in text


def test_counted_tokens_and_cache_rate():
    text = format_report(make_report(2, total_tokens=1234, token_cache_hits=1, token_cache_misses=1))
    assert "1.2K tokens (counted)" in text
    assert "50.0% (1 hits / 2 total)" in text


def test_repo_paths():
    repo = RepoInfo("git@github.com:o/r.git", "github.com", "o", "r")
    text = format_report(make_report(1), repo)
    assert "o/r/src/file0.py" in text
