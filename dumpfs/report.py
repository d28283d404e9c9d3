"""
Console report for a finished scan.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .repo import RepoInfo
from .stats import FileReportInfo, ScannerStatistics

TOP_FILES_LIMIT = 10
TOP_FILES_THRESHOLD = 15
PATH_WIDTH = 60


@dataclass
class ScanReport:
    output_file: str
    duration: float
    files_processed: int = 0
    total_lines: int = 0
    total_chars: int = 0
    total_tokens: Optional[int] = None
    file_details: Dict[str, FileReportInfo] = field(default_factory=dict)
    token_cache_hits: Optional[int] = None
    token_cache_misses: Optional[int] = None

    @classmethod
    def from_statistics(cls, stats: ScannerStatistics, output_file: str, duration: float) -> "ScanReport":
        return cls(
            output_file=output_file,
            duration=duration,
            files_processed=stats.files_processed,
            total_lines=stats.total_lines,
            total_chars=stats.total_chars,
            total_tokens=stats.total_tokens,
            file_details=dict(stats.file_details),
            token_cache_hits=stats.token_cache_hits,
            token_cache_misses=stats.token_cache_misses,
        )


def format_number(num: int) -> str:
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M"
    if num >= 1_000:
        return f"{num / 1_000:.1f}K"
    return str(num)


def estimate_tokens(chars: int) -> int:
    return chars // 4


def truncate_path(path: str, max_len: int = PATH_WIDTH) -> str:
    """Shorten a long path from the left, keeping whole trailing segments."""
    if len(path) <= max_len:
        return path
    parts = path.split("/")
    if len(parts) <= 2:
        return "..." + path[-(max_len - 3):]

    kept: List[str] = []
    length = 3
    for part in reversed(parts):
        if length + len(part) + 1 > max_len:
            break
        kept.append(part)
        length += len(part) + 1
    if not kept:
        return "..." + path[-(max_len - 3):]
    return "..." + "".join("/" + part for part in reversed(kept))


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def border(left: str, mid: str, right: str) -> str:
        return left + mid.join("─" * (w + 2) for w in widths) + right

    def line(cells: Sequence[str]) -> str:
        return "│" + "│".join(f" {cell.ljust(widths[i])} " for i, cell in enumerate(cells)) + "│"

    out = [border("╭", "┬", "╮"), line(headers), border("├", "┼", "┤")]
    out.extend(line(row) for row in rows)
    out.append(border("╰", "┴", "╯"))
    return "\n".join(out)


def files_table(report: ScanReport, repo: Optional[RepoInfo] = None) -> str:
    files = sorted(report.file_details.items(), key=lambda item: item[1].chars, reverse=True)
    if len(files) > TOP_FILES_THRESHOLD:
        files = files[:TOP_FILES_LIMIT]

    rows = []
    for path, info in files:
        display = repo.display_path(path) if repo is not None else path
        tokens = info.tokens if info.tokens is not None else estimate_tokens(info.chars)
        rows.append([truncate_path(display), format_number(info.lines), format_number(tokens)])
    return render_table(["File Path", "Lines", "Est. Tokens"], rows)


def summary_table(report: ScanReport) -> str:
    rows = [
        ["Output File", report.output_file],
        ["Process Time", f"{report.duration:.4f}s"],
        ["Files Processed", format_number(report.files_processed)],
        ["Total Lines", format_number(report.total_lines)],
    ]
    if report.total_tokens is not None:
        rows.append(["LLM Tokens", f"{format_number(report.total_tokens)} tokens (counted)"])
    else:
        rows.append(["LLM Tokens", f"{format_number(estimate_tokens(report.total_chars))} tokens (estimated)"])

    if report.token_cache_hits is not None and report.token_cache_misses is not None:
        total = report.token_cache_hits + report.token_cache_misses
        rate = (report.token_cache_hits / total * 100.0) if total else 0.0
        rows.append([
            "Cache Hit Rate",
            f"{rate:.1f}% ({report.token_cache_hits} hits / {total} total)",
        ])
    return render_table(["Metric", "Value"], rows)


def format_report(report: ScanReport, repo: Optional[RepoInfo] = None) -> str:
    if len(report.file_details) > TOP_FILES_THRESHOLD:
        files_title = f"TOP {TOP_FILES_LIMIT} LARGEST FILES BY CHARACTER COUNT"
    else:
        files_title = "PROCESSED FILES"
    return "\n".join([
        files_title,
        files_table(report, repo),
        "",
        "EXTRACTION COMPLETE",
        summary_table(report),
    ])
