"""
Scan statistics shared between scanner worker threads.
"""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class FileReportInfo:
    lines: int = 0
    chars: int = 0
    tokens: Optional[int] = None


@dataclass
class ScannerStatistics:
    files_processed: int = 0
    total_lines: int = 0
    total_chars: int = 0
    total_tokens: Optional[int] = None
    file_details: Dict[str, FileReportInfo] = field(default_factory=dict)
    token_cache_hits: Optional[int] = None
    token_cache_misses: Optional[int] = None


class StatisticsAggregate:
    """Lock-protected accumulator; one critical section per recorded file."""

    def __init__(self, count_tokens: bool = False):
        self._lock = threading.Lock()
        self._stats = ScannerStatistics(total_tokens=0 if count_tokens else None)

    def record(self, path: str, lines: int = 0, chars: int = 0, tokens: Optional[int] = None) -> None:
        with self._lock:
            stats = self._stats
            previous = stats.file_details.get(path)
            if previous is not None:
                # Same path recorded twice: replace instead of double counting.
                stats.files_processed -= 1
                stats.total_lines -= previous.lines
                stats.total_chars -= previous.chars
                if previous.tokens is not None and stats.total_tokens is not None:
                    stats.total_tokens -= previous.tokens

            stats.files_processed += 1
            stats.total_lines += lines
            stats.total_chars += chars
            if tokens is not None and stats.total_tokens is not None:
                stats.total_tokens += tokens
            stats.file_details[path] = FileReportInfo(lines=lines, chars=chars, tokens=tokens)

    def snapshot(self) -> ScannerStatistics:
        with self._lock:
            return copy.deepcopy(self._stats)
