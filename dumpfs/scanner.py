"""
Directory scanner.

Each directory is handled in the same order: list its immediate children,
filter them, recurse into subdirectories one after another, then hand every
file to a shared thread pool. Subdirectories keep filesystem enumeration
order; files follow in completion order (or sorted by name when
`sort_files` is set).

Errors on a single entry are logged and the entry is dropped. Only a failure
to list the scan root itself propagates out of scan().
"""

from __future__ import annotations

import concurrent.futures
import logging
import os
from pathlib import Path, PurePosixPath
from typing import List, Optional

from .classify import classify, metadata_from_stat
from .config import Config
from .content import read_text_file
from .errors import ScanError, TokenizerError
from .filters import FilterPolicy, GitignoreFilter
from .stats import ScannerStatistics, StatisticsAggregate
from .tokenizer import CachingTokenizer, Tokenizer, get_global_cache_stats
from .types import BinaryNode, DirectoryNode, FileNode, FileType, Node, SymlinkNode

logger = logging.getLogger(__name__)

ROOT_PATH = "."


def display_name(name: str) -> str:
    """Make an undecodable file name printable (invalid bytes become U+FFFD)."""
    return name.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


def child_path(parent: str, name: str) -> str:
    name = display_name(name)
    if parent == ROOT_PATH:
        return name
    return str(PurePosixPath(parent) / name)


class Scanner:
    def __init__(self, config: Config, tokenizer: Optional[Tokenizer] = None):
        self.config = config
        self.tokenizer = tokenizer
        self._statistics = StatisticsAggregate(count_tokens=tokenizer is not None)
        self._policy: Optional[FilterPolicy] = None

    def statistics(self) -> ScannerStatistics:
        snapshot = self._statistics.snapshot()
        if isinstance(self.tokenizer, CachingTokenizer):
            cache_stats = get_global_cache_stats()
            snapshot.token_cache_hits = cache_stats.hits
            snapshot.token_cache_misses = cache_stats.misses
        return snapshot

    def build_policy(self, root: Path) -> FilterPolicy:
        gitignore = None
        if self.config.respect_gitignore:
            gitignore = GitignoreFilter(root, self.config.gitignore_path)
        return FilterPolicy(
            ignore_patterns=self.config.ignore_patterns,
            include_patterns=self.config.include_patterns,
            output_file=self.config.output_file,
            gitignore=gitignore,
        )

    def scan(self) -> DirectoryNode:
        root = Path(self.config.target_dir).resolve(strict=True)
        self._policy = self.build_policy(root)
        logger.debug("Scanning %s with %d worker(s)", root, self.config.num_threads)
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.config.num_threads) as executor:
            return self._scan_directory(root, ROOT_PATH, executor, name=display_name(root.name or str(root)))

    def _list_entries(self, abs_path: Path) -> List[os.DirEntry]:
        with os.scandir(abs_path) as it:
            return list(it)

    def _scan_directory(
        self,
        abs_path: Path,
        rel_path: str,
        executor: concurrent.futures.Executor,
        name: Optional[str] = None,
    ) -> DirectoryNode:
        metadata = metadata_from_stat(os.stat(abs_path))
        entries = self._list_entries(abs_path)

        dirs: List[os.DirEntry] = []
        files: List[os.DirEntry] = []
        for entry in entries:
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
            except OSError as e:
                logger.error("Error reading %s: %s", entry.path, e)
                continue
            if not self._policy.keep(Path(entry.path), is_dir=is_dir):
                continue
            (dirs if is_dir else files).append(entry)

        contents: List[Node] = []
        for entry in dirs:
            try:
                contents.append(self._scan_directory(
                    Path(entry.path), child_path(rel_path, entry.name), executor
                ))
            except OSError as e:
                logger.error("Error processing directory %s: %s", entry.path, e)

        future_to_path = {
            executor.submit(self._process_file, Path(entry.path), child_path(rel_path, entry.name)): entry.path
            for entry in files
        }
        file_nodes: List[Node] = []
        for future in concurrent.futures.as_completed(future_to_path):
            try:
                file_nodes.append(future.result())
            except Exception as e:
                logger.error("Error processing %s: %s", future_to_path[future], e)
        if self.config.sort_files:
            file_nodes.sort(key=lambda node: node.name)
        contents.extend(file_nodes)

        return DirectoryNode(
            name=name if name is not None else display_name(abs_path.name),
            path=rel_path,
            metadata=metadata,
            contents=contents,
        )

    def _process_file(self, abs_path: Path, rel_path: str) -> Node:
        st = os.lstat(abs_path)
        file_type = classify(abs_path, st)
        metadata = metadata_from_stat(st)
        name = display_name(abs_path.name)

        if file_type is FileType.TEXT_FILE:
            text = read_text_file(abs_path, size=st.st_size)
            tokens = None
            if text.readable:
                tokens = self._count_tokens(text.content, rel_path)
            self._statistics.record(rel_path, text.lines, text.chars, tokens)
            return FileNode(name=name, path=rel_path, metadata=metadata, content=text.content)

        if file_type is FileType.BINARY_FILE:
            self._statistics.record(rel_path)
            return BinaryNode(name=name, path=rel_path, metadata=metadata)

        if file_type is FileType.SYMLINK:
            target = display_name(os.readlink(abs_path))
            self._statistics.record(rel_path)
            return SymlinkNode(name=name, path=rel_path, metadata=metadata, target=target)

        raise ScanError(f"{abs_path}: unexpected file type {file_type.value}")

    def _count_tokens(self, text: str, rel_path: str) -> Optional[int]:
        if self.tokenizer is None:
            return None
        try:
            return self.tokenizer.count_tokens(text)
        except TokenizerError as e:
            logger.warning("Token counting failed for %s: %s", rel_path, e)
            return None
