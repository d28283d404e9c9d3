"""
Serializers for a scanned tree: XML (default) and plain text.
"""

from __future__ import annotations

import platform
import re
import socket
from datetime import datetime
from pathlib import Path
from typing import IO, List, Optional
from xml.sax.saxutils import escape, quoteattr

from .config import Config
from .repo import RepoInfo
from .types import BinaryNode, DirectoryNode, FileNode, Metadata, Node, SymlinkNode

INVALID_XML_CHARS = re.compile("[^\u0009\u000A\u000D\u0020-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF]")


def system_info() -> dict:
    try:
        hostname = socket.gethostname()
    except OSError:
        hostname = "unknown"
    return {
        "hostname": hostname or "unknown",
        "os": platform.system().lower() or "unknown",
        "kernel": platform.release() or "unknown",
    }


def cdata(text: str) -> str:
    # "]]>" cannot appear inside a CDATA section; split it across two.
    return "<![CDATA[" + text.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def strip_invalid_xml_chars(text: str) -> str:
    return INVALID_XML_CHARS.sub("", text)


class XmlWriter:
    def __init__(self, include_metadata: bool = True, repo: Optional[RepoInfo] = None, indent: int = 2):
        self.include_metadata = include_metadata
        self.repo = repo
        self.indent = indent
        self._out: List[str] = []

    def _line(self, depth: int, text: str) -> None:
        self._out.append(" " * (self.indent * depth) + text)

    def _element(self, depth: int, tag: str, text: str) -> None:
        self._line(depth, f"<{tag}>{escape(strip_invalid_xml_chars(text))}</{tag}>")

    def render(self, root: DirectoryNode, timestamp: Optional[datetime] = None) -> str:
        self._out = []
        timestamp = timestamp or datetime.now().astimezone()
        self._out.append('<?xml version="1.0" encoding="UTF-8"?>')
        self._line(0, f"<directory_scan timestamp={quoteattr(timestamp.isoformat())}>")
        self._write_system_info(1)
        self._line(1, "<overview>")
        self._write_overview(root, 2)
        self._line(1, "</overview>")
        self._write_directory(root, 1)
        self._line(0, "</directory_scan>")
        return "\n".join(self._out) + "\n"

    def write(self, root: DirectoryNode, stream: IO[str]) -> None:
        stream.write(self.render(root))

    def _write_system_info(self, depth: int) -> None:
        info = system_info()
        self._line(depth, "<system_info>")
        self._element(depth + 1, "hostname", info["hostname"])
        self._element(depth + 1, "os", info["os"])
        self._element(depth + 1, "kernel", info["kernel"])
        if self.repo is not None:
            self._line(depth + 1, "<git_repository>")
            self._element(depth + 2, "url", self.repo.url)
            self._element(depth + 2, "host", self.repo.host)
            self._element(depth + 2, "owner", self.repo.owner)
            self._element(depth + 2, "name", self.repo.name)
            self._line(depth + 1, "</git_repository>")
        self._line(depth, "</system_info>")

    def _write_overview(self, directory: DirectoryNode, depth: int) -> None:
        self._line(depth, f"<directory name={quoteattr(directory.name)}>")
        for node in directory.contents:
            if isinstance(node, DirectoryNode):
                self._write_overview(node, depth + 1)
            elif isinstance(node, SymlinkNode):
                self._line(depth + 1, f"<symlink name={quoteattr(node.name)}/>")
            else:
                self._line(depth + 1, f"<file name={quoteattr(node.name)}/>")
        self._line(depth, "</directory>")

    def _write_metadata(self, metadata: Metadata, depth: int) -> None:
        if not self.include_metadata:
            return
        self._line(depth, "<metadata>")
        self._element(depth + 1, "size", str(metadata.size))
        self._element(depth + 1, "modified", metadata.modified.isoformat())
        self._element(depth + 1, "permissions", metadata.permissions)
        self._line(depth, "</metadata>")

    def _open(self, depth: int, tag: str, node: Node) -> None:
        name = quoteattr(strip_invalid_xml_chars(node.name))
        path = quoteattr(strip_invalid_xml_chars(node.path))
        self._line(depth, f"<{tag} name={name} path={path}>")

    def _write_node(self, node: Node, depth: int) -> None:
        if isinstance(node, DirectoryNode):
            self._write_directory(node, depth)
        elif isinstance(node, FileNode):
            self._open(depth, "file", node)
            self._write_metadata(node.metadata, depth + 1)
            content = strip_invalid_xml_chars(node.content or "")
            self._line(depth + 1, f"<content>{cdata(content)}</content>")
            self._line(depth, "</file>")
        elif isinstance(node, BinaryNode):
            self._open(depth, "binary", node)
            self._write_metadata(node.metadata, depth + 1)
            self._line(depth, "</binary>")
        elif isinstance(node, SymlinkNode):
            self._open(depth, "symlink", node)
            self._write_metadata(node.metadata, depth + 1)
            self._element(depth + 1, "target", node.target)
            self._line(depth, "</symlink>")
        else:
            raise TypeError(f"Unknown node type: {type(node).__name__}")

    def _write_directory(self, directory: DirectoryNode, depth: int) -> None:
        self._open(depth, "directory", directory)
        self._write_metadata(directory.metadata, depth + 1)
        self._line(depth + 1, "<contents>")
        for node in directory.contents:
            self._write_node(node, depth + 2)
        self._line(depth + 1, "</contents>")
        self._line(depth, "</directory>")


class TextWriter:
    def __init__(self, include_metadata: bool = True, repo: Optional[RepoInfo] = None):
        self.include_metadata = include_metadata
        self.repo = repo

    def render(self, root: DirectoryNode, timestamp: Optional[datetime] = None) -> str:
        timestamp = timestamp or datetime.now().astimezone()
        info = system_info()
        lines = [
            f"# Directory scan: {root.name}",
            f"# Generated: {timestamp.isoformat()}",
            f"# Host: {info['hostname']} ({info['os']} {info['kernel']})",
        ]
        if self.repo is not None:
            lines.append(f"# Repository: {self.repo} ({self.repo.url})")
        lines.append("")
        lines.append(f"{root.name}/")
        self._tree(root, "", lines)
        self._sections(root, lines)
        return "\n".join(lines) + "\n"

    def write(self, root: DirectoryNode, stream: IO[str]) -> None:
        stream.write(self.render(root))

    def _tree(self, directory: DirectoryNode, prefix: str, lines: List[str]) -> None:
        for i, node in enumerate(directory.contents):
            last = i == len(directory.contents) - 1
            connector = "└── " if last else "├── "
            if isinstance(node, DirectoryNode):
                lines.append(f"{prefix}{connector}{node.name}/")
                self._tree(node, prefix + ("    " if last else "│   "), lines)
            elif isinstance(node, SymlinkNode):
                lines.append(f"{prefix}{connector}{node.name} -> {node.target}")
            elif isinstance(node, BinaryNode):
                lines.append(f"{prefix}{connector}{node.name} [binary]")
            else:
                lines.append(f"{prefix}{connector}{node.name}")

    def _header(self, node: Node) -> str:
        header = f"=== {node.path} ==="
        if self.include_metadata:
            meta = node.metadata
            perms = f", mode {meta.permissions}" if meta.permissions else ""
            header += f" ({meta.size} bytes, modified {meta.modified.isoformat()}{perms})"
        return header

    def _sections(self, directory: DirectoryNode, lines: List[str]) -> None:
        for node in directory.contents:
            if isinstance(node, DirectoryNode):
                self._sections(node, lines)
                continue
            lines.append("")
            lines.append(self._header(node))
            if isinstance(node, FileNode):
                content = node.content or ""
                lines.append(content.rstrip("\n"))
            elif isinstance(node, BinaryNode):
                lines.append("[binary file omitted]")
            elif isinstance(node, SymlinkNode):
                lines.append(f"[symlink to {node.target}]")


def create_writer(config: Config):
    if config.output_format == "text":
        return TextWriter(include_metadata=config.include_metadata, repo=config.repo)
    return XmlWriter(include_metadata=config.include_metadata, repo=config.repo)


def write_output(config: Config, root: DirectoryNode) -> Path:
    writer = create_writer(config)
    path = config.output_file
    with open(path, "w", encoding="utf-8", newline="\n") as f:
        writer.write(root, f)
    return path
