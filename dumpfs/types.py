"""
Tree types produced by the scanner.

A scan yields one DirectoryNode whose contents hold the four node shapes:
DirectoryNode, FileNode (text), BinaryNode and SymlinkNode. Paths are
slash-separated and relative to the scan root.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, List, Optional, Union


class FileType(enum.Enum):
    TEXT_FILE = "text"
    BINARY_FILE = "binary"
    SYMLINK = "symlink"
    DIRECTORY = "directory"
    OTHER = "other"


@dataclass(frozen=True)
class Metadata:
    size: int
    modified: datetime
    permissions: str


@dataclass(frozen=True)
class FileNode:
    name: str
    path: str
    metadata: Metadata
    content: Optional[str] = None


@dataclass(frozen=True)
class BinaryNode:
    name: str
    path: str
    metadata: Metadata


@dataclass(frozen=True)
class SymlinkNode:
    name: str
    path: str
    metadata: Metadata
    target: str


@dataclass
class DirectoryNode:
    name: str
    path: str
    metadata: Metadata
    contents: List["Node"] = field(default_factory=list)


Node = Union[DirectoryNode, FileNode, BinaryNode, SymlinkNode]
LeafNode = Union[FileNode, BinaryNode, SymlinkNode]


def iter_leaves(directory: DirectoryNode) -> Iterator[LeafNode]:
    """Yield every non-directory node below `directory`, depth first."""
    for node in directory.contents:
        if isinstance(node, DirectoryNode):
            yield from iter_leaves(node)
        else:
            yield node
