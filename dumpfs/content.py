"""
Reading and measuring text file content.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Union

MAX_CONTENT_SIZE = 1_048_576

PathLike = Union[str, os.PathLike]


@dataclass(frozen=True)
class TextContent:
    content: str
    lines: int
    chars: int
    # False when `content` is a placeholder message rather than file text.
    readable: bool = True


def format_file_size(size: int) -> str:
    kb = 1024
    mb = kb * 1024
    gb = mb * 1024
    if size >= gb:
        return f"{size / gb:.2f} GB"
    if size >= mb:
        return f"{size / mb:.2f} MB"
    if size >= kb:
        return f"{size / kb:.2f} KB"
    return f"{size} bytes"


def count_lines(text: str) -> int:
    """Count newline-terminated lines plus a final unterminated one."""
    if not text:
        return 0
    newlines = text.count("\n")
    return newlines if text.endswith("\n") else newlines + 1


def placeholder(message: str) -> TextContent:
    return TextContent(content=message, lines=0, chars=0, readable=False)


def read_text_file(path: PathLike, size: Optional[int] = None, max_size: int = MAX_CONTENT_SIZE) -> TextContent:
    """Read a text file and count its lines and characters.

    Never raises: oversized files and read failures produce a placeholder
    message with zero counts.
    """
    if size is None:
        try:
            size = os.stat(path).st_size
        except OSError as e:
            return placeholder(f"Failed to open file: {e}")

    if size > max_size:
        return placeholder(f"File too large to include content. Size: {format_file_size(size)}")

    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        return placeholder(f"Failed to open file: {e}")

    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        return placeholder(f"Failed to read file content: {e}")

    return TextContent(content=text, lines=count_lines(text), chars=len(text))
