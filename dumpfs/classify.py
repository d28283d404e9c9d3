"""
Entry classification: directory, symlink, text or binary file.

Text detection samples the first bytes of small regular files. A sample is
text when it decodes as UTF-8 and fewer than 10% of its bytes are control
bytes (0-8 and 14-31; tab, LF, VT, FF and CR are not counted).
"""

from __future__ import annotations

import codecs
import os
import stat as statmod
from datetime import datetime
from typing import Optional, Union

from .types import FileType, Metadata

SNIFF_SIZE_LIMIT = 8_000_000
SAMPLE_SIZE = 8192
BINARY_RATIO_THRESHOLD = 0.1

PathLike = Union[str, os.PathLike]


def is_control_byte(b: int) -> bool:
    return b < 9 or 13 < b < 32


def looks_like_text(sample: bytes, complete: bool = True) -> bool:
    """Return True when `sample` passes the UTF-8 and control-byte checks.

    `complete` is False when the sample was cut from a longer file, in which
    case a multi-byte sequence truncated at the end is not held against it.
    """
    if not sample:
        return False
    decoder = codecs.getincrementaldecoder("utf-8")()
    try:
        decoder.decode(sample, final=complete)
    except UnicodeDecodeError:
        return False
    binary_count = sum(1 for b in sample if is_control_byte(b))
    return binary_count / len(sample) < BINARY_RATIO_THRESHOLD


def read_sample(path: PathLike, size: int = SAMPLE_SIZE) -> bytes:
    with open(path, "rb") as f:
        return f.read(size)


def classify(path: PathLike, st: Optional[os.stat_result] = None) -> FileType:
    """Classify `path` without following a final symlink.

    Raises OSError when the entry cannot be stat'ed or sampled.
    """
    if st is None:
        st = os.lstat(path)
    mode = st.st_mode

    if statmod.S_ISDIR(mode):
        return FileType.DIRECTORY
    if statmod.S_ISLNK(mode):
        return FileType.SYMLINK
    if not statmod.S_ISREG(mode):
        return FileType.OTHER

    # Huge files are never sampled.
    if st.st_size >= SNIFF_SIZE_LIMIT:
        return FileType.BINARY_FILE

    sample = read_sample(path)
    if looks_like_text(sample, complete=len(sample) >= st.st_size):
        return FileType.TEXT_FILE
    return FileType.BINARY_FILE


def format_permissions(st: os.stat_result) -> str:
    if os.name == "nt":
        return ""
    return format(statmod.S_IMODE(st.st_mode) & 0o777, "o")


def metadata_from_stat(st: os.stat_result) -> Metadata:
    return Metadata(
        size=int(st.st_size),
        modified=datetime.fromtimestamp(st.st_mtime).astimezone(),
        permissions=format_permissions(st),
    )


def read_metadata(path: PathLike, follow_symlinks: bool = False) -> Metadata:
    st = os.stat(path) if follow_symlinks else os.lstat(path)
    return metadata_from_stat(st)
