"""
dumpfs - serialize a directory tree and its contents for LLM context.
"""

__version__ = "0.1.0"

from .config import Config
from .errors import ConfigError, DumpFsError, ScanError, TokenizerEnvError, TokenizerError
from .scanner import Scanner
from .stats import FileReportInfo, ScannerStatistics
from .types import BinaryNode, DirectoryNode, FileNode, FileType, Metadata, Node, SymlinkNode

__all__ = [
    "__version__",
    "BinaryNode",
    "Config",
    "ConfigError",
    "DirectoryNode",
    "DumpFsError",
    "FileNode",
    "FileReportInfo",
    "FileType",
    "Metadata",
    "Node",
    "ScanError",
    "Scanner",
    "ScannerStatistics",
    "SymlinkNode",
    "TokenizerEnvError",
    "TokenizerError",
]
