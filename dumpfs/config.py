"""
Configuration for a dumpfs run.

Values come from three places, highest precedence first: command-line
arguments, an optional JSON config file in the target directory
(.dumpfs.json or .config/dumpfs.json), and the defaults below.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from .errors import ConfigError, UnsupportedModelError
from .filters import normalize_patterns
from .tokenizer import Model

if TYPE_CHECKING:
    from .repo import RepoInfo

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILES = [".dumpfs.json", ".config/dumpfs.json"]
DEFAULT_OUTPUT_FILE = ".content.xml"
DEFAULT_THREADS = 4
OUTPUT_FORMATS = ("xml", "text")


def load_json(path: Path) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Ignoring config file %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: top level is not an object", path)
        return {}
    return data


def find_config(root: Path, override_path: Optional[str], disabled: bool) -> Optional[Path]:
    if disabled:
        return None
    if override_path:
        path = Path(override_path)
        if path.is_absolute():
            return path if path.exists() else None
        candidate = root / path
        return candidate if candidate.exists() else None
    for name in DEFAULT_CONFIG_FILES:
        candidate = root / name
        if candidate.exists():
            return candidate
    return None


def coerce_int(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def coerce_bool(value, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "y", "on"}:
        return True
    if text in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclass
class Config:
    target_dir: Path = field(default_factory=lambda: Path("."))
    output_file: Path = field(default_factory=lambda: Path(DEFAULT_OUTPUT_FILE))
    ignore_patterns: List[str] = field(default_factory=list)
    include_patterns: List[str] = field(default_factory=list)
    num_threads: int = DEFAULT_THREADS
    respect_gitignore: bool = True
    gitignore_path: Optional[str] = None
    model: Optional[str] = None
    output_format: str = "xml"
    include_metadata: bool = True
    sort_files: bool = False
    use_token_cache: bool = True
    repo: Optional["RepoInfo"] = None

    def __post_init__(self):
        self.target_dir = Path(self.target_dir)
        self.output_file = Path(self.output_file)
        self.num_threads = max(1, coerce_int(self.num_threads, DEFAULT_THREADS))

    @classmethod
    def from_mapping(cls, data: dict, **overrides) -> "Config":
        """Build a Config from a config-file mapping; non-None overrides win."""
        values = {
            "ignore_patterns": normalize_patterns(data.get("ignore_patterns")),
            "include_patterns": normalize_patterns(data.get("include_patterns")),
            "num_threads": coerce_int(data.get("threads"), DEFAULT_THREADS),
            "respect_gitignore": coerce_bool(data.get("respect_gitignore"), True),
            "gitignore_path": data.get("gitignore_path") or None,
            "model": data.get("model") or None,
            "output_format": data.get("format") or "xml",
            "include_metadata": coerce_bool(data.get("include_metadata"), True),
            "sort_files": coerce_bool(data.get("sort_files"), False),
            "use_token_cache": coerce_bool(data.get("token_cache"), True),
        }
        if data.get("output_file"):
            values["output_file"] = Path(data["output_file"])
        for key, value in overrides.items():
            if value is not None:
                values[key] = value
        return cls(**values)

    def validate(self) -> None:
        if not self.target_dir.exists() or not self.target_dir.is_dir():
            raise ConfigError(f"Target directory not found: {self.target_dir}")

        parent = self.output_file.parent
        if str(parent) not in ("", ".") and not parent.exists():
            raise ConfigError(f"Output directory not found: {parent}")

        if self.output_format not in OUTPUT_FORMATS:
            raise ConfigError(
                f"Unknown output format: {self.output_format} (choose from {', '.join(OUTPUT_FORMATS)})"
            )

        if self.model is not None:
            try:
                Model.from_id(self.model)
            except UnsupportedModelError as e:
                raise ConfigError(str(e)) from e
