"""
Ignore/include policy applied to every directory entry.

Three layers decide whether an entry is kept:
  1) gitignore rules (optional), evaluated one directory level at a time with
     git precedence: deeper files override shallower ones, later lines
     override earlier ones, `!` re-includes.
  2) should_ignore: user glob patterns on the base name, the built-in
     DEFAULT_IGNORE names, and the output file itself.
  3) should_include: user include globs on the base name (files only;
     directories are always kept so their contents can be reached).
"""

from __future__ import annotations

import fnmatch
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

import pathspec

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]

GITIGNORE_FILENAME = ".gitignore"

DEFAULT_IGNORE = frozenset([
    # Version control
    ".git",
    ".svn",
    ".hg",
    ".bzr",
    ".gitignore",
    ".gitattributes",
    # OS files
    ".DS_Store",
    "Thumbs.db",
    "desktop.ini",
    "ehthumbs.db",
    "*.lnk",
    "*.url",
    ".directory",
    # Dependencies
    "node_modules",
    "bower_components",
    ".npm",
    "package-lock.json",
    "yarn.lock",
    ".yarn",
    "vendor",
    "composer.lock",
    ".pnpm-store",
    # Build output
    "dist",
    "build",
    "out",
    "bin",
    "release",
    "*.min.js",
    "*.min.css",
    "bundle.*",
    # Python
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".ruff_cache",
    ".coverage",
    "venv",
    "env",
    ".env",
    ".venv",
    "*.pyc",
    "*.pyo",
    "*.pyd",
    ".python-version",
    "*.egg-info",
    "*.egg",
    "develop-eggs",
    # Rust
    "target",
    "Cargo.lock",
    ".cargo",
    # IDEs and editors
    ".idea",
    ".vscode",
    ".vs",
    ".sublime-*",
    "*.swp",
    "*.swo",
    "*~",
    ".project",
    ".settings",
    ".classpath",
    ".factorypath",
    "*.iml",
    "*.iws",
    "*.ipr",
    # Caches and temp
    ".cache",
    "tmp",
    "temp",
    "logs",
    ".sass-cache",
    ".eslintcache",
    "*.log",
    "npm-debug.log*",
    "yarn-debug.log*",
    "yarn-error.log*",
    # Other build tools
    ".gradle",
    "gradle",
    ".maven",
    ".m2",
    "*.class",
    "*.jar",
    "*.war",
    "*.ear",
    # JavaScript / TypeScript
    "coverage",
    ".nyc_output",
    ".next",
    "*.tsbuildinfo",
    ".nuxt",
    ".output",
    # .NET
    "obj",
    "Debug",
    "Release",
    "packages",
    "*.suo",
    "*.user",
    "*.pubxml",
    "*.pubxml.user",
    # Documentation
    "_site",
    ".jekyll-cache",
    ".docusaurus",
    # Mobile
    "xcuserdata",
    "*.xcworkspace",
    "Pods",
    ".expo",
    # Database
    "*.sqlite",
    "*.sqlite3",
    "*.db",
    # Archives
    "*.zip",
    "*.tar.gz",
    "*.tgz",
    "*.rar",
    # Kubernetes
    ".kube",
    "*.kubeconfig",
    # Terraform
    ".terraform",
    "*.tfstate",
    "*.tfvars",
    # Ansible
    "*.retry",
])


def normalize_patterns(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if item]
    return []


def matches_any(name: str, patterns: Iterable[str]) -> bool:
    return any(fnmatch.fnmatchcase(name, pattern) for pattern in patterns)


def path_ends_with(path: Path, suffix: Path) -> bool:
    """Component-wise suffix test, e.g. /a/b/out.xml ends with b/out.xml."""
    if suffix.is_absolute():
        return os.path.normcase(os.path.abspath(path)) == os.path.normcase(os.path.abspath(suffix))
    parts = suffix.parts
    if not parts or len(parts) > len(path.parts):
        return False
    return path.parts[-len(parts):] == parts


def read_ignore_file(path: Path) -> list[str]:
    if not path.is_file():
        return []
    patterns = []
    try:
        with open(path, "r", encoding="utf-8", errors="ignore") as f:
            for line in f:
                line = line.rstrip("\n").rstrip("\r")
                if line.strip() and not line.lstrip().startswith("#"):
                    patterns.append(line)
    except OSError as e:
        logger.warning("Could not read ignore file %s: %s", path, e)
        return []
    return patterns


class GitignoreFilter:
    """Evaluate .gitignore-style rule files found between the root and an entry.

    Rule files are loaded lazily per directory and cached. The root also
    contributes `.git/info/exclude` at the lowest precedence; a custom ignore
    file name, when given, is read in every directory after `.gitignore` so
    its rules take precedence.
    """

    def __init__(self, root: PathLike, custom_filename: Optional[str] = None):
        self.root = Path(root)
        self.filenames: List[str] = [GITIGNORE_FILENAME]
        if custom_filename:
            self.filenames.append(os.path.basename(custom_filename))
        self._specs: Dict[Path, Optional[pathspec.PathSpec]] = {}

    def _load_spec(self, directory: Path) -> Optional[pathspec.PathSpec]:
        lines: list[str] = []
        if directory == self.root:
            lines.extend(read_ignore_file(directory / ".git" / "info" / "exclude"))
        for name in self.filenames:
            lines.extend(read_ignore_file(directory / name))
        if not lines:
            return None
        return pathspec.PathSpec.from_lines("gitwildmatch", lines)

    def spec_for(self, directory: Path) -> Optional[pathspec.PathSpec]:
        if directory not in self._specs:
            self._specs[directory] = self._load_spec(directory)
        return self._specs[directory]

    def is_ignored(self, path: PathLike, is_dir: bool = False) -> bool:
        path = Path(path)
        try:
            rel_parts = path.relative_to(self.root).parts
        except ValueError:
            return False
        if not rel_parts:
            return False

        decision: Optional[bool] = None
        directory = self.root
        for depth in range(len(rel_parts)):
            if depth:
                directory = directory / rel_parts[depth - 1]
            spec = self.spec_for(directory)
            if spec is None:
                continue
            rel_path = "/".join(rel_parts[depth:])
            if is_dir:
                rel_path += "/"
            for pattern in spec.patterns:
                if pattern.include is None:
                    continue
                if pattern.match_file(rel_path) is not None:
                    decision = pattern.include
        return bool(decision)


class FilterPolicy:
    def __init__(
        self,
        ignore_patterns: Sequence[str] = (),
        include_patterns: Sequence[str] = (),
        output_file: Optional[PathLike] = None,
        gitignore: Optional[GitignoreFilter] = None,
    ):
        self.ignore_patterns = list(ignore_patterns)
        self.include_patterns = list(include_patterns)
        self.output_file = Path(output_file) if output_file else None
        self.gitignore = gitignore

    def should_ignore(self, path: PathLike) -> bool:
        path = Path(path)
        name = path.name

        if matches_any(name, self.ignore_patterns):
            return True

        # Built-in names are compared literally.
        if name in DEFAULT_IGNORE:
            return True

        # Never include the output file in its own dump.
        if self.output_file is not None and path_ends_with(path, self.output_file):
            return True

        return False

    def should_include(self, path: PathLike) -> bool:
        if not self.include_patterns:
            return True
        return matches_any(Path(path).name, self.include_patterns)

    def keep(self, path: PathLike, is_dir: bool = False) -> bool:
        if self.gitignore is not None and self.gitignore.is_ignored(path, is_dir=is_dir):
            return False
        if self.should_ignore(path):
            return False
        return is_dir or self.should_include(path)
