"""
Repository identity for a local checkout.

Only reads what git already knows about a working tree (the `origin`
remote); cloning and fetching are left to git itself.
"""

from __future__ import annotations

import re
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

SSH_REMOTE = re.compile(r"^(?:ssh://)?[^@/]+@([^:/]+)[:/]([^/]+)/([^/]+?)(?:\.git)?/?$")

KNOWN_HOSTS = {
    "github.com": "GitHub",
    "gitlab.com": "GitLab",
    "bitbucket.org": "Bitbucket",
}


@dataclass(frozen=True)
class RepoInfo:
    url: str
    host: str
    owner: str
    name: str

    @property
    def host_label(self) -> str:
        return KNOWN_HOSTS.get(self.host, self.host)

    def display_path(self, rel_path: str) -> str:
        prefix = f"{self.owner}/{self.name}"
        if rel_path in ("", "."):
            return prefix
        return f"{prefix}/{rel_path}"

    def __str__(self) -> str:
        return f"{self.host_label}/{self.owner}/{self.name}"


def parse_remote_url(url: str) -> Optional[RepoInfo]:
    url = url.strip()
    if not url:
        return None

    match = SSH_REMOTE.match(url)
    if match:
        host, owner, name = match.groups()
        return RepoInfo(url=url, host=host, owner=owner, name=name)

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https", "git") or not parsed.hostname:
        return None
    segments = [part for part in parsed.path.split("/") if part]
    if len(segments) < 2:
        return None
    owner, name = segments[0], segments[1]
    if name.endswith(".git"):
        name = name[:-4]
    return RepoInfo(url=url, host=parsed.hostname, owner=owner, name=name)


def git_available() -> bool:
    return shutil.which("git") is not None


def git_remote_url(root: Path, remote: str = "origin") -> Optional[str]:
    if not git_available():
        return None
    try:
        result = subprocess.run(
            ["git", "-C", str(root), "remote", "get-url", remote],
            check=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
        )
    except (OSError, subprocess.CalledProcessError):
        return None
    return result.stdout.strip() or None


def detect_repository(root: Path) -> Optional[RepoInfo]:
    url = git_remote_url(root)
    if url is None:
        return None
    return parse_remote_url(url)
