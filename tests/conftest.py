import os

import pytest

from dumpfs.tokenizer import CACHE_DIR_ENV, reset_global_cache_stats


@pytest.fixture(autouse=True)
def isolated_token_cache(tmp_path, monkeypatch):
    cache = tmp_path / "token-cache"
    monkeypatch.setenv(CACHE_DIR_ENV, str(cache))
    reset_global_cache_stats()
    yield cache
    reset_global_cache_stats()


@pytest.fixture
def sample_tree(tmp_path):
    """proj/a.txt, proj/b.bin (not UTF-8) and proj/c/d.txt."""
    root = tmp_path / "proj"
    (root / "c").mkdir(parents=True)
    (root / "a.txt").write_bytes(b"hello\n")
    (root / "b.bin").write_bytes(b"\xff\xfe\xfd\x00\x01")
    (root / "c" / "d.txt").write_bytes(b"x\ny\n")
    return root


def try_symlink(target, link):
    try:
        link.symlink_to(target)
    except (OSError, NotImplementedError):
        pytest.skip("symlinks not supported here")


def make_undecodable_file(directory, content=b"hi\n"):
    """Create bad\\xff.txt, a name that is not valid UTF-8."""
    path = os.path.join(os.fsencode(directory), b"bad\xff.txt")
    try:
        with open(path, "wb") as f:
            f.write(content)
    except OSError:
        pytest.skip("filesystem rejects non-UTF-8 names")
    return path
