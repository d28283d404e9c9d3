"""
Token counting for LLM context estimation.

A Tokenizer turns text into a token count. Concrete providers count locally
(tiktoken encodings, or a chars/4 heuristic); CachingTokenizer wraps any
provider with a persistent per-project cache keyed by content hash and model
id. Cache hits and misses are also tallied process-wide (see CacheStats).
"""

from __future__ import annotations

import enum
import hashlib
import json
import logging
import os
import re
import tempfile
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Protocol

import tiktoken

from .errors import TokenCacheError, TokenizerEnvError, TokenizerError, UnsupportedModelError

logger = logging.getLogger(__name__)

CACHE_VERSION = 1
CACHE_DIR_ENV = "DUMPFS_CACHE_DIR"
CACHE_MAX_AGE_SECS = 7 * 24 * 60 * 60

ENCODING_CACHE: dict[str, "tiktoken.Encoding"] = {}


class Provider(enum.Enum):
    OPENAI = "openai"
    HEURISTIC = "heuristic"


class Model(enum.Enum):
    GPT4 = ("gpt-4", Provider.OPENAI)
    GPT4_TURBO = ("gpt-4-turbo", Provider.OPENAI)
    GPT4O = ("gpt-4o", Provider.OPENAI)
    GPT4O_MINI = ("gpt-4o-mini", Provider.OPENAI)
    GPT35_TURBO = ("gpt-3.5-turbo", Provider.OPENAI)
    HEURISTIC = ("heuristic", Provider.HEURISTIC)

    def __init__(self, model_id: str, provider: Provider):
        self.model_id = model_id
        self.provider = provider

    @classmethod
    def from_id(cls, model_id: str) -> "Model":
        for model in cls:
            if model.model_id == model_id:
                return model
        raise UnsupportedModelError(
            f"Unsupported model: {model_id} (choose from {', '.join(model_ids())})"
        )


def model_ids() -> list[str]:
    return [model.model_id for model in Model]


class Tokenizer(Protocol):
    def count_tokens(self, text: str) -> int: ...


def heuristic_tokens(text: str) -> int:
    return max(1, len(text) // 4) if text else 0


def get_encoding(model_id: str) -> "tiktoken.Encoding":
    encoding = ENCODING_CACHE.get(model_id)
    if encoding is None:
        try:
            encoding = tiktoken.encoding_for_model(model_id)
        except KeyError:
            # Allow raw encoding names such as cl100k_base.
            encoding = tiktoken.get_encoding(model_id)
        ENCODING_CACHE[model_id] = encoding
    return encoding


class TiktokenTokenizer:
    def __init__(self, model: Model):
        self.model = model
        try:
            self.encoding = get_encoding(model.model_id)
        except Exception as e:
            raise TokenizerError(f"Failed to load encoding for {model.model_id}: {e}") from e

    def count_tokens(self, text: str) -> int:
        try:
            return len(self.encoding.encode_ordinary(text))
        except Exception as e:
            raise TokenizerError(f"Tokenization failed: {e}") from e


class HeuristicTokenizer:
    model = Model.HEURISTIC

    def count_tokens(self, text: str) -> int:
        return heuristic_tokens(text)


# ---------------- Process-wide cache statistics ----------------

@dataclass(frozen=True)
class CacheStats:
    hits: int = 0
    misses: int = 0

    @property
    def total(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        return self.hits / self.total if self.total else 0.0


class _CacheCounters:
    def __init__(self):
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def hit(self) -> None:
        with self._lock:
            self.hits += 1

    def miss(self) -> None:
        with self._lock:
            self.misses += 1

    def snapshot(self) -> CacheStats:
        with self._lock:
            return CacheStats(hits=self.hits, misses=self.misses)

    def reset(self) -> None:
        with self._lock:
            self.hits = 0
            self.misses = 0


_GLOBAL_COUNTERS = _CacheCounters()


def get_global_cache_stats() -> CacheStats:
    return _GLOBAL_COUNTERS.snapshot()


def reset_global_cache_stats() -> None:
    _GLOBAL_COUNTERS.reset()


# ---------------- Persistent cache ----------------

def hash_text(text: str) -> str:
    hasher = hashlib.sha256()
    hasher.update(text.encode("utf-8", errors="surrogatepass"))
    return hasher.hexdigest()


def cache_dir() -> Path:
    override = os.environ.get(CACHE_DIR_ENV)
    if override:
        return Path(override)
    try:
        home = Path.home()
    except RuntimeError as e:
        raise TokenizerEnvError(
            f"Could not determine home directory; set {CACHE_DIR_ENV}: {e}"
        ) from e
    return home / ".cache" / "dumpfs"


def cache_path_for(project_dir: str) -> Path:
    try:
        canonical = str(Path(project_dir).resolve(strict=True))
    except OSError as e:
        raise TokenCacheError(f"Invalid project directory: {e}") from e
    sanitized = re.sub(r"[^A-Za-z0-9_.-]", "_", canonical)
    return cache_dir() / f"{sanitized}.token_cache.json"


def is_valid_entry(entry) -> bool:
    if not isinstance(entry, dict):
        return False
    tokens = entry.get("tokens")
    timestamp = entry.get("timestamp")
    # bool is an int subclass; reject it explicitly.
    return (
        isinstance(tokens, int) and not isinstance(tokens, bool) and tokens >= 0
        and isinstance(timestamp, (int, float)) and not isinstance(timestamp, bool)
    )


class TokenCache:
    """Token counts keyed by (content hash, model id), persisted as JSON."""

    def __init__(self, path: Optional[Path] = None):
        self.path = path
        self._lock = threading.Lock()
        self._entries: Dict[str, dict] = {}
        self._dirty = False
        if path is not None:
            self._entries = self._load(path)

    @classmethod
    def for_project(cls, project_dir: str) -> "TokenCache":
        return cls(cache_path_for(project_dir))

    @staticmethod
    def _key(text_hash: str, model_id: str) -> str:
        return f"{model_id}:{text_hash}"

    def _load(self, path: Path) -> Dict[str, dict]:
        if not path.exists():
            return {}
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable token cache %s: %s", path, e)
            return {}
        if not isinstance(data, dict) or data.get("version") != CACHE_VERSION:
            return {}
        entries = data.get("entries")
        if not isinstance(entries, dict):
            return {}

        now = time.time()
        fresh = {
            key: entry for key, entry in entries.items()
            if is_valid_entry(entry) and now - entry["timestamp"] < CACHE_MAX_AGE_SECS
        }
        if len(fresh) < len(entries):
            self._dirty = True
        return fresh

    def get(self, text: str, model_id: str) -> Optional[int]:
        key = self._key(hash_text(text), model_id)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                _GLOBAL_COUNTERS.hit()
                return entry["tokens"]
            _GLOBAL_COUNTERS.miss()
            return None

    def insert(self, text: str, model_id: str, tokens: int) -> None:
        key = self._key(hash_text(text), model_id)
        with self._lock:
            self._entries[key] = {"tokens": int(tokens), "timestamp": int(time.time())}
            self._dirty = True

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def save(self) -> None:
        if self.path is None:
            return
        with self._lock:
            if not self._dirty:
                return
            data = {"version": CACHE_VERSION, "entries": dict(self._entries)}
            self._dirty = False
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp, self.path)
        except OSError as e:
            raise TokenCacheError(f"Failed to save token cache {self.path}: {e}") from e


class CachingTokenizer:
    def __init__(self, provider: Tokenizer, model: Model, cache: TokenCache):
        self.provider = provider
        self.model = model
        self.cache = cache

    def count_tokens(self, text: str) -> int:
        cached = self.cache.get(text, self.model.model_id)
        if cached is not None:
            return cached
        tokens = self.provider.count_tokens(text)
        self.cache.insert(text, self.model.model_id, tokens)
        return tokens

    def flush(self) -> None:
        self.cache.save()


def create_provider(model: Model) -> Tokenizer:
    if model.provider is Provider.OPENAI:
        return TiktokenTokenizer(model)
    if model.provider is Provider.HEURISTIC:
        return HeuristicTokenizer()
    raise UnsupportedModelError(f"No provider for model: {model.model_id}")


def create_tokenizer(model: Model, project_dir: Optional[str] = None, use_cache: bool = True) -> Tokenizer:
    provider = create_provider(model)
    if not use_cache:
        return provider
    if project_dir is None:
        cache = TokenCache()
    else:
        cache = TokenCache.for_project(project_dir)
    return CachingTokenizer(provider, model, cache)
