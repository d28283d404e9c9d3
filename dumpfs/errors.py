"""
Exception types shared across dumpfs.
"""


class DumpFsError(Exception):
    """Base class for every error raised by dumpfs itself."""


class ConfigError(DumpFsError):
    pass


class ScanError(DumpFsError):
    pass


class TokenizerError(DumpFsError):
    pass


class UnsupportedModelError(TokenizerError):
    pass


class TokenizerEnvError(TokenizerError):
    """A required environment value for a tokenizer backend is not set."""


class TokenCacheError(TokenizerError):
    pass
