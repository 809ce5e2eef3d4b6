"""Exception hierarchy for freshness tracking."""
from __future__ import annotations


class FreshnessError(Exception):
    """Base exception."""


class InvalidAlgorithmError(FreshnessError, ValueError):
    """Requested digest algorithm is not available in hashlib."""

    def __init__(self, algorithm: str, reason: str = "unsupported digest algorithm") -> None:
        super().__init__(f"{reason}: {algorithm!r}")
        self.algorithm = algorithm


class AbortedError(FreshnessError):
    """Hash computation stopped because its cancellation signal was set."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Aborted: skipping hash computation for {path}")
        self.path = path


class ReadError(FreshnessError):
    """Reading a file failed while hashing it."""

    def __init__(self, path: str, cause: OSError) -> None:
        super().__init__(f"Error reading file {path}: {cause}")
        self.path = path
        self.cause = cause
