"""Data classes for the freshness check pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class FileHashResult:
    """Outcome of hashing one file inside a check."""

    path: str
    digest: str | None = None
    error: str | None = None
    aborted: bool = False
    after_cancel: bool = False  # signal was already set when the error happened

    @property
    def ok(self) -> bool:
        return self.digest is not None


@dataclass
class CheckReport:
    """Statistics from a check operation."""

    fresh: bool = True
    membership_changed: bool = False
    files_checked: int = 0
    files_hashed: int = 0
    files_aborted: int = 0
    files_failed: int = 0
    stale_files: list[str] = field(default_factory=list)
    elapsed_seconds: float = 0.0
