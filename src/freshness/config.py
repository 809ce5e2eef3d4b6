from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os
import tomllib

from .hashing import DEFAULT_ALGORITHM, DEFAULT_CHUNK_SIZE, new_hasher

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
MAX_CHUNK_SIZE = 64 * 1024 * 1024


def _expand(p: str) -> str:
    return os.path.expandvars(os.path.expanduser(p))


@dataclass(frozen=True)
class FreshnessConfig:
    """Settings for hashing, watching and logging.

    Keep this flat; every field maps to one key of config.toml.
    """

    # Hashing
    algorithm: str = DEFAULT_ALGORITHM
    chunk_size: int = DEFAULT_CHUNK_SIZE
    hash_workers: int = 8

    # Watch mode
    debounce_ms: int = 500

    # Logging
    log_file: str | None = None
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate ranges so direct construction and from_toml agree."""
        new_hasher(self.algorithm)
        if self.chunk_size <= 0 or self.chunk_size > MAX_CHUNK_SIZE:
            raise ValueError(f"Invalid chunk_size: {self.chunk_size}. Must be between 1 and {MAX_CHUNK_SIZE}.")
        if self.hash_workers <= 0 or self.hash_workers > 256:
            raise ValueError(f"Invalid workers: {self.hash_workers}. Must be between 1 and 256.")
        if self.debounce_ms < 0 or self.debounce_ms > 60000:
            raise ValueError(f"Invalid debounce_ms: {self.debounce_ms}. Must be between 0 and 60000.")
        level = str(self.log_level).upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}. Must be one of {_LOG_LEVELS}.")
        object.__setattr__(self, "log_level", level)

    @staticmethod
    def from_toml(path: str | Path) -> "FreshnessConfig":
        data = tomllib.loads(Path(path).read_text(encoding="utf-8"))
        hashing = data.get("hashing", {})
        watch = data.get("watch", {})
        log = data.get("logging", {})

        # Environment variable takes precedence if explicitly set
        algorithm = os.environ.get("FRESHNESS_ALGORITHM") or hashing.get("algorithm", DEFAULT_ALGORITHM)

        log_file = log.get("file")
        if log_file:
            log_file = str(Path(_expand(log_file)).resolve())

        return FreshnessConfig(
            algorithm=algorithm,
            chunk_size=int(hashing.get("chunk_size", DEFAULT_CHUNK_SIZE)),
            hash_workers=int(hashing.get("workers", 8)),
            debounce_ms=int(watch.get("debounce_ms", 500)),
            log_file=log_file,
            log_level=str(log.get("level", "INFO")),
        )


def load_config(path: str | Path | None = None) -> FreshnessConfig:
    """Load config from TOML, or defaults when no path is given."""
    if path is None:
        return FreshnessConfig()
    return FreshnessConfig.from_toml(path)
