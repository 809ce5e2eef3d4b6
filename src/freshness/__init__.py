"""freshness: content-hash change tracking for cached work.

Records a digest per file and answers whether a file set is still fresh
(nothing changed since the last update) or stale. Hashing is streamed,
concurrent, and stops early once the answer is known.

Public API:
- Freshness
- FreshnessConfig / load_config
- digest / compute_url_safe_base64_digest
- compute_file_hash / compute_file_hashes
"""

from .config import FreshnessConfig, load_config
from .errors import AbortedError, FreshnessError, InvalidAlgorithmError, ReadError
from .hashing import (
    compute_file_hash,
    compute_file_hashes,
    compute_url_safe_base64_digest,
    digest,
)
from .tracker import CheckReport, Freshness

__all__ = [
    "Freshness",
    "CheckReport",
    "FreshnessConfig",
    "load_config",
    "digest",
    "compute_url_safe_base64_digest",
    "compute_file_hash",
    "compute_file_hashes",
    "FreshnessError",
    "InvalidAlgorithmError",
    "AbortedError",
    "ReadError",
]
