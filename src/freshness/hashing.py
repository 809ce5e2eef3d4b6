from __future__ import annotations

import base64
import hashlib
import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Iterable

from .errors import AbortedError, InvalidAlgorithmError, ReadError

DEFAULT_ALGORITHM = "sha1"
DEFAULT_CHUNK_SIZE = 64 * 1024

StrPath = str | os.PathLike[str]


def new_hasher(algorithm: str = DEFAULT_ALGORITHM):
    """Return a fresh hashlib object, or raise InvalidAlgorithmError."""
    try:
        h = hashlib.new(algorithm)
    except (ValueError, TypeError) as e:
        raise InvalidAlgorithmError(str(algorithm)) from e
    # shake_* digests need an explicit length and cannot back a fixed hex id
    if h.digest_size == 0:
        raise InvalidAlgorithmError(algorithm, "variable-length digest not supported")
    return h


def digest(data: bytes | str, algorithm: str = DEFAULT_ALGORITHM) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    h = new_hasher(algorithm)
    h.update(data)
    return h.hexdigest()


def compute_url_safe_base64_digest(data: str | bytes, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """Compact opaque identifier: base64 digest with ``+/`` swapped and padding stripped."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    h = new_hasher(algorithm)
    h.update(data)
    return base64.urlsafe_b64encode(h.digest()).decode("ascii").rstrip("=")


def _check_chunk_size(chunk_size: int) -> None:
    # read(0) returns b"" and read(-1) slurps the whole file
    if chunk_size <= 0:
        raise ValueError(f"Invalid chunk_size: {chunk_size}. Must be positive.")


def compute_file_hash(
    path: StrPath,
    signal: threading.Event | None = None,
    algorithm: str = DEFAULT_ALGORITHM,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> str:
    """Stream a file through the digest and return its hex hash.

    The optional ``signal`` is polled before the file is opened and before
    each chunk is folded in; once set, the read stops and ``AbortedError`` is
    raised. I/O failures surface as ``ReadError``. The file is closed on
    every exit path.
    """
    name = os.fspath(path)
    h = new_hasher(algorithm)
    _check_chunk_size(chunk_size)
    if signal is not None and signal.is_set():
        raise AbortedError(name)
    try:
        with open(name, "rb") as f:
            while True:
                chunk = f.read(chunk_size)
                if not chunk:
                    break
                if signal is not None and signal.is_set():
                    raise AbortedError(name)
                h.update(chunk)
    except OSError as e:
        raise ReadError(name, e) from e
    return h.hexdigest()


def compute_file_hashes(
    paths: Iterable[StrPath],
    algorithm: str = DEFAULT_ALGORITHM,
    max_workers: int | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> dict[str, str]:
    """Hash several files concurrently.

    All-or-nothing: the first failure cancels queued work and is re-raised
    once running tasks have finished.
    """
    new_hasher(algorithm)
    _check_chunk_size(chunk_size)
    names = sorted({os.fspath(p) for p in paths})
    if not names:
        return {}

    hashes: dict[str, str] = {}
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_map = {
            executor.submit(compute_file_hash, name, None, algorithm, chunk_size): name
            for name in names
        }
        try:
            for future in as_completed(future_map):
                hashes[future_map[future]] = future.result()
        except Exception:
            for future in future_map:
                future.cancel()
            raise
    return hashes
