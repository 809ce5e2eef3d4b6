"""Tests for digest helpers and streaming file hashing."""
from __future__ import annotations

import base64
import hashlib
import threading
from pathlib import Path

import pytest

from freshness.errors import AbortedError, InvalidAlgorithmError, ReadError
from freshness.hashing import (
    compute_file_hash,
    compute_file_hashes,
    compute_url_safe_base64_digest,
    digest,
    new_hasher,
)


class FlipSignal:
    """Signal that reports unset for the first ``clear_calls`` polls, then set."""

    def __init__(self, clear_calls: int) -> None:
        self.clear_calls = clear_calls
        self.calls = 0

    def is_set(self) -> bool:
        self.calls += 1
        return self.calls > self.clear_calls


class TestDigest:
    """Digest function behaviour."""

    def test_hex_digest_defaults_to_sha1(self):
        assert digest("hello") == "aaf4c61ddcc5e8a2dabede0f3b482cd9aea9434d"

    def test_str_and_bytes_agree(self):
        assert digest("héllo") == digest("héllo".encode("utf-8"))

    def test_other_algorithm(self):
        assert digest(b"abc", "sha256") == hashlib.sha256(b"abc").hexdigest()

    def test_url_safe_digest_has_no_unsafe_characters(self):
        out = compute_url_safe_base64_digest("hello")
        assert "+" not in out
        assert "/" not in out
        assert not out.endswith("=")

    def test_url_safe_digest_is_deterministic(self):
        assert compute_url_safe_base64_digest("hello") == compute_url_safe_base64_digest("hello")

    def test_url_safe_digest_matches_base64_of_raw_digest(self):
        raw = hashlib.sha1(b"hello").digest()
        expected = base64.b64encode(raw).decode().replace("+", "-").replace("/", "_").rstrip("=")
        assert compute_url_safe_base64_digest("hello") == expected

    def test_unknown_algorithm_raises(self):
        with pytest.raises(InvalidAlgorithmError) as exc:
            digest("hello", "not-a-hash")
        assert exc.value.algorithm == "not-a-hash"

    def test_invalid_algorithm_is_a_value_error(self):
        with pytest.raises(ValueError):
            compute_url_safe_base64_digest("hello", "not-a-hash")

    def test_variable_length_algorithm_rejected(self):
        with pytest.raises(InvalidAlgorithmError):
            new_hasher("shake_128")


class TestComputeFileHash:
    """Streaming single-file hashing."""

    def test_matches_hashlib(self, tmp_path: Path):
        p = tmp_path / "data.bin"
        payload = b"x" * 200_000 + b"tail"
        p.write_bytes(payload)
        assert compute_file_hash(p) == hashlib.sha1(payload).hexdigest()

    def test_chunk_size_does_not_change_result(self, tmp_path: Path):
        p = tmp_path / "data.txt"
        p.write_text("some content spanning several chunks", encoding="utf-8")
        assert compute_file_hash(p, chunk_size=3) == compute_file_hash(p)

    @pytest.mark.parametrize("chunk_size", [0, -1])
    def test_non_positive_chunk_size_rejected(self, tmp_path: Path, chunk_size: int):
        """read(0) would hash every file as empty input; read(-1) would slurp it."""
        p = tmp_path / "a.txt"
        p.write_text("two, different", encoding="utf-8")
        with pytest.raises(ValueError):
            compute_file_hash(p, chunk_size=chunk_size)

    def test_empty_file(self, tmp_path: Path):
        p = tmp_path / "empty"
        p.write_bytes(b"")
        assert compute_file_hash(p) == hashlib.sha1(b"").hexdigest()

    def test_preset_signal_aborts_before_opening(self, tmp_path: Path):
        """A set signal aborts even for a file that does not exist."""
        signal = threading.Event()
        signal.set()
        with pytest.raises(AbortedError) as exc:
            compute_file_hash(tmp_path / "missing.txt", signal)
        assert exc.value.path.endswith("missing.txt")

    def test_signal_set_mid_read_aborts(self, tmp_path: Path):
        p = tmp_path / "big.bin"
        p.write_bytes(b"a" * 1024)
        signal = FlipSignal(clear_calls=2)
        with pytest.raises(AbortedError):
            compute_file_hash(p, signal, chunk_size=16)
        # entry check, first chunk, then abort on the second chunk
        assert signal.calls == 3

    def test_unset_signal_completes(self, tmp_path: Path):
        p = tmp_path / "a.txt"
        p.write_text("a", encoding="utf-8")
        assert compute_file_hash(p, threading.Event()) == hashlib.sha1(b"a").hexdigest()

    def test_missing_file_raises_read_error(self, tmp_path: Path):
        with pytest.raises(ReadError) as exc:
            compute_file_hash(tmp_path / "missing.txt")
        assert isinstance(exc.value.cause, FileNotFoundError)
        assert isinstance(exc.value.__cause__, FileNotFoundError)

    def test_directory_raises_read_error(self, tmp_path: Path):
        with pytest.raises(ReadError):
            compute_file_hash(tmp_path)

    def test_invalid_algorithm_propagates(self, tmp_path: Path):
        p = tmp_path / "a.txt"
        p.write_text("a", encoding="utf-8")
        with pytest.raises(InvalidAlgorithmError):
            compute_file_hash(p, algorithm="nope")


class TestComputeFileHashes:
    """Batch hashing."""

    def test_hashes_every_file(self, tmp_path: Path):
        files = []
        for name in ("a", "b", "c"):
            p = tmp_path / f"{name}.txt"
            p.write_text(name, encoding="utf-8")
            files.append(str(p))

        hashes = compute_file_hashes(files)

        assert set(hashes) == set(files)
        for f in files:
            assert hashes[f] == compute_file_hash(f)

    def test_accepts_path_objects(self, tmp_path: Path):
        p = tmp_path / "a.txt"
        p.write_text("a", encoding="utf-8")
        assert compute_file_hashes([p]) == {str(p): compute_file_hash(p)}

    def test_empty_input(self):
        assert compute_file_hashes([]) == {}

    def test_one_failure_fails_batch(self, tmp_path: Path):
        good = tmp_path / "good.txt"
        good.write_text("ok", encoding="utf-8")
        with pytest.raises(ReadError):
            compute_file_hashes([good, tmp_path / "missing.txt"], max_workers=2)

    def test_invalid_algorithm_checked_up_front(self):
        with pytest.raises(InvalidAlgorithmError):
            compute_file_hashes(["does-not-matter"], algorithm="nope")

    def test_non_positive_chunk_size_rejected(self, tmp_path: Path):
        p = tmp_path / "a.txt"
        p.write_text("a", encoding="utf-8")
        with pytest.raises(ValueError):
            compute_file_hashes([p], chunk_size=0)
