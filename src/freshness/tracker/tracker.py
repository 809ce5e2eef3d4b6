from __future__ import annotations

import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Iterable

from ..config import FreshnessConfig
from ..errors import AbortedError, ReadError
from ..hashing import StrPath, compute_file_hash, compute_file_hashes, new_hasher
from .types import CheckReport, FileHashResult

logger = logging.getLogger(__name__)


def _as_keys(paths: Iterable[StrPath]) -> frozenset[str]:
    return frozenset(os.fspath(p) for p in paths)


@dataclass
class Freshness:
    """Content-hash record for a set of files.

    ``check`` answers whether a file set is unchanged since the last
    ``update``; ``update`` resynchronises the record with a new file set.
    Calls on one instance are expected to be sequential.
    """

    cfg: FreshnessConfig = field(default_factory=FreshnessConfig)
    _hashes: dict[str, str] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        new_hasher(self.cfg.algorithm)

    def __len__(self) -> int:
        return len(self._hashes)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, os.PathLike)):
            return False
        return os.fspath(path) in self._hashes

    def get(self, path: StrPath) -> str | None:
        return self._hashes.get(os.fspath(path))

    def hashes(self) -> dict[str, str]:
        """Snapshot of the record; mutating it does not affect the tracker."""
        return dict(self._hashes)

    def tracked_paths(self) -> frozenset[str]:
        return frozenset(self._hashes)

    def check(self, paths: Iterable[StrPath]) -> bool:
        return self.check_report(paths).fresh

    def check_report(self, paths: Iterable[StrPath]) -> CheckReport:
        """Hash ``paths`` and compare against the record.

        Membership differences short-circuit to stale without any I/O. When
        the first changed file is found its entry is refreshed and the
        shared signal is set so the remaining reads stop early. Per-file
        failures never raise; they make the result stale.
        """
        started = time.perf_counter()
        keys = _as_keys(paths)
        report = CheckReport()

        recorded = frozenset(self._hashes)
        if keys != recorded:
            logger.debug(f"File set changed: {len(keys - recorded)} added, {len(recorded - keys)} removed")
            report.fresh = False
            report.membership_changed = True
            report.elapsed_seconds = time.perf_counter() - started
            return report

        report.files_checked = len(keys)
        if not keys:
            report.elapsed_seconds = time.perf_counter() - started
            return report

        signal = threading.Event()
        with ThreadPoolExecutor(max_workers=self.cfg.hash_workers) as executor:
            futures = {executor.submit(self._hash_one, path, signal): path for path in keys}
            for future in as_completed(futures):
                path = futures[future]
                try:
                    result = future.result()
                except Exception as e:
                    logger.error(f"Worker crashed for {path}: {e}")
                    report.files_failed += 1
                    report.fresh = False
                    signal.set()
                    continue
                self._classify(result, signal, report)

        report.elapsed_seconds = time.perf_counter() - started
        return report

    def _hash_one(self, path: str, signal: threading.Event) -> FileHashResult:
        try:
            value = compute_file_hash(path, signal, self.cfg.algorithm, self.cfg.chunk_size)
        except AbortedError:
            return FileHashResult(path=path, aborted=True)
        except ReadError as e:
            return FileHashResult(path=path, error=str(e), after_cancel=signal.is_set())
        return FileHashResult(path=path, digest=value)

    def _classify(self, result: FileHashResult, signal: threading.Event, report: CheckReport) -> None:
        if result.aborted:
            report.files_aborted += 1
            logger.debug(f"Hash aborted for {result.path}")
            return

        if result.error is not None:
            report.files_failed += 1
            if result.after_cancel:
                logger.debug(f"Ignoring error after cancellation: {result.error}")
                return
            logger.error(f"Error computing hash for {result.path}: {result.error}")
            report.fresh = False
            signal.set()
            return

        report.files_hashed += 1
        if self._hashes.get(result.path) == result.digest:
            return

        # Several files may land here before the signal reaches every worker;
        # each overwrite is still correct for its own file.
        self._hashes[result.path] = result.digest
        report.stale_files.append(result.path)
        if not signal.is_set():
            logger.info(f"Stale file detected: {result.path}")
        report.fresh = False
        signal.set()

    def update(self, paths: Iterable[StrPath]) -> None:
        """Replace the record with fresh hashes for exactly ``paths``.

        The new record is swapped in only when every file hashed; on a read
        failure the error is logged and the previous record stays in place.
        """
        keys = _as_keys(paths)
        try:
            new_hashes = compute_file_hashes(
                keys,
                algorithm=self.cfg.algorithm,
                max_workers=self.cfg.hash_workers,
                chunk_size=self.cfg.chunk_size,
            )
        except ReadError as e:
            logger.error(f"Error updating file hashes: {e}")
            return

        pruned = len(frozenset(self._hashes) - keys)
        self._hashes = new_hashes
        logger.info(f"Recorded {len(new_hashes)} file hashes ({pruned} pruned)")
