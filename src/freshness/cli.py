from __future__ import annotations

import json
import logging
import queue
import threading
from pathlib import Path

import typer

from .config import FreshnessConfig, load_config
from .errors import InvalidAlgorithmError, ReadError
from .hashing import compute_file_hashes, compute_url_safe_base64_digest, digest as hex_digest
from .tracker import Freshness
from .tracker.change_detector import ChangeDetector

app = typer.Typer(add_completion=False, no_args_is_help=True)


def _cfg(config: str | None) -> FreshnessConfig:
    try:
        return load_config(config)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e


_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _setup_logging(log_file: str | None, log_level: str, verbose: bool) -> logging.Logger:
    """Point the package logger at the console and, optionally, a rotating file.

    Handlers are named after their target, so repeated calls do not stack
    duplicate output.
    """
    logger = logging.getLogger("freshness")
    logger.setLevel(logging.DEBUG if verbose else getattr(logging, log_level.upper(), logging.INFO))
    formatter = logging.Formatter(_LOG_FORMAT, _LOG_DATEFMT)
    attached = {h.get_name() for h in logger.handlers}

    if "freshness.console" not in attached:
        console = logging.StreamHandler()
        console.set_name("freshness.console")
        console.setFormatter(formatter)
        logger.addHandler(console)

    if log_file:
        target = f"freshness.file:{Path(log_file).resolve()}"
        if target not in attached:
            from logging.handlers import RotatingFileHandler
            file_handler = RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=5)
            file_handler.set_name(target)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger


@app.command()
def init(out: str = typer.Option("config.toml", help="Write example config to this path")):
    """Write a starter config.toml."""
    outp = Path(out)
    outp.write_text("""[hashing]
algorithm = "sha1"
chunk_size = 65536
workers = 8

[watch]
debounce_ms = 500

[logging]
level = "INFO"
# file = "~/.cache/freshness/watch.log"
""", encoding="utf-8")
    typer.echo(f"Wrote {outp}")


@app.command()
def digest(text: str,
           algorithm: str = typer.Option("sha1", help="hashlib algorithm name"),
           url_safe: bool = typer.Option(False, "--url-safe", help="Print URL-safe base64 instead of hex")):
    """Print the digest of TEXT."""
    try:
        if url_safe:
            out = compute_url_safe_base64_digest(text, algorithm)
        else:
            out = hex_digest(text, algorithm)
    except InvalidAlgorithmError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=2)
    typer.echo(out)


@app.command()
def hash(files: list[Path] = typer.Argument(..., help="Files to hash"),
         config: str = typer.Option(None, help="Path to config.toml"),
         algorithm: str = typer.Option(None, help="Override the configured algorithm")):
    """Hash files concurrently and print a JSON object of path -> digest."""
    cfg = _cfg(config)
    try:
        hashes = compute_file_hashes(
            files,
            algorithm=algorithm or cfg.algorithm,
            max_workers=cfg.hash_workers,
            chunk_size=cfg.chunk_size,
        )
    except InvalidAlgorithmError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=2)
    except ReadError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(hashes, indent=2, sort_keys=True))


def _report(tracker: Freshness, paths: list[str]) -> None:
    """Check once, print the outcome and re-record the files when stale."""
    report = tracker.check_report(paths)
    if report.fresh:
        typer.echo(f"fresh ({report.files_hashed} files, {report.elapsed_seconds:.2f}s)")
        return
    if report.membership_changed:
        typer.echo("stale: file set not recorded yet")
    elif report.stale_files:
        typer.echo(f"stale: {', '.join(sorted(report.stale_files))}")
    else:
        typer.echo(f"stale: {report.files_failed} unreadable file(s)")
    tracker.update(paths)


@app.command()
def watch(files: list[Path] = typer.Argument(..., help="Files to track"),
          config: str = typer.Option(None, help="Path to config.toml"),
          log_file: str = typer.Option(None, "--log-file", "-l", help="Log file path"),
          log_level: str = typer.Option(None, "--log-level", help="Log level: DEBUG, INFO, WARNING, ERROR"),
          verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose (DEBUG) logging")):
    """Track files and report whenever they go stale."""
    cfg = _cfg(config)
    _setup_logging(log_file or cfg.log_file, log_level or cfg.log_level, verbose)

    paths = [str(f) for f in files]
    tracker = Freshness(cfg)
    tracker.update(paths)
    typer.echo(f"Tracking {len(tracker)} file(s). Press Ctrl+C to stop.")

    q: "queue.Queue[str]" = queue.Queue()
    detector = ChangeDetector(paths=paths, q=q, debounce_ms=cfg.debounce_ms)
    detector_thread = threading.Thread(target=detector.watch, daemon=True)
    detector_thread.start()

    try:
        while not detector.stop_event.is_set():
            try:
                q.get(timeout=1.0)
            except queue.Empty:
                continue
            # Coalesce a burst of events into one check
            while not q.empty():
                q.get_nowait()
            _report(tracker, paths)
    except KeyboardInterrupt:
        typer.echo("\nStopping watch mode...")
    finally:
        detector.stop()
        detector_thread.join(timeout=2.0)


if __name__ == "__main__":
    app()
