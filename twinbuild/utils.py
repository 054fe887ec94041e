"""
Utility functions for twinbuild.

Includes logging, console output, checksums and diagnostic formatting.
"""

import hashlib
import json
import logging
import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, Sequence, TypeVar

from rich.console import Console
from rich.logging import RichHandler


T = TypeVar("T")

# Global console for pretty output
console = Console(stderr=True)

ANSI_PATTERN = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")

# "SyntaxError: /abs/path/file.js: Unexpected token (3:4)"
LOCATED_ERROR_PATTERN = re.compile(
    r"^(?:(?P<kind>\w*Error): )?(?P<path>[^\s:][^:]*?): (?P<message>.*?) \((?P<line>\d+):(?P<column>\d+)\)\s*$"
)


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "pretty",
    log_file: Optional[Path] = None,
    console_output: bool = True,
) -> logging.Logger:
    """
    Set up logging for a build run.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: "structured" (JSON) or "pretty" (human-readable)
        log_file: Optional path to a log file
        console_output: Also log to console

    Returns:
        Configured logger
    """
    logger = logging.getLogger("twinbuild")
    logger.setLevel(getattr(logging, log_level.upper()))
    logger.handlers = []  # Clear existing handlers

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        if log_format == "structured":
            file_handler.setFormatter(StructuredFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
        logger.addHandler(file_handler)

    if console_output:
        if log_format == "pretty":
            console_handler = RichHandler(console=console, rich_tracebacks=True, show_time=False)
        else:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(StructuredFormatter())

        logger.addHandler(console_handler)

    return logger


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add extra fields if present
        if hasattr(record, "stage"):
            log_data["stage"] = record.stage
        if hasattr(record, "event"):
            log_data["event"] = record.event
        if hasattr(record, "metadata"):
            log_data["metadata"] = record.metadata

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def get_file_checksum(file_path: Path) -> str:
    """
    Calculate SHA256 checksum of file.

    Args:
        file_path: Path to file

    Returns:
        Hex digest of SHA256 checksum
    """
    sha256 = hashlib.sha256()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(4096), b""):
            sha256.update(chunk)
    return sha256.hexdigest()


def format_duration(seconds: float) -> str:
    """
    Format duration in seconds to human-readable string.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string (e.g., "1m 23s", "45s", "0.42s")
    """
    if seconds < 1:
        return f"{seconds:.2f}s"

    if seconds < 60:
        return f"{int(seconds)}s"

    minutes = int(seconds // 60)
    remaining_seconds = int(seconds % 60)

    if minutes < 60:
        return f"{minutes}m {remaining_seconds}s"

    hours = minutes // 60
    remaining_minutes = minutes % 60
    return f"{hours}h {remaining_minutes}m {remaining_seconds}s"


def run_concurrently(
    func: Callable[[T], Any],
    items: Sequence[T],
    max_workers: int = 4,
) -> None:
    """
    Call func for every item on a thread pool and wait for all of them.

    All calls run to completion even when some fail; afterwards the
    first failure (in item order) is re-raised. Work already done by
    the other calls is kept.
    """
    if not items:
        return

    errors = {}
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(func, item): index for index, item in enumerate(items)}
        for future in as_completed(futures):
            try:
                future.result()
            except Exception as e:
                errors[futures[future]] = e

    if errors:
        raise errors[min(errors)]


def strip_ansi(text: str) -> str:
    """Remove terminal colour codes."""
    return ANSI_PATTERN.sub("", text)


def format_compile_error(error: Exception, root: Optional[Path] = None) -> str:
    """
    Reformat a compiler diagnostic into a legible message.

    Compilers report errors like:

        SyntaxError: /home/me/project/src/a.js: Unexpected token (3:4)
          1 | ...
        > 3 | const = 1;

    which becomes:

        src/a.js:3:4: SyntaxError: Unexpected token
          1 | ...
        > 3 | const = 1;

    Args:
        error: Exception raised by the compile collaborator
        root: Project root used to shorten absolute paths

    Returns:
        Formatted diagnostic
    """
    text = strip_ansi(getattr(error, "output", "") or str(error)).strip("\n")
    if not text:
        return error.__class__.__name__

    lines = text.splitlines()
    header_index = next(
        (i for i, line in enumerate(lines) if LOCATED_ERROR_PATTERN.match(line.strip())),
        None,
    )
    if header_index is None:
        return _shorten_paths(text, root)

    match = LOCATED_ERROR_PATTERN.match(lines[header_index].strip())
    location = f"{match.group('path')}:{match.group('line')}:{match.group('column')}"
    kind = match.group("kind")
    message = f"{kind}: {match.group('message')}" if kind else match.group("message")

    # Code frame lines follow the header; stack frames ("    at ...") are noise
    frame = [
        line for line in lines[header_index + 1:]
        if line.strip() and not line.lstrip().startswith("at ")
    ]
    formatted = "\n".join([f"{location}: {message}"] + frame)
    return _shorten_paths(formatted, root)


def _shorten_paths(text: str, root: Optional[Path]) -> str:
    if root is None:
        return text
    prefix = str(root).rstrip("/\\") + "/"
    return text.replace(prefix, "")


def print_success(message: str) -> None:
    """Print success message to console."""
    console.print(f"[bold green]✓[/bold green] {message}")


def print_error(message: str) -> None:
    """Print error message to console."""
    console.print(f"[bold red]✗[/bold red] {message}")


def print_warning(message: str) -> None:
    """Print warning message to console."""
    console.print(f"[bold yellow]⚠[/bold yellow] {message}")


def print_info(message: str) -> None:
    """Print info message to console."""
    console.print(f"[bold cyan]ℹ[/bold cyan] {message}")


@contextmanager
def progress(message: str) -> Iterator[None]:
    """
    Show a spinner while a stage runs, then flip it to ✓ or ✗.

    Exceptions propagate after the failure mark is printed.
    """
    try:
        with console.status(message, spinner="dots"):
            yield
    except BaseException:
        print_error(message)
        raise
    print_success(message)
