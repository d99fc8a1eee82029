"""Filesystem discovery: turn command-line paths into file jobs."""

from __future__ import annotations

import logging
import stat
from pathlib import Path
from typing import Iterable, Iterator, Union

from .models import STDIN, JobSpec, Mode, ScanError

logger = logging.getLogger(__name__)

ScanResult = Union[JobSpec, ScanError]


def scan(paths: Iterable[str], *, mode: Mode, recursive: bool = False) -> Iterator[ScanResult]:
    """Yield a ``JobSpec`` per file to process and a ``ScanError`` per path that can't be.

    The sequence is lazy and keeps going after errors; entries of each
    directory come in sorted order.
    """

    for path in paths:
        if path == STDIN:
            yield JobSpec(STDIN, mode)
            continue
        try:
            info = Path(path).stat()
        except OSError as exc:
            yield ScanError(path, exc)
            continue
        if not stat.S_ISDIR(info.st_mode):
            yield JobSpec(path, mode)
        elif recursive:
            yield from _walk(Path(path), mode)
        else:
            yield ScanError(path, "is a directory (use -r to process recursively)")


def _walk(root: Path, mode: Mode) -> Iterator[ScanResult]:
    try:
        entries = sorted(root.iterdir())
    except OSError as exc:
        yield ScanError(str(root), exc)
        return

    for entry in entries:
        try:
            if entry.is_symlink():
                logger.debug("Skipping %s: symbolic link", entry)
            elif entry.is_dir():
                yield from _walk(entry, mode)
            elif entry.is_file():
                yield JobSpec(str(entry), mode)
            else:
                logger.debug("Skipping %s: not a regular file", entry)
        except OSError as exc:
            yield ScanError(str(entry), exc)
