"""Output naming and overwrite policy for file jobs.

Nothing here opens files. The only filesystem calls are ``lstat`` on the
destination and, when ``force`` is set, removal of the file being replaced.
"""

from __future__ import annotations

import logging
import stat
from pathlib import Path
from typing import Callable, Optional

from .config import RunSettings
from .errors import PathError
from .models import FileDestination, JobSpec, Mode, ResolvedPaths

logger = logging.getLogger(__name__)

FALLBACK_EXTENSION = ".out"

WarnCallback = Callable[[str], None]


def compressed_name(path: str, suffix: str) -> str:
    extension = "." + suffix
    if path.endswith(extension):
        raise PathError(path, f"input file {path} already has {extension} suffix")
    return path + extension


def decompressed_name(path: str, suffix: str, warn: Optional[WarnCallback] = None) -> str:
    extension = "." + suffix
    name = Path(path).name
    if name.endswith(extension):
        if len(name) > len(extension):
            return str(Path(path).with_name(name[: -len(extension)]))
        raise PathError(path, f"can't strip suffix {extension} from file {path}")

    fallback = path + FALLBACK_EXTENSION
    message = f"file doesn't have suffix {extension}, can't guess original name -- using {fallback}"
    if warn is not None:
        warn(message)
    else:
        logger.warning("%s: %s", path, message)
    return fallback


def check_destination(path: str, *, force: bool) -> bool:
    """Make ``path`` writable; return True when an existing file was removed."""

    target = Path(path)
    try:
        info = target.lstat()
    except FileNotFoundError:
        return False
    if stat.S_ISDIR(info.st_mode):
        raise PathError(path, f"output file {path} is a directory")
    if not force:
        raise PathError(path, f"output file {path} exists. use -f to overwrite")
    target.unlink()
    logger.debug("Removed existing output %s", path)
    return True


def resolve_paths(
    spec: JobSpec,
    settings: RunSettings,
    *,
    warn: Optional[WarnCallback] = None,
) -> ResolvedPaths:
    if spec.mode is Mode.TEST:
        raise ValueError("test jobs have no output path")
    if settings.to_stdout:
        return ResolvedPaths(input=spec.input_path, output=None)
    if spec.is_stdin:
        raise PathError(spec.input_path, "reading from stdin, can write only to stdout")

    suffix = settings.effective_suffix
    if spec.mode is Mode.DECOMPRESS:
        output = decompressed_name(spec.input_path, suffix, warn)
    else:
        output = compressed_name(spec.input_path, suffix)

    if Path(output) == Path(spec.input_path):
        raise PathError(spec.input_path, f"output file {output} would overwrite its input")

    replaces = check_destination(output, force=settings.force)
    return ResolvedPaths(input=spec.input_path, output=FileDestination(output, replaces))
