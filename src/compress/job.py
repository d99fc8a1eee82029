"""One input path taken from validation through transfer and cleanup."""

from __future__ import annotations

import logging
import math
import stat
import sys
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from .bridge import DEFAULT_CAPACITY, bridge
from .codec import CHUNK_SIZE, discard_decoded
from .config import RunSettings
from .context import RunContext
from .errors import PathError
from .models import Direction, JobSpec, Mode, ResolvedPaths, TransferResult
from .paths import resolve_paths

logger = logging.getLogger(__name__)


class JobState(str, Enum):
    VALIDATING = "validating"
    RESOLVING = "resolving"
    TRANSFERRING = "transferring"
    REPORTING = "reporting"
    CLEANING_UP = "cleaning_up"
    DONE = "done"
    FAILED = "failed"


def format_compression_summary(path: str, bytes_in: int, bytes_out: int) -> str:
    ratio = bytes_in / bytes_out if bytes_out else 0.0
    bits_per_byte = 8 / ratio if ratio else math.inf
    saved = 100 * (1 - 1 / ratio) if ratio else -math.inf
    return (
        f"{path}: {ratio:6.3f}:1, {bits_per_byte:6.3f} bits/byte, "
        f"{saved:5.2f}% saved, {bytes_in} in, {bytes_out} out."
    )


class FileJob:
    """Run a single :class:`JobSpec`.

    :meth:`run` raises on failure and leaves ``state`` at ``FAILED``; the
    caller decides how the failure is reported. Nothing is retried.
    """

    def __init__(
        self,
        spec: JobSpec,
        settings: RunSettings,
        context: RunContext,
        *,
        stdin: Optional[BinaryIO] = None,
        stdout: Optional[BinaryIO] = None,
        chunk_size: int = CHUNK_SIZE,
        capacity: int = DEFAULT_CAPACITY,
    ) -> None:
        self.spec = spec
        self.settings = settings
        self.context = context
        self.state = JobState.VALIDATING
        self.paths: Optional[ResolvedPaths] = None
        self.result: Optional[TransferResult] = None
        self._stdin = stdin
        self._stdout = stdout
        self._chunk_size = chunk_size
        self._capacity = capacity
        self._created_output: Optional[str] = None

    @property
    def path(self) -> str:
        return self.spec.input_path

    def run(self) -> Optional[TransferResult]:
        try:
            self._validate()
            if self.spec.mode is Mode.TEST:
                self._test()
            else:
                self._enter(JobState.RESOLVING)
                self.paths = resolve_paths(self.spec, self.settings, warn=self._warn)
                self.result = self._transfer(self.paths)
                self._enter(JobState.REPORTING)
                self._report(self.result)
                self._enter(JobState.CLEANING_UP)
                self._cleanup(self.paths)
        except BaseException:
            self.state = JobState.FAILED
            raise
        self._enter(JobState.DONE)
        return self.result

    def _enter(self, state: JobState) -> None:
        logger.debug("%s: %s -> %s", self.path, self.state.value, state.value)
        self.state = state

    def _warn(self, message: str) -> None:
        self.context.warn(self.path, message)

    def _validate(self) -> None:
        if self.spec.is_stdin:
            return
        try:
            info = Path(self.path).lstat()
        except FileNotFoundError:
            raise PathError(self.path, f"file {self.path} not found") from None
        if stat.S_ISDIR(info.st_mode):
            raise PathError(self.path, f"{self.path} is a directory")

    @contextmanager
    def _open_source(self) -> Iterator[BinaryIO]:
        if self.spec.is_stdin:
            yield self._stdin or sys.stdin.buffer
            return
        with open(self.path, "rb") as handle:
            yield handle

    @contextmanager
    def _open_sink(self, paths: ResolvedPaths) -> Iterator[BinaryIO]:
        if paths.output is None:
            # one job at a time on stdout so streams don't interleave
            with self.context.exclusive_stdout():
                yield self._stdout or sys.stdout.buffer
            return
        # exclusive create: a file that appeared after resolution is never clobbered
        with open(paths.output.path, "xb") as handle:
            self._created_output = paths.output.path
            yield handle

    def _test(self) -> None:
        self._enter(JobState.TRANSFERRING)
        with self._open_source() as source:
            decoded = discard_decoded(source, self._chunk_size)
        self.result = TransferResult(bytes_in=decoded.input_offset, bytes_out=decoded.output_offset)
        self._enter(JobState.REPORTING)
        if self.settings.verbose:
            self.context.write_line(f"{self.path}: OK")

    def _transfer(self, paths: ResolvedPaths) -> TransferResult:
        self._enter(JobState.TRANSFERRING)
        direction = Direction.DECODE if self.spec.mode is Mode.DECOMPRESS else Direction.ENCODE
        with self._open_source() as source:
            try:
                with self._open_sink(paths) as sink:
                    result = bridge(
                        source,
                        sink,
                        direction,
                        level=self.settings.level,
                        chunk_size=self._chunk_size,
                        capacity=self._capacity,
                        name=self.path,
                    )
                    result.raise_for_error()
                    sink.flush()
            except BaseException:
                self._discard_incomplete_output()
                raise
        return result

    def _discard_incomplete_output(self) -> None:
        if self._created_output is None:
            return
        try:
            Path(self._created_output).unlink(missing_ok=True)
        except OSError as exc:
            self._warn(f"could not remove incomplete output {self._created_output}: {exc}")
        else:
            logger.debug("Removed incomplete output %s", self._created_output)
        self._created_output = None

    def _report(self, result: TransferResult) -> None:
        if not self.settings.verbose:
            return
        if self.spec.mode is Mode.COMPRESS:
            self.context.write_line(format_compression_summary(self.path, result.bytes_in, result.bytes_out))
        elif self.paths is not None and not self.paths.to_stdout:
            self.context.write_line(f"{self.path}: done")

    def _cleanup(self, paths: ResolvedPaths) -> None:
        if paths.to_stdout or self.settings.keep or self.spec.is_stdin:
            return
        Path(self.path).unlink()
        logger.debug("Removed original %s", self.path)
