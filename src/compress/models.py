"""Value types shared by the scanner, the resolver and file jobs."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .errors import describe

STDIN = "-"


class Mode(str, Enum):
    COMPRESS = "compress"
    DECOMPRESS = "decompress"
    TEST = "test"


class Direction(str, Enum):
    ENCODE = "encode"
    DECODE = "decode"


@dataclass(frozen=True)
class JobSpec:
    input_path: str
    mode: Mode

    @property
    def is_stdin(self) -> bool:
        return self.input_path == STDIN


@dataclass(frozen=True)
class ScanError:
    """A path the scanner could not turn into a job."""

    path: str
    error: Union[BaseException, str]

    def __str__(self) -> str:
        return describe(self.error)


@dataclass(frozen=True)
class FileDestination:
    path: str
    replaces_existing: bool = False


@dataclass(frozen=True)
class ResolvedPaths:
    """Where a job reads from and writes to.

    ``input`` is either ``STDIN`` or a file path; ``output`` is ``None`` when
    the job writes to standard output.
    """

    input: str
    output: Optional[FileDestination]

    @property
    def to_stdout(self) -> bool:
        return self.output is None


@dataclass(frozen=True)
class TransferResult:
    bytes_in: int = 0
    bytes_out: int = 0
    err: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.err is None

    def raise_for_error(self) -> None:
        if self.err is not None:
            raise self.err
