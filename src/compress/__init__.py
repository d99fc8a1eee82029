"""Parallel bzip2 compression of files in place."""

from .config import RunSettings
from .context import RunContext
from .engine import Dispatcher, Gate
from .job import FileJob
from .models import JobSpec, Mode

__all__ = ["Dispatcher", "FileJob", "Gate", "JobSpec", "Mode", "RunContext", "RunSettings"]
