"""Run-wide settings for a compression batch."""

from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from .models import Mode

DEFAULT_SUFFIX = "bz2"
MAX_CORES = 32


class RunSettings(BaseModel):
    mode: Mode = Mode.COMPRESS
    to_stdout: bool = False
    force: bool = False
    keep: bool = False
    recursive: bool = False
    verbose: bool = False
    suffix: Optional[str] = None
    level: int = Field(9, ge=1, le=9)
    cores: Optional[int] = Field(None, ge=1, le=MAX_CORES)

    model_config = {
        "frozen": True,
    }

    @model_validator(mode="after")
    def _check_stdout_exclusivity(self) -> "RunSettings":
        if self.suffix is not None and not self.suffix:
            raise ValueError("suffix can't be an empty string")
        if self.to_stdout:
            if self.suffix is not None:
                raise ValueError("stdout set, suffix not used")
            if self.force:
                raise ValueError("stdout set, force not used")
            if self.keep:
                raise ValueError("stdout set, keep is redundant")
        return self

    @property
    def suffix_set(self) -> bool:
        return self.suffix is not None

    @property
    def effective_suffix(self) -> str:
        return self.suffix if self.suffix is not None else DEFAULT_SUFFIX

    def resolved_cores(self) -> int:
        if self.cores is not None:
            return self.cores
        return os.cpu_count() or 1
