"""Dataclasses and shared models for the batch captioner."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional


class ProcessingMode(str, Enum):
    """How sidecar description files are written for a run."""

    DEFAULT = "default"
    ADD = "add"
    UPDATE = "update"

    @classmethod
    def from_flags(cls, *, add: bool, update: bool) -> "ProcessingMode":
        if add:
            return cls.ADD
        if update:
            return cls.UPDATE
        return cls.DEFAULT

    @property
    def requires_existing(self) -> bool:
        return self is not ProcessingMode.DEFAULT

    @property
    def banner(self) -> str:
        return _MODE_BANNERS[self]

    @property
    def result_verb(self) -> str:
        return _MODE_VERBS[self]


_MODE_BANNERS = {
    ProcessingMode.DEFAULT: "Create/overwrite descriptions",
    ProcessingMode.ADD: "Append to existing descriptions",
    ProcessingMode.UPDATE: "Update existing descriptions",
}

_MODE_VERBS = {
    ProcessingMode.DEFAULT: "Saved",
    ProcessingMode.ADD: "Appended",
    ProcessingMode.UPDATE: "Updated",
}


@dataclass(frozen=True)
class ImageOutcome:
    """Result of a single generate-and-write cycle."""

    image: Path
    sidecar: Path
    success: bool
    elapsed_seconds: float = 0.0
    error: Optional[str] = None


@dataclass
class RunSummary:
    """Counters accumulated across one batch run."""

    success_count: int = 0
    error_count: int = 0
    skipped_count: int = 0
    outcomes: List[ImageOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.success_count + self.error_count

    def record(self, outcome: ImageOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.success:
            self.success_count += 1
        else:
            self.error_count += 1

    def as_line(self) -> str:
        return (
            f"Success: {self.success_count} | Errors: {self.error_count} "
            f"| Total: {self.total}"
        )
