"""
Data models for the Name Match analysis.

All structured data uses dataclasses. Records and results are frozen:
a result is created once, when its row is first classified, and never
changed afterwards.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Verdict(Enum):
    """
    Classification status for a name pair.

    ERROR is part of the model but the retry-forever driver never
    assigns it; a row either succeeds or the run is cancelled.
    """
    SAME = "SAME"
    DIFFERENT = "DIFFERENT"
    ERROR = "ERROR"

    @property
    def label(self) -> str:
        """Display label (e.g. "Same")."""
        return self.value.capitalize()


class RunState(Enum):
    """Lifecycle of a single analysis run."""
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"        # Cancelled before all rows were processed
    COMPLETED = "completed"


@dataclass(frozen=True)
class NamePair:
    """
    One input row: the original name and its suspected duplicate.

    Order in the loaded list matches the source file and defines
    progress indexing and export order.
    """
    original: str
    duplicate: str


@dataclass(frozen=True)
class Citation:
    """Provenance entry returned alongside a verdict."""
    uri: str
    title: str = ""
    kind: str = "web"          # "web" or "maps"


@dataclass(frozen=True)
class Classification:
    """Successful reply from the classifier for one pair."""
    status: Verdict
    correct_name: str = ""
    citations: tuple[Citation, ...] = ()


@dataclass(frozen=True)
class AnalysisResult:
    """A classified name pair."""
    original: str
    duplicate: str
    status: Verdict
    correct_name: Optional[str] = None

    @classmethod
    def from_classification(cls, pair: NamePair, classification: Classification) -> "AnalysisResult":
        return cls(
            original=pair.original,
            duplicate=pair.duplicate,
            status=classification.status,
            correct_name=classification.correct_name,
        )


@dataclass
class ProgressState:
    """How many rows of the current run have been resolved."""
    completed: int = 0
    total: int = 0

    @property
    def percentage(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.completed / self.total * 100


@dataclass(frozen=True)
class ResultRow:
    """
    An AnalysisResult with the derived display/export flags.

    correction_needed holds the raw canonical name only when neither
    input already matches it.
    """
    result: AnalysisResult
    is_original_correct: bool = False
    is_duplicate_correct: bool = False
    correction_needed: str = ""
