"""Core data models shared across symbolista components."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

MIN_SEQUENCE_LENGTH = 2
MAX_SEQUENCE_LENGTH = 3


@dataclass(frozen=True)
class SequenceConfig:
    """Controls n-gram extraction and filtering for one analysis run."""

    enabled: bool = True
    min_length: int = MIN_SEQUENCE_LENGTH
    max_length: int = MAX_SEQUENCE_LENGTH
    threshold: int = 2
    top_n: Optional[int] = None

    def __post_init__(self) -> None:
        if not MIN_SEQUENCE_LENGTH <= self.min_length <= self.max_length <= MAX_SEQUENCE_LENGTH:
            raise ValueError(
                "Sequence lengths must satisfy "
                f"{MIN_SEQUENCE_LENGTH} <= min_length <= max_length <= {MAX_SEQUENCE_LENGTH}"
            )
        if self.threshold < 0:
            raise ValueError("Sequence threshold must not be negative")
        if self.top_n is not None and self.top_n < 0:
            raise ValueError("Sequence top_n must not be negative")

    def wants(self, length: int) -> bool:
        return self.enabled and self.min_length <= length <= self.max_length


@dataclass
class FileJob:
    """A single readable text file handed from the walker to a worker."""

    path: str
    content: bytes
    ascii_only: bool
    sequence_config: SequenceConfig


@dataclass
class PartialResult:
    """Statistics computed by one worker for one file."""

    char_map: Dict[int, int] = field(default_factory=dict)
    sequence_map2: Dict[int, int] = field(default_factory=dict)
    sequence_map3: Dict[int, int] = field(default_factory=dict)
    file_count: int = 1
    char_count: int = 0
    path: Optional[str] = None
    failed: bool = False


@dataclass
class AggregateSnapshot:
    """Independent copy of the collector state at the end of a run."""

    char_map: Dict[int, int]
    sequence_map2: Dict[int, int]
    sequence_map3: Dict[int, int]
    files_found: int
    files_ignored: int
    files_processed: int
    total_chars: int


@dataclass
class CharCount:
    character: str
    count: int
    percentage: float


@dataclass
class SequenceCount:
    sequence: str
    count: int
    percentage: float


@dataclass
class TimingBreakdown:
    """Diagnostic durations in seconds."""

    total: float = 0.0
    rules: float = 0.0
    traversal: float = 0.0
    sorting: float = 0.0
    output: float = 0.0


@dataclass
class AnalysisResult:
    """Sorted, percentage-annotated output of an analysis run."""

    characters: List[CharCount]
    sequences: List[SequenceCount]
    files_found: int
    files_ignored: int
    files_processed: int
    total_chars: int
    unique_chars: int
    unique_sequences: int
    timing: TimingBreakdown = field(default_factory=TimingBreakdown)
