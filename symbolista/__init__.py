"""Character and byte-sequence frequency analysis for source trees."""

from .models import AnalysisResult, CharCount, SequenceConfig, SequenceCount, TimingBreakdown
from .orchestrator import Orchestrator

__version__ = "0.1.0"

__all__ = [
    "AnalysisResult",
    "CharCount",
    "Orchestrator",
    "SequenceConfig",
    "SequenceCount",
    "TimingBreakdown",
    "__version__",
]
