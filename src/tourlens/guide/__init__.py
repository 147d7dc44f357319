"""Tour guide orchestration."""

from tourlens.guide.orchestrator import (
    PHASE_TOPIC,
    GuideError,
    GuidePhase,
    GuideResult,
    TourGuide,
)
from tourlens.guide.output import OutputFormat

__all__ = [
    "PHASE_TOPIC",
    "GuideError",
    "GuidePhase",
    "GuideResult",
    "TourGuide",
    "OutputFormat",
]
