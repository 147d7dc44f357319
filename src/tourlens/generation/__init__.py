"""Content generation: landmark identification, discovery, details, narration."""

from tourlens.generation.citations import GroundingCitation, citations_from_chunks, photos_link
from tourlens.generation.service import (
    GeminiProvider,
    GenerationProvider,
    ImagePayload,
    LandmarkDetails,
    LandmarkIdentification,
    MockGenerationProvider,
    create_generation_provider,
)

__all__ = [
    "GroundingCitation",
    "citations_from_chunks",
    "photos_link",
    "GenerationProvider",
    "MockGenerationProvider",
    "GeminiProvider",
    "ImagePayload",
    "LandmarkDetails",
    "LandmarkIdentification",
    "create_generation_provider",
]
