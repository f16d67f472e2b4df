from .schemas import (
    GeneratedImage,
    GenerateResponse,
    GenerationFailure,
    GenerationRequest,
    GenerationResult,
)

__all__ = [
    "GeneratedImage",
    "GenerateResponse",
    "GenerationFailure",
    "GenerationRequest",
    "GenerationResult",
]
