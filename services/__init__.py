from .image_generation import ImageGenerationGateway
from .styles import STYLE_CATALOG, build_prompt

__all__ = ["ImageGenerationGateway", "STYLE_CATALOG", "build_prompt"]
