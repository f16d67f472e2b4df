"""
Style catalog and the sculpture prompt template.
"""
from types import MappingProxyType
from typing import Mapping

STYLE_CATALOG: Mapping[str, str] = MappingProxyType(
    {
        "chibi": (
            "CHIBI style with super-deformed cute proportions - oversized head (40% of body), "
            "huge round eyes, tiny stubby limbs, kawaii aesthetic"
        ),
        "ghibli": (
            "STUDIO GHIBLI style - soft, dreamy, whimsical Miyazaki-inspired aesthetic "
            "with gentle warm tones"
        ),
        "popmart": (
            "POP MART style - designer vinyl toy look with oversized head, minimal facial features, "
            "smooth rounded shapes"
        ),
        "realistic": (
            "REALISTIC style - true-to-life proportions and accurate likeness matching the original photo"
        ),
    }
)

PROMPT_TEMPLATE = """Create a PRESERVED HYDRANGEA FLOWER SCULPTURE based on this photo.

CONSTRUCTION (CRITICAL):
- Made ENTIRELY of small preserved hydrangea flower petals clustered together
- Fluffy, textured surface from hundreds of tiny flower petals
- Like a teddy bear made of real dried flowers - soft, organic, tactile
- Each petal is visible, creating rich texture
- NOT smooth plastic, NOT cartoon render - real preserved flowers

FLOWER COLORS:
- Soft natural tones: cream, blush pink, dusty rose, lavender, tan, brown
- Colors should match the subject's natural coloring where possible
- Subtle color gradients across the sculpture

STYLE TRANSFORMATION:
{style_fragment}

DETAILS:
- Small black bead eyes
- Recognizable features from the original photo
- Sitting/standing pose, front-facing
- Subject fills 70% of frame, centered

BACKGROUND:
- Pure solid black (#000000)
- NO other elements, NO floor, NO shadows

Output: A flower petal sculpture on pure black background."""


def build_prompt(style_key: str, catalog: Mapping[str, str] = STYLE_CATALOG) -> str:
    """Interpolate the style's fragment into the sculpture template. KeyError for unknown styles."""
    return PROMPT_TEMPLATE.format(style_fragment=catalog[style_key])
