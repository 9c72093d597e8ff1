"""Named conversion settings for common kinds of images."""

from dataclasses import dataclass
from typing import List, Optional

from .types import ConversionSettings


@dataclass(frozen=True)
class Preset:
    """A named, described set of conversion settings."""

    id: str
    name: str
    description: str
    settings: ConversionSettings


BUILT_IN_PRESETS = (
    Preset(
        id="logo",
        name="Logo",
        description="Clean shapes, limited colors",
        settings=ConversionSettings(complexity=0.6, color_simplification=0.5, path_smoothing=0.6),
    ),
    Preset(
        id="icon",
        name="Icon",
        description="Simple graphics, bold lines",
        settings=ConversionSettings(complexity=0.4, color_simplification=0.7, path_smoothing=0.6),
    ),
    Preset(
        id="illustration",
        name="Illustration",
        description="Detailed artwork, more colors",
        settings=ConversionSettings(complexity=0.7, color_simplification=0.3, path_smoothing=0.5),
    ),
    Preset(
        id="photo",
        name="Photo",
        description="Maximum detail preservation",
        settings=ConversionSettings(complexity=0.85, color_simplification=0.15, path_smoothing=0.4),
    ),
    Preset(
        id="minimal",
        name="Minimal",
        description="Smallest file size",
        settings=ConversionSettings(complexity=0.3, color_simplification=0.8, path_smoothing=0.7),
    ),
)


def all_presets() -> List[Preset]:
    return list(BUILT_IN_PRESETS)


def get_preset(preset_id: str) -> Optional[Preset]:
    """Look up a built-in preset by id."""
    for preset in BUILT_IN_PRESETS:
        if preset.id == preset_id:
            return preset
    return None


def matches_preset(settings: ConversionSettings) -> Optional[Preset]:
    """Return the preset whose settings equal ``settings`` exactly, if any."""
    for preset in BUILT_IN_PRESETS:
        if preset.settings == settings:
            return preset
    return None


def describe_settings(settings: ConversionSettings) -> str:
    """Short label such as ``C60% S50% P60%``."""
    return (
        f"C{round(settings.complexity * 100)}% "
        f"S{round(settings.color_simplification * 100)}% "
        f"P{round(settings.path_smoothing * 100)}%"
    )
