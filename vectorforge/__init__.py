"""vectorforge: raster to SVG conversion by color layers and contour tracing.

Converts an RGBA pixel buffer into filled SVG paths through color
quantization, layer extraction, contour tracing, path smoothing and SVG
generation.
"""

from .pipeline import (
    ConversionResult,
    Pipeline,
    Stage,
    convert_image_data,
    create_default_pipeline,
    create_high_quality_pipeline,
    create_minimal_pipeline,
)
from .types import (
    ConversionCancelled,
    ConversionSettings,
    EmptyResultError,
    InvalidInputError,
    PipelineConfig,
    PixelBuffer,
    StageError,
    StageOrderingError,
    VectorizationError,
)

__version__ = "0.1.0"
__all__ = [
    "ConversionResult",
    "Pipeline",
    "Stage",
    "convert_image_data",
    "create_default_pipeline",
    "create_high_quality_pipeline",
    "create_minimal_pipeline",
    "ConversionCancelled",
    "ConversionSettings",
    "EmptyResultError",
    "InvalidInputError",
    "PipelineConfig",
    "PixelBuffer",
    "StageError",
    "StageOrderingError",
    "VectorizationError",
]
