"""Common types, configuration and exceptions for vectorforge."""

import math
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np

# Type aliases
ImageArray = np.ndarray
Contour = np.ndarray
Color = Union[Tuple[int, int, int], Tuple[int, int, int, int]]
ContourMap = Dict[Tuple[int, int, int], List[Contour]]

# Pixels with alpha below this are transparent for every stage
ALPHA_THRESHOLD = 10

# Callers must reject images above this size in either dimension
MAX_DIMENSION = 10000

BOUNDARY_ORDERS = ("nearest", "traced", "discovery")


class VectorizationError(Exception):
    """Base exception for vectorization errors."""

    pass


class InvalidInputError(VectorizationError):
    """Raised for unusable pixel buffers or settings."""

    pass


class StageOrderingError(VectorizationError):
    """Raised when a stage runs before the stage that produces its input."""

    pass


class EmptyResultError(VectorizationError):
    """Raised when a conversion produced no paths and the caller forbids that."""

    pass


class StageError(VectorizationError):
    """Raised when a stage fails with an unexpected exception."""

    def __init__(self, stage_name: str, message: str):
        super().__init__(f'Pipeline failed at stage "{stage_name}": {message}')
        self.stage_name = stage_name


class ConversionCancelled(VectorizationError):
    """Raised at a stage boundary when the caller asked to cancel."""

    pass


@dataclass
class PixelBuffer:
    """Decoded RGBA image, row-major, 8 bits per channel.

    ``data`` has shape (height, width, 4) and dtype uint8.
    """

    width: int
    height: int
    data: ImageArray

    @classmethod
    def from_bytes(cls, width: int, height: int, raw: bytes) -> "PixelBuffer":
        """Build a buffer from a flat RGBA byte string."""
        if width <= 0 or height <= 0:
            raise InvalidInputError(f"Invalid image dimensions: {width}x{height}")
        expected = width * height * 4
        if len(raw) != expected:
            raise InvalidInputError(
                f"Expected {expected} bytes for a {width}x{height} RGBA buffer, got {len(raw)}"
            )
        data = np.frombuffer(bytes(raw), dtype=np.uint8).reshape(height, width, 4).copy()
        return cls(width=width, height=height, data=data)

    @classmethod
    def from_array(cls, image: ImageArray) -> "PixelBuffer":
        """Build a buffer from an (H, W, 3) or (H, W, 4) array.

        RGB input gets a fully opaque alpha channel.
        """
        if image.ndim != 3 or image.shape[2] not in (3, 4):
            raise InvalidInputError(f"Expected an (H, W, 3|4) array, got shape {image.shape}")
        height, width = image.shape[:2]
        if width == 0 or height == 0:
            raise InvalidInputError(f"Invalid image dimensions: {width}x{height}")
        data = np.asarray(image, dtype=np.uint8)
        if data.shape[2] == 3:
            alpha = np.full((height, width, 1), 255, dtype=np.uint8)
            data = np.concatenate([data, alpha], axis=2)
        return cls(width=width, height=height, data=np.ascontiguousarray(data))

    @property
    def opaque(self) -> np.ndarray:
        """Boolean (H, W) mask of non-transparent pixels."""
        return self.data[:, :, 3] >= ALPHA_THRESHOLD

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.width, self.height, self.data.copy())


@dataclass
class ColorLayer:
    """All pixels sharing one post-quantization RGB value."""

    color: Tuple[int, int, int]
    mask: np.ndarray
    area: int


@dataclass
class PathElement:
    """One filled SVG path."""

    d: str
    fill: str
    opacity: float = 1.0


@dataclass(frozen=True)
class ConversionSettings:
    """User-facing tuning knobs, each in [0, 1]."""

    complexity: float = 0.5
    color_simplification: float = 0.5
    path_smoothing: float = 0.5

    # camelCase names used by the external settings shape
    _EXTERNAL_KEYS = {
        "complexity": "complexity",
        "colorSimplification": "color_simplification",
        "pathSmoothing": "path_smoothing",
    }

    def validate(self) -> None:
        for name in ("complexity", "color_simplification", "path_smoothing"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not math.isfinite(value):
                raise InvalidInputError(f"{name} must be a finite number, got {value!r}")
            if value < 0.0 or value > 1.0:
                raise InvalidInputError(f"{name} must be in [0, 1], got {value}")

    def clamped(self) -> "ConversionSettings":
        """Return a copy with every value clamped into [0, 1]."""
        clamp = lambda v: min(1.0, max(0.0, float(v)))
        return ConversionSettings(
            complexity=clamp(self.complexity),
            color_simplification=clamp(self.color_simplification),
            path_smoothing=clamp(self.path_smoothing),
        )

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "ConversionSettings":
        """Accept either camelCase or snake_case keys."""
        kwargs = {}
        for key, value in values.items():
            name = cls._EXTERNAL_KEYS.get(key, key)
            if name in ("complexity", "color_simplification", "path_smoothing"):
                kwargs[name] = float(value)
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, float]:
        return {
            "complexity": self.complexity,
            "colorSimplification": self.color_simplification,
            "pathSmoothing": self.path_smoothing,
        }

    @property
    def target_color_count(self) -> int:
        return max(4, math.floor(256 - self.color_simplification * 240))

    @property
    def detail_threshold(self) -> int:
        return max(2, math.floor(50 - self.complexity * 45))

    @property
    def smoothing_samples(self) -> int:
        return max(3, math.floor(10 * self.path_smoothing))


@dataclass
class PipelineConfig:
    """Per-pipeline tunables that are not exposed as user settings."""

    # How boundary pixels are ordered before simplification:
    # "nearest", "traced" or "discovery"
    boundary_order: str = "nearest"

    # Douglas-Peucker tolerance in pixels
    simplify_tolerance: float = 1.5

    # Smoothed samples closer than this to the previous one are dropped
    dedupe_distance: float = 0.5

    # SVG output
    precision: int = 2

    # Input bounds
    max_dimension: int = MAX_DIMENSION

    # Whether a conversion with no paths is a valid (blank) result
    allow_empty: bool = True

    def __post_init__(self):
        if self.boundary_order not in BOUNDARY_ORDERS:
            raise ValueError(
                f"boundary_order must be one of {BOUNDARY_ORDERS}, got {self.boundary_order!r}"
            )
        if self.simplify_tolerance < 0:
            raise ValueError(f"simplify_tolerance must be >= 0, got {self.simplify_tolerance}")


def new_job_id() -> str:
    """Random job identifier."""
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class PipelineContext:
    """State threaded through the stages of one conversion.

    Stages never mutate a context; they return a new one built with
    :meth:`evolve`.
    """

    pixels: PixelBuffer
    settings: ConversionSettings
    width: int
    height: int
    config: PipelineConfig = field(default_factory=PipelineConfig)
    job_id: str = field(default_factory=new_job_id)
    color_layers: Optional[List[ColorLayer]] = None
    contours: Optional[ContourMap] = None
    paths: Optional[List[PathElement]] = None
    svg: Optional[str] = None
    svg_size: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def evolve(self, metadata: Optional[Dict[str, Any]] = None, **changes) -> "PipelineContext":
        """Copy with ``changes`` applied and ``metadata`` merged in."""
        if metadata:
            changes["metadata"] = {**self.metadata, **metadata}
        return replace(self, **changes)
