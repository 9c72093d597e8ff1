"""Main pipeline orchestrator for vectorforge."""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, NamedTuple, Optional

from .contour import trace_contours
from .extract import extract_color_layers
from .quantize import quantize_pixels
from .smooth import SMOOTHING_CUTOFF, smooth_contour
from .svg import contours_to_paths, render_svg
from .types import (
    ConversionCancelled,
    ConversionSettings,
    EmptyResultError,
    InvalidInputError,
    PathElement,
    PipelineConfig,
    PipelineContext,
    PixelBuffer,
    StageError,
    StageOrderingError,
    VectorizationError,
    new_job_id,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, int], None]
CancelCheck = Callable[[], bool]


class Stage(NamedTuple):
    """A named ``context -> context`` transform."""

    name: str
    execute: Callable[[PipelineContext], PipelineContext]


def quantize_stage(context: PipelineContext) -> PipelineContext:
    """Reduce the palette of the context's pixels with median cut."""
    n_colors = context.settings.target_color_count
    quantized, palette = quantize_pixels(context.pixels.data, n_colors)
    logger.info(f"Quantized to {len(palette)} palette entries (target {n_colors})")

    return context.evolve(
        pixels=PixelBuffer(context.width, context.height, quantized),
        metadata={
            "target_color_count": n_colors,
            "quantization_method": "median-cut",
            "palette_size": len(palette),
        },
    )


def extract_layers_stage(context: PipelineContext) -> PipelineContext:
    """Split the pixels into per-color layers, largest first."""
    layers = extract_color_layers(context.pixels.data)
    if not layers:
        logger.warning("No opaque pixels; the result will be blank")
    else:
        logger.info(f"Extracted {len(layers)} color layers")

    return context.evolve(
        color_layers=layers,
        metadata={"unique_colors": len(layers), "layers": len(layers)},
    )


def trace_stage(context: PipelineContext) -> PipelineContext:
    """Trace and simplify the contours of every layer."""
    if context.color_layers is None:
        raise StageOrderingError("Color layers must be extracted before contour tracing")

    config = context.config
    contours = trace_contours(
        context.color_layers,
        context.settings.complexity,
        boundary_order=config.boundary_order,
        tolerance=config.simplify_tolerance,
    )
    total = sum(len(c) for c in contours.values())
    logger.info(f"Traced {total} contours ({config.boundary_order} boundary order)")

    return context.evolve(
        contours=contours,
        metadata={
            "detail_threshold": context.settings.detail_threshold,
            "total_contours": total,
            "boundary_order": config.boundary_order,
        },
    )


def smooth_stage(context: PipelineContext) -> PipelineContext:
    """Resample contours along Catmull-Rom splines when smoothing is high enough."""
    if context.contours is None:
        raise StageOrderingError("Contours must be traced before path smoothing")

    smoothing = context.settings.path_smoothing
    smoothed = {}
    sampled = 0
    for color, layer_contours in context.contours.items():
        smoothed[color] = []
        for contour in layer_contours:
            points, count = smooth_contour(contour, smoothing, context.config.dedupe_distance)
            smoothed[color].append(points)
            sampled += count

    return context.evolve(
        contours=smoothed,
        metadata={
            "smoothing_method": "catmull-rom" if smoothing > SMOOTHING_CUTOFF else "none",
            "smoothing_level": smoothing,
            "sampled_points": sampled,
        },
    )


def svg_stage(context: PipelineContext) -> PipelineContext:
    """Render contours to path elements and assemble the SVG document."""
    if context.contours is None:
        raise StageOrderingError("Contours must be traced before SVG generation")

    paths = contours_to_paths(
        context.contours, context.settings.path_smoothing, context.config.precision
    )
    svg, size = render_svg(context.width, context.height, paths)
    logger.info(f"Generated {len(paths)} paths, {size} bytes")

    return context.evolve(
        paths=paths,
        svg=svg,
        svg_size=size,
        metadata={"path_count": len(paths), "svg_size": size},
    )


QUANTIZE = Stage("ColorQuantization", quantize_stage)
EXTRACT_LAYERS = Stage("ColorLayerExtraction", extract_layers_stage)
TRACE = Stage("ContourTracing", trace_stage)
SMOOTH = Stage("PathSmoothing", smooth_stage)
GENERATE_SVG = Stage("SVGGeneration", svg_stage)


class Pipeline:
    """Fixed-order chain of stages.

    Stages run strictly in order, each receiving the previous stage's
    context. The chain can be edited before it runs, which is how the named
    variants below are built.
    """

    def __init__(self, stages: Optional[List[Stage]] = None):
        self._stages: List[Stage] = list(stages or [])

    @property
    def stages(self) -> List[Stage]:
        return list(self._stages)

    @property
    def stage_names(self) -> List[str]:
        return [stage.name for stage in self._stages]

    def _index(self, name: str) -> int:
        for i, stage in enumerate(self._stages):
            if stage.name == name:
                return i
        return -1

    def add_stage(self, stage: Stage) -> "Pipeline":
        self._stages.append(stage)
        return self

    def remove_stage(self, name: str) -> "Pipeline":
        self._stages = [stage for stage in self._stages if stage.name != name]
        return self

    def replace_stage(self, name: str, stage: Stage) -> "Pipeline":
        """Swap the named stage for ``stage``; no-op if the name is unknown."""
        index = self._index(name)
        if index != -1:
            self._stages[index] = stage
        return self

    def insert_stage_before(self, name: str, stage: Stage) -> "Pipeline":
        """Insert before the named stage, or append if it is missing."""
        index = self._index(name)
        if index == -1:
            self._stages.append(stage)
        else:
            self._stages.insert(index, stage)
        return self

    def insert_stage_after(self, name: str, stage: Stage) -> "Pipeline":
        """Insert after the named stage, or append if it is missing."""
        index = self._index(name)
        if index == -1:
            self._stages.append(stage)
        else:
            self._stages.insert(index + 1, stage)
        return self

    def clear(self) -> "Pipeline":
        self._stages = []
        return self

    def clone(self) -> "Pipeline":
        return Pipeline(self._stages)

    def execute(
        self,
        context: PipelineContext,
        on_progress: Optional[ProgressCallback] = None,
        should_cancel: Optional[CancelCheck] = None,
    ) -> PipelineContext:
        """Run every stage in order.

        Args:
            context: Initial context
            on_progress: Called as ``(stage_name, stage_index, total_stages)``
                before each stage, with a 1-based index
            should_cancel: Checked before each stage; returning True aborts

        Returns:
            The context produced by the last stage

        Raises:
            ConversionCancelled: If ``should_cancel`` returned True
            VectorizationError: Typed errors raised by a stage propagate as-is
            StageError: Wraps any other exception raised by a stage
        """
        total = len(self._stages)
        current = context

        for i, stage in enumerate(self._stages):
            if should_cancel is not None and should_cancel():
                raise ConversionCancelled(f"Conversion {context.job_id} cancelled before {stage.name}")

            if on_progress is not None:
                on_progress(stage.name, i + 1, total)

            logger.debug(f"[{context.job_id}] stage {i + 1}/{total}: {stage.name}")
            try:
                current = stage.execute(current)
            except VectorizationError:
                raise
            except Exception as e:
                raise StageError(stage.name, str(e) or type(e).__name__) from e

        return current


def create_default_pipeline() -> Pipeline:
    """All five stages."""
    return Pipeline([QUANTIZE, EXTRACT_LAYERS, TRACE, SMOOTH, GENERATE_SVG])


def create_minimal_pipeline() -> Pipeline:
    """Layer extraction, tracing and SVG only; no quantization or smoothing."""
    return Pipeline([EXTRACT_LAYERS, TRACE, GENERATE_SVG])


def create_high_quality_pipeline() -> Pipeline:
    """All five stages, tracing ordered outer borders instead of chaining pixels."""
    return create_default_pipeline().replace_stage(TRACE.name, Stage(TRACE.name, _traced_stage))


def _traced_stage(context: PipelineContext) -> PipelineContext:
    config = replace(context.config, boundary_order="traced")
    return trace_stage(context.evolve(config=config))


PIPELINES = {
    "default": create_default_pipeline,
    "minimal": create_minimal_pipeline,
    "high-quality": create_high_quality_pipeline,
}


def create_context(
    pixels: PixelBuffer,
    settings: ConversionSettings,
    config: Optional[PipelineConfig] = None,
    job_id: Optional[str] = None,
) -> PipelineContext:
    """Validate the inputs and build the initial context.

    Raises:
        InvalidInputError: For empty or oversized buffers, a data array that
            does not match the dimensions, or settings outside [0, 1]
    """
    config = config or PipelineConfig()

    if pixels.width <= 0 or pixels.height <= 0:
        raise InvalidInputError(f"Invalid image dimensions: {pixels.width}x{pixels.height}")
    if pixels.width > config.max_dimension or pixels.height > config.max_dimension:
        raise InvalidInputError(
            f"Image dimensions too large: {pixels.width}x{pixels.height} "
            f"(max {config.max_dimension}x{config.max_dimension})"
        )
    if pixels.data.shape != (pixels.height, pixels.width, 4):
        raise InvalidInputError(
            f"Pixel data shape {pixels.data.shape} does not match "
            f"{pixels.width}x{pixels.height} RGBA"
        )
    settings.validate()

    # The context never aliases the caller's array
    return PipelineContext(
        pixels=pixels.copy(),
        settings=settings,
        width=pixels.width,
        height=pixels.height,
        config=config,
        job_id=job_id or new_job_id(),
    )


@dataclass
class ConversionResult:
    """Final output of one conversion."""

    svg: str
    size: int
    job_id: str
    paths: List[PathElement] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)


def convert_image_data(
    pixels: PixelBuffer,
    settings: ConversionSettings,
    on_progress: Optional[ProgressCallback] = None,
    config: Optional[PipelineConfig] = None,
    pipeline: Optional[Pipeline] = None,
    should_cancel: Optional[CancelCheck] = None,
    job_id: Optional[str] = None,
) -> ConversionResult:
    """Convert a pixel buffer to an SVG document.

    Args:
        pixels: Decoded RGBA image
        settings: Conversion settings, already clamped to [0, 1]
        on_progress: Optional ``(stage_name, stage_index, total_stages)`` callback
        config: Pipeline tunables. Uses defaults if None.
        pipeline: Stage chain to run. Uses the default pipeline if None.
        should_cancel: Optional cancellation check run between stages
        job_id: Identifier for logs and the result. Random if None.

    Returns:
        ConversionResult with the SVG text, its UTF-8 byte size and metadata

    Raises:
        InvalidInputError: If the buffer or settings are unusable
        StageOrderingError: If the pipeline never generates the SVG
        EmptyResultError: If no paths were produced and the config forbids it
        ConversionCancelled: If ``should_cancel`` fired
    """
    context = create_context(pixels, settings, config, job_id)
    pipeline = pipeline or create_default_pipeline()

    result = pipeline.execute(context, on_progress, should_cancel)

    if result.svg is None or result.paths is None:
        raise StageOrderingError("SVG generation failed: no paths created")

    if not result.paths and not result.config.allow_empty:
        raise EmptyResultError(f"Conversion {result.job_id} produced no paths")

    return ConversionResult(
        svg=result.svg,
        size=result.svg_size,
        job_id=result.job_id,
        paths=result.paths,
        metadata=dict(result.metadata),
    )
