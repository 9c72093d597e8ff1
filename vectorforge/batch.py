"""Concurrent conversion of several images.

Each job owns its own pipeline context, so jobs share no mutable state and
can run on worker threads without locking.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .pipeline import Pipeline, convert_image_data
from .types import ConversionSettings, PipelineConfig, PixelBuffer, VectorizationError, new_job_id

logger = logging.getLogger(__name__)

BatchProgress = Callable[[int, int], None]


@dataclass
class ConversionJob:
    """Outcome of one conversion in a batch."""

    id: str
    name: str
    settings: ConversionSettings
    status: str = "pending"  # "pending", "completed" or "failed"
    svg: Optional[str] = None
    svg_size: int = 0
    error: Optional[str] = None
    elapsed: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)


def format_file_size(size: int) -> str:
    """Human readable byte count, e.g. ``1.5 KB``."""
    if size == 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    i = 0
    while i < len(units) - 1 and size >= 1024 ** (i + 1):
        i += 1
    value = round(size / 1024 ** i, 2)
    if value == int(value):
        value = int(value)
    return f"{value} {units[i]}"


def _run_job(
    job: ConversionJob,
    pixels: PixelBuffer,
    config: Optional[PipelineConfig],
    pipeline: Optional[Pipeline],
) -> ConversionJob:
    start = time.perf_counter()
    try:
        result = convert_image_data(
            pixels,
            job.settings,
            config=config,
            pipeline=pipeline.clone() if pipeline is not None else None,
            job_id=job.id,
        )
    except VectorizationError as e:
        job.status = "failed"
        job.error = str(e)
        logger.warning(f"Job {job.id} ({job.name}) failed: {e}")
    except Exception as e:
        job.status = "failed"
        job.error = f"Exception: {e}"
        logger.exception(f"Job {job.id} ({job.name}) failed unexpectedly")
    else:
        job.status = "completed"
        job.svg = result.svg
        job.svg_size = result.size
        job.metadata = result.metadata
    job.elapsed = time.perf_counter() - start
    return job


def convert_many(
    items: Sequence[Tuple[str, PixelBuffer]],
    settings: ConversionSettings,
    max_workers: Optional[int] = None,
    on_progress: Optional[BatchProgress] = None,
    config: Optional[PipelineConfig] = None,
    pipeline: Optional[Pipeline] = None,
) -> List[ConversionJob]:
    """Convert several images concurrently with the same settings.

    A failing image does not stop the batch; its job is marked ``failed``
    with the error message.

    Args:
        items: Sequence of (name, pixel_buffer) pairs
        settings: Settings applied to every image
        max_workers: Worker thread count. Executor default if None.
        on_progress: Called as ``(completed, total)`` after each job finishes
        config: Pipeline tunables shared by all jobs
        pipeline: Stage chain to run; each job runs its own copy

    Returns:
        One ConversionJob per item, in input order
    """
    jobs = [ConversionJob(id=new_job_id(), name=name, settings=settings) for name, _ in items]
    if not jobs:
        return []

    total = len(jobs)
    completed = 0
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [
            executor.submit(_run_job, job, pixels, config, pipeline)
            for job, (_, pixels) in zip(jobs, items)
        ]
        for future in as_completed(futures):
            future.result()
            completed += 1
            if on_progress is not None:
                on_progress(completed, total)

    failed = sum(1 for job in jobs if job.status == "failed")
    logger.info(f"Batch finished: {total - failed} succeeded, {failed} failed")
    return jobs
