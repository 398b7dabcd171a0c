from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional, Tuple

from PIL import Image

from ..config import FilterParameters
from .color import to_array, to_image
from .edges import apply_outlines, edge_map
from .grading import grade_colors
from .masking import rescale_regions
from .painting import DETAIL_THRESHOLD, brushstrokes, oil_paint, recover_detail
from .palette import Palette, match_palette, resolve_palette
from .posterize import cel_shade
from .smoothing import bilateral_filter
from .texture import canvas_texture, vignette

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, float], None]

MAX_DIMENSION = 1200
BILATERAL_RADIUS = 3
BILATERAL_SIGMA_SPACE = 10.0
BILATERAL_SIGMA_COLOR = 30.0
VIGNETTE_STRENGTH = 0.4
FINE_DETAIL_WEIGHT = 0.6


class MediaError(ValueError):
    """The input raster is unusable (missing, unreadable or zero-area)."""


def validate_media(image: Optional[Image.Image]) -> None:
    if image is None:
        raise MediaError("No image supplied")
    width, height = image.size
    if width <= 0 or height <= 0:
        raise MediaError(f"Zero-area image: {width}x{height}")


def fit_within(size: Tuple[int, int], max_dimension: int) -> Tuple[int, int]:
    width, height = size
    longest = max(width, height)
    if longest <= max_dimension:
        return width, height
    scale = max_dimension / longest
    return max(1, int(round(width * scale))), max(1, int(round(height * scale)))


def blend(source: Image.Image, painted: Image.Image, intensity: float) -> Image.Image:
    """Linear mix of ``painted`` over ``source``; alpha comes from ``source``."""

    src_rgb, alpha = to_array(source)
    fx_rgb, _ = to_array(painted)
    return to_image(src_rgb * (1.0 - intensity) + fx_rgb * intensity, alpha)


class _Progress:
    def __init__(self, callback: Optional[ProgressCallback]) -> None:
        self._callback = callback
        self._fraction = 0.0
        self._label: Optional[str] = None
        self._started = time.perf_counter()

    async def advance(self, label: str, fraction: float) -> None:
        now = time.perf_counter()
        if self._label is not None:
            logger.debug("%s took %.3fs", self._label, now - self._started)
        self._label = label
        self._started = now
        self._fraction = max(self._fraction, min(1.0, fraction))
        if self._callback is not None:
            self._callback(label, self._fraction)
        # Hand control back to the event loop between stages.
        await asyncio.sleep(0)


async def paint(
    image: Image.Image,
    params: FilterParameters,
    *,
    palette: Palette | str | None = None,
    detection_size: Optional[Tuple[int, int]] = None,
    progress: Optional[ProgressCallback] = None,
    max_dimension: int = MAX_DIMENSION,
    faces_ready: bool = True,
    seed: int = 0,
) -> Image.Image:
    """Render ``image`` as a painting.

    ``params.face_regions`` are in the coordinates of a raster of
    ``detection_size`` (the input size when omitted) and are rescaled to the
    processing raster. ``faces_ready=False`` ignores them entirely, which is
    what callers pass when no detector is available. The input image is never
    modified.
    """

    validate_media(image)
    original_size = image.size
    source = image.convert("RGBA")
    target_size = fit_within(original_size, max_dimension)
    if target_size != original_size:
        logger.debug("Downscaling %s to %s", original_size, target_size)
        source = source.resize(target_size, Image.LANCZOS)

    faces = (
        rescale_regions(params.face_regions, detection_size or original_size, source.size)
        if faces_ready
        else []
    )
    if isinstance(palette, str):
        palette = resolve_palette(palette, source)

    tracker = _Progress(progress)

    await tracker.advance("Smoothing with bilateral filter", 0.05)
    out = bilateral_filter(
        source, BILATERAL_RADIUS, BILATERAL_SIGMA_SPACE, BILATERAL_SIGMA_COLOR, faces
    )

    await tracker.advance("Applying oil paint", 0.15)
    out = oil_paint(out, params.brush_size, faces)

    await tracker.advance("Simulating brushstrokes", 0.3)
    out = brushstrokes(out, max(2, params.brush_size - 1))

    if params.detail_preservation > DETAIL_THRESHOLD:
        await tracker.advance("Recovering detail", 0.42)
        out = recover_detail(out, source, params.detail_preservation, faces)

    await tracker.advance("Applying cel-shading", 0.5)
    out = cel_shade(out, params.posterize_levels, params.detail_preservation, faces)

    await tracker.advance("Grading colors", 0.6)
    out = grade_colors(out, params.warmth, params.saturation, faces)

    if palette is not None:
        await tracker.advance(f"Matching palette {palette.name}", 0.66)
        out = match_palette(out, palette, seed=seed)

    await tracker.advance("Drawing outlines", 0.72)
    fine_weight = (
        params.detail_preservation * FINE_DETAIL_WEIGHT
        if params.detail_preservation > DETAIL_THRESHOLD
        else 0.0
    )
    out = apply_outlines(out, edge_map(out, fine_weight), params.edge_strength)

    await tracker.advance("Adding canvas texture", 0.85)
    out = canvas_texture(out, params.texture_strength)

    await tracker.advance("Applying vignette", 0.92)
    out = vignette(out, VIGNETTE_STRENGTH * params.intensity)

    await tracker.advance("Blending with source", 0.97)
    out = blend(source, out, params.intensity)

    await tracker.advance("Done", 1.0)
    return out


def paint_image(image: Image.Image, params: FilterParameters, **kwargs) -> Image.Image:
    """Blocking wrapper around :func:`paint` for callers without an event loop."""

    return asyncio.run(paint(image, params, **kwargs))
