"""Reduced-cost renderer for live video frames.

Frames are stylised at a fraction of their resolution with a single inlined
pass (no bilateral or brushstroke stages) and then upsampled and finished with
Pillow compositing operators.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional, Sequence, Tuple

import numpy as np
from PIL import Image, ImageChops, ImageDraw, ImageEnhance, ImageFilter

from ..config import FilterParameters
from .color import luminance, to_array, to_image
from .edges import SEPIA
from .masking import FaceRegion, rescale_regions
from .palette import Palette, choose_swatches, resolve_palette
from .pipeline import validate_media
from .posterize import quantize
from .smoothing import box_blur
from .texture import vignette

logger = logging.getLogger(__name__)

VIDEO_SCALE = 0.55
SHADOW_SHIFT = np.array([-10.0, 4.0, 12.0])
HIGHLIGHT_SHIFT = np.array([14.0, 6.0, -10.0])
S_CURVE_MIX = 0.5
HAZE_OPACITY = 0.18
SPLIT_TONE_OPACITY = 0.25
SPLIT_SHADOW = (40, 92, 96)
SPLIT_HIGHLIGHT = (214, 160, 92)
BACKGROUND_BLUR = 6

FrameSink = Callable[[float, Image.Image], None]


class ExportError(RuntimeError):
    """Rendered frames could not be handed to the encoder."""


def _stylize_small(rgb: np.ndarray, params: FilterParameters, palette: Optional[Palette]) -> np.ndarray:
    rgb = box_blur(rgb, 1)

    luma = luminance(rgb)
    shadow = np.clip((90.0 - luma) / 90.0, 0.0, 1.0)[..., None]
    highlight = np.clip((luma - 160.0) / 95.0, 0.0, 1.0)[..., None]
    tint = 0.5 + params.warmth
    rgb = rgb + shadow * SHADOW_SHIFT * tint + highlight * HIGHLIGHT_SHIFT * tint
    keep = params.saturation * 0.4 + 0.6
    rgb = np.clip(luma[..., None] + (rgb - luma[..., None]) * keep, 0.0, 255.0)

    rgb = quantize(rgb, params.posterize_levels)

    t = rgb / 255.0
    curve = t * t * (3.0 - 2.0 * t)
    rgb = 255.0 * (t + (curve - t) * S_CURVE_MIX)

    if palette is not None:
        rgb = palette.colors[choose_swatches(palette, rgb, dither=False)]

    gray = luminance(rgb)
    grad = np.zeros_like(gray)
    gx = gray[1:-1, 2:] - gray[1:-1, :-2]
    gy = gray[2:, 1:-1] - gray[:-2, 1:-1]
    grad[1:-1, 1:-1] = gx * gx + gy * gy
    # Compare squared magnitudes; no square root per pixel.
    threshold = 40.0 + (1.0 - params.edge_strength) * 60.0
    edge = (grad > threshold * threshold)[..., None]
    ink = params.edge_strength * 0.7
    return np.where(edge, rgb * (1.0 - ink) + np.array(SEPIA, dtype=np.float64) * ink, rgb)


def subject_mask(size: Tuple[int, int], regions: Sequence[FaceRegion]) -> Image.Image:
    """Feathered head, shoulders and torso ellipses below each face."""

    mask = Image.new("L", size, 0)
    if not regions:
        return mask
    draw = ImageDraw.Draw(mask)
    for region in regions:
        cx = region.x + region.width / 2.0
        cy = region.y + region.height / 2.0
        w = region.width
        h = region.height
        ellipses = (
            (cx, cy, 0.7 * w, 0.85 * h),
            (cx, region.y + 1.75 * h, 1.9 * w, 0.7 * h),
            (cx, region.y + 2.9 * h, 1.3 * w, 1.5 * h),
        )
        for ex, ey, rx, ry in ellipses:
            draw.ellipse((ex - rx, ey - ry, ex + rx, ey + ry), fill=255)
    feather = max(2, int(max(region.width for region in regions) * 0.25))
    return mask.filter(ImageFilter.GaussianBlur(feather))


def _split_tone(img: Image.Image) -> Image.Image:
    shadows = Image.new("RGB", img.size, SPLIT_SHADOW)
    highlights = Image.new("RGB", img.size, SPLIT_HIGHLIGHT)
    tone = Image.composite(highlights, shadows, img.convert("L"))
    return Image.blend(img, ImageChops.overlay(img, tone), SPLIT_TONE_OPACITY)


def render_frame(
    frame: Image.Image,
    params: FilterParameters,
    *,
    palette: Optional[Palette] = None,
    scale: float = VIDEO_SCALE,
    detection_size: Optional[Tuple[int, int]] = None,
) -> Image.Image:
    validate_media(frame)
    full = frame.convert("RGBA")
    width, height = full.size
    small_size = (max(1, int(round(width * scale))), max(1, int(round(height * scale))))

    small_rgb, small_alpha = to_array(full.resize(small_size, Image.BILINEAR))
    styled = to_image(_stylize_small(small_rgb, params, palette), small_alpha)
    styled = styled.resize(full.size, Image.BILINEAR).convert("RGB")

    haze = ImageChops.screen(styled, styled.filter(ImageFilter.GaussianBlur(4)))
    styled = Image.blend(styled, haze, HAZE_OPACITY)
    styled = _split_tone(styled)
    styled = vignette(styled, 0.35 * params.intensity).convert("RGB")

    faces = rescale_regions(params.face_regions, detection_size or full.size, full.size)
    if faces:
        background = ImageEnhance.Color(styled.filter(ImageFilter.GaussianBlur(BACKGROUND_BLUR))).enhance(0.7)
        styled = Image.composite(styled, background, subject_mask(full.size, faces))

    out = Image.blend(full.convert("RGB"), styled, params.intensity).convert("RGBA")
    out.putalpha(full.getchannel("A"))
    return out


class FrameClock:
    """Admits at most one render per frame interval and never overlaps renders."""

    def __init__(self, target_fps: float) -> None:
        if target_fps <= 0:
            raise ValueError("target_fps must be positive")
        self.interval = 1.0 / target_fps
        self._last_started: Optional[float] = None
        self._in_flight: Optional[float] = None

    @property
    def busy(self) -> bool:
        return self._in_flight is not None

    def begin(self, timestamp: float) -> bool:
        if self._in_flight is not None:
            return False
        if self._last_started is not None:
            elapsed = timestamp - self._last_started
            # A backwards jump (seek) always renders.
            if 0 <= elapsed < self.interval:
                return False
        self._in_flight = timestamp
        self._last_started = timestamp
        return True

    def retire(self, timestamp: float) -> None:
        if self._in_flight == timestamp:
            self._in_flight = None


class VideoRenderSession:
    """Drive :func:`render_frame` over a timestamped frame stream into ``sink``."""

    def __init__(
        self,
        sink: FrameSink,
        params: FilterParameters,
        *,
        palette: Palette | str | None = None,
        scale: float = VIDEO_SCALE,
        target_fps: float = 24.0,
        detection_size: Optional[Tuple[int, int]] = None,
    ) -> None:
        self._sink = sink
        self._params = params
        self._palette = palette
        self._scale = scale
        self._detection_size = detection_size
        self._stopped = False
        self.clock = FrameClock(target_fps)
        self.written = 0
        self.skipped = 0

    @property
    def stopped(self) -> bool:
        return self._stopped

    def stop(self) -> None:
        self._stopped = True

    def _palette_for(self, frame: Image.Image) -> Optional[Palette]:
        if isinstance(self._palette, str):
            # Resolved against the first frame, then reused.
            self._palette = resolve_palette(self._palette, frame)
        return self._palette

    def run(self, frames: Iterable[Tuple[float, Image.Image]]) -> int:
        for timestamp, frame in frames:
            if self._stopped:
                logger.info("Render stopped after %d frames", self.written)
                return self.written
            if not self.clock.begin(timestamp):
                self.skipped += 1
                continue
            try:
                rendered = render_frame(
                    frame,
                    self._params,
                    palette=self._palette_for(frame),
                    scale=self._scale,
                    detection_size=self._detection_size,
                )
                try:
                    self._sink(timestamp, rendered)
                except Exception as exc:
                    raise ExportError(f"Frame export failed at {timestamp:.3f}s: {exc}") from exc
            finally:
                self.clock.retire(timestamp)
            self.written += 1

        if self.written == 0 and not self._stopped:
            raise ExportError("No frames were exported")
        return self.written
