from __future__ import annotations

from typing import Sequence

import numpy as np
from PIL import Image

from .color import round_half_up, to_array, to_image
from .masking import FaceRegion, face_mask
from .smoothing import box_blur

FACE_LEVEL_BONUS = 2
FACE_LEVEL_CAP = 12
MAX_LEVELS = 16
CLEANUP_DETAIL_LIMIT = 0.5


def quantize(values: np.ndarray, levels: int | np.ndarray) -> np.ndarray:
    step = 255.0 / (np.asarray(levels, dtype=np.float64) - 1.0)
    return round_half_up(round_half_up(values / step) * step)


def posterize(img: Image.Image, levels: int) -> Image.Image:
    rgb, alpha = to_array(img)
    return to_image(quantize(rgb, levels), alpha)


def skin_mask_rgb(rgb: np.ndarray) -> np.ndarray:
    """Cheap RGB skin heuristic: R > G > B, R - B > 30 and 80 < R < 240."""

    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    return (r > g) & (g > b) & (r - b > 30) & (r > 80) & (r < 240)


def cel_shade(
    img: Image.Image,
    levels: int,
    detail: float,
    faces: Sequence[FaceRegion] = (),
) -> Image.Image:
    """Posterize with extra levels on faces and skin.

    Low ``detail`` settings follow up with a radius-1 blur and a second
    quantization to knock out isolated pixels; high settings add up to two
    levels instead.
    """

    if detail > CLEANUP_DETAIL_LIMIT:
        levels = min(MAX_LEVELS, levels + int(round((detail - CLEANUP_DETAIL_LIMIT) * 4)))

    rgb, alpha = to_array(img)
    soft = face_mask(img.size, faces) | skin_mask_rgb(rgb)
    face_levels = min(levels + FACE_LEVEL_BONUS, FACE_LEVEL_CAP)
    per_pixel = np.where(soft, face_levels, levels)[..., None]

    out = quantize(rgb, per_pixel)
    if detail <= CLEANUP_DETAIL_LIMIT:
        out = quantize(box_blur(out, 1), per_pixel)
    return to_image(out, alpha)
