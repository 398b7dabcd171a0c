"""Hue-aware color grading.

Every pixel gets a coarse :class:`HueCategory` and a skin flag, then a
lightness band decides which treatment applies. Skin follows a teal shadow /
salmon midtone / amber highlight ramp; everything else gets cool shadows,
per-category midtones and golden highlights.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Sequence, Tuple

import numpy as np
from PIL import Image

from .color import hsl_to_rgb, lerp_hue, rgb_to_hsl, to_array, to_image
from .masking import FaceRegion, face_area_fraction, face_mask

NEUTRAL_SATURATION = 0.08
CLOSE_UP_AREA = 0.25
CLOSE_UP_DAMPEN = 0.78

TEAL = 0.49
SALMON = 0.03
AMBER = 0.07
WARM_PINK = 0.97


class HueCategory(IntEnum):
    SKIN_WARM = 0
    YELLOW_GOLD = 1
    GREEN = 2
    TEAL_CYAN = 3
    BLUE = 4
    PURPLE = 5
    MAGENTA_PINK = 6
    NEUTRAL = 7


# Upper hue bound (exclusive) for each chromatic category, in wheel order.
_HUE_BOUNDS: Tuple[Tuple[float, HueCategory], ...] = (
    (0.11, HueCategory.SKIN_WARM),
    (0.19, HueCategory.YELLOW_GOLD),
    (0.44, HueCategory.GREEN),
    (0.53, HueCategory.TEAL_CYAN),
    (0.72, HueCategory.BLUE),
    (0.83, HueCategory.PURPLE),
    (0.95, HueCategory.MAGENTA_PINK),
)

_COOL_CATEGORIES = (HueCategory.TEAL_CYAN, HueCategory.BLUE, HueCategory.PURPLE)


def classify_hue(hue: np.ndarray, saturation: np.ndarray) -> np.ndarray:
    """Return an array of :class:`HueCategory` values."""

    hue = np.asarray(hue, dtype=np.float64)
    # Reds past the magenta band wrap back into the warm bucket.
    category = np.full(hue.shape, int(HueCategory.SKIN_WARM), dtype=np.int8)
    lower = 0.0
    for upper, bucket in _HUE_BOUNDS:
        category[(hue >= lower) & (hue < upper)] = int(bucket)
        lower = upper
    category[np.asarray(saturation) < NEUTRAL_SATURATION] = int(HueCategory.NEUTRAL)
    return category


def skin_likeness(
    hue: np.ndarray,
    saturation: np.ndarray,
    lightness: np.ndarray,
    rgb: np.ndarray,
    in_face: np.ndarray | None = None,
) -> np.ndarray:
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    heuristic = (
        (lightness > 0.15)
        & (lightness < 0.9)
        & (saturation > 0.1)
        & ((hue < 0.14) | (hue > 0.95))
        & (r > g)
        & (r > b)
        & (r - g > 10)
    )
    if in_face is None:
        return heuristic
    return heuristic | in_face


def skin_dampen(regions: Sequence[FaceRegion], size: Tuple[int, int]) -> float:
    """Warmth multiplier for skin; close-up portraits get toned down."""

    return CLOSE_UP_DAMPEN if face_area_fraction(regions, size) > CLOSE_UP_AREA else 1.0


def _grade_skin(h, s, l, warm):
    deep = l < 0.18
    rising = (l >= 0.18) & (l < 0.32)
    mid = (l >= 0.32) & (l < 0.65)
    high = (l >= 0.65) & (l < 0.85)
    bright = l >= 0.85

    h = np.where(deep, lerp_hue(h, TEAL, 0.2 + 0.2 * warm), h)
    s = np.where(deep, s * 0.75, s)

    ramp = np.clip((l - 0.18) / 0.14, 0.0, 1.0)
    ramp_target = lerp_hue(np.full_like(h, TEAL), SALMON, ramp)
    h = np.where(rising, lerp_hue(h, ramp_target, 0.2 + 0.25 * warm), h)
    s = np.where(rising, s * 0.85, s)

    h = np.where(mid, lerp_hue(h, SALMON, 0.45 * warm), h)
    s = np.where(mid, s * (1.0 + 0.15 * warm), s)

    h = np.where(high, lerp_hue(h, AMBER, 0.5 * warm), h)
    l = np.where(high, l + 0.04 * warm, l)

    h = np.where(bright, lerp_hue(h, WARM_PINK, 0.3 * warm), h)
    s = np.where(bright, s * 0.45, s)
    return h, s, l


def _grade_scene(h, s, l, category, warm):
    very_deep = l < 0.12
    shadow = (l >= 0.12) & (l < 0.3)
    mid = (l >= 0.3) & (l < 0.7)
    high = (l >= 0.7) & (l < 0.88)
    very_bright = l >= 0.88

    h = np.where(very_deep, lerp_hue(h, 0.6, 0.4), h)
    s = np.where(very_deep, s * 0.8, s)

    h = np.where(shadow, lerp_hue(h, 0.5, 0.25), h)
    s = np.where(shadow, s * 0.85, s)

    # Midtones: (category, hue target or None, hue pull, saturation scale)
    treatments = (
        (HueCategory.SKIN_WARM, 0.08, 0.3 * warm, 1.0),
        (HueCategory.YELLOW_GOLD, 0.12, 0.35 * warm, 0.9),
        (HueCategory.GREEN, 0.25, 0.3, 0.7),
        (HueCategory.TEAL_CYAN, None, 0.0, 1.1),
        (HueCategory.BLUE, 0.55, 0.25, 0.85),
        (HueCategory.PURPLE, 0.78, 0.2, 0.65),
        (HueCategory.MAGENTA_PINK, None, 0.0, 0.6),
    )
    for bucket, target, pull, scale in treatments:
        selected = mid & (category == int(bucket))
        if target is not None:
            h = np.where(selected, lerp_hue(h, target, pull), h)
        s = np.where(selected, s * scale, s)
    neutral_mid = mid & (category == int(HueCategory.NEUTRAL))
    h = np.where(neutral_mid, lerp_hue(h, 0.09, 0.5 * warm), h)
    s = np.where(neutral_mid, s + 0.04 * warm, s)

    cool = np.isin(category, [int(c) for c in _COOL_CATEGORIES])
    s = np.where(high & cool, s * 0.8, s)
    h = np.where(high & ~cool, lerp_hue(h, 0.1, 0.35 * warm), h)

    h = np.where(very_bright, lerp_hue(h, 0.11, 0.4 * warm), h)
    s = np.where(very_bright, s * 0.5, s)
    return h, s, l


def grade_hsl(
    rgb: np.ndarray,
    warmth: float,
    saturation: float,
    faces: Sequence[FaceRegion] = (),
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Graded ``(hue, saturation, lightness)`` planes for an RGB array."""

    size = (rgb.shape[1], rgb.shape[0])
    hue, sat, light = rgb_to_hsl(rgb)
    category = classify_hue(hue, sat)
    in_face = face_mask(size, faces) if faces else None
    skin = skin_likeness(hue, sat, light, rgb, in_face)

    skin_h, skin_s, skin_l = _grade_skin(hue, sat, light, warmth * skin_dampen(faces, size))
    scene_h, scene_s, scene_l = _grade_scene(hue, sat, light, category, warmth)

    hue = np.where(skin, skin_h, scene_h)
    sat = np.where(skin, skin_s, scene_s)
    light = np.where(skin, skin_l, scene_l)

    sat = sat * (saturation * 0.4 + 0.6)
    return np.mod(hue, 1.0), np.clip(sat, 0.0, 1.0), np.clip(light, 0.0, 1.0)


def grade_colors(
    img: Image.Image,
    warmth: float,
    saturation: float,
    faces: Sequence[FaceRegion] = (),
) -> Image.Image:
    rgb, alpha = to_array(img)
    hue, sat, light = grade_hsl(rgb, warmth, saturation, faces)
    return to_image(hsl_to_rgb(hue, sat, light), alpha)
