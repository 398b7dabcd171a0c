"""Color-space helpers shared by every color stage.

All functions operate on numpy arrays so a whole raster is converted in one
call. HSL components are floats in ``[0, 1]``; RGB arrays are floats in
``[0, 255]`` with the channel on the last axis.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np
from PIL import Image


def to_array(img: Image.Image) -> Tuple[np.ndarray, np.ndarray]:
    """Split ``img`` into a float RGB array and its untouched alpha plane."""

    rgba = np.asarray(img.convert("RGBA"))
    return rgba[..., :3].astype(np.float64), rgba[..., 3].copy()


def round_half_up(values: np.ndarray) -> np.ndarray:
    return np.floor(values + 0.5)


def to_image(rgb: np.ndarray, alpha: np.ndarray) -> Image.Image:
    """Clamp ``rgb`` into bytes and re-attach ``alpha``."""

    channels = np.clip(round_half_up(rgb), 0, 255).astype(np.uint8)
    rgba = np.dstack([channels, alpha.astype(np.uint8)])
    return Image.fromarray(rgba, "RGBA")


def luminance(rgb: np.ndarray) -> np.ndarray:
    return 0.299 * rgb[..., 0] + 0.587 * rgb[..., 1] + 0.114 * rgb[..., 2]


def rgb_to_hsl(rgb: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    r = rgb[..., 0] / 255.0
    g = rgb[..., 1] / 255.0
    b = rgb[..., 2] / 255.0
    high = np.maximum(np.maximum(r, g), b)
    low = np.minimum(np.minimum(r, g), b)
    lightness = (high + low) / 2.0
    delta = high - low
    chromatic = delta > 0
    safe_delta = np.where(chromatic, delta, 1.0)

    denom = np.where(lightness > 0.5, 2.0 - high - low, high + low)
    saturation = np.where(chromatic, delta / np.where(denom > 0, denom, 1.0), 0.0)

    hue = np.where(
        high == r,
        (g - b) / safe_delta + np.where(g < b, 6.0, 0.0),
        np.where(high == g, (b - r) / safe_delta + 2.0, (r - g) / safe_delta + 4.0),
    )
    hue = np.where(chromatic, hue / 6.0, 0.0)
    return hue, saturation, lightness


def _hue_to_channel(p: np.ndarray, q: np.ndarray, t: np.ndarray) -> np.ndarray:
    t = np.where(t < 0, t + 1.0, t)
    t = np.where(t > 1, t - 1.0, t)
    return np.select(
        [t < 1.0 / 6.0, t < 0.5, t < 2.0 / 3.0],
        [p + (q - p) * 6.0 * t, q, p + (q - p) * (2.0 / 3.0 - t) * 6.0],
        default=p,
    )


def hsl_to_rgb(hue: np.ndarray, saturation: np.ndarray, lightness: np.ndarray) -> np.ndarray:
    """Inverse of :func:`rgb_to_hsl`; returns unrounded floats in ``[0, 255]``."""

    q = np.where(
        lightness < 0.5,
        lightness * (1.0 + saturation),
        lightness + saturation - lightness * saturation,
    )
    p = 2.0 * lightness - q
    rgb = np.stack(
        [
            _hue_to_channel(p, q, hue + 1.0 / 3.0),
            _hue_to_channel(p, q, hue),
            _hue_to_channel(p, q, hue - 1.0 / 3.0),
        ],
        axis=-1,
    )
    gray = np.repeat(lightness[..., None], 3, axis=-1)
    rgb = np.where((saturation == 0)[..., None], gray, rgb)
    return np.clip(rgb * 255.0, 0.0, 255.0)


def lerp_hue(hue: np.ndarray, target: float | np.ndarray, t: float | np.ndarray) -> np.ndarray:
    """Move ``hue`` toward ``target`` by ``t`` along the shorter arc."""

    delta = np.mod(np.asarray(target) - hue + 0.5, 1.0) - 0.5
    return np.mod(hue + delta * t, 1.0)


def warmth(rgb: np.ndarray) -> np.ndarray:
    return rgb[..., 0] - rgb[..., 2]
