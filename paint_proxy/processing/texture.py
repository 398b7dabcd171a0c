from __future__ import annotations

import math

import numpy as np
from PIL import Image

from .color import to_array, to_image

WEFT_PERIOD = 3.0
WARP_PERIOD = 4.0


def canvas_pattern(size) -> np.ndarray:
    """Luminance offsets of a canvas weave, roughly in ``[-22, 22]``."""

    width, height = size
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float64)
    threads = 6.0 * np.sin(2 * math.pi * xs / WEFT_PERIOD) + 5.0 * np.sin(2 * math.pi * ys / WARP_PERIOD)
    undulation = 6.0 * np.sin(xs * 0.045 + ys * 0.031) + 5.0 * np.sin(xs * 0.013 - ys * 0.022)
    return threads + undulation


def canvas_texture(img: Image.Image, strength: float) -> Image.Image:
    if strength <= 0:
        return img.copy()
    rgb, alpha = to_array(img)
    rgb += (canvas_pattern(img.size) * strength)[..., None]
    return to_image(rgb, alpha)


def vignette(img: Image.Image, strength: float) -> Image.Image:
    """Darken towards the corners by ``1 - d² · strength``.

    ``d`` is the distance of each pixel centre (``x + 0.5``) from the image
    centre, normalised by the centre-to-corner distance.
    """

    if strength <= 0:
        return img.copy()
    rgb, alpha = to_array(img)
    width, height = img.size
    cx = width / 2.0
    cy = height / 2.0
    max_dist = math.hypot(cx, cy)
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float64)
    dist = np.hypot(xs + 0.5 - cx, ys + 0.5 - cy) / max_dist
    factor = np.maximum(0.0, 1.0 - dist * dist * strength)
    return to_image(rgb * factor[..., None], alpha)
