from __future__ import annotations

import numpy as np
from PIL import Image

from .color import luminance, to_array, to_image, warmth

EDGE_THRESHOLD = 0.15
EDGE_GAIN = 2.5
WARMTH_BAND = 20.0
PEAK_FLOOR = 1e-9

# Outline inks; painted lines are never pure black.
SIENNA = (48, 28, 18)
DARK_TEAL = (16, 38, 42)
SEPIA = (35, 25, 20)


def edge_map(img: Image.Image, fine_weight: float = 0.0) -> np.ndarray:
    """Sobel magnitude, optionally plus a weighted Laplacian, scaled to ``[0, 1]``.

    Border pixels stay at zero.
    """

    rgb, _ = to_array(img)
    gray = luminance(rgb)
    height, width = gray.shape
    edges = np.zeros((height, width))
    if height < 3 or width < 3:
        return edges

    tl, t, tr = gray[:-2, :-2], gray[:-2, 1:-1], gray[:-2, 2:]
    l, c, r = gray[1:-1, :-2], gray[1:-1, 1:-1], gray[1:-1, 2:]
    bl, b, br = gray[2:, :-2], gray[2:, 1:-1], gray[2:, 2:]

    # Written as neighbour differences so flat regions come out exactly zero.
    gx = (tr - tl) + 2 * (r - l) + (br - bl)
    gy = (bl - tl) + 2 * (b - t) + (br - tr)
    interior = np.sqrt(gx * gx + gy * gy)
    if fine_weight > 0:
        interior = interior + np.abs((t - c) + (b - c) + (l - c) + (r - c)) * fine_weight
    edges[1:-1, 1:-1] = interior

    peak = edges.max()
    if peak > PEAK_FLOOR:
        edges /= peak
    else:
        edges[:] = 0.0
    return edges


def outline_color(rgb: np.ndarray) -> np.ndarray:
    """Outline ink chosen by the underlying pixel's red-minus-blue warmth."""

    temperature = warmth(rgb)[..., None]
    return np.where(
        temperature > WARMTH_BAND,
        np.array(SIENNA, dtype=np.float64),
        np.where(
            temperature < -WARMTH_BAND,
            np.array(DARK_TEAL, dtype=np.float64),
            np.array(SEPIA, dtype=np.float64),
        ),
    )


def apply_outlines(img: Image.Image, edges: np.ndarray, strength: float) -> Image.Image:
    rgb, alpha = to_array(img)
    weight = np.where(
        edges > EDGE_THRESHOLD,
        np.minimum(1.0, (edges - EDGE_THRESHOLD) * EDGE_GAIN) * strength,
        0.0,
    )[..., None]
    out = rgb * (1.0 - weight) + outline_color(rgb) * weight
    return to_image(out, alpha)


def render_edge_debug(img: Image.Image, fine_weight: float = 0.0) -> Image.Image:
    """Grayscale view of :func:`edge_map`, white for strong edges."""

    edges = edge_map(img, fine_weight)
    return Image.fromarray(np.clip(edges * 255.0 + 0.5, 0, 255).astype(np.uint8), "L")
