from __future__ import annotations

from typing import Sequence

import numpy as np
from PIL import Image

from .color import luminance, round_half_up, to_array, to_image
from .masking import FaceRegion, face_mask
from .smoothing import box_blur

FACE_RADIUS_FACTOR = 0.5
MIN_FACE_RADIUS = 2
STROKE_STEP = 0.5
GRADIENT_EPSILON = 0.001

DETAIL_THRESHOLD = 0.4
DETAIL_NOISE_FLOOR = 8.0
DETAIL_NOISE_GAIN = 0.1
DETAIL_KNEE = 30.0
DETAIL_FACE_BOOST = 1.4


def _quadrant_means(rgb: np.ndarray, radius: int) -> np.ndarray:
    """Mean of the quadrant with the lowest summed variance, per pixel.

    The four ``(radius + 1)``-square quadrants all include the centre pixel.
    On equal variance the earlier quadrant (TL, TR, BL, BR) wins.
    """

    height, width = rgb.shape[:2]
    k = radius + 1
    count = float(k * k)
    padded = np.pad(rgb.astype(np.int64), ((radius, radius), (radius, radius), (0, 0)), mode="edge")

    def block_sums(values: np.ndarray) -> np.ndarray:
        table = np.pad(values, ((1, 0), (1, 0), (0, 0))).cumsum(axis=0).cumsum(axis=1)
        return table[k:, k:] - table[:-k, k:] - table[k:, :-k] + table[:-k, :-k]

    sums = block_sums(padded)
    squares = block_sums(padded * padded)
    offsets = ((0, 0), (0, radius), (radius, 0), (radius, radius))

    means = []
    variances = []
    for oy, ox in offsets:
        window = (slice(oy, oy + height), slice(ox, ox + width))
        mean = sums[window] / count
        means.append(mean)
        variances.append((squares[window] / count - mean * mean).sum(axis=-1))

    best = np.argmin(np.stack(variances), axis=0)
    stacked = np.stack(means)
    return np.take_along_axis(stacked, best[None, ..., None], axis=0)[0]


def oil_paint(img: Image.Image, radius: int, faces: Sequence[FaceRegion] = ()) -> Image.Image:
    rgb, alpha = to_array(img)
    result = _quadrant_means(rgb, radius)
    in_face = face_mask(img.size, faces)
    if in_face.any():
        face_radius = max(MIN_FACE_RADIUS, int(radius * FACE_RADIUS_FACTOR))
        if face_radius != radius:
            detailed = _quadrant_means(rgb, face_radius)
            result = np.where(in_face[..., None], detailed, result)
    return to_image(result, alpha)


def brushstrokes(img: Image.Image, brush_size: int) -> Image.Image:
    """Smear interior pixels along the direction perpendicular to the gradient."""

    rgb, alpha = to_array(img)
    height, width = rgb.shape[:2]
    out = rgb.copy()
    if height < 3 or width < 3:
        return to_image(out, alpha)

    gx = (rgb[1:-1, 2:] - rgb[1:-1, :-2]).sum(axis=-1)
    gy = (rgb[2:, 1:-1] - rgb[:-2, 1:-1]).sum(axis=-1)
    magnitude = np.sqrt(gx * gx + gy * gy) + GRADIENT_EPSILON
    step_x = -gy / magnitude
    step_y = gx / magnitude

    ys, xs = np.mgrid[1 : height - 1, 1 : width - 1]
    total = np.zeros((height - 2, width - 2, 3))
    for k in range(-brush_size, brush_size + 1):
        nx = np.clip(round_half_up(xs + step_x * k * STROKE_STEP), 0, width - 1).astype(np.intp)
        ny = np.clip(round_half_up(ys + step_y * k * STROKE_STEP), 0, height - 1).astype(np.intp)
        total += rgb[ny, nx]

    out[1:-1, 1:-1] = total / (2 * brush_size + 1)
    return to_image(out, alpha)


def recover_detail(
    painted: Image.Image,
    original: Image.Image,
    detail: float,
    faces: Sequence[FaceRegion] = (),
) -> Image.Image:
    """Re-inject luminance high-pass from ``original`` into ``painted``.

    Only engaged when ``detail`` exceeds ``DETAIL_THRESHOLD``; otherwise a copy
    of ``painted`` is returned.
    """

    if detail <= DETAIL_THRESHOLD:
        return painted.copy()
    if painted.size != original.size:
        raise ValueError(f"size mismatch: {painted.size} vs {original.size}")

    rgb, alpha = to_array(painted)
    source, _ = to_array(original)
    source_luma = luminance(source)

    radius = max(1, int(round(3.0 / detail)))
    # High-pass is original minus blur, not the reverse.
    high_pass = source_luma - box_blur(source_luma, radius)
    magnitude = np.abs(high_pass)
    shaped = np.where(
        magnitude <= DETAIL_NOISE_FLOOR,
        high_pass * DETAIL_NOISE_GAIN,
        high_pass * (1.0 - np.exp(-magnitude / DETAIL_KNEE)),
    )

    gain = np.where(face_mask(painted.size, faces), detail * 0.5 * DETAIL_FACE_BOOST, detail * 0.5)
    rgb += (shaped * gain)[..., None]
    return to_image(rgb, alpha)
