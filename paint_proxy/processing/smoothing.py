from __future__ import annotations

from typing import Sequence

import numpy as np
from PIL import Image

from .color import to_array, to_image
from .masking import FaceRegion, face_mask

FACE_RADIUS_BONUS = 1
FACE_COLOR_SIGMA_RATIO = 0.7


def box_blur(values: np.ndarray, radius: int) -> np.ndarray:
    """Separable box blur over the first two axes with edge clamping."""

    values = np.asarray(values, dtype=np.float64)
    if radius < 1:
        return values.copy()
    k = 2 * radius + 1
    extra = [(0, 0)] * (values.ndim - 2)

    padded = np.pad(values, [(0, 0), (radius, radius)] + extra, mode="edge")
    summed = np.pad(padded, [(0, 0), (1, 0)] + extra, mode="constant").cumsum(axis=1)
    horizontal = (summed[:, k:] - summed[:, :-k]) / k

    padded = np.pad(horizontal, [(radius, radius), (0, 0)] + extra, mode="edge")
    summed = np.pad(padded, [(1, 0), (0, 0)] + extra, mode="constant").cumsum(axis=0)
    return (summed[k:] - summed[:-k]) / k


def bilateral_filter(
    img: Image.Image,
    radius: int = 3,
    sigma_space: float = 10.0,
    sigma_color: float = 30.0,
    faces: Sequence[FaceRegion] = (),
) -> Image.Image:
    """Edge-preserving pre-blur.

    Inside face regions the window grows by ``FACE_RADIUS_BONUS`` and the color
    sigma shrinks by ``FACE_COLOR_SIGMA_RATIO``. Samples outside the raster are
    clamped to the nearest edge pixel.
    """

    rgb, alpha = to_array(img)
    height, width = rgb.shape[:2]
    in_face = face_mask(img.size, faces)
    reach = radius + FACE_RADIUS_BONUS if in_face.any() else radius

    color_sigma = np.where(in_face, sigma_color * FACE_COLOR_SIGMA_RATIO, sigma_color)
    color_denominator = 2.0 * color_sigma * color_sigma
    space_denominator = 2.0 * sigma_space * sigma_space

    padded = np.pad(rgb, ((reach, reach), (reach, reach), (0, 0)), mode="edge")
    total = np.zeros_like(rgb)
    weight_sum = np.zeros((height, width))

    for dy in range(-reach, reach + 1):
        for dx in range(-reach, reach + 1):
            neighbor = padded[reach + dy : reach + dy + height, reach + dx : reach + dx + width]
            color_distance = ((neighbor - rgb) ** 2).sum(axis=-1)
            weight = np.exp(-(dx * dx + dy * dy) / space_denominator) * np.exp(
                -color_distance / color_denominator
            )
            if max(abs(dx), abs(dy)) > radius:
                # Only face pixels reach this far.
                weight = np.where(in_face, weight, 0.0)
            total += neighbor * weight[..., None]
            weight_sum += weight

    return to_image(total / weight_sum[..., None], alpha)
