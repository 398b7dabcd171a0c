from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from .color import luminance, to_array, to_image

RGB = Tuple[int, int, int]

LUMA_WEIGHT = 3.0
CHANNEL_WEIGHT = 0.4
WARMTH_WEIGHT = 0.08
DITHER_CLOSENESS = 0.88
DITHER_GAIN = 1.5
DITHER_CEILING = 0.5
AUTO_SAMPLES = 120

_HASH_MASK = 0xFFFFFFFF


def _parse_hex(code: str) -> RGB:
    value = code.strip().lstrip("#")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    if len(value) != 6:
        raise ValueError(f"Invalid hex color: {code!r}")
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


@dataclass(frozen=True)
class Swatch:
    rgb: RGB
    luminance: float
    warmth: float

    @classmethod
    def from_rgb(cls, rgb: RGB) -> "Swatch":
        r, g, b = rgb
        return cls(rgb=(r, g, b), luminance=0.299 * r + 0.587 * g + 0.114 * b, warmth=float(r - b))

    @property
    def hex(self) -> str:
        return "#%02x%02x%02x" % self.rgb


class Palette:
    """An ordered set of swatches with their luminance and warmth cached."""

    def __init__(self, name: str, colors: Iterable[str | RGB]) -> None:
        self.name = name
        self.swatches: Tuple[Swatch, ...] = tuple(
            Swatch.from_rgb(_parse_hex(color) if isinstance(color, str) else tuple(color))
            for color in colors
        )
        if not self.swatches:
            raise ValueError(f"Palette {name!r} has no colors")
        self.colors = np.array([swatch.rgb for swatch in self.swatches], dtype=np.float64)

    def __len__(self) -> int:
        return len(self.swatches)

    def __repr__(self) -> str:
        return f"Palette({self.name!r}, {len(self)} swatches)"


_CATALOG_HEX: Dict[str, Tuple[str, ...]] = {
    "ochre_dusk": (
        "#1f1a17", "#3b2f2a", "#6b4a35", "#a0683c", "#c9924f",
        "#e2c08a", "#f1e3c4", "#2f4a4c", "#4f7a74", "#8fb0a3",
    ),
    "harbor_teal": (
        "#141c22", "#22343b", "#2f5257", "#4d7c78", "#86aa9c", "#d3cdb5",
        "#b9875a", "#8a5a3c", "#5a3a2e", "#e6d7b8", "#c45f3b",
    ),
    "sodium_night": (
        "#0f0f16", "#1f2433", "#3a3f5c", "#5f5b7d", "#8e6f86",
        "#c2794f", "#e0a255", "#f3d28a", "#2e5b5d", "#6e9c8f",
    ),
    "faded_rose": (
        "#2a1d22", "#4a2f36", "#7a4a50", "#b0706c", "#d9a08f", "#f0d2c0",
        "#93a5a8", "#5e7a82", "#34505a", "#e8c47a", "#a8834f", "#f7ece0",
    ),
    "pale_morning": (
        "#2b2d2f", "#4a5154", "#6f7d7f", "#9fb1ad", "#cfdad2", "#f4efe4",
        "#e7c9a0", "#c99a6b", "#9c6d4b", "#6b8fa6", "#3f6580",
    ),
}

PALETTES: Dict[str, Palette] = {name: Palette(name, colors) for name, colors in _CATALOG_HEX.items()}


def palette_names() -> List[str]:
    return list(PALETTES)


def get_palette(name: str) -> Palette:
    key = name.strip().lower()
    if key not in PALETTES:
        raise KeyError(f"Unknown palette '{name}'. Available: {', '.join(PALETTES)}")
    return PALETTES[key]


def nearest_two_swatches(
    palette: Palette, rgb: np.ndarray
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Indices and weighted distances of the two closest swatches per pixel.

    A pixel that equals a swatch exactly gets distance 0 for that swatch.
    With a single-swatch palette the second index is ``-1`` and its distance
    is infinite.
    """

    rgb = np.asarray(rgb, dtype=np.float64)
    luma = luminance(rgb)
    desired_warmth = (luma / 255.0 - 0.4) * 80.0

    shape = rgb.shape[:-1]
    best_d = np.full(shape, np.inf)
    second_d = np.full(shape, np.inf)
    best_i = np.zeros(shape, dtype=np.intp)
    second_i = np.full(shape, -1, dtype=np.intp)

    for index, swatch in enumerate(palette.swatches):
        channel = ((rgb - np.asarray(swatch.rgb, dtype=np.float64)) ** 2).sum(axis=-1)
        distance = (
            LUMA_WEIGHT * (luma - swatch.luminance) ** 2
            + CHANNEL_WEIGHT * channel
            + WARMTH_WEIGHT * (swatch.warmth - desired_warmth) ** 2
        )
        distance = np.where(channel == 0, 0.0, distance)

        closer = distance < best_d
        runner_up = ~closer & (distance < second_d)
        second_d = np.where(closer, best_d, np.where(runner_up, distance, second_d))
        second_i = np.where(closer, best_i, np.where(runner_up, index, second_i))
        best_d = np.where(closer, distance, best_d)
        best_i = np.where(closer, index, best_i)

    return best_i, best_d, second_i, second_d


def dither_noise(x, y, rgb: np.ndarray, seed: int = 0) -> np.ndarray:
    """Deterministic per-pixel value in ``[0, 1)`` from position, color and seed."""

    rgb = np.asarray(rgb)
    r = rgb[..., 0].astype(np.uint64)
    g = rgb[..., 1].astype(np.uint64)
    b = rgb[..., 2].astype(np.uint64)
    h = (
        np.asarray(x, dtype=np.uint64) * np.uint64(374761393)
        + np.asarray(y, dtype=np.uint64) * np.uint64(668265263)
        + r * np.uint64(2246822519)
        + g * np.uint64(3266489917)
        + b * np.uint64(1181783497)
        + np.uint64((seed * 2654435761) & _HASH_MASK)
    ) & np.uint64(_HASH_MASK)
    h = ((h ^ (h >> np.uint64(15))) * np.uint64(2246822519)) & np.uint64(_HASH_MASK)
    h = ((h ^ (h >> np.uint64(13))) * np.uint64(3266489917)) & np.uint64(_HASH_MASK)
    h = h ^ (h >> np.uint64(16))
    return h.astype(np.float64) / 4294967296.0


def choose_swatches(
    palette: Palette,
    rgb: np.ndarray,
    seed: int = 0,
    dither: bool = True,
) -> np.ndarray:
    """Swatch index per pixel of an ``(height, width, 3)`` array."""

    best_i, best_d, second_i, second_d = nearest_two_swatches(palette, rgb)
    if not dither:
        return best_i

    ratio = np.where(second_d > 0, best_d / np.where(second_d > 0, second_d, 1.0), 0.0)
    closeness = 1.0 - ratio
    probability = np.minimum(DITHER_CEILING, (DITHER_CLOSENESS - closeness) * DITHER_GAIN)

    ys, xs = np.indices(rgb.shape[:2])
    noise = dither_noise(xs, ys, np.round(rgb), seed)
    pick_second = (closeness <= DITHER_CLOSENESS) & (second_i >= 0) & (noise < probability)
    return np.where(pick_second, second_i, best_i)


def match_palette(img: Image.Image, palette: Palette, seed: int = 0, dither: bool = True) -> Image.Image:
    rgb, alpha = to_array(img)
    choice = choose_swatches(palette, rgb, seed=seed, dither=dither)
    return to_image(palette.colors[choice], alpha)


def palette_score(img: Image.Image, palette: Palette) -> float:
    """Mean squared RGB distance from sampled pixels to their nearest swatch."""

    rgb, _ = to_array(img)
    height, width = rgb.shape[:2]
    stride = max(1, min(width, height) // AUTO_SAMPLES)
    sample = rgb[::stride, ::stride].reshape(-1, 3)
    if sample.size == 0:
        return float("inf")
    distances = ((sample[:, None, :] - palette.colors[None, :, :]) ** 2).sum(axis=-1)
    return float(distances.min(axis=1).mean())


def detect_palette(img: Image.Image, candidates: Optional[Sequence[Palette]] = None) -> Palette:
    candidates = list(candidates or PALETTES.values())
    scores = [palette_score(img, palette) for palette in candidates]
    return candidates[int(np.argmin(scores))]


def resolve_palette(name: str | None, reference: Image.Image | None = None) -> Optional[Palette]:
    """Map a palette selection (``none``, ``auto`` or a catalog name) to a palette."""

    key = (name or "none").strip().lower()
    if key == "none":
        return None
    if key == "auto":
        if reference is None:
            raise ValueError("Automatic palette selection needs a reference image")
        return detect_palette(reference)
    return get_palette(key)
