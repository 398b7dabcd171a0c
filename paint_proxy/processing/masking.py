from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

import numpy as np

Size = Tuple[int, int]


@dataclass(frozen=True)
class FaceRegion:
    """Axis-aligned face hint in pixel coordinates of some raster."""

    x: int
    y: int
    width: int
    height: int

    @property
    def area(self) -> int:
        return max(0, self.width) * max(0, self.height)

    def contains(self, px: int, py: int) -> bool:
        # Edges are inclusive on both sides.
        return self.x <= px <= self.x + self.width and self.y <= py <= self.y + self.height

    def scaled(self, sx: float, sy: float) -> "FaceRegion":
        return FaceRegion(
            x=int(round(self.x * sx)),
            y=int(round(self.y * sy)),
            width=int(round(self.width * sx)),
            height=int(round(self.height * sy)),
        )


def face_mask(size: Size, regions: Iterable[FaceRegion]) -> np.ndarray:
    """Boolean ``(height, width)`` mask, true where any region contains the pixel."""

    width, height = size
    mask = np.zeros((height, width), dtype=bool)
    for region in regions:
        x0 = max(0, region.x)
        y0 = max(0, region.y)
        x1 = min(width - 1, region.x + region.width)
        y1 = min(height - 1, region.y + region.height)
        if x1 < x0 or y1 < y0:
            continue
        mask[y0 : y1 + 1, x0 : x1 + 1] = True
    return mask


def rescale_regions(regions: Iterable[FaceRegion], from_size: Size, to_size: Size) -> List[FaceRegion]:
    """Map regions detected on a ``from_size`` raster onto a ``to_size`` raster."""

    from_w, from_h = from_size
    to_w, to_h = to_size
    if from_w <= 0 or from_h <= 0:
        return []
    sx = to_w / from_w
    sy = to_h / from_h
    return [region.scaled(sx, sy) for region in regions]


def face_area_fraction(regions: Sequence[FaceRegion], size: Size) -> float:
    """Summed region area over the pixel count; overlaps are counted twice."""

    width, height = size
    total = width * height
    if total <= 0:
        return 0.0
    return sum(region.area for region in regions) / total


def parse_face_regions(value: str | None) -> List[FaceRegion]:
    """Parse ``"x,y,w,h;x,y,w,h"``; malformed entries are skipped."""

    if not value:
        return []
    regions = []
    for chunk in value.split(";"):
        parts = [part.strip() for part in chunk.split(",")]
        if len(parts) != 4:
            continue
        try:
            x, y, w, h = (int(float(part)) for part in parts)
        except ValueError:
            continue
        if w <= 0 or h <= 0:
            continue
        regions.append(FaceRegion(x, y, w, h))
    return regions
