"""Adapter around an optional face detection backend.

The painter only needs rectangles. Any backend that exposes ``load()`` and
``detect(image) -> iterable of (x, y, w, h)`` can be plugged in; without one,
or when it fails, detection yields no regions and the painter runs its
face-agnostic path.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from PIL import Image

from .processing.masking import FaceRegion

logger = logging.getLogger(__name__)


class FaceDetector:
    def __init__(self, backend: Optional[Any] = None) -> None:
        self._backend = backend
        self.ready = False

    def load(self) -> bool:
        if self.ready:
            return True
        if self._backend is None:
            logger.warning("No face detection backend configured; faces will not be detected")
            return False
        try:
            self._backend.load()
        except Exception as exc:
            logger.warning("Could not load face detection models: %s", exc)
            return False
        self.ready = True
        return True

    def detect(self, image: Image.Image) -> List[FaceRegion]:
        if not self.ready:
            return []
        try:
            boxes = list(self._backend.detect(image))
        except Exception as exc:
            logger.warning("Face detection failed: %s", exc)
            return []
        regions = []
        for x, y, w, h in boxes:
            region = FaceRegion(int(round(x)), int(round(y)), int(round(w)), int(round(h)))
            if region.area > 0:
                regions.append(region)
        return regions


DETECTOR = FaceDetector()
