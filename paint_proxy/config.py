from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping, Tuple


@dataclass(frozen=True)
class ProxySettings:
    source_url: str
    port: int
    timeout: float
    retries: int
    cache_ttl: float
    log_level: str
    max_dimension: int
    palette: str
    video_scale: float
    target_fps: float
    intensity: float
    posterize_levels: int
    edge_strength: float
    brush_size: int
    warmth: float
    saturation: float
    texture_strength: float
    detail_preservation: float

    @classmethod
    def from_env(cls) -> "ProxySettings":
        return cls(
            source_url=os.getenv("SOURCE_URL", "http://127.0.0.1:8000/snapshot.jpg"),
            port=int(os.getenv("PORT", "5600")),
            timeout=float(os.getenv("SOURCE_TIMEOUT", "10.0")),
            retries=int(os.getenv("SOURCE_RETRIES", "2")),
            cache_ttl=float(os.getenv("CACHE_TTL", "30")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            max_dimension=int(os.getenv("MAX_DIMENSION", "1200")),
            palette=os.getenv("PALETTE", "none").lower(),
            video_scale=float(os.getenv("VIDEO_SCALE", "0.55")),
            target_fps=float(os.getenv("TARGET_FPS", "24")),
            intensity=float(os.getenv("INTENSITY", "0.85")),
            posterize_levels=int(os.getenv("POSTERIZE_LEVELS", "8")),
            edge_strength=float(os.getenv("EDGE_STRENGTH", "0.6")),
            brush_size=int(os.getenv("BRUSH_SIZE", "4")),
            warmth=float(os.getenv("WARMTH", "0.35")),
            saturation=float(os.getenv("SATURATION", "0.55")),
            texture_strength=float(os.getenv("TEXTURE_STRENGTH", "0.3")),
            detail_preservation=float(os.getenv("DETAIL_PRESERVATION", "0.5")),
        )

    def filter_parameters(self) -> "FilterParameters":
        return FilterParameters.from_mapping(
            {name: getattr(self, name) for name in _PARAMETER_RANGES}
        )


# name -> (minimum, maximum, type)
_PARAMETER_RANGES: dict[str, Tuple[float, float, type]] = {
    "intensity": (0.0, 1.0, float),
    "posterize_levels": (3, 16, int),
    "edge_strength": (0.0, 1.0, float),
    "brush_size": (2, 8, int),
    "warmth": (0.0, 1.0, float),
    "saturation": (0.0, 1.0, float),
    "texture_strength": (0.0, 1.0, float),
    "detail_preservation": (0.0, 1.0, float),
}


@dataclass(frozen=True)
class FilterParameters:
    """User-facing knobs for one painting run.

    Instances are immutable; derive variants with :meth:`with_faces` or
    :func:`dataclasses.replace`.
    """

    intensity: float = 0.85
    posterize_levels: int = 8
    edge_strength: float = 0.6
    brush_size: int = 4
    warmth: float = 0.35
    saturation: float = 0.55
    texture_strength: float = 0.3
    detail_preservation: float = 0.5
    face_regions: Tuple[Any, ...] = field(default=())

    def __post_init__(self) -> None:
        for name, (low, high, _) in _PARAMETER_RANGES.items():
            value = getattr(self, name)
            if not low <= value <= high:
                raise ValueError(f"{name}={value!r} outside [{low}, {high}]")
        object.__setattr__(self, "face_regions", tuple(self.face_regions))

    @classmethod
    def from_mapping(
        cls,
        values: Mapping[str, Any],
        base: "FilterParameters | None" = None,
    ) -> "FilterParameters":
        """Coerce and clamp loosely typed values (query strings, env) into range.

        Unknown keys and unparsable values are ignored; the ``base`` value (or
        the dataclass default) is kept for those.
        """

        base = base or cls()
        updates: dict[str, Any] = {}
        for name, (low, high, kind) in _PARAMETER_RANGES.items():
            if name not in values or values[name] in (None, ""):
                continue
            try:
                raw = float(values[name])
            except (TypeError, ValueError):
                continue
            clamped = min(high, max(low, raw))
            updates[name] = int(round(clamped)) if kind is int else clamped
        return replace(base, **updates)

    def with_faces(self, regions: Iterable[Any]) -> "FilterParameters":
        return replace(self, face_regions=tuple(regions))


SETTINGS = ProxySettings.from_env()


def configure_logging() -> logging.Logger:
    logging.basicConfig(level=SETTINGS.log_level)
    return logging.getLogger("paint-proxy")
