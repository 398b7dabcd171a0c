"""Infrastructure helpers for fetching sources and caching renders."""

from .cache import CACHE, RenderCache
from .network import FETCHER, SourceFetcher, decode_image
from .responses import encode_png, send_png, send_png_bytes

__all__ = [
    "CACHE",
    "RenderCache",
    "FETCHER",
    "SourceFetcher",
    "decode_image",
    "encode_png",
    "send_png",
    "send_png_bytes",
]
