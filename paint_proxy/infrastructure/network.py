from __future__ import annotations

import io
import logging
import time
from typing import Callable

import requests
from PIL import Image, UnidentifiedImageError

from ..config import SETTINGS
from ..processing.pipeline import MediaError, validate_media

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], requests.Session]


def decode_image(data: bytes) -> Image.Image:
    """Decode an encoded raster into RGBA, raising ``MediaError`` when unusable."""

    if not data:
        raise MediaError("Empty image payload")
    try:
        with Image.open(io.BytesIO(data)) as opened:
            opened.load()
            img = opened.convert("RGBA")
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise MediaError(f"Unreadable image: {exc}") from exc
    validate_media(img)
    return img


class SourceFetcher:
    def __init__(
        self,
        session_factory: SessionFactory | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._session_factory = session_factory or requests.Session
        self._sleep = sleep
        self._session = self._create_session()

    def _create_session(self) -> requests.Session:
        session = self._session_factory()
        session.headers.update({"User-Agent": "paint-proxy/1.0"})
        return session

    def fetch_bytes(self, source_url: str | None = None) -> bytes:
        target_url = source_url or SETTINGS.source_url
        last_exception: Exception | None = None
        for attempt in range(1, SETTINGS.retries + 2):
            try:
                response = self._session.get(target_url, timeout=SETTINGS.timeout)
                response.raise_for_status()
                return response.content
            except requests.RequestException as exc:
                last_exception = exc
                logger.warning("Fetching %s failed (attempt %d): %s", target_url, attempt, exc)
                self._sleep(0.4 * attempt)
        raise RuntimeError(last_exception)

    def fetch_source(self, source_url: str | None = None) -> Image.Image:
        return decode_image(self.fetch_bytes(source_url))


FETCHER = SourceFetcher()
