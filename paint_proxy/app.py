from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Mapping, Optional, Tuple

from flask import Flask, jsonify, request

from .config import SETTINGS, FilterParameters, configure_logging
from .faces import DETECTOR, FaceDetector
from .infrastructure.cache import CACHE, RenderCache
from .infrastructure.network import FETCHER, SourceFetcher, decode_image
from .infrastructure.responses import encode_png, send_png, send_png_bytes
from .processing.edges import render_edge_debug
from .processing.frames import render_frame
from .processing.masking import parse_face_regions
from .processing.palette import PALETTES, resolve_palette
from .processing.pipeline import MediaError, paint_image

APP_VERSION = "1.0.0"


def resolve_source_url(args: Mapping[str, Any]) -> str:
    override = (args.get("source_url") or "").strip()
    return override or SETTINGS.source_url


def parse_detection_size(value: Optional[str]) -> Optional[Tuple[int, int]]:
    """Parse ``"640x480"``; anything else means the source size."""

    if not value:
        return None
    try:
        width, height = (int(part) for part in value.lower().split("x"))
    except ValueError:
        return None
    if width <= 0 or height <= 0:
        return None
    return width, height


def request_parameters(args: Mapping[str, Any], defaults: FilterParameters) -> FilterParameters:
    params = FilterParameters.from_mapping(args, defaults)
    return params.with_faces(parse_face_regions(args.get("faces")))


def _public_parameters(params: FilterParameters) -> Dict[str, Any]:
    values = asdict(params)
    values.pop("face_regions", None)
    return values


def create_app(
    fetcher: SourceFetcher | None = None,
    detector: FaceDetector | None = None,
    cache: RenderCache | None = None,
) -> Flask:
    logger = configure_logging()
    fetcher = fetcher or FETCHER
    detector = detector or DETECTOR
    cache = cache if cache is not None else CACHE
    detector.load()
    app = Flask(__name__)
    state: Dict[str, Any] = {
        "params": SETTINGS.filter_parameters(),
        "palette": SETTINGS.palette,
    }

    def paint_source(src, args):
        params = request_parameters(args, state["params"])
        explicit_faces = bool(params.face_regions)
        if not explicit_faces:
            params = params.with_faces(detector.detect(src))
        palette = resolve_palette(args.get("palette", state["palette"]), src)
        return paint_image(
            src,
            params,
            palette=palette,
            detection_size=parse_detection_size(args.get("detection_size")) if explicit_faces else None,
            max_dimension=SETTINGS.max_dimension,
            faces_ready=explicit_faces or detector.ready,
            seed=int(args.get("seed", 0) or 0),
        )

    @app.route("/paint", methods=["GET"])
    def paint_remote():
        key = request.full_path
        cached = cache.get(key)
        if cached:
            return send_png_bytes(cached)
        try:
            src = fetcher.fetch_source(resolve_source_url(request.args))
            out = paint_source(src, request.args)
        except (KeyError, ValueError) as exc:
            if isinstance(exc, MediaError):
                return (f"Media Error: {exc}", 422)
            return (f"Bad Request: {exc}", 400)
        except RuntimeError as exc:
            logger.warning("Source unavailable: %s", exc)
            fallback = cache.last_painting()
            if fallback:
                return send_png_bytes(fallback)
            return (f"Source Error: {exc}", 502)
        data = encode_png(out)
        cache.store_painting(key, data)
        return send_png_bytes(data)

    @app.route("/paint", methods=["POST"])
    def paint_upload():
        upload = request.files.get("image")
        payload = upload.read() if upload is not None else request.get_data()
        try:
            src = decode_image(payload)
            return send_png(paint_source(src, request.args))
        except MediaError as exc:
            return (f"Media Error: {exc}", 422)
        except (KeyError, ValueError) as exc:
            return (f"Bad Request: {exc}", 400)

    @app.route("/frame")
    def frame_preview():
        try:
            src = fetcher.fetch_source(resolve_source_url(request.args))
            params = request_parameters(request.args, state["params"])
            palette = resolve_palette(request.args.get("palette", state["palette"]), src)
            out = render_frame(
                src,
                params,
                palette=palette,
                scale=SETTINGS.video_scale,
                detection_size=parse_detection_size(request.args.get("detection_size")),
            )
        except MediaError as exc:
            return (f"Media Error: {exc}", 422)
        except (KeyError, ValueError) as exc:
            return (f"Bad Request: {exc}", 400)
        except RuntimeError as exc:
            return (f"Source Error: {exc}", 502)
        return send_png(out)

    @app.route("/raw")
    def raw():
        try:
            return send_png(fetcher.fetch_source(resolve_source_url(request.args)))
        except (MediaError, RuntimeError) as exc:
            return (str(exc), 502)

    @app.route("/debug/edges")
    def debug_edges():
        try:
            src = fetcher.fetch_source(resolve_source_url(request.args))
        except (MediaError, RuntimeError) as exc:
            return (f"error: {exc}", 502)
        detail = state["params"].detail_preservation
        return send_png(render_edge_debug(src, detail * 0.6 if detail > 0.4 else 0.0))

    @app.route("/palettes")
    def palettes():
        return jsonify(
            {name: [swatch.hex for swatch in palette.swatches] for name, palette in PALETTES.items()}
        )

    @app.route("/health")
    def health():
        return jsonify(
            ok=True,
            version=APP_VERSION,
            faces_ready=detector.ready,
            palette=state["palette"],
        )

    @app.route("/settings", methods=["GET", "PATCH"])
    def settings_view():
        if request.method == "GET":
            return jsonify(palette=state["palette"], **_public_parameters(state["params"]))

        payload = request.get_json(silent=True) or {}
        errors: Dict[str, str] = {}
        if "palette" in payload:
            name = str(payload["palette"]).strip().lower()
            if name in ("none", "auto") or name in PALETTES:
                state["palette"] = name
            else:
                errors["palette"] = f"Unknown palette '{name}'"

        state["params"] = FilterParameters.from_mapping(payload, state["params"])
        cache.clear()
        status = 400 if errors else 200
        return (
            jsonify(errors=errors, palette=state["palette"], **_public_parameters(state["params"])),
            status,
        )

    @app.route("/")
    def index():
        return jsonify(
            version=APP_VERSION,
            endpoints={
                "/paint": "Painted render of the source (GET) or an uploaded image (POST)",
                "/frame": "Fast video-frame render of the source",
                "/raw": "Original upstream image",
                "/debug/edges": "Edge map used for outlines",
                "/palettes": "Palette catalog",
                "/settings": "Default filter parameters (GET/PATCH)",
                "/health": "Service status",
            },
        )

    return app


app = create_app()
