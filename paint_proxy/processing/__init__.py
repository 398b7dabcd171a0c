"""Painting pipeline stages and the orchestrators that chain them."""

from .edges import apply_outlines, edge_map
from .frames import ExportError, FrameClock, VideoRenderSession, render_frame, subject_mask
from .grading import HueCategory, classify_hue, grade_colors
from .masking import FaceRegion, face_mask, parse_face_regions, rescale_regions
from .painting import brushstrokes, oil_paint, recover_detail
from .palette import PALETTES, Palette, detect_palette, get_palette, match_palette, resolve_palette
from .pipeline import MediaError, paint, paint_image
from .posterize import cel_shade, posterize
from .smoothing import bilateral_filter, box_blur
from .texture import canvas_texture, vignette

__all__ = [
    "apply_outlines",
    "edge_map",
    "ExportError",
    "FrameClock",
    "VideoRenderSession",
    "render_frame",
    "subject_mask",
    "HueCategory",
    "classify_hue",
    "grade_colors",
    "FaceRegion",
    "face_mask",
    "parse_face_regions",
    "rescale_regions",
    "brushstrokes",
    "oil_paint",
    "recover_detail",
    "PALETTES",
    "Palette",
    "detect_palette",
    "get_palette",
    "match_palette",
    "resolve_palette",
    "MediaError",
    "paint",
    "paint_image",
    "cel_shade",
    "posterize",
    "bilateral_filter",
    "box_blur",
    "canvas_texture",
    "vignette",
]
