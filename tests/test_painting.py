import numpy as np
import pytest
from PIL import Image

from paint_proxy.processing.masking import FaceRegion, face_mask
from paint_proxy.processing.painting import brushstrokes, oil_paint, recover_detail
from paint_proxy.processing.smoothing import bilateral_filter, box_blur


def _noise_image(width=12, height=10, seed=3):
    rng = np.random.default_rng(seed)
    rgb = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    return Image.fromarray(rgb, "RGB").convert("RGBA")


def test_oil_paint_keeps_constant_color():
    src = Image.new("RGBA", (9, 7), color=(120, 80, 40, 255))

    result = oil_paint(src, 4)

    assert result.tobytes() == src.tobytes()


def test_oil_paint_constant_color_inside_face():
    src = Image.new("RGBA", (9, 7), color=(33, 66, 99, 255))

    result = oil_paint(src, 6, faces=[FaceRegion(1, 1, 5, 4)])

    assert result.tobytes() == src.tobytes()


def test_oil_paint_preserves_a_hard_vertical_edge():
    rgb = np.zeros((8, 8, 3), dtype=np.uint8)
    rgb[:, 4:] = 200
    src = Image.fromarray(rgb, "RGB").convert("RGBA")

    result = oil_paint(src, 2)

    assert np.array_equal(np.asarray(result)[..., :3], rgb)


def test_oil_paint_tie_prefers_top_left_quadrant():
    rgb = np.zeros((3, 3, 3), dtype=np.uint8)
    rgb[0, 0] = rgb[1, 0] = (10, 0, 0)
    rgb[0, 2] = rgb[1, 2] = (0, 0, 10)
    rgb[2, :] = (200, 200, 200)
    src = Image.fromarray(rgb, "RGB").convert("RGBA")

    result = oil_paint(src, 1)

    # top-left and top-right quadrants tie on variance; top-left wins
    assert result.getpixel((1, 1))[:3] == (5, 0, 0)


def test_oil_paint_uses_a_smaller_radius_on_faces():
    src = _noise_image()
    face = FaceRegion(3, 2, 5, 5)
    inside = face_mask(src.size, [face])

    plain = np.asarray(oil_paint(src, 6))
    detailed = np.asarray(oil_paint(src, 6, faces=[face]))

    assert np.array_equal(plain[~inside], detailed[~inside])
    assert not np.array_equal(plain[inside], detailed[inside])


def test_oil_paint_passes_alpha_through():
    src = _noise_image()
    src.putalpha(77)

    result = oil_paint(src, 3)

    assert set(np.asarray(result)[..., 3].ravel()) == {77}


def test_brushstrokes_leave_border_untouched():
    src = _noise_image()

    result = np.asarray(brushstrokes(src, 3))
    original = np.asarray(src)

    assert np.array_equal(result[0], original[0])
    assert np.array_equal(result[-1], original[-1])
    assert np.array_equal(result[:, 0], original[:, 0])
    assert np.array_equal(result[:, -1], original[:, -1])


def test_brushstrokes_on_flat_color_is_identity():
    src = Image.new("RGBA", (6, 6), color=(10, 200, 30, 255))

    assert brushstrokes(src, 4).tobytes() == src.tobytes()


def test_bilateral_keeps_flat_color():
    src = Image.new("RGBA", (7, 5), color=(90, 90, 150, 255))

    result = bilateral_filter(src, faces=[FaceRegion(0, 0, 3, 3)])

    assert result.tobytes() == src.tobytes()


def test_bilateral_smooths_low_amplitude_noise():
    rng = np.random.default_rng(5)
    rgb = rng.integers(118, 139, size=(16, 16, 3), dtype=np.uint8)
    src = Image.fromarray(rgb, "RGB").convert("RGBA")

    result = np.asarray(bilateral_filter(src), dtype=np.float64)[..., :3]

    assert result.std() < np.asarray(src, dtype=np.float64)[..., :3].std()


def test_box_blur_keeps_shape_and_mean_of_constant():
    values = np.full((5, 4, 3), 42.0)

    blurred = box_blur(values, 2)

    assert blurred.shape == values.shape
    assert np.allclose(blurred, 42.0)


def test_recover_detail_is_inactive_at_low_settings():
    painted = _noise_image()
    original = _noise_image(seed=9)

    assert recover_detail(painted, original, 0.4).tobytes() == painted.tobytes()


def test_recover_detail_with_flat_original_changes_nothing():
    painted = _noise_image()
    original = Image.new("RGBA", painted.size, color=(128, 128, 128, 255))

    assert recover_detail(painted, original, 0.9).tobytes() == painted.tobytes()


def test_recover_detail_brightens_a_bright_speck():
    original = Image.new("RGBA", (9, 9), color=(60, 60, 60, 255))
    original.putpixel((4, 4), (250, 250, 250, 255))
    painted = Image.new("RGBA", (9, 9), color=(60, 60, 60, 255))

    result = recover_detail(painted, original, 1.0)

    assert result.getpixel((4, 4))[0] > 60


def test_recover_detail_rejects_mismatched_sizes():
    with pytest.raises(ValueError):
        recover_detail(Image.new("RGBA", (4, 4)), Image.new("RGBA", (5, 4)), 0.9)
