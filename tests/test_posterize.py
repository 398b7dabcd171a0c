import numpy as np
import pytest
from PIL import Image

from paint_proxy.processing.masking import FaceRegion
from paint_proxy.processing.posterize import cel_shade, posterize, quantize, skin_mask_rgb


def _noise_image(seed=11):
    rng = np.random.default_rng(seed)
    rgb = rng.integers(0, 256, size=(9, 13, 3), dtype=np.uint8)
    return Image.fromarray(rgb, "RGB").convert("RGBA")


def test_quantize_rounding_law_for_mid_gray():
    # step = 63.75; round(128 / 63.75) = 2; round(2 * 63.75) = round(127.5) = 128
    assert float(quantize(np.array([128.0]), 5)[0]) == 128.0


def test_posterize_mid_gray_five_levels():
    src = Image.new("RGBA", (3, 3), color=(128, 128, 128, 255))

    assert posterize(src, 5).getpixel((1, 1)) == (128, 128, 128, 255)


@pytest.mark.parametrize("levels", [3, 5, 8, 12, 16])
def test_posterize_is_idempotent(levels):
    once = posterize(_noise_image(), levels)
    twice = posterize(once, levels)

    assert once.tobytes() == twice.tobytes()


def test_posterize_uses_only_level_values():
    result = np.asarray(posterize(_noise_image(), 3))[..., :3]

    assert set(np.unique(result)) <= {0, 128, 255}


def test_skin_heuristic():
    rgb = np.array([[200.0, 150.0, 100.0], [100.0, 150.0, 200.0], [250.0, 200.0, 100.0]])

    assert skin_mask_rgb(rgb).tolist() == [True, False, False]


def test_cel_shade_gives_faces_more_levels():
    src = Image.new("RGBA", (6, 6), color=(100, 100, 100, 255))

    plain = cel_shade(src, 4, 0.0)
    face = cel_shade(src, 4, 0.0, faces=[FaceRegion(0, 0, 6, 6)])

    # 4 levels: step 85 -> 85; 6 levels: step 51 -> 102
    assert plain.getpixel((2, 2))[:3] == (85, 85, 85)
    assert face.getpixel((2, 2))[:3] == (102, 102, 102)


def test_cel_shade_caps_face_levels_at_twelve():
    src = Image.new("RGBA", (4, 4), color=(100, 100, 100, 255))

    plain = cel_shade(src, 14, 0.0)
    face = cel_shade(src, 14, 0.0, faces=[FaceRegion(0, 0, 4, 4)])

    # 14 levels: step 255/13 -> 98; faces capped at 12: step 255/11 -> 93
    assert plain.getpixel((1, 1))[:3] == (98, 98, 98)
    assert face.getpixel((1, 1))[:3] == (93, 93, 93)


def test_cel_shade_high_detail_adds_levels_instead_of_cleanup():
    src = Image.new("RGBA", (6, 6), color=(100, 100, 100, 255))

    result = cel_shade(src, 4, 1.0)

    assert result.getpixel((0, 0))[:3] == (102, 102, 102)


def test_cel_shade_cleanup_removes_isolated_pixel():
    src = Image.new("RGBA", (7, 7), color=(40, 40, 40, 255))
    src.putpixel((3, 3), (230, 230, 230, 255))

    result = cel_shade(src, 4, 0.2)

    assert set(np.asarray(result)[..., :3].ravel()) == {0}
