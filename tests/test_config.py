import pytest

from paint_proxy.config import SETTINGS, FilterParameters
from paint_proxy.processing.masking import FaceRegion


def test_defaults_are_in_range():
    params = FilterParameters()

    assert params.posterize_levels == 8
    assert params.face_regions == ()


@pytest.mark.parametrize(
    "field, value",
    [("intensity", 1.5), ("posterize_levels", 2), ("brush_size", 9), ("warmth", -0.1)],
)
def test_out_of_range_values_are_rejected(field, value):
    with pytest.raises(ValueError):
        FilterParameters(**{field: value})


def test_from_mapping_coerces_and_clamps():
    params = FilterParameters.from_mapping(
        {"intensity": "2", "posterize_levels": "5.6", "brush_size": "1", "warmth": "abc", "other": "x"}
    )

    assert params.intensity == 1.0
    assert params.posterize_levels == 6
    assert params.brush_size == 2
    assert params.warmth == FilterParameters().warmth


def test_from_mapping_keeps_base_values():
    base = FilterParameters(edge_strength=0.1)

    assert FilterParameters.from_mapping({}, base).edge_strength == 0.1


def test_with_faces_returns_new_instance():
    params = FilterParameters()
    with_faces = params.with_faces([FaceRegion(1, 2, 3, 4)])

    assert params.face_regions == ()
    assert with_faces.face_regions == (FaceRegion(1, 2, 3, 4),)


def test_settings_produce_valid_parameters():
    assert isinstance(SETTINGS.filter_parameters(), FilterParameters)
