import numpy as np
import pytest

from imagify.models.errors import DimensionMismatch
from imagify.models.image_model import Bitmap, HeatMap
from imagify.services.heatmap_service import ALPHA_FLOOR, HeatMapService, ramp_color

from conftest import noise_array


@pytest.fixture
def heatmap():
    return HeatMapService()


def solid(value, w=4, h=4, alpha=255):
    arr = np.full((h, w, 4), value, dtype=np.uint8)
    arr[..., 3] = alpha
    return Bitmap.from_array(arr)


def test_identical_images_are_faint_blue(heatmap, noise_bitmap):
    bmp = noise_bitmap(12, 10)
    out = heatmap.diff(bmp, bmp)
    assert isinstance(out, HeatMap)
    assert out.size == (12, 10)
    arr = out.as_array()
    assert (arr[..., :3] == (0, 0, 255)).all()
    assert (arr[..., 3] == ALPHA_FLOOR).all()


def test_maximum_difference_is_red(heatmap):
    arr = heatmap.diff(solid(0), solid(255)).as_array()
    assert (arr[..., :3] == (255, 0, 0)).all()
    assert (arr[..., 3] == 225).all()


def test_non_opaque_reference_pixels_are_transparent(heatmap):
    ref = noise_array(4, 4)
    ref[0, 0, 3] = 254
    ref[1, 1, 3] = 0
    out = heatmap.diff(Bitmap.from_array(ref), Bitmap.from_array(noise_array(4, 4, seed=7))).as_array()
    assert tuple(out[0, 0]) == (0, 0, 0, 0)
    assert tuple(out[1, 1]) == (0, 0, 0, 0)
    assert out[2, 2, 3] >= ALPHA_FLOOR


@pytest.mark.parametrize(
    "intensity, rgb",
    [
        (0.0, (0, 0, 255)),
        (0.125, (0, 128, 255)),
        (0.25, (0, 255, 255)),
        (0.5, (0, 255, 0)),
        (0.75, (255, 255, 0)),
        (1.0, (255, 0, 0)),
        (1.5, (255, 0, 0)),
    ],
)
def test_ramp_color_stops(intensity, rgb):
    assert tuple(ramp_color(np.array(intensity))) == rgb


def test_size_mismatch_is_rejected(heatmap):
    with pytest.raises(DimensionMismatch):
        heatmap.diff(solid(0, 4, 4), solid(0, 4, 5))
