import pytest

from imagify.models.compression_model import CompressionSettings, DeadZoneResult
from imagify.models.errors import InputInvalid
from imagify.models.image_model import Bitmap, EncodedImage, EncodedKind


def test_bitmap_rejects_wrong_buffer_length():
    with pytest.raises(InputInvalid):
        Bitmap(width=2, height=2, pixels=bytes(15))


@pytest.mark.parametrize("w, h", [(0, 1), (1, 0), (-3, 4)])
def test_bitmap_rejects_empty_dimensions(w, h):
    with pytest.raises(InputInvalid):
        Bitmap(width=w, height=h, pixels=b"")


def test_bitmap_array_view_is_read_only(noise_bitmap):
    arr = noise_bitmap(4, 3).as_array()
    assert arr.shape == (3, 4, 4)
    with pytest.raises(ValueError):
        arr[0, 0, 0] = 1


def test_encoded_image_equality_is_identity():
    a = EncodedImage(data=b"abc", kind=EncodedKind.ORIGINAL)
    b = EncodedImage(data=b"abc", kind=EncodedKind.ORIGINAL)
    assert a == a
    assert a != b
    assert a.size == 3
    assert a.is_original()


@pytest.mark.parametrize("quality", [0, 101, -5, 50.0, True, "80"])
def test_settings_reject_bad_quality(quality):
    with pytest.raises(InputInvalid):
        CompressionSettings(quality=quality)


@pytest.mark.parametrize("kwargs", [{"max_width": 0}, {"max_height": -1}])
def test_settings_reject_non_positive_limits(kwargs):
    with pytest.raises(InputInvalid):
        CompressionSettings(**kwargs)


def test_settings_defaults_and_dimension_comparison():
    s = CompressionSettings()
    assert (s.quality, s.max_width, s.max_height) == (100, None, None)
    assert s.same_dimensions(CompressionSettings(quality=10))
    assert not s.same_dimensions(CompressionSettings(max_width=100))


def test_dead_zone_result_exists():
    assert DeadZoneResult(threshold=81, target_size=(1, 1)).exists
    assert not DeadZoneResult(threshold=101, target_size=(1, 1)).exists
