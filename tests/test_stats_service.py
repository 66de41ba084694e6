import pytest

from imagify.services.stats_service import compression_ratio, dead_zone_width, format_file_size, size_reduction


@pytest.mark.parametrize(
    "size, text",
    [
        (0, "0 B"),
        (None, "0 B"),
        (512, "512 B"),
        (1023, "1023 B"),
        (1024, "1 KB"),
        (1280, "1.3 KB"),
        (1536, "1.5 KB"),
        (10 * 1024 + 100, "10.1 KB"),
        (1024 ** 2, "1 MB"),
        (int(2.3 * 1024 ** 2), "2.3 MB"),
        (5 * 1024 ** 3, "5 GB"),
        (1024 ** 4, "1024 GB"),
    ],
)
def test_format_file_size(size, text):
    assert format_file_size(size) == text


def test_compression_ratio():
    assert compression_ratio(1000, 250) == 4.0
    assert compression_ratio(0, 250) == 1.0
    assert compression_ratio(1000, 0) == 1.0


def test_size_reduction_is_clamped_at_zero():
    assert size_reduction(1000, 250) == 75.0
    assert size_reduction(1000, 1500) == 0.0
    assert size_reduction(0, 10) == 0.0


@pytest.mark.parametrize("threshold, width", [(101, 0), (100, 1), (81, 20), (71, 30), (1, 100)])
def test_dead_zone_width(threshold, width):
    assert dead_zone_width(threshold) == width
