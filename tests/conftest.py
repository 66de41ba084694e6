from io import BytesIO

import numpy as np
import pytest
from PIL import Image

from imagify.models.image_model import Bitmap, EncodedImage, EncodedKind, SourceImage
from imagify.services.image_service import ImageService


def noise_array(width, height, seed=0, alpha=255):
    rng = np.random.default_rng(seed)
    rgb = rng.integers(40, 216, size=(height, width, 3), dtype=np.uint8)
    a = np.full((height, width, 1), alpha, dtype=np.uint8)
    return np.concatenate([rgb, a], axis=2)


def gradient_image(width, height, mode="RGB"):
    x = np.linspace(0, 255, width, dtype=np.float64)
    y = np.linspace(0, 255, height, dtype=np.float64)
    r = np.tile(x, (height, 1))
    g = np.tile(y[:, None], (1, width))
    b = (r + g) / 2
    arr = np.dstack([r, g, b]).astype(np.uint8)
    return Image.fromarray(arr, mode="RGB").convert(mode)


def encode(image, fmt, **kwargs):
    buf = BytesIO()
    image.save(buf, format=fmt, **kwargs)
    return buf.getvalue()


@pytest.fixture
def noise_bitmap():
    def make(width=64, height=48, seed=0, alpha=255):
        return Bitmap.from_array(noise_array(width, height, seed, alpha))
    return make


@pytest.fixture
def png_source():
    def make(width=800, height=600, mode="RGB"):
        data = encode(gradient_image(width, height, mode), "PNG")
        return ImageService().load_bytes(data, name="photo.png")
    return make


@pytest.fixture
def jpeg_source():
    def make(width=800, height=600, quality=90):
        data = encode(gradient_image(width, height), "JPEG", quality=quality)
        return ImageService().load_bytes(data, name="photo.jpg")
    return make


def make_source(bitmap, data=b"\xff\xd8original\xff\xd9", name="photo.jpg", has_alpha=False):
    return SourceImage(
        name=name,
        bitmap=bitmap,
        original=EncodedImage(data=data, kind=EncodedKind.ORIGINAL),
        has_alpha=has_alpha,
        mode="RGBA" if has_alpha else "RGB",
        format="PNG" if has_alpha else "JPEG",
    )
