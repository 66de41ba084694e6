"""Полнореференсные метрики качества: PSNR и SSIM по яркости.

Принципы:
- Оба растра обязаны совпадать по размеру; выравнивание — забота вызывающего.
- Пиксели, которые формат не смог бы честно передать как непрозрачные, в ошибку не входят.
- Векторизация через numpy, без попиксельных циклов Python.
"""
from __future__ import annotations

import math

import numpy as np

from imagify.models.compression_model import MetricResult
from imagify.models.errors import DimensionMismatch
from imagify.models.image_model import Bitmap

PSNR_CEILING = 100.0
MSE_EPSILON = 1e-10
SSIM_WINDOW = 8
# BT.601
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)
_L = 255.0
C1 = (0.01 * _L) ** 2
C2 = (0.03 * _L) ** 2


def ensure_same_size(a: Bitmap, b: Bitmap) -> None:
    if a.size != b.size:
        raise DimensionMismatch(a.size, b.size)


class MetricService:
    def compare(self, reference: Bitmap, compressed: Bitmap) -> MetricResult:
        return MetricResult(psnr=self.psnr(reference, compressed), ssim=self.ssim(reference, compressed))

    def psnr(self, reference: Bitmap, compressed: Bitmap) -> float:
        """PSNR по каналам R, G, B.

        Пиксели с альфой эталона < 255 исключаются целиком. Если исключены все
        или MSE пренебрежимо мал, результат равен потолку 100 дБ.
        """
        ensure_same_size(reference, compressed)
        ref = reference.as_array()
        cmp_ = compressed.as_array()

        mask = ref[..., 3] == 255
        count = int(mask.sum())
        if count == 0:
            return PSNR_CEILING

        diff = ref[..., :3][mask].astype(np.float64) - cmp_[..., :3][mask].astype(np.float64)
        mse = float(np.sum(diff * diff)) / (3 * count)
        if mse < MSE_EPSILON:
            return PSNR_CEILING
        return max(0.0, 10.0 * math.log10(_L ** 2 / mse))

    def ssim(self, reference: Bitmap, compressed: Bitmap) -> float:
        """SSIM по яркости на непересекающихся окнах 8×8.

        Неполные окна у правого и нижнего края отбрасываются. Пиксели с нулевой
        альфой эталона не учитываются; окно без учтённых пикселей пропускается.
        Изображение меньше окна, как и отсутствие учтённых окон, даёт 1.
        """
        ensure_same_size(reference, compressed)
        width, height = reference.size
        w = SSIM_WINDOW
        if width < w or height < w:
            return 1.0

        ny, nx = height // w, width // w
        ref = reference.as_array()[: ny * w, : nx * w]
        cmp_ = compressed.as_array()[: ny * w, : nx * w]

        lum_x = _blockify(ref[..., :3].astype(np.float64) @ LUMA_WEIGHTS, w)
        lum_y = _blockify(cmp_[..., :3].astype(np.float64) @ LUMA_WEIGHTS, w)
        weight = _blockify((ref[..., 3] != 0).astype(np.float64), w)

        n = weight.sum(axis=1)
        valid = n > 0
        if not np.any(valid):
            return 1.0

        n = n[valid]
        lum_x, lum_y, weight = lum_x[valid], lum_y[valid], weight[valid]
        mean_x = (lum_x * weight).sum(axis=1) / n
        mean_y = (lum_y * weight).sum(axis=1) / n
        dx = lum_x - mean_x[:, None]
        dy = lum_y - mean_y[:, None]
        var_x = np.maximum(0.0, (dx * dx * weight).sum(axis=1) / n)
        var_y = np.maximum(0.0, (dy * dy * weight).sum(axis=1) / n)
        cov_xy = (dx * dy * weight).sum(axis=1) / n

        num = (2 * mean_x * mean_y + C1) * (2 * cov_xy + C2)
        den = (mean_x ** 2 + mean_y ** 2 + C1) * (var_x + var_y + C2)
        return float(np.clip(np.mean(num / den), 0.0, 1.0))


def _blockify(channel: np.ndarray, size: int) -> np.ndarray:
    """(H, W) -> (число окон, size*size), окна в порядке строк."""
    h, w = channel.shape
    return (
        channel.reshape(h // size, size, w // size, size)
        .swapaxes(1, 2)
        .reshape(-1, size * size)
    )
