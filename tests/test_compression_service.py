import threading

import pytest

from imagify.models.compression_model import CompressionSettings, PipelineState
from imagify.models.errors import DecodeFailure, EncodeFailure, InputInvalid, PipelineBusy
from imagify.models.image_model import EncodedImage, EncodedKind
from imagify.services.codec_service import CodecService
from imagify.services.compression_service import CompressionOrchestrator


class FailingCodec(CodecService):
    def encode(self, bitmap, quality, has_alpha=False):
        raise EncodeFailure("encoder exploded")


class GarbageCodec(CodecService):
    def encode(self, bitmap, quality, has_alpha=False):
        return EncodedImage(data=b"garbage", kind=EncodedKind.REENCODED)


class BlockingCodec(CodecService):
    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def encode(self, bitmap, quality, has_alpha=False):
        self.entered.set()
        self.release.wait(5)
        return super().encode(bitmap, quality, has_alpha)


def test_quality_100_without_resize_returns_the_original(png_source):
    source = png_source(800, 600)
    orchestrator = CompressionOrchestrator()
    result = orchestrator.compress(source, CompressionSettings(quality=100))

    assert result.is_original_alias
    assert result.encoded is source.original
    assert result.size == source.size_bytes
    assert result.target_size == (800, 600)
    assert result.metrics.psnr == 100.0
    assert result.metrics.ssim == 1.0
    assert orchestrator.state is PipelineState.IDLE


def test_resize_and_encode(png_source):
    source = png_source(800, 600)
    result = CompressionOrchestrator().compress(source, CompressionSettings(quality=80, max_width=400))

    assert not result.is_original_alias
    assert result.encoded is not source.original
    assert result.encoded.data[:2] == b"\xff\xd8"
    assert result.target_size == (400, 300)
    assert result.heat_map.size == (400, 300)
    assert 0.0 <= result.metrics.psnr <= 100.0
    assert 0.0 <= result.metrics.ssim <= 1.0
    assert result.reference_size == source.size_bytes
    assert result.settings.quality == 80


def test_quality_100_with_resize_still_encodes(jpeg_source):
    source = jpeg_source(200, 100)
    result = CompressionOrchestrator().compress(source, CompressionSettings(quality=100, max_height=50))
    assert not result.is_original_alias
    assert result.target_size == (100, 50)


def test_lower_quality_degrades_metrics(jpeg_source):
    source = jpeg_source(256, 256)
    orchestrator = CompressionOrchestrator()
    high = orchestrator.compress(source, CompressionSettings(quality=95))
    low = orchestrator.compress(source, CompressionSettings(quality=5))
    assert low.metrics.psnr < high.metrics.psnr
    assert low.size < high.size


def test_explicit_reference_size(jpeg_source):
    source = jpeg_source(64, 64)
    result = CompressionOrchestrator().compress(source, CompressionSettings(quality=50), reference_size=12345)
    assert result.reference_size == 12345


def test_encode_failure_is_recorded_and_state_returns_to_idle(jpeg_source):
    source = jpeg_source(64, 64)
    orchestrator = CompressionOrchestrator(codec_service=FailingCodec())
    with pytest.raises(EncodeFailure):
        orchestrator.compress(source, CompressionSettings(quality=50))

    assert orchestrator.state is PipelineState.IDLE
    assert orchestrator.last_failure.stage is PipelineState.ENCODING
    assert "encoder exploded" in orchestrator.last_failure.message

    # конвейер снова свободен
    result = orchestrator.compress(source, CompressionSettings(quality=100))
    assert result.is_original_alias
    assert orchestrator.last_failure is None


def test_decode_failure_stage(jpeg_source):
    orchestrator = CompressionOrchestrator(codec_service=GarbageCodec())
    with pytest.raises(DecodeFailure):
        orchestrator.compress(jpeg_source(64, 64), CompressionSettings(quality=50))
    assert orchestrator.last_failure.stage is PipelineState.DECODING
    assert orchestrator.state is PipelineState.IDLE


def test_zero_target_is_rejected(jpeg_source, monkeypatch):
    orchestrator = CompressionOrchestrator()
    monkeypatch.setattr(orchestrator._resize, "compute_target_size", lambda *a: (0, 0))
    with pytest.raises(InputInvalid):
        orchestrator.compress(jpeg_source(64, 64), CompressionSettings(quality=50))
    assert orchestrator.last_failure.stage is PipelineState.RESIZING


def test_second_run_while_busy_is_rejected(jpeg_source):
    codec = BlockingCodec()
    orchestrator = CompressionOrchestrator(codec_service=codec)
    source = jpeg_source(64, 64)
    outcome = {}

    def run():
        outcome["result"] = orchestrator.compress(source, CompressionSettings(quality=50))

    worker = threading.Thread(target=run)
    worker.start()
    try:
        assert codec.entered.wait(5)
        assert orchestrator.state is PipelineState.ENCODING
        with pytest.raises(PipelineBusy):
            orchestrator.compress(source, CompressionSettings(quality=60))
    finally:
        codec.release.set()
        worker.join(5)

    assert outcome["result"].settings.quality == 50
    assert orchestrator.state is PipelineState.IDLE


def test_transparent_png_is_compared_on_white(png_source):
    source = png_source(64, 64, mode="RGBA")
    assert source.has_alpha
    result = CompressionOrchestrator().compress(source, CompressionSettings(quality=90))
    assert result.metrics.psnr > 25


def test_dead_zone_threshold_is_in_range(jpeg_source):
    source = jpeg_source(64, 64)
    threshold = CompressionOrchestrator().find_dead_zone_threshold(source, CompressionSettings())
    assert 1 <= threshold <= 101
