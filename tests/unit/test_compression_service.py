from unittest.mock import Mock

import pytest

from src.domain.entities.edit_settings import CompressionSettings
from src.domain.services.codec_service import CodecService
from src.domain.services.compression_service import (
    MAX_ITERATIONS,
    TargetSizeCompressor,
    search_quality,
)


class FakeEncoder:
    """Linear size curve: quality q encodes to int(1000 * q) bytes."""

    def __init__(self):
        self.calls: list[float] = []

    def __call__(self, quality: float) -> bytes:
        self.calls.append(quality)
        return b"x" * int(1000 * quality)


def test_search_finds_highest_fitting_quality():
    encode = FakeEncoder()
    result = search_quality(encode, 500)
    assert result.budget_met
    assert result.size <= 500
    assert result.quality == pytest.approx(0.49375)
    # the interval shrinks below the 0.02 tolerance after six halvings
    assert result.iterations == 6
    assert len(encode.calls) == 6


def test_search_falls_back_to_floor_when_unreachable():
    encode = FakeEncoder()
    result = search_quality(encode, 50)
    assert not result.budget_met
    assert result.quality == pytest.approx(0.1)
    assert result.size == 100
    assert result.iterations <= MAX_ITERATIONS
    assert encode.calls[-1] == pytest.approx(0.1)


def test_search_is_capped_at_max_iterations():
    encode = FakeEncoder()
    result = search_quality(encode, 700, tolerance=0.0)
    assert result.iterations == MAX_ITERATIONS
    assert len(encode.calls) == MAX_ITERATIONS


@pytest.mark.parametrize("target", [150, 300, 480, 777, 950])
def test_search_result_never_exceeds_reachable_target(target):
    result = search_quality(FakeEncoder(), target)
    assert result.budget_met
    assert result.size <= target


def test_search_rejects_non_positive_target():
    with pytest.raises(ValueError):
        search_quality(FakeEncoder(), 0)


def test_compressor_without_target_uses_settings_quality(noise_pixels):
    result = TargetSizeCompressor().compress(noise_pixels(), CompressionSettings(quality=70, format="jpeg"))
    assert result.quality_used == 70
    assert not result.target_applied
    assert result.budget_met


def test_compressor_hits_target_and_reports_reproducible_quality(noise_pixels):
    codec = CodecService()
    pixels = noise_pixels(w=96, h=96)
    target = codec.encode(pixels, "jpeg", 50).size
    settings = CompressionSettings(format="jpeg", target_size_kb=-(-target // 1024))

    result = TargetSizeCompressor(codec).compress(pixels, settings)

    assert result.target_applied
    assert result.budget_met
    assert result.size <= settings.target_bytes
    assert 1 <= result.quality_used <= 100
    assert result.iterations <= MAX_ITERATIONS
    assert codec.encode(pixels, "jpeg", result.quality_used).data == result.encoded.data


def test_compressor_reports_unreachable_budget(noise_pixels):
    pixels = noise_pixels(w=256, h=256)
    result = TargetSizeCompressor().compress(pixels, CompressionSettings(format="jpeg", target_size_kb=1))
    assert result.target_applied
    assert not result.budget_met
    assert result.quality_used == 10
    assert result.size > 1024


def test_png_target_is_a_single_encode(noise_pixels):
    codec = Mock(wraps=CodecService())
    result = TargetSizeCompressor(codec).compress(
        noise_pixels(), CompressionSettings(format="png", target_size_kb=1)
    )
    assert codec.encode.call_count == 1
    assert result.quality_used is None
    assert not result.target_applied
    assert result.encoded.format == "png"
