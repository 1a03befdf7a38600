from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

import numpy as np

from src.domain.entities.edit_settings import CompressionSettings, is_lossless
from src.domain.services.codec_service import CodecService, EncodedImage, encoder_quality

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 10
TOLERANCE = 0.02
QUALITY_FLOOR = 0.1  # quality 0 is degenerate and never tried
QUALITY_CEILING = 1.0


@dataclass(frozen=True)
class QualitySearchResult:
    data: bytes = field(repr=False)
    quality: float  # normalised, in [floor, ceiling]
    iterations: int
    budget_met: bool

    @property
    def size(self) -> int:
        return len(self.data)


def search_quality(
    encode: Callable[[float], bytes],
    target_bytes: int,
    max_iterations: int = MAX_ITERATIONS,
    tolerance: float = TOLERANCE,
    floor: float = QUALITY_FLOOR,
    ceiling: float = QUALITY_CEILING,
) -> QualitySearchResult:
    """Find the highest quality whose encoding fits in ``target_bytes``.

    Binary search over normalised quality. Each iteration encodes at the
    midpoint: if it fits, it becomes the best result and the floor moves up,
    otherwise the ceiling moves down. The loop stops after ``max_iterations``
    or once ``ceiling - floor <= tolerance``.

    If no midpoint fits, the floor-quality encoding is returned with
    ``budget_met=False``. That is a best-effort answer, not a failure.

    Args:
        encode: Maps a normalised quality to encoded bytes. Must be deterministic.
        target_bytes: Byte budget, must be positive.
    """
    if target_bytes <= 0:
        raise ValueError("target_bytes must be positive")

    low, high = floor, ceiling
    best: bytes | None = None
    best_quality = low
    iterations = 0

    while iterations < max_iterations and high - low > tolerance:
        quality = (low + high) / 2
        data = encode(quality)
        if len(data) <= target_bytes:
            best, best_quality = data, quality
            low = quality
        else:
            high = quality
        iterations += 1

    if best is None:
        # low never moved, so this is the floor quality
        logger.debug("No quality fits %s bytes, falling back to %.3f", target_bytes, low)
        return QualitySearchResult(
            data=encode(low),
            quality=low,
            iterations=iterations,
            budget_met=False,
        )

    logger.debug(
        "Quality search settled at %.3f (%s bytes) after %s iterations",
        best_quality,
        len(best),
        iterations,
    )
    return QualitySearchResult(
        data=best, quality=best_quality, iterations=iterations, budget_met=True
    )


@dataclass(frozen=True)
class CompressionResult:
    encoded: EncodedImage
    quality_used: int | None  # 1-100 scale, None for lossless output
    iterations: int = 0
    budget_met: bool = True
    # False when a target was requested but could not be applied (lossless format)
    target_applied: bool = False

    @property
    def size(self) -> int:
        return self.encoded.size


class TargetSizeCompressor:
    """Encodes pixels under a :class:`CompressionSettings`.

    Without a target size this is a single encode at ``settings.quality``.
    With a target size and a lossy format, :func:`search_quality` drives the
    codec. PNG has no quality axis, so a target size can't be honoured: the
    compressor performs exactly one encode and marks ``target_applied=False``.
    """

    def __init__(self, codec: CodecService | None = None) -> None:
        self.codec = codec or CodecService()

    def compress(self, pixels: np.ndarray, settings: CompressionSettings) -> CompressionResult:
        fmt = settings.format
        target = settings.target_bytes

        if is_lossless(fmt):
            encoded = self.codec.encode(pixels, fmt)
            return CompressionResult(
                encoded=encoded,
                quality_used=None,
                budget_met=target is None or encoded.size <= target,
                target_applied=False,
            )

        if target is None:
            encoded = self.codec.encode(pixels, fmt, settings.quality)
            return CompressionResult(encoded=encoded, quality_used=encoded.quality)

        height, width = pixels.shape[:2]

        def encode_at(quality: float) -> bytes:
            return self.codec.encode(pixels, fmt, quality * 100).data

        found = search_quality(encode_at, target)
        quality_used = encoder_quality(found.quality * 100)
        encoded = EncodedImage(
            data=found.data, format=fmt, width=width, height=height, quality=quality_used
        )
        return CompressionResult(
            encoded=encoded,
            quality_used=quality_used,
            iterations=found.iterations,
            budget_met=found.budget_met,
            target_applied=True,
        )
