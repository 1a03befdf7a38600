from __future__ import annotations

import base64
import logging
import math
from dataclasses import dataclass, field
from io import BytesIO

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from src.domain.entities.edit_settings import LOSSLESS_FORMATS, normalize_format
from src.domain.errors import DecodeError, EncodeError

logger = logging.getLogger(__name__)

MIME_TYPES = {"jpeg": "image/jpeg", "png": "image/png", "webp": "image/webp"}
_PIL_FORMATS = {"jpeg": "JPEG", "png": "PNG", "webp": "WEBP"}

# Quality used for lossy formats when none is given (canvas default of 0.92)
DEFAULT_LOSSY_QUALITY = 92


def mime_type_for(fmt: str) -> str:
    """MIME type for a format name; unknown names fall back to JPEG."""
    try:
        return MIME_TYPES[normalize_format(fmt)]
    except ValueError:
        return MIME_TYPES["jpeg"]


def pixels_to_pil(pixels: np.ndarray, keep_alpha: bool = True) -> Image.Image:
    """float32 [0, 1] array -> PIL image (L, RGB or RGBA)."""
    arr = np.clip(pixels.astype(np.float32), 0.0, 1.0)
    if arr.ndim == 3 and arr.shape[2] == 4 and not keep_alpha:
        # flatten onto black, like a canvas exported without an alpha channel
        arr = arr[..., :3] * arr[..., 3:4]
    u8 = np.rint(arr * 255.0).astype(np.uint8)
    if u8.ndim == 2:
        return Image.fromarray(u8)
    if u8.shape[2] == 4:
        return Image.fromarray(u8)
    return Image.fromarray(np.ascontiguousarray(u8[..., :3]))


def pil_to_pixels(image: Image.Image) -> np.ndarray:
    """PIL image -> float32 [0, 1] array with 3 or 4 channels."""
    has_alpha = "A" in image.getbands() or "transparency" in image.info
    converted = image.convert("RGBA" if has_alpha else "RGB")
    return np.asarray(converted).astype(np.float32) / 255.0


def encoder_quality(quality: float | None) -> int:
    if quality is None:
        return DEFAULT_LOSSY_QUALITY
    # half-up rounding, clamped to the encoder's valid range
    return int(min(100, max(1, math.floor(float(quality) + 0.5))))


@dataclass(frozen=True)
class EncodedImage:
    data: bytes = field(repr=False)
    format: str
    width: int
    height: int
    quality: int | None = None  # None for lossless output

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def mime_type(self) -> str:
        return MIME_TYPES[self.format]

    @property
    def data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


@dataclass(frozen=True)
class DecodedImage:
    pixels: np.ndarray = field(repr=False)
    width: int
    height: int
    source_format: str | None = None


class CodecService:
    """Uniform raster encode/decode over Pillow.

    Pixels are float32 arrays normalised to [0, 1] with shape (H, W, 3) or
    (H, W, 4). Encoding is deterministic for identical inputs, which the
    target-size search relies on.
    """

    def decode(self, data: bytes) -> DecodedImage:
        if not data:
            raise DecodeError("Empty image data")
        try:
            with Image.open(BytesIO(data)) as img:
                img.load()
                source_format = img.format
                oriented = ImageOps.exif_transpose(img)
                pixels = pil_to_pixels(oriented)
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
            raise DecodeError(f"Unable to decode image: {exc}") from exc
        height, width = pixels.shape[:2]
        if width <= 0 or height <= 0:
            raise DecodeError("Decoded image has no pixels")
        return DecodedImage(pixels=pixels, width=width, height=height, source_format=source_format)

    def encode(self, pixels: np.ndarray, fmt: str, quality: float | None = None) -> EncodedImage:
        """Encode ``pixels``; ``quality`` (1-100) is ignored for lossless formats."""
        key = normalize_format(fmt)
        lossless = key in LOSSLESS_FORMATS
        image = pixels_to_pil(pixels, keep_alpha=key != "jpeg")
        options: dict[str, object]
        if key == "jpeg":
            options = {"quality": encoder_quality(quality), "optimize": False}
        elif key == "webp":
            options = {"quality": encoder_quality(quality), "method": 4}
        else:
            options = {"optimize": False, "compress_level": 6}

        buf = BytesIO()
        try:
            image.save(buf, format=_PIL_FORMATS[key], **options)
        except (OSError, ValueError, KeyError) as exc:
            raise EncodeError(f"Encoding {key} failed: {exc}") from exc

        return EncodedImage(
            data=buf.getvalue(),
            format=key,
            width=image.width,
            height=image.height,
            quality=None if lossless else int(options["quality"]),  # type: ignore[call-overload]
        )
