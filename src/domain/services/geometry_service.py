from __future__ import annotations

import math
from dataclasses import dataclass, replace

import numpy as np
from PIL import Image

from src.domain.entities.edit_settings import TransformState
from src.domain.errors import InvalidDimension
from src.domain.services.codec_service import pil_to_pixels, pixels_to_pil


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def validate_dimensions(width: int, height: int) -> tuple[int, int]:
    """Reject anything but positive integer sizes before any pixel work starts."""
    try:
        w, h = int(width), int(height)
    except (TypeError, ValueError) as exc:
        raise InvalidDimension(f"Invalid dimensions: {width}x{height}") from exc
    if w != width or h != height or w <= 0 or h <= 0:
        raise InvalidDimension(f"Dimensions must be positive integers, got {width}x{height}")
    return w, h


@dataclass(frozen=True)
class ResizePreset:
    name: str
    width: int
    height: int
    icon: str = "image"


RESIZE_PRESETS: dict[str, list[ResizePreset]] = {
    "Social Media": [
        ResizePreset("Instagram Post", 1080, 1080, "instagram"),
        ResizePreset("Instagram Story", 1080, 1920, "instagram"),
        ResizePreset("Twitter Post", 1200, 675, "twitter"),
        ResizePreset("Facebook Post", 1200, 630, "facebook"),
        ResizePreset("YouTube Thumbnail", 1280, 720, "youtube"),
    ],
    "Web": [
        ResizePreset("HD", 1920, 1080, "monitor"),
        ResizePreset("4K", 3840, 2160, "monitor"),
        ResizePreset("Thumbnail", 150, 150),
        ResizePreset("Banner", 1200, 400),
    ],
    "Mobile": [
        ResizePreset("iPhone", 1170, 2532, "smartphone"),
        ResizePreset("Android", 1080, 2400, "smartphone"),
    ],
}

CROP_RATIOS: dict[str, float | None] = {
    "Free": None,
    "1:1": 1.0,
    "4:3": 4 / 3,
    "3:2": 3 / 2,
    "16:9": 16 / 9,
    "9:16": 9 / 16,
    "3:4": 3 / 4,
    "2:3": 2 / 3,
}


def find_resize_preset(name: str) -> ResizePreset:
    for presets in RESIZE_PRESETS.values():
        for preset in presets:
            if preset.name.lower() == name.strip().lower():
                return preset
    raise ValueError(f"Unknown resize preset: {name}")


def crop_ratio_for(name: str) -> float | None:
    if name not in CROP_RATIOS:
        raise ValueError(f"Unknown crop ratio: {name}")
    return CROP_RATIOS[name]


@dataclass
class ResizeDraft:
    """Width/height being edited in the resize tool.

    The aspect ratio is captured once when the tool is entered and reused for
    every edit, so repeated rounding can't drift the ratio.
    """

    width: int
    height: int
    lock_aspect_ratio: bool = True
    aspect_ratio: float = 1.0
    preset: str | None = None

    @classmethod
    def begin(cls, width: int, height: int) -> ResizeDraft:
        validate_dimensions(width, height)
        return cls(width=width, height=height, aspect_ratio=width / height)

    def set_width(self, width: int) -> ResizeDraft:
        self.width = int(width)
        self.preset = None
        if self.lock_aspect_ratio and self.width > 0:
            self.height = round_half_up(self.width / self.aspect_ratio)
        return self

    def set_height(self, height: int) -> ResizeDraft:
        self.height = int(height)
        self.preset = None
        if self.lock_aspect_ratio and self.height > 0:
            self.width = round_half_up(self.height * self.aspect_ratio)
        return self

    def apply_preset(self, preset: ResizePreset) -> ResizeDraft:
        # an explicit preset overrides the lock
        self.width = preset.width
        self.height = preset.height
        self.lock_aspect_ratio = False
        self.aspect_ratio = preset.width / preset.height
        self.preset = preset.name
        return self

    def set_lock(self, locked: bool) -> ResizeDraft:
        self.lock_aspect_ratio = bool(locked)
        return self

    def dimensions(self) -> tuple[int, int]:
        return validate_dimensions(self.width, self.height)


class GeometryService:
    """Pixel-space geometry on float32 [0, 1] arrays.

    :meth:`render` is the single geometry pipeline used by preview and export:
    flip and rotate, then centre-crop to the active ratio, then resize.
    """

    @staticmethod
    def resize(pixels: np.ndarray, width: int, height: int) -> np.ndarray:
        w, h = validate_dimensions(width, height)
        src_h, src_w = pixels.shape[:2]
        if (src_w, src_h) == (w, h):
            return pixels
        img = pixels_to_pil(pixels)
        resized = img.resize((w, h), Image.Resampling.LANCZOS)
        return pil_to_pixels(resized)

    # Canvas order: translate to centre, rotate, scale(+-1, +-1), draw centred.
    # The scale is applied in the rotated frame, which amounts to mirroring the
    # source along its own axes and rotating the result clockwise.
    @staticmethod
    def rotate_flip(
        pixels: np.ndarray, rotation: int, flip_horizontal: bool, flip_vertical: bool
    ) -> np.ndarray:
        if rotation % 90 != 0:
            raise ValueError("rotation must be a multiple of 90 degrees")
        out = pixels
        if flip_horizontal:
            out = out[:, ::-1]
        if flip_vertical:
            out = out[::-1, :]
        # np.rot90 turns counter-clockwise for positive k; canvas angles are clockwise
        k = -(int(rotation) // 90)
        if k % 4:
            out = np.rot90(out, k=k, axes=(0, 1))
        return np.ascontiguousarray(out)

    @staticmethod
    def crop_box(width: int, height: int, ratio: float) -> tuple[int, int, int, int]:
        """Largest centred (x, y, w, h) box of ``ratio`` inside width x height."""
        if ratio <= 0:
            raise ValueError("ratio must be positive")
        if width / height > ratio:
            crop_w, crop_h = max(1, round_half_up(height * ratio)), height
        else:
            crop_w, crop_h = width, max(1, round_half_up(width / ratio))
        crop_w, crop_h = min(crop_w, width), min(crop_h, height)
        x = (width - crop_w) // 2
        y = (height - crop_h) // 2
        return x, y, crop_w, crop_h

    @classmethod
    def crop_to_ratio(cls, pixels: np.ndarray, ratio: float | None) -> np.ndarray:
        if ratio is None:
            return pixels
        height, width = pixels.shape[:2]
        x, y, w, h = cls.crop_box(width, height, ratio)
        return pixels[y : y + h, x : x + w]

    @classmethod
    def output_size(cls, width: int, height: int, transform: TransformState) -> tuple[int, int]:
        """Dimensions :meth:`render` would produce, without touching pixels."""
        if transform.resize_width is not None and transform.resize_height is not None:
            return transform.resize_width, transform.resize_height
        if transform.is_quarter_turn:
            width, height = height, width
        if transform.crop_ratio is not None:
            _, _, width, height = cls.crop_box(width, height, transform.crop_ratio)
        return width, height

    @classmethod
    def render(cls, pixels: np.ndarray, transform: TransformState) -> np.ndarray:
        if transform.is_identity:
            return pixels
        out = cls.rotate_flip(
            pixels, transform.rotation, transform.flip_horizontal, transform.flip_vertical
        )
        out = cls.crop_to_ratio(out, transform.crop_ratio)
        if transform.resize_width is not None and transform.resize_height is not None:
            out = cls.resize(out, transform.resize_width, transform.resize_height)
        return out

    # --------- transform bookkeeping ---------
    @staticmethod
    def rotate_left(transform: TransformState) -> TransformState:
        return transform.rotated(-90)

    @staticmethod
    def rotate_right(transform: TransformState) -> TransformState:
        return transform.rotated(90)

    @staticmethod
    def toggle_flip(
        transform: TransformState, horizontal: bool = False, vertical: bool = False
    ) -> TransformState:
        return replace(
            transform,
            flip_horizontal=transform.flip_horizontal ^ bool(horizontal),
            flip_vertical=transform.flip_vertical ^ bool(vertical),
        )

    @staticmethod
    def with_crop_ratio(transform: TransformState, ratio: float | None) -> TransformState:
        # a previous resize target belongs to the previous crop
        return replace(transform, crop_ratio=ratio, resize_width=None, resize_height=None)

    @staticmethod
    def with_size(transform: TransformState, width: int, height: int) -> TransformState:
        w, h = validate_dimensions(width, height)
        return replace(transform, resize_width=w, resize_height=h)
