from __future__ import annotations

import math
from dataclasses import dataclass, replace

SUPPORTED_FORMATS = ("jpeg", "png", "webp")
LOSSLESS_FORMATS = frozenset({"png"})

_FORMAT_ALIASES = {"jpg": "jpeg", "jpeg": "jpeg", "png": "png", "webp": "webp"}


def normalize_format(fmt: str) -> str:
    """Map a user-facing format name (``jpg``, ``JPEG`` ...) to its canonical key."""
    key = _FORMAT_ALIASES.get((fmt or "").strip().lower())
    if key is None:
        raise ValueError(f"Unsupported output format: {fmt}")
    return key


def is_lossless(fmt: str) -> bool:
    return normalize_format(fmt) in LOSSLESS_FORMATS


@dataclass(frozen=True)
class CompressionSettings:
    """Session-wide encoder settings shared by every export.

    ``quality`` is on the 1-100 scale and has no effect for PNG.
    ``target_size_kb`` switches lossy formats to the target-size search.
    """

    quality: int = 80
    format: str = "jpeg"
    target_size_kb: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "format", normalize_format(self.format))
        if not 1 <= int(self.quality) <= 100:
            raise ValueError("quality must be within 1..100")
        if self.target_size_kb is not None and int(self.target_size_kb) <= 0:
            raise ValueError("target_size_kb must be a positive integer")

    @property
    def target_bytes(self) -> int | None:
        if self.target_size_kb is None:
            return None
        return int(self.target_size_kb) * 1024


# (minimum, maximum, default); maximum None means unbounded
EFFECT_RANGES: dict[str, tuple[float, float | None, float]] = {
    "brightness": (0.0, 200.0, 100.0),
    "contrast": (0.0, 200.0, 100.0),
    "saturation": (0.0, 200.0, 100.0),
    "hue": (-180.0, 180.0, 0.0),
    "blur": (0.0, None, 0.0),
}

# Application order is fixed: brightness -> contrast -> saturation -> hue -> blur
EFFECT_ORDER = ("brightness", "contrast", "saturation", "hue", "blur")


@dataclass(frozen=True)
class EffectStack:
    """Fine-grained adjustment values; each at its default is a no-op."""

    brightness: float = 100.0
    contrast: float = 100.0
    saturation: float = 100.0
    hue: float = 0.0
    blur: float = 0.0

    def __post_init__(self) -> None:
        for name in EFFECT_ORDER:
            value = float(getattr(self, name))
            low, high, _ = EFFECT_RANGES[name]
            if math.isnan(value) or value < low or (high is not None and value > high):
                upper = "inf" if high is None else f"{high:g}"
                raise ValueError(f"{name} must be within {low:g}..{upper}")
            object.__setattr__(self, name, value)

    def with_changes(self, **changes: float) -> EffectStack:
        unknown = set(changes) - set(EFFECT_ORDER)
        if unknown:
            raise ValueError(f"Unknown adjustment(s): {', '.join(sorted(unknown))}")
        return replace(self, **changes)

    def entries(self) -> list[tuple[str, float]]:
        """Non-default entries in application order."""
        out: list[tuple[str, float]] = []
        for name in EFFECT_ORDER:
            value = getattr(self, name)
            if value != EFFECT_RANGES[name][2]:
                out.append((name, value))
        return out

    @property
    def is_default(self) -> bool:
        return not self.entries()


@dataclass(frozen=True)
class TransformState:
    """Geometric state of an image, expressed in its output (rotated) frame.

    ``rotation`` is kept in (-360, 360) with its sign preserved.
    ``crop_ratio`` is width/height of the centred crop, ``None`` for free.
    ``resize_width``/``resize_height`` are the final output size, if any.
    """

    rotation: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False
    crop_ratio: float | None = None
    resize_width: int | None = None
    resize_height: int | None = None

    @property
    def is_quarter_turn(self) -> bool:
        return abs(self.rotation) in (90, 270)

    @property
    def is_identity(self) -> bool:
        return self == TransformState()

    def rotated(self, degrees: int) -> TransformState:
        # math.fmod keeps the sign of the dividend: -90 stays -90
        rotation = int(math.fmod(self.rotation + degrees, 360))
        ratio = self.crop_ratio
        width, height = self.resize_width, self.resize_height
        if abs(degrees) % 180 == 90:
            ratio = None if ratio is None else 1.0 / ratio
            width, height = height, width
        return replace(
            self, rotation=rotation, crop_ratio=ratio, resize_width=width, resize_height=height
        )


TEXT_ALIGNMENTS = ("left", "center", "right")


@dataclass(frozen=True)
class TextOverlaySpec:
    """Styled text anchored at a position given in percent of the image size."""

    text: str
    font_family: str = "Inter"
    font_size_px: int = 48
    color: str = "#FFFFFF"
    bold: bool = False
    italic: bool = False
    align: str = "center"
    position_x_percent: float = 50.0
    position_y_percent: float = 50.0
    opacity_percent: float = 100.0
    shadow: bool = True

    def __post_init__(self) -> None:
        if int(self.font_size_px) <= 0:
            raise ValueError("font_size_px must be positive")
        if self.align not in TEXT_ALIGNMENTS:
            raise ValueError(f"align must be one of {', '.join(TEXT_ALIGNMENTS)}")
        if not 0.0 <= float(self.opacity_percent) <= 100.0:
            raise ValueError("opacity_percent must be within 0..100")
        for name in ("position_x_percent", "position_y_percent"):
            if not 0.0 <= float(getattr(self, name)) <= 100.0:
                raise ValueError(f"{name} must be within 0..100")
