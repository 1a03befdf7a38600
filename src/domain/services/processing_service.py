from __future__ import annotations

import math
import re
from dataclasses import dataclass

import numpy as np
from PIL import Image, ImageFilter

from src.domain.entities.edit_settings import EffectStack

# Filter-string function names for each effect, in application order
_EFFECT_FUNCTIONS = {
    "brightness": ("brightness", "%"),
    "contrast": ("contrast", "%"),
    "saturation": ("saturate", "%"),
    "hue": ("hue-rotate", "deg"),
    "blur": ("blur", "px"),
}

_FUNCTION_UNITS = {
    "brightness": "%",
    "contrast": "%",
    "saturate": "%",
    "grayscale": "%",
    "sepia": "%",
    "hue-rotate": "deg",
    "blur": "px",
}

_FILTER_RE = re.compile(r"([a-z-]+)\(\s*(-?\d+(?:\.\d+)?)\s*(%|deg|px)?\s*\)")


@dataclass(frozen=True)
class FilterOperation:
    """One filter primitive. Percent amounts are stored as fractions (120% -> 1.2)."""

    name: str
    amount: float


@dataclass(frozen=True)
class FilterPreset:
    id: str
    name: str
    filter: str


FILTER_PRESETS: dict[str, FilterPreset] = {
    p.id: p
    for p in (
        FilterPreset("none", "Original", "none"),
        FilterPreset("vintage", "Vintage", "sepia(30%) contrast(110%) brightness(105%)"),
        FilterPreset("warm", "Warm", "sepia(20%) saturate(120%) brightness(105%)"),
        FilterPreset("cool", "Cool", "saturate(90%) hue-rotate(10deg) brightness(105%)"),
        FilterPreset("noir", "Noir", "grayscale(100%) contrast(120%)"),
        FilterPreset("fade", "Fade", "contrast(90%) brightness(110%) saturate(85%)"),
        FilterPreset("vivid", "Vivid", "saturate(150%) contrast(110%)"),
        FilterPreset("dramatic", "Dramatic", "contrast(130%) saturate(110%) brightness(95%)"),
        FilterPreset("bright", "Bright", "brightness(120%) contrast(105%)"),
        FilterPreset("muted", "Muted", "saturate(70%) brightness(105%)"),
        FilterPreset("retro", "Retro", "sepia(40%) hue-rotate(-10deg) saturate(130%)"),
        FilterPreset("cinema", "Cinema", "contrast(115%) saturate(90%) brightness(95%)"),
    )
}


def get_filter_preset(preset_id: str) -> FilterPreset:
    preset = FILTER_PRESETS.get(preset_id)
    if preset is None:
        raise ValueError(f"Unknown filter preset: {preset_id}")
    return preset


@dataclass(frozen=True)
class AdjustmentPreset:
    """Quick-enhance values; applying one replaces the whole adjustment stack."""

    id: str
    name: str
    stack: EffectStack


ADJUSTMENT_PRESETS: dict[str, AdjustmentPreset] = {
    p.id: p
    for p in (
        AdjustmentPreset("brighten", "Brighten", EffectStack(brightness=110, contrast=110)),
        AdjustmentPreset("vivid", "Vivid", EffectStack(saturation=130)),
        AdjustmentPreset("bw", "B&W", EffectStack(saturation=0)),
        AdjustmentPreset("fade", "Fade", EffectStack(contrast=85, brightness=105, saturation=90)),
    )
}


def get_adjustment_preset(preset_id: str) -> AdjustmentPreset:
    preset = ADJUSTMENT_PRESETS.get(preset_id)
    if preset is None:
        raise ValueError(f"Unknown adjustment preset: {preset_id}")
    return preset


def _format_amount(value: float) -> str:
    # fixed-point so the description never falls into exponent notation
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def build_filter_string(stack: EffectStack) -> str:
    """Preview description of ``stack``; default entries are left out entirely."""
    parts = []
    for name, value in stack.entries():
        function, unit = _EFFECT_FUNCTIONS[name]
        parts.append(f"{function}({_format_amount(value)}{unit})")
    return " ".join(parts) or "none"


def active_filter(stack: EffectStack, preset_id: str | None) -> str:
    """The single description in force: a preset replaces the stack wholesale."""
    if preset_id is not None:
        return get_filter_preset(preset_id).filter
    return build_filter_string(stack)


def parse_filter_string(description: str) -> list[FilterOperation]:
    text = (description or "").strip()
    if not text or text == "none":
        return []
    ops: list[FilterOperation] = []
    pos = 0
    for match in _FILTER_RE.finditer(text):
        if text[pos : match.start()].strip():
            raise ValueError(f"Malformed filter description: {description!r}")
        name, raw, unit = match.group(1), float(match.group(2)), match.group(3)
        expected = _FUNCTION_UNITS.get(name)
        if expected is None:
            raise ValueError(f"Unsupported filter function: {name}")
        if unit is not None and unit != expected:
            raise ValueError(f"Unexpected unit {unit!r} for {name}")
        amount = raw / 100.0 if expected == "%" else raw
        ops.append(FilterOperation(name, amount))
        pos = match.end()
    if text[pos:].strip():
        raise ValueError(f"Malformed filter description: {description!r}")
    return ops


class ProcessingService:
    """Pure NumPy image processing. Inputs and outputs are float32 arrays normalized to [0, 1].

    Channel convention:
    - RGB: (H, W, 3)
    - RGBA: (H, W, 4); alpha passes through every colour operation untouched

    Colour operations follow the Filter Effects definitions of the matching
    CSS filter functions, so a baked result converges with the live preview.
    Each primitive clamps its output to [0, 1] before the next one runs.
    """

    # Brightness: I_out = I_in * amount
    @staticmethod
    def adjust_brightness(matrix: np.ndarray, amount: float) -> np.ndarray:
        return ProcessingService._map_rgb(matrix, lambda rgb: rgb * float(amount))

    # Contrast around mid-grey: I_out = (I_in - 0.5) * amount + 0.5
    @staticmethod
    def adjust_contrast(matrix: np.ndarray, amount: float) -> np.ndarray:
        a = float(amount)
        return ProcessingService._map_rgb(matrix, lambda rgb: (rgb - 0.5) * a + 0.5)

    # Saturation matrix, luminance weights (0.213, 0.715, 0.072)
    @staticmethod
    def adjust_saturation(matrix: np.ndarray, amount: float) -> np.ndarray:
        s = float(amount)
        m = np.array(
            [
                [0.213 + 0.787 * s, 0.715 - 0.715 * s, 0.072 - 0.072 * s],
                [0.213 - 0.213 * s, 0.715 + 0.285 * s, 0.072 - 0.072 * s],
                [0.213 - 0.213 * s, 0.715 - 0.715 * s, 0.072 + 0.928 * s],
            ],
            dtype=np.float32,
        )
        return ProcessingService._apply_color_matrix(matrix, m)

    # Hue rotation by `degrees` in the luminance-preserving colour plane
    @staticmethod
    def hue_rotate(matrix: np.ndarray, degrees: float) -> np.ndarray:
        rad = math.radians(float(degrees))
        c, s = math.cos(rad), math.sin(rad)
        m = np.array(
            [
                [0.213 + c * 0.787 - s * 0.213, 0.715 - c * 0.715 - s * 0.715, 0.072 - c * 0.072 + s * 0.928],
                [0.213 - c * 0.213 + s * 0.143, 0.715 + c * 0.285 + s * 0.140, 0.072 - c * 0.072 - s * 0.283],
                [0.213 - c * 0.213 - s * 0.787, 0.715 - c * 0.715 + s * 0.715, 0.072 + c * 0.928 + s * 0.072],
            ],
            dtype=np.float32,
        )
        return ProcessingService._apply_color_matrix(matrix, m)

    # Grayscale: blend towards Rec.709 luma by `amount` (0..1)
    @staticmethod
    def grayscale(matrix: np.ndarray, amount: float) -> np.ndarray:
        g = 1.0 - min(max(float(amount), 0.0), 1.0)
        m = np.array(
            [
                [0.2126 + 0.7874 * g, 0.7152 - 0.7152 * g, 0.0722 - 0.0722 * g],
                [0.2126 - 0.2126 * g, 0.7152 + 0.2848 * g, 0.0722 - 0.0722 * g],
                [0.2126 - 0.2126 * g, 0.7152 - 0.7152 * g, 0.0722 + 0.9278 * g],
            ],
            dtype=np.float32,
        )
        return ProcessingService._apply_color_matrix(matrix, m)

    # Sepia tone by `amount` (0..1)
    @staticmethod
    def sepia(matrix: np.ndarray, amount: float) -> np.ndarray:
        g = 1.0 - min(max(float(amount), 0.0), 1.0)
        m = np.array(
            [
                [0.393 + 0.607 * g, 0.769 - 0.769 * g, 0.189 - 0.189 * g],
                [0.349 - 0.349 * g, 0.686 + 0.314 * g, 0.168 - 0.168 * g],
                [0.272 - 0.272 * g, 0.534 - 0.534 * g, 0.131 + 0.869 * g],
            ],
            dtype=np.float32,
        )
        return ProcessingService._apply_color_matrix(matrix, m)

    # `radius` is the standard deviation in pixels; each channel is blurred on its
    # own at 8 bits, edges extended.
    @staticmethod
    def gaussian_blur(matrix: np.ndarray, radius: float) -> np.ndarray:
        mat = matrix.astype(np.float32)
        sigma = float(radius)
        if sigma <= 0:
            return mat
        u8 = np.rint(np.clip(mat, 0.0, 1.0) * 255.0).astype(np.uint8)
        kernel = ImageFilter.GaussianBlur(sigma)
        if u8.ndim == 2:
            out = np.asarray(Image.fromarray(u8).filter(kernel))
        else:
            channels = [
                np.asarray(Image.fromarray(np.ascontiguousarray(u8[..., c])).filter(kernel))
                for c in range(u8.shape[2])
            ]
            out = np.stack(channels, axis=-1)
        return out.astype(np.float32) / 255.0

    # --------- stack evaluation ---------
    @classmethod
    def apply_operation(cls, matrix: np.ndarray, op: FilterOperation) -> np.ndarray:
        if op.name == "brightness":
            return cls.adjust_brightness(matrix, op.amount)
        if op.name == "contrast":
            return cls.adjust_contrast(matrix, op.amount)
        if op.name == "saturate":
            return cls.adjust_saturation(matrix, op.amount)
        if op.name == "hue-rotate":
            return cls.hue_rotate(matrix, op.amount)
        if op.name == "grayscale":
            return cls.grayscale(matrix, op.amount)
        if op.name == "sepia":
            return cls.sepia(matrix, op.amount)
        if op.name == "blur":
            return cls.gaussian_blur(matrix, op.amount)
        raise ValueError(f"Unsupported operation: {op.name}")

    @classmethod
    def apply_filter_string(cls, matrix: np.ndarray, description: str) -> np.ndarray:
        """Bake a whole filter description onto one pixel buffer, in order."""
        out = matrix.astype(np.float32)
        for op in parse_filter_string(description):
            out = cls.apply_operation(out, op)
        return out

    @classmethod
    def apply_effects(cls, matrix: np.ndarray, stack: EffectStack) -> np.ndarray:
        return cls.apply_filter_string(matrix, build_filter_string(stack))

    # --------- helpers ---------
    @staticmethod
    def _map_rgb(matrix: np.ndarray, fn) -> np.ndarray:
        mat = matrix.astype(np.float32)
        if mat.ndim == 2:
            return np.clip(fn(mat), 0.0, 1.0).astype(np.float32)
        out = mat.copy()
        out[..., :3] = np.clip(fn(mat[..., :3]), 0.0, 1.0)
        return out

    @staticmethod
    def _apply_color_matrix(matrix: np.ndarray, m: np.ndarray) -> np.ndarray:
        mat = matrix.astype(np.float32)
        if mat.ndim == 2:
            mat = np.repeat(mat[..., None], 3, axis=2)
        out = mat.copy()
        out[..., :3] = np.clip(mat[..., :3] @ m.T, 0.0, 1.0)
        return out
