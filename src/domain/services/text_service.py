from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import numpy as np
from PIL import Image, ImageColor, ImageDraw, ImageFilter, ImageFont

from src.domain.entities.edit_settings import TextOverlaySpec
from src.domain.services.codec_service import pil_to_pixels, pixels_to_pil

logger = logging.getLogger(__name__)

FONT_FAMILIES = (
    "Inter",
    "Arial",
    "Georgia",
    "Times New Roman",
    "Courier New",
    "Impact",
    "Comic Sans MS",
)

# File-name stems tried for each family, most specific first
_FAMILY_STEMS: dict[str, tuple[str, ...]] = {
    "inter": ("Inter", "DejaVuSans"),
    "arial": ("arial", "Arial", "LiberationSans", "DejaVuSans"),
    "georgia": ("georgia", "Georgia", "DejaVuSerif"),
    "times new roman": ("times", "Times New Roman", "LiberationSerif", "DejaVuSerif"),
    "courier new": ("cour", "Courier New", "LiberationMono", "DejaVuSansMono"),
    "impact": ("impact", "Impact", "DejaVuSans"),
    "comic sans ms": ("comic", "Comic Sans MS", "DejaVuSans"),
}

_STYLE_SUFFIXES: dict[tuple[bool, bool], tuple[str, ...]] = {
    (False, False): ("-Regular", ""),
    (True, False): ("-Bold", "bd", " Bold"),
    (False, True): ("-Italic", "-Oblique", "i", " Italic"),
    (True, True): ("-BoldItalic", "-BoldOblique", "bi", " Bold Italic"),
}

SHADOW_COLOR = (0, 0, 0, 128)  # rgba(0, 0, 0, 0.5)
SHADOW_OFFSET = 2
SHADOW_BLUR = 4  # canvas shadowBlur; the Gaussian sigma is half of it


@dataclass(frozen=True)
class ResolvedFont:
    font: ImageFont.FreeTypeFont | ImageFont.ImageFont
    source: str
    synthetic_bold: bool


def _font_dirs() -> list[Path]:
    raw = os.getenv("EDITOR_FONT_DIRS", "")
    return [Path(p) for p in raw.split(os.pathsep) if p.strip()]


def _load_default(size: int):
    try:
        return ImageFont.load_default(size=size)
    except TypeError:  # Pillow < 10.1 has no sized default
        return ImageFont.load_default()


@lru_cache(maxsize=64)
def resolve_font(family: str, size: int, bold: bool, italic: bool) -> ResolvedFont:
    """Find a TrueType file for family/style, falling back to Pillow's default font.

    Resolution is cached so repeated renders of the same spec use the same
    font object and stay byte-identical.
    """
    stems = _FAMILY_STEMS.get(family.strip().lower(), (family.strip(),))
    styles = [(bold, italic)]
    if bold:
        styles.append((False, italic))  # synthesise bold from the regular face
    dirs = _font_dirs()
    for style in styles:
        for stem in stems:
            for suffix in _STYLE_SUFFIXES[style]:
                filename = f"{stem}{suffix}.ttf"
                candidates = [str(d / filename) for d in dirs] + [filename]
                for candidate in candidates:
                    try:
                        font = ImageFont.truetype(candidate, size)
                    except OSError:
                        continue
                    return ResolvedFont(font, candidate, synthetic_bold=bold and not style[0])
    logger.debug("No font file for %s, using Pillow default", family)
    return ResolvedFont(_load_default(size), "default", synthetic_bold=bold)


def resolve_position(spec: TextOverlaySpec, width: int, height: int) -> tuple[float, float]:
    """Anchor point in pixels, from percentages of the current dimensions."""
    return (
        float(spec.position_x_percent) / 100.0 * width,
        float(spec.position_y_percent) / 100.0 * height,
    )


class TextService:
    """Composites styled text onto a copy of a pixel buffer.

    The anchor is the resolved position: text is centred on it vertically and
    aligned left/center/right on it horizontally. A soft shadow is drawn
    beneath, and the overall opacity applies to text and shadow alike.
    """

    def render(self, pixels: np.ndarray, spec: TextOverlaySpec) -> np.ndarray:
        if not spec.text.strip():
            return pixels

        base = pixels_to_pil(pixels).convert("RGBA")
        width, height = base.size
        resolved = resolve_font(spec.font_family, int(spec.font_size_px), spec.bold, spec.italic)
        stroke = max(1, int(spec.font_size_px) // 24) if resolved.synthetic_bold else 0

        measure = ImageDraw.Draw(base)
        left, top, right, bottom = measure.textbbox(
            (0, 0), spec.text, font=resolved.font, stroke_width=stroke
        )
        text_w, text_h = right - left, bottom - top
        anchor_x, anchor_y = resolve_position(spec, width, height)
        if spec.align == "left":
            x = anchor_x
        elif spec.align == "right":
            x = anchor_x - text_w
        else:
            x = anchor_x - text_w / 2.0
        origin = (round(x - left), round(anchor_y - text_h / 2.0 - top))

        color = ImageColor.getcolor(spec.color, "RGBA")
        layer = Image.new("RGBA", base.size, (0, 0, 0, 0))
        if spec.shadow:
            shadow = Image.new("RGBA", base.size, (0, 0, 0, 0))
            ImageDraw.Draw(shadow).text(
                (origin[0] + SHADOW_OFFSET, origin[1] + SHADOW_OFFSET),
                spec.text,
                font=resolved.font,
                fill=SHADOW_COLOR,
                stroke_width=stroke,
                stroke_fill=SHADOW_COLOR,
            )
            layer = Image.alpha_composite(
                layer, shadow.filter(ImageFilter.GaussianBlur(SHADOW_BLUR / 2))
            )
        text_layer = Image.new("RGBA", base.size, (0, 0, 0, 0))
        ImageDraw.Draw(text_layer).text(
            origin,
            spec.text,
            font=resolved.font,
            fill=color,
            stroke_width=stroke,
            stroke_fill=color,
        )
        layer = Image.alpha_composite(layer, text_layer)

        opacity = float(spec.opacity_percent) / 100.0
        if opacity < 1.0:
            arr = np.asarray(layer).copy()
            arr[..., 3] = np.rint(arr[..., 3].astype(np.float32) * opacity).astype(np.uint8)
            layer = Image.fromarray(arr)

        composed = Image.alpha_composite(base, layer)
        if pixels.ndim == 3 and pixels.shape[2] == 3:
            composed = composed.convert("RGB")
        return pil_to_pixels(composed)
