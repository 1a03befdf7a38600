from __future__ import annotations

from src.domain.services.geometry_service import round_half_up

_EXTENSIONS = {"jpeg": "jpg", "jpg": "jpg", "png": "png", "webp": "webp"}

# Rough output/input size ratios used for the pre-export size estimate
_SIZE_MULTIPLIERS = {"jpeg": 0.6, "jpg": 0.6, "png": 1.0, "webp": 0.5}
_DEFAULT_MULTIPLIER = 0.7

EXPORT_SUFFIXES = {
    "compressed": "_compressed",
    "resized": "_resized",
    "cropped": "_cropped",
    "adjusted": "_adjusted",
    "filtered": "_filtered",
    "watermarked": "_watermarked",
}


def format_bytes(size: int) -> str:
    """Human readable size: ``"812 B"``, ``"14.2 KB"``, ``"3.25 MB"``."""
    if size <= 0:
        return "0 B"
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.2f} MB"


def extension_for(fmt: str) -> str:
    return _EXTENSIONS.get((fmt or "").strip().lower(), "jpg")


def base_name(filename: str) -> str:
    # only the last extension goes: "a.b.png" -> "a.b"
    if "." not in filename:
        return filename
    return filename.rsplit(".", 1)[0]


def output_filename(original_name: str, suffix: str, fmt: str) -> str:
    return f"{base_name(original_name)}{suffix}.{extension_for(fmt)}"


def estimate_compressed_size(original_size: int, quality: int, fmt: str) -> int:
    key = (fmt or "").strip().lower()
    multiplier = _SIZE_MULTIPLIERS.get(key, _DEFAULT_MULTIPLIER)
    if key in ("jpeg", "jpg", "webp"):
        multiplier *= quality / 100
    return round_half_up(original_size * multiplier)


def saved_percent(original_size: int, output_size: int) -> int:
    """Whole-percent saving; negative when the output grew."""
    if original_size <= 0:
        return 0
    return round_half_up((1 - output_size / original_size) * 100)
