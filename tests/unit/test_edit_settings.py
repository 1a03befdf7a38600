import pytest

from src.domain.entities.edit_settings import (
    CompressionSettings,
    EffectStack,
    TransformState,
    is_lossless,
    normalize_format,
)


def test_format_aliases():
    assert normalize_format("JPG") == "jpeg"
    assert normalize_format(" webp ") == "webp"
    assert is_lossless("png")
    assert not is_lossless("jpg")
    with pytest.raises(ValueError):
        normalize_format("tiff")


def test_compression_settings_validation():
    settings = CompressionSettings(quality=75, format="jpg", target_size_kb=500)
    assert settings.format == "jpeg"
    assert settings.target_bytes == 500 * 1024
    assert CompressionSettings().target_bytes is None
    with pytest.raises(ValueError):
        CompressionSettings(quality=0)
    with pytest.raises(ValueError):
        CompressionSettings(target_size_kb=0)


def test_effect_stack_changes():
    stack = EffectStack().with_changes(brightness=130)
    assert stack.entries() == [("brightness", 130.0)]
    assert not stack.is_default
    assert EffectStack().is_default
    with pytest.raises(ValueError):
        EffectStack().with_changes(sharpness=10)


def test_transform_identity():
    assert TransformState().is_identity
    assert not TransformState(flip_vertical=True).is_identity
    assert TransformState(rotation=-270).is_quarter_turn
    assert not TransformState(rotation=180).is_quarter_turn
