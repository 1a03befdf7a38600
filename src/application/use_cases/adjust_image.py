from __future__ import annotations

from dataclasses import dataclass

from src.domain.entities.collection import ImageCollection
from src.domain.entities.edit_settings import EffectStack
from src.domain.entities.image import ImageEntity
from src.domain.services.processing_service import (
    build_filter_string,
    get_adjustment_preset,
    get_filter_preset,
)


@dataclass
class AdjustImageUseCase:
    """
    Preview-path edits: adjustments and named filter presets.

    Nothing here touches pixels. The image carries a filter description that
    is shown live and only baked at export time. A preset and the fine-grained
    stack never combine: picking a preset resets the stack, editing the stack
    drops the preset.
    """

    collection: ImageCollection

    def update_adjustments(self, image_id: str, **changes: float) -> ImageEntity:
        image = self.collection.get(image_id)
        effects = image.effects.with_changes(**changes)
        return self.collection.update_image(
            image_id,
            effects=effects,
            filter_preset=None,
            preview_filter=build_filter_string(effects),
        )

    def apply_adjustment_preset(self, image_id: str, preset_id: str) -> ImageEntity:
        """Replace the stack with a quick-enhance preset; any filter preset is dropped."""
        preset = get_adjustment_preset(preset_id)
        self.collection.get(image_id)
        return self.collection.update_image(
            image_id,
            effects=preset.stack,
            filter_preset=None,
            preview_filter=build_filter_string(preset.stack),
        )

    def apply_filter_preset(self, image_id: str, preset_id: str) -> ImageEntity:
        preset = get_filter_preset(preset_id)
        self.collection.get(image_id)
        return self.collection.update_image(
            image_id,
            effects=EffectStack(),
            filter_preset=None if preset.id == "none" else preset.id,
            preview_filter=preset.filter,
        )
