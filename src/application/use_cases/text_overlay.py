from __future__ import annotations

from dataclasses import dataclass

from src.application.use_cases.refresh_preview import RefreshPreviewUseCase
from src.domain.entities.collection import ImageCollection
from src.domain.entities.edit_settings import TextOverlaySpec
from src.domain.entities.image import ImageEntity


@dataclass
class TextOverlayUseCase:
    collection: ImageCollection
    refresh: RefreshPreviewUseCase

    async def execute(self, image_id: str, spec: TextOverlaySpec | None) -> ImageEntity:
        """
        Set (or clear, with ``None`` or blank text) the text overlay of an image.

        The overlay is always drawn over a fresh render of the original plus the
        current geometry, so editing the text again never draws over old text.
        """
        previous = self.collection.get(image_id).text_overlay
        if spec is not None and not spec.text.strip():
            spec = None
        self.collection.update_image(image_id, text_overlay=spec)
        await self.refresh.execute(image_id, rollback={"text_overlay": previous})
        return self.collection.get(image_id)
