from __future__ import annotations

import logging
from dataclasses import dataclass

from src.domain.entities.collection import ImageCollection
from src.domain.entities.edit_settings import EffectStack, TransformState
from src.domain.entities.image import ImageEntity

logger = logging.getLogger(__name__)


@dataclass
class ResetImageUseCase:
    """
    Drop every pending edit of an image.

    The preview goes back to the original bytes themselves, not to an
    encode of an unedited render, so the result is byte-identical to what
    was loaded. Taking a fresh token also discards any preview still being
    rendered for the image.
    """

    collection: ImageCollection

    def execute(self, image_id: str) -> ImageEntity:
        image = self.collection.get(image_id)
        token = self.collection.issue_token(image_id)
        self.collection.commit_preview(
            image_id,
            token,
            width=image.original_width,
            height=image.original_height,
            preview_bytes=image.original_bytes,
            preview_mime_type=None,
            preview_filter="none",
            effects=EffectStack(),
            filter_preset=None,
            transform=TransformState(),
            text_overlay=None,
            byte_size=image.original_size,
        )
        logger.info("Reset %s to its original state", image_id)
        return self.collection.get(image_id)
