from __future__ import annotations

from dataclasses import dataclass

from src.application.use_cases.refresh_preview import RefreshPreviewUseCase
from src.domain.entities.collection import ImageCollection
from src.domain.entities.edit_settings import TransformState
from src.domain.entities.image import ImageEntity
from src.domain.services.geometry_service import GeometryService, crop_ratio_for


@dataclass
class TransformImageUseCase:
    """
    Geometric edits: resize, rotate, flip and crop ratio.

    The transform state and the reported dimensions are updated at once, before
    any pixel work, so back-to-back requests always build on each other. The
    preview bytes follow through :class:`RefreshPreviewUseCase`; if that render
    fails, the previous state is restored.
    """

    collection: ImageCollection
    refresh: RefreshPreviewUseCase

    async def resize(self, image_id: str, width: int, height: int) -> ImageEntity:
        image = self.collection.get(image_id)
        transform = GeometryService.with_size(image.transform, width, height)
        return await self._apply(image, transform)

    async def rotate(self, image_id: str, direction: str) -> ImageEntity:
        image = self.collection.get(image_id)
        if direction == "left":
            transform = GeometryService.rotate_left(image.transform)
        elif direction == "right":
            transform = GeometryService.rotate_right(image.transform)
        else:
            raise ValueError(f"Unsupported rotation direction: {direction}")
        return await self._apply(image, transform)

    async def flip(self, image_id: str, horizontal: bool = False, vertical: bool = False) -> ImageEntity:
        image = self.collection.get(image_id)
        transform = GeometryService.toggle_flip(image.transform, horizontal, vertical)
        return await self._apply(image, transform)

    async def set_crop_ratio(self, image_id: str, ratio_name: str) -> ImageEntity:
        image = self.collection.get(image_id)
        transform = GeometryService.with_crop_ratio(image.transform, crop_ratio_for(ratio_name))
        return await self._apply(image, transform)

    async def _apply(self, image: ImageEntity, transform: TransformState) -> ImageEntity:
        width, height = GeometryService.output_size(image.original_width, image.original_height, transform)
        previous = {"transform": image.transform, "width": image.width, "height": image.height}
        self.collection.update_image(image.id, transform=transform, width=width, height=height)
        await self.refresh.execute(image.id, rollback=previous)
        return self.collection.get(image.id)
