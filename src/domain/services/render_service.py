from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from src.domain.entities.image import ImageEntity
from src.domain.services.codec_service import CodecService
from src.domain.services.geometry_service import GeometryService
from src.domain.services.processing_service import ProcessingService
from src.domain.services.text_service import TextService

PREVIEW_FORMAT = "png"


@dataclass(frozen=True)
class RenderedPreview:
    data: bytes = field(repr=False)
    mime_type: str | None  # None when ``data`` is the untouched original
    width: int
    height: int


@dataclass
class RenderService:
    """
    Rebuilds pixels for an image from its original bytes.

    Every render starts again from ``original_bytes`` and re-applies the
    pending edits, so repeated edits never stack encode artifacts:
    geometry first, then an optional filter bake, then an optional text
    overlay.
    """

    codec: CodecService = field(default_factory=CodecService)
    processing: ProcessingService = field(default_factory=ProcessingService)
    text: TextService = field(default_factory=TextService)

    def geometry_pixels(self, image: ImageEntity) -> np.ndarray:
        decoded = self.codec.decode(image.original_bytes)
        return GeometryService.render(decoded.pixels, image.transform)

    def bake(
        self,
        image: ImageEntity,
        *,
        filter_description: str = "none",
        with_text: bool = False,
    ) -> np.ndarray:
        pixels = self.geometry_pixels(image)
        if filter_description and filter_description != "none":
            pixels = self.processing.apply_filter_string(pixels, filter_description)
        if with_text and image.text_overlay is not None:
            pixels = self.text.render(pixels, image.text_overlay)
        return pixels

    def preview(self, image: ImageEntity) -> RenderedPreview:
        """Preview bytes for the current geometry and text.

        Filters are not baked here: the preview carries them as a description.
        With nothing to draw the original bytes come back as they are.
        """
        if image.transform.is_identity and image.text_overlay is None:
            return RenderedPreview(
                image.original_bytes, None, image.original_width, image.original_height
            )
        pixels = self.bake(image, with_text=True)
        encoded = self.codec.encode(pixels, PREVIEW_FORMAT)
        return RenderedPreview(encoded.data, encoded.mime_type, encoded.width, encoded.height)
