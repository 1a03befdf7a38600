from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from src.domain.entities.collection import ImageCollection
from src.domain.entities.edit_settings import CompressionSettings
from src.domain.entities.export_artifact import ExportArtifact
from src.domain.entities.image import ImageEntity
from src.domain.services.compression_service import CompressionResult, TargetSizeCompressor
from src.domain.services.naming_service import EXPORT_SUFFIXES, output_filename, saved_percent
from src.domain.services.processing_service import active_filter
from src.domain.services.render_service import RenderService

logger = logging.getLogger(__name__)

# Export kinds that bake the active filter description into the pixels
_FILTERED_KINDS = ("adjusted", "filtered")


@dataclass(frozen=True)
class ExportOutcome:
    artifact: ExportArtifact
    original_size: int
    quality_used: int | None
    iterations: int
    budget_met: bool
    target_applied: bool

    @property
    def saved_percent(self) -> int:
        return saved_percent(self.original_size, self.artifact.size)


@dataclass
class ExportImageUseCase:
    """
    Produce a downloadable artifact for one image.

    Every kind starts from the original bytes plus the current geometry;
    ``adjusted``/``filtered`` also bake the active filter description and
    ``watermarked`` draws the text overlay. The pixels are then encoded
    once under the session's compression settings (with the target-size
    search when a target is set).

    Nothing is written back unless the whole export succeeded; on success
    only ``byte_size`` changes.
    """

    collection: ImageCollection
    renderer: RenderService
    compressor: TargetSizeCompressor

    async def execute(self, image_id: str, kind: str, settings: CompressionSettings) -> ExportOutcome:
        suffix = EXPORT_SUFFIXES.get(kind)
        if suffix is None:
            raise ValueError(f"Unsupported export kind: {kind}")
        image = self.collection.get(image_id)

        result = await asyncio.to_thread(self._render_and_compress, image, kind, settings)
        encoded = result.encoded
        artifact = ExportArtifact(
            data=encoded.data,
            filename=output_filename(image.name, suffix, encoded.format),
            mime_type=encoded.mime_type,
            width=encoded.width,
            height=encoded.height,
            image_id=image.id,
        )
        if image_id in self.collection:
            self.collection.update_image(image_id, byte_size=artifact.size)
        logger.info("Exported %s (%s bytes, quality %s)", artifact.filename, artifact.size, result.quality_used)
        return ExportOutcome(
            artifact=artifact,
            original_size=image.original_size,
            quality_used=result.quality_used,
            iterations=result.iterations,
            budget_met=result.budget_met,
            target_applied=result.target_applied,
        )

    def _render_and_compress(
        self, image: ImageEntity, kind: str, settings: CompressionSettings
    ) -> CompressionResult:
        description = active_filter(image.effects, image.filter_preset) if kind in _FILTERED_KINDS else "none"
        pixels = self.renderer.bake(
            image,
            filter_description=description,
            with_text=kind == "watermarked",
        )
        return self.compressor.compress(pixels, settings)
