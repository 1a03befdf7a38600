from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from src.domain.entities.collection import ImageCollection
from src.domain.entities.edit_settings import CompressionSettings
from src.domain.entities.export_artifact import ExportArtifact
from src.domain.services.codec_service import CodecService
from src.domain.services.compression_service import TargetSizeCompressor
from src.domain.services.geometry_service import ResizeDraft
from src.domain.services.render_service import RenderService

logger = logging.getLogger(__name__)

def default_compression_settings() -> CompressionSettings:
    quality = int(os.getenv("EDITOR_DEFAULT_QUALITY", "80"))
    fmt = os.getenv("EDITOR_DEFAULT_FORMAT", "jpeg")
    return CompressionSettings(quality=quality, format=fmt)


def batch_delay_seconds() -> float:
    return max(0, int(os.getenv("EDITOR_BATCH_DELAY_MS", "150"))) / 1000.0


@dataclass
class EditorSession:
    """In-memory state of one editing session.

    Holds the collection, the compression settings shared by every export,
    resize drafts per image and the artifacts of the last batch run.
    """

    collection: ImageCollection = field(default_factory=ImageCollection)
    settings: CompressionSettings = field(default_factory=default_compression_settings)
    codec: CodecService = field(default_factory=CodecService)
    resize_drafts: dict[str, ResizeDraft] = field(default_factory=dict)
    batch_artifacts: dict[str, ExportArtifact] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.renderer = RenderService(codec=self.codec)
        self.compressor = TargetSizeCompressor(self.codec)

    def reset_settings(self) -> CompressionSettings:
        self.settings = default_compression_settings()
        return self.settings

    def resize_draft(self, image_id: str) -> ResizeDraft:
        """The draft for ``image_id``, started from its current size on first use."""
        draft = self.resize_drafts.get(image_id)
        if draft is None:
            image = self.collection.get(image_id)
            draft = ResizeDraft.begin(image.width, image.height)
            self.resize_drafts[image_id] = draft
        return draft

    def forget(self, image_id: str) -> None:
        self.resize_drafts.pop(image_id, None)
        self.batch_artifacts.pop(image_id, None)

    def clear(self) -> None:
        self.collection.clear()
        self.resize_drafts.clear()
        self.batch_artifacts.clear()
        logger.info("Session cleared")

    def store_artifact(self, artifact: ExportArtifact) -> None:
        if artifact.image_id is not None:
            self.batch_artifacts[artifact.image_id] = artifact
