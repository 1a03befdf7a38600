from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from src.domain.entities.collection import ImageCollection
from src.domain.entities.image import ImageEntity
from src.domain.errors import EditorError, UnsupportedMediaType
from src.domain.services.codec_service import CodecService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IncomingFile:
    name: str
    mime_type: str
    data: bytes = field(repr=False)


@dataclass(frozen=True)
class IngestFailure:
    name: str
    error: str
    unsupported: bool = False  # rejected on MIME type, never decoded


@dataclass
class IngestResult:
    added: list[ImageEntity] = field(default_factory=list)
    failures: list[IngestFailure] = field(default_factory=list)


def new_image_id() -> str:
    return f"img_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


@dataclass
class IngestImagesUseCase:
    """
    Load user files into the collection.

    Each file is checked and decoded on its own: a non-image MIME type is
    rejected before decode, and a corrupt file is reported in the result
    without stopping the others. Only fully decoded files become images.
    """

    collection: ImageCollection
    codec: CodecService

    async def execute(self, files: list[IncomingFile]) -> IngestResult:
        result = IngestResult()
        entities: list[ImageEntity] = []
        for incoming in files:
            try:
                entities.append(await self._load(incoming))
            except EditorError as exc:
                logger.warning("Skipping %s: %s", incoming.name, exc)
                result.failures.append(
                    IngestFailure(
                        name=incoming.name,
                        error=str(exc),
                        unsupported=isinstance(exc, UnsupportedMediaType),
                    )
                )

        result.added = self.collection.add_images(entities)
        if result.added:
            logger.info("Ingested %s image(s), current is %s", len(result.added), self.collection.current_id)
        return result

    async def _load(self, incoming: IncomingFile) -> ImageEntity:
        mime = (incoming.mime_type or "").strip().lower()
        if not mime.startswith("image/"):
            raise UnsupportedMediaType(f"{incoming.name} is not an image ({incoming.mime_type or 'unknown type'})")

        decoded = await asyncio.to_thread(self.codec.decode, incoming.data)
        return ImageEntity(
            id=new_image_id(),
            name=incoming.name,
            mime_type=mime,
            original_bytes=incoming.data,
            original_width=decoded.width,
            original_height=decoded.height,
            created_at=datetime.now(timezone.utc),
            width=decoded.width,
            height=decoded.height,
            preview_bytes=incoming.data,
            byte_size=len(incoming.data),
        )
