from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable

from src.application.use_cases.export_image import ExportImageUseCase, ExportOutcome
from src.domain.entities.collection import ImageCollection
from src.domain.entities.edit_settings import CompressionSettings
from src.domain.errors import EditorError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class BatchItemResult:
    image_id: str
    name: str
    outcome: ExportOutcome

    @property
    def original_size(self) -> int:
        return self.outcome.original_size

    @property
    def output_size(self) -> int:
        return self.outcome.artifact.size

    @property
    def saved_percent(self) -> int:
        return self.outcome.saved_percent


@dataclass(frozen=True)
class BatchItemFailure:
    image_id: str
    name: str
    error: str


@dataclass
class BatchCompressResult:
    total: int
    processed: int = 0
    items: list[BatchItemResult] = field(default_factory=list)
    failures: list[BatchItemFailure] = field(default_factory=list)


@dataclass
class BatchCompressImagesUseCase:
    """
    Compress a selected subset of the collection, one image at a time.

    Images are handled strictly in collection order and never in parallel,
    so only one decoded buffer is alive at once. A failing image is recorded
    and skipped; the batch itself does not raise for it. ``on_progress`` is
    called with ``(processed, total)`` after every image, failed or not.
    """

    collection: ImageCollection
    exporter: ExportImageUseCase

    async def execute(
        self,
        image_ids: Iterable[str],
        settings: CompressionSettings,
        on_progress: ProgressCallback | None = None,
    ) -> BatchCompressResult:
        selected = self.collection.in_order(image_ids)
        result = BatchCompressResult(total=len(selected))

        for image in selected:
            try:
                outcome = await self.exporter.execute(image.id, "compressed", settings)
            except EditorError as exc:
                logger.warning("Batch item %s (%s) failed: %s", image.id, image.name, exc)
                result.failures.append(BatchItemFailure(image.id, image.name, str(exc)))
            except Exception as exc:
                logger.exception("Batch item %s (%s) failed unexpectedly", image.id, image.name)
                result.failures.append(BatchItemFailure(image.id, image.name, str(exc) or type(exc).__name__))
            else:
                result.items.append(BatchItemResult(image.id, image.name, outcome))
            result.processed += 1
            if on_progress is not None:
                on_progress(result.processed, result.total)

        logger.info(
            "Batch compressed %s/%s image(s), %s failed",
            len(result.items),
            result.total,
            len(result.failures),
        )
        return result
