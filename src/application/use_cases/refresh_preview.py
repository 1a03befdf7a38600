from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from src.domain.entities.collection import ImageCollection
from src.domain.services.render_service import RenderService

logger = logging.getLogger(__name__)


@dataclass
class RefreshPreviewUseCase:
    """
    Re-render the preview bytes of one image from its current edit state.

    A token is taken before rendering starts. If another refresh (or a reset)
    for the same image is issued while this one runs, this result is stale
    and is dropped, so the newest request always wins whatever the
    completion order.

    When rendering fails and no newer request has been issued, ``rollback``
    is written back so the edit that triggered the refresh is undone along
    with it. The error is re-raised.
    """

    collection: ImageCollection
    renderer: RenderService

    async def execute(self, image_id: str, rollback: dict[str, Any] | None = None) -> bool:
        image = self.collection.get(image_id)
        token = self.collection.issue_token(image_id)
        try:
            rendered = await asyncio.to_thread(self.renderer.preview, image)
        except Exception:
            if rollback and self.collection.commit_preview(image_id, token, **rollback):
                logger.warning("Preview for %s failed, edit rolled back", image_id)
            raise
        committed = self.collection.commit_preview(
            image_id,
            token,
            preview_bytes=rendered.data,
            preview_mime_type=rendered.mime_type,
        )
        if not committed:
            logger.debug("Preview for %s superseded", image_id)
        return committed
