from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Iterable

from src.domain.entities.export_artifact import ExportArtifact

logger = logging.getLogger(__name__)

DEFAULT_DELIVERY_DELAY = 0.15


async def deliver_sequentially(
    artifacts: Iterable[ExportArtifact],
    sink: Callable[[ExportArtifact], Any],
    delay_seconds: float = DEFAULT_DELIVERY_DELAY,
) -> int:
    """Hand artifacts to ``sink`` one by one, waiting ``delay_seconds`` before each.

    This is a plain sequence of single-file deliveries, not an archive.
    ``sink`` may be a plain function or a coroutine function. Returns the
    number of artifacts delivered.
    """
    delivered = 0
    for artifact in artifacts:
        await asyncio.sleep(delay_seconds)
        outcome = sink(artifact)
        if inspect.isawaitable(outcome):
            await outcome
        delivered += 1
        logger.debug("Delivered %s", artifact.filename)
    return delivered
