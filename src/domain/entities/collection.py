from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Iterator

from src.domain.entities.image import ImageEntity
from src.domain.errors import ImageNotFound

logger = logging.getLogger(__name__)


class ImageCollection:
    """Ordered store of session images plus the single "current" selection.

    Images live in insertion order and the selection is held as an id, never as
    a second reference to an entity, so an update can't leave a stale copy
    behind. Invariant: when the collection is non-empty exactly one image is
    current.

    Preview results are committed with per-image sequence tokens: a caller
    takes a token before starting expensive work and commits with it once the
    work is done. Only the newest token for an image may commit, so a slow
    request that settles after a newer one is discarded.
    """

    def __init__(self) -> None:
        self._images: dict[str, ImageEntity] = {}
        self._current_id: str | None = None
        self._tokens: dict[str, int] = {}
        self._sequence = 0

    # --------- queries ---------
    def __len__(self) -> int:
        return len(self._images)

    def __iter__(self) -> Iterator[ImageEntity]:
        return iter(list(self._images.values()))

    def __contains__(self, image_id: object) -> bool:
        return image_id in self._images

    @property
    def ids(self) -> list[str]:
        return list(self._images)

    @property
    def current_id(self) -> str | None:
        return self._current_id

    @property
    def current(self) -> ImageEntity | None:
        if self._current_id is None:
            return None
        return self._images[self._current_id]

    def get(self, image_id: str) -> ImageEntity:
        image = self._images.get(image_id)
        if image is None:
            raise ImageNotFound(f"Image not found: {image_id}")
        return image

    def in_order(self, image_ids: Iterable[str]) -> list[ImageEntity]:
        """Images among ``image_ids`` in collection order; unknown ids are skipped."""
        wanted = set(image_ids)
        return [img for img_id, img in self._images.items() if img_id in wanted]

    # --------- mutations ---------
    def add_images(self, images: Iterable[ImageEntity]) -> list[ImageEntity]:
        added: list[ImageEntity] = []
        for image in images:
            if image.id in self._images:
                raise ValueError(f"Duplicate image id: {image.id}")
            self._images[image.id] = image
            added.append(image)
        if self._current_id is None and added:
            self._current_id = added[0].id
        return added

    def remove_image(self, image_id: str) -> ImageEntity:
        image = self.get(image_id)
        del self._images[image_id]
        self._tokens.pop(image_id, None)
        if self._current_id == image_id:
            self._current_id = next(iter(self._images), None)
            logger.debug("Removed current image %s, promoted %s", image_id, self._current_id)
        return image

    def select_image(self, image_id: str) -> ImageEntity:
        image = self.get(image_id)
        self._current_id = image_id
        return image

    def update_image(self, image_id: str, **changes) -> ImageEntity:
        """Replace ``image_id`` with a copy carrying ``changes``.

        Only the targeted entry is touched; the selection is left alone.
        """
        image = self.get(image_id)
        updated = replace(image, **changes)
        self._images[image_id] = updated
        return updated

    def clear(self) -> None:
        self._images.clear()
        self._tokens.clear()
        self._current_id = None

    # --------- last-write-wins preview commits ---------
    def issue_token(self, image_id: str) -> int:
        self.get(image_id)
        self._sequence += 1
        self._tokens[image_id] = self._sequence
        return self._sequence

    def is_latest(self, image_id: str, token: int) -> bool:
        return self._tokens.get(image_id) == token

    def commit_preview(self, image_id: str, token: int, **changes) -> bool:
        """Apply ``changes`` if ``token`` is still the newest for ``image_id``.

        Returns ``False`` when the request was superseded or the image is gone.
        """
        if image_id not in self._images or not self.is_latest(image_id, token):
            logger.debug("Discarding stale preview for %s (token %s)", image_id, token)
            return False
        self.update_image(image_id, **changes)
        return True
