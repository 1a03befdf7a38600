from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from src.domain.entities.edit_settings import EffectStack, TextOverlaySpec, TransformState


@dataclass(frozen=True)
class ImageEntity:
    id: str
    name: str  # file name as supplied at ingestion, e.g. "photo.jpg"
    mime_type: str
    original_bytes: bytes = field(repr=False)
    original_width: int
    original_height: int
    created_at: datetime
    # Current geometric output size
    width: int
    height: int
    # What the user currently sees: encoded bytes plus a live filter description
    preview_bytes: bytes = field(repr=False)
    preview_filter: str = "none"
    preview_mime_type: str | None = None  # None while the preview is the original file
    # Pending non-destructive edits, always re-applied on top of original_bytes
    effects: EffectStack = field(default_factory=EffectStack)
    filter_preset: str | None = None
    transform: TransformState = field(default_factory=TransformState)
    text_overlay: TextOverlaySpec | None = None
    # Size of the most recently produced artifact (original or last export)
    byte_size: int = 0

    @property
    def original_size(self) -> int:
        return len(self.original_bytes)

    @property
    def preview_content_type(self) -> str:
        return self.preview_mime_type or self.mime_type

    @property
    def has_pending_edits(self) -> bool:
        return (
            not self.effects.is_default
            or self.filter_preset is not None
            or not self.transform.is_identity
            or self.text_overlay is not None
        )
