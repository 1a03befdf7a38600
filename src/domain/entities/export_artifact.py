from __future__ import annotations

import base64
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ExportArtifact:
    """A finished download: encoded bytes plus the suggested file name."""

    data: bytes = field(repr=False)
    filename: str
    mime_type: str
    width: int
    height: int
    image_id: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{base64.b64encode(self.data).decode('ascii')}"
