"""Error taxonomy for the editor core.

Validation-style failures subclass ``ValueError`` so callers that already map
``ValueError`` to a client error keep working; codec failures subclass
``RuntimeError``. An unreachable size budget is not an error: it is reported
through ``QualitySearchResult.budget_met``.
"""
from __future__ import annotations


class EditorError(Exception):
    """Base class for every error raised by the editor core."""


class DecodeError(EditorError, ValueError):
    """The supplied bytes are corrupt or in an unsupported raster format."""


class UnsupportedMediaType(EditorError, ValueError):
    """The declared MIME type is not an image type; decode was not attempted."""


class InvalidDimension(EditorError, ValueError):
    """A requested output dimension is not a positive integer."""


class ImageNotFound(EditorError, ValueError):
    """No image with the given id is present in the collection."""


class EncodeError(EditorError, RuntimeError):
    """The codec failed to produce output bytes."""
