from __future__ import annotations

from fastapi import HTTPException, status

from src.domain.errors import EncodeError, ImageNotFound, UnsupportedMediaType


def to_http_error(exc: Exception) -> HTTPException:
    """Map an editor error (or a plain ``ValueError``) to its HTTP response."""
    if isinstance(exc, ImageNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, UnsupportedMediaType):
        return HTTPException(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=str(exc))
    if isinstance(exc, EncodeError):
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
