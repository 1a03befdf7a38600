from __future__ import annotations

from fastapi import Depends, Request

from src.application.use_cases.adjust_image import AdjustImageUseCase
from src.application.use_cases.batch_compress_images import BatchCompressImagesUseCase
from src.application.use_cases.export_image import ExportImageUseCase
from src.application.use_cases.ingest_images import IngestImagesUseCase
from src.application.use_cases.refresh_preview import RefreshPreviewUseCase
from src.application.use_cases.reset_image import ResetImageUseCase
from src.application.use_cases.text_overlay import TextOverlayUseCase
from src.application.use_cases.transform_image import TransformImageUseCase
from src.infrastructure.session.editor_session import EditorSession


def get_session(request: Request) -> EditorSession:
    return request.app.state.session


def get_ingest_use_case(session: EditorSession = Depends(get_session)) -> IngestImagesUseCase:
    return IngestImagesUseCase(collection=session.collection, codec=session.codec)


def get_refresh_use_case(session: EditorSession = Depends(get_session)) -> RefreshPreviewUseCase:
    return RefreshPreviewUseCase(collection=session.collection, renderer=session.renderer)


def get_transform_use_case(
    session: EditorSession = Depends(get_session),
    refresh: RefreshPreviewUseCase = Depends(get_refresh_use_case),
) -> TransformImageUseCase:
    return TransformImageUseCase(collection=session.collection, refresh=refresh)


def get_text_use_case(
    session: EditorSession = Depends(get_session),
    refresh: RefreshPreviewUseCase = Depends(get_refresh_use_case),
) -> TextOverlayUseCase:
    return TextOverlayUseCase(collection=session.collection, refresh=refresh)


def get_adjust_use_case(session: EditorSession = Depends(get_session)) -> AdjustImageUseCase:
    return AdjustImageUseCase(collection=session.collection)


def get_reset_use_case(session: EditorSession = Depends(get_session)) -> ResetImageUseCase:
    return ResetImageUseCase(collection=session.collection)


def get_export_use_case(session: EditorSession = Depends(get_session)) -> ExportImageUseCase:
    return ExportImageUseCase(
        collection=session.collection, renderer=session.renderer, compressor=session.compressor
    )


def get_batch_use_case(
    session: EditorSession = Depends(get_session),
    exporter: ExportImageUseCase = Depends(get_export_use_case),
) -> BatchCompressImagesUseCase:
    return BatchCompressImagesUseCase(collection=session.collection, exporter=exporter)
