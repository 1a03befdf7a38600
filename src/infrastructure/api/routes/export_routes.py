from __future__ import annotations

from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from src.application.dtos.processing_dto import ExportRequest
from src.application.use_cases.export_image import ExportImageUseCase
from src.domain.entities.export_artifact import ExportArtifact
from src.domain.errors import EditorError
from src.domain.services.naming_service import EXPORT_SUFFIXES
from src.infrastructure.api.dependencies import get_export_use_case, get_session
from src.infrastructure.api.errors import to_http_error
from src.infrastructure.session.editor_session import EditorSession

router = APIRouter(
    prefix="/exports",
    tags=["Export"],
    responses={
        400: {"description": "Bad Request - Unknown export kind or invalid settings"},
        404: {"description": "Not Found - Image is not part of the session"},
        500: {"description": "Encoding failed; no file is produced"},
    },
)


def _download(artifact: ExportArtifact, headers: dict[str, str] | None = None) -> Response:
    return Response(
        content=artifact.data,
        media_type=artifact.mime_type,
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(artifact.filename)}",
            **(headers or {}),
        },
    )


@router.post(
    "/{kind}",
    summary="Export Image",
    description=f"""
    Render and encode one image as a downloadable file.

    **Kinds**: {", ".join(f"`{k}`" for k in EXPORT_SUFFIXES)}

    All kinds start from the original file plus the current geometry.
    `adjusted` and `filtered` bake the active filter description,
    `watermarked` draws the text overlay. The file name is
    `{{name}}_{{kind}}.{{ext}}`.
    """,
    response_class=Response,
    response_description="The encoded file",
)
async def export_image(
    kind: str,
    body: ExportRequest,
    session: EditorSession = Depends(get_session),
    uc: ExportImageUseCase = Depends(get_export_use_case),
):
    try:
        settings = body.settings.to_settings() if body.settings is not None else session.settings
        outcome = await uc.execute(body.image_id, kind, settings)
    except (EditorError, ValueError) as exc:
        raise to_http_error(exc) from exc
    headers = {
        "X-Budget-Met": str(outcome.budget_met).lower(),
        "X-Target-Applied": str(outcome.target_applied).lower(),
    }
    if outcome.quality_used is not None:
        headers["X-Quality-Used"] = str(outcome.quality_used)
    return _download(outcome.artifact, headers)


@router.get(
    "/batch/{image_id}",
    summary="Download Batch Result",
    description="Fetch one file produced by the last batch compression.",
    response_class=Response,
)
async def download_batch_result(image_id: str, session: EditorSession = Depends(get_session)):
    artifact = session.batch_artifacts.get(image_id)
    if artifact is None:
        raise HTTPException(status_code=404, detail="No batch result for this image")
    return _download(artifact)
