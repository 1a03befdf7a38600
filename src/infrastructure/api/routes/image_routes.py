from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import Response

from src.application.dtos.image_dto import (
    DeleteImageResponse,
    ImageMetadata,
    ListImagesResponse,
    UploadFailure,
    UploadImagesResponse,
)
from src.application.use_cases.ingest_images import IncomingFile, IngestImagesUseCase
from src.domain.errors import EditorError
from src.infrastructure.api.dependencies import get_ingest_use_case, get_session
from src.infrastructure.api.errors import to_http_error
from src.infrastructure.session.editor_session import EditorSession

router = APIRouter(
    prefix="/images",
    tags=["Image Management"],
    responses={
        404: {"description": "Not Found - Image is not part of the session"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)


@router.post(
    "/upload",
    response_model=UploadImagesResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload Images",
    description="""
    Load one or more image files into the editing session.

    **Supported formats**: JPEG, PNG, WEBP (anything Pillow can decode)

    Each file is handled on its own:
    - Files whose MIME type is not `image/*` are rejected before decoding
    - Corrupt files are reported in `failures` and do not stop the others
    - The first loaded image becomes current when the session was empty
    """,
    response_description="Metadata of the loaded images plus the rejected files",
    responses={
        400: {"description": "Bad Request - None of the files could be loaded"},
        415: {"description": "Unsupported Media Type - None of the files is an image"},
    },
)
async def upload_images(
    files: list[UploadFile] = File(..., description="Image files to load"),
    session: EditorSession = Depends(get_session),
    uc: IngestImagesUseCase = Depends(get_ingest_use_case),
):
    """Decode uploaded files and add them to the collection."""
    incoming = [
        IncomingFile(
            name=file.filename or "image",
            mime_type=file.content_type or "",
            data=await file.read(),
        )
        for file in files
    ]
    result = await uc.execute(incoming)
    if not result.added:
        code = 400
        if result.failures and all(f.unsupported for f in result.failures):
            code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
        detail = "; ".join(f"{f.name}: {f.error}" for f in result.failures) or "No files received"
        raise HTTPException(status_code=code, detail=f"No image could be loaded ({detail})")

    current_id = session.collection.current_id
    return UploadImagesResponse(
        images=[ImageMetadata.from_entity(img, current_id) for img in result.added],
        failures=[UploadFailure(name=f.name, error=f.error) for f in result.failures],
        current_id=current_id,
    )


@router.get(
    "",
    response_model=ListImagesResponse,
    summary="List Images",
    description="All images of the session, in the order they were loaded.",
)
async def list_images(session: EditorSession = Depends(get_session)):
    collection = session.collection
    return ListImagesResponse(
        images=[ImageMetadata.from_entity(img, collection.current_id) for img in collection],
        total=len(collection),
        current_id=collection.current_id,
    )


@router.delete(
    "",
    response_model=DeleteImageResponse,
    summary="Clear Session",
    description="Remove every image and forget all drafts and batch results.",
)
async def clear_images(session: EditorSession = Depends(get_session)):
    session.clear()
    return DeleteImageResponse(ok=True, current_id=None)


@router.get(
    "/{image_id}",
    response_model=ImageMetadata,
    summary="Get Image Metadata",
    description="Dimensions, sizes and pending edit state of one image.",
)
async def get_image(image_id: str, session: EditorSession = Depends(get_session)):
    try:
        image = session.collection.get(image_id)
    except EditorError as exc:
        raise to_http_error(exc) from exc
    return ImageMetadata.from_entity(image, session.collection.current_id)


@router.get(
    "/{image_id}/preview",
    summary="Get Preview Bytes",
    description="""
    The encoded preview of an image: its original file, or a render of the
    current geometry and text overlay. Adjustments and filter presets are not
    baked in; apply the `X-Preview-Filter` description on top when displaying.
    """,
    response_class=Response,
    responses={200: {"content": {"image/png": {}, "image/jpeg": {}, "image/webp": {}}}},
)
async def get_preview(image_id: str, session: EditorSession = Depends(get_session)):
    try:
        image = session.collection.get(image_id)
    except EditorError as exc:
        raise to_http_error(exc) from exc
    return Response(
        content=image.preview_bytes,
        media_type=image.preview_content_type,
        headers={"X-Preview-Filter": image.preview_filter},
    )


@router.post(
    "/{image_id}/select",
    response_model=ImageMetadata,
    summary="Select Image",
    description="Make an image the current one.",
)
async def select_image(image_id: str, session: EditorSession = Depends(get_session)):
    try:
        image = session.collection.select_image(image_id)
    except EditorError as exc:
        raise to_http_error(exc) from exc
    return ImageMetadata.from_entity(image, session.collection.current_id)


@router.delete(
    "/{image_id}",
    response_model=DeleteImageResponse,
    summary="Remove Image",
    description="Remove an image. Removing the current image selects the first remaining one.",
)
async def delete_image(image_id: str, session: EditorSession = Depends(get_session)):
    try:
        session.collection.remove_image(image_id)
    except EditorError as exc:
        raise to_http_error(exc) from exc
    session.forget(image_id)
    return DeleteImageResponse(ok=True, current_id=session.collection.current_id)
