from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from src.application.dtos.image_dto import EffectsDTO, ImageMetadata
from src.application.dtos.processing_dto import (
    AdjustmentPresetDTO,
    AdjustmentPresetRequest,
    AdjustmentPresetsResponse,
    AdjustmentsRequest,
    BatchCompressRequest,
    BatchCompressResponse,
    BatchFailureDTO,
    BatchItemDTO,
    CompressionSettingsDTO,
    CompressRequest,
    CompressResponse,
    EditedImageResponse,
    EstimateResponse,
    FilterPresetDTO,
    FilterPresetRequest,
    FilterPresetsResponse,
    FontFamiliesResponse,
    ResizeDraftRequest,
    ResizeDraftResponse,
    ResizePresetDTO,
    ResizePresetsResponse,
    ResizeRequest,
    TextOverlayRequest,
    TransformRequest,
)
from src.application.use_cases.adjust_image import AdjustImageUseCase
from src.application.use_cases.batch_compress_images import BatchCompressImagesUseCase
from src.application.use_cases.deliver_exports import deliver_sequentially
from src.application.use_cases.export_image import ExportImageUseCase
from src.application.use_cases.reset_image import ResetImageUseCase
from src.application.use_cases.text_overlay import TextOverlayUseCase
from src.application.use_cases.transform_image import TransformImageUseCase
from src.domain.entities.edit_settings import CompressionSettings
from src.domain.errors import EditorError
from src.domain.services.geometry_service import (
    CROP_RATIOS,
    RESIZE_PRESETS,
    ResizeDraft,
    crop_ratio_for,
    find_resize_preset,
)
from src.domain.services.naming_service import estimate_compressed_size, format_bytes
from src.domain.services.processing_service import ADJUSTMENT_PRESETS, FILTER_PRESETS
from src.domain.services.text_service import FONT_FAMILIES
from src.infrastructure.api.dependencies import (
    get_adjust_use_case,
    get_batch_use_case,
    get_export_use_case,
    get_reset_use_case,
    get_session,
    get_text_use_case,
    get_transform_use_case,
)
from src.infrastructure.api.errors import to_http_error
from src.infrastructure.session.editor_session import EditorSession, batch_delay_seconds

router = APIRouter(
    prefix="/processing",
    tags=["Image Processing"],
    responses={
        400: {"description": "Bad Request - Invalid operation or parameters"},
        404: {"description": "Not Found - Image is not part of the session"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)


def _settings_for(session: EditorSession, override: CompressionSettingsDTO | None) -> CompressionSettings:
    return override.to_settings() if override is not None else session.settings


def _edited(session: EditorSession, image_id: str) -> EditedImageResponse:
    image = session.collection.get(image_id)
    return EditedImageResponse(image=ImageMetadata.from_entity(image, session.collection.current_id))


# --------- compression settings ---------
@router.get(
    "/settings",
    response_model=CompressionSettingsDTO,
    summary="Get Compression Settings",
    description="Quality, format and optional target size shared by every export.",
)
async def get_settings(session: EditorSession = Depends(get_session)):
    return CompressionSettingsDTO.from_settings(session.settings)


@router.put(
    "/settings",
    response_model=CompressionSettingsDTO,
    summary="Update Compression Settings",
)
async def put_settings(body: CompressionSettingsDTO, session: EditorSession = Depends(get_session)):
    try:
        session.settings = body.to_settings()
    except ValueError as exc:
        raise to_http_error(exc) from exc
    return CompressionSettingsDTO.from_settings(session.settings)


@router.post(
    "/settings/reset",
    response_model=CompressionSettingsDTO,
    summary="Reset Compression Settings",
    description="Back to quality 80, jpeg, no target size (or the EDITOR_DEFAULT_* values).",
)
async def reset_settings(session: EditorSession = Depends(get_session)):
    return CompressionSettingsDTO.from_settings(session.reset_settings())


# --------- compression ---------
@router.post(
    "/compress",
    response_model=CompressResponse,
    summary="Compress Image",
    description="""
    Re-encode an image (original pixels plus current geometry) with the
    session's compression settings, or the `settings` given in the request.

    **Target size**: with `target_size_kb` set and a lossy format, the encoder
    quality is found by a bounded binary search (at most 10 encodes). When no
    quality fits, the smallest encode is returned with `budget_met=false`.
    PNG has no quality axis: exactly one encode is made and
    `target_applied=false`.
    """,
    response_description="Compression statistics and the encoded file as a data URL",
)
async def compress_image(
    body: CompressRequest,
    session: EditorSession = Depends(get_session),
    uc: ExportImageUseCase = Depends(get_export_use_case),
):
    try:
        outcome = await uc.execute(body.image_id, "compressed", _settings_for(session, body.settings))
    except (EditorError, ValueError) as exc:
        raise to_http_error(exc) from exc
    artifact = outcome.artifact
    return CompressResponse(
        image_id=body.image_id,
        filename=artifact.filename,
        mime_type=artifact.mime_type,
        width=artifact.width,
        height=artifact.height,
        original_size=outcome.original_size,
        output_size=artifact.size,
        output_size_label=format_bytes(artifact.size),
        saved_percent=outcome.saved_percent,
        quality_used=outcome.quality_used,
        iterations=outcome.iterations,
        budget_met=outcome.budget_met,
        target_applied=outcome.target_applied,
        data_url=artifact.data_url,
    )


@router.get(
    "/estimate",
    response_model=EstimateResponse,
    summary="Estimate Compressed Size",
    description="A rough guess of the output size from the original size, quality and format.",
)
async def estimate_size(
    image_id: str = Query(..., description="ID of the image"),
    quality: int | None = Query(None, ge=1, le=100, description="Defaults to the session quality"),
    format: str | None = Query(None, description="Defaults to the session format"),
    session: EditorSession = Depends(get_session),
):
    try:
        image = session.collection.get(image_id)
    except EditorError as exc:
        raise to_http_error(exc) from exc
    q = quality if quality is not None else session.settings.quality
    fmt = format or session.settings.format
    estimated = estimate_compressed_size(image.original_size, q, fmt)
    return EstimateResponse(
        image_id=image_id,
        original_size=image.original_size,
        estimated_size=estimated,
        estimated_size_label=format_bytes(estimated),
        quality=q,
        format=fmt,
    )


# --------- geometry ---------
@router.get(
    "/resize/presets",
    response_model=ResizePresetsResponse,
    summary="List Resize Presets",
)
async def list_resize_presets():
    return ResizePresetsResponse(
        categories={
            category: [ResizePresetDTO(name=p.name, width=p.width, height=p.height, icon=p.icon) for p in presets]
            for category, presets in RESIZE_PRESETS.items()
        },
        crop_ratios=list(CROP_RATIOS),
    )


@router.post(
    "/resize/draft",
    response_model=ResizeDraftResponse,
    summary="Edit Resize Draft",
    description="""
    Edit the width/height fields of the resize tool without touching pixels.

    With the aspect-ratio lock on, changing one side recomputes the other from
    the ratio captured when the draft started (half-up rounding), so repeated
    edits never drift. A preset sets both sides exactly and turns the lock off.
    """,
)
async def edit_resize_draft(body: ResizeDraftRequest, session: EditorSession = Depends(get_session)):
    try:
        if body.restart:
            session.resize_drafts.pop(body.image_id, None)
        draft: ResizeDraft = session.resize_draft(body.image_id)
        if body.lock_aspect_ratio is not None:
            draft.set_lock(body.lock_aspect_ratio)
        if body.preset is not None:
            draft.apply_preset(find_resize_preset(body.preset))
        if body.width is not None:
            draft.set_width(body.width)
        elif body.height is not None:
            draft.set_height(body.height)
    except (EditorError, ValueError) as exc:
        raise to_http_error(exc) from exc
    return ResizeDraftResponse(
        width=draft.width,
        height=draft.height,
        lock_aspect_ratio=draft.lock_aspect_ratio,
        aspect_ratio=draft.aspect_ratio,
        preset=draft.preset,
    )


@router.post(
    "/resize",
    response_model=EditedImageResponse,
    summary="Resize Image",
    description="Set the exact output size (Lanczos resampling). Both sides must be positive.",
)
async def resize_image(
    body: ResizeRequest,
    session: EditorSession = Depends(get_session),
    uc: TransformImageUseCase = Depends(get_transform_use_case),
):
    try:
        await uc.resize(body.image_id, body.width, body.height)
    except (EditorError, ValueError) as exc:
        raise to_http_error(exc) from exc
    session.resize_drafts.pop(body.image_id, None)
    return _edited(session, body.image_id)


@router.post(
    "/transform",
    response_model=EditedImageResponse,
    summary="Rotate / Flip / Crop Ratio",
    description="""
    Apply, in this order, any of:
    - `rotate`: 90 degrees `left` or `right` (width and height swap)
    - `flip_horizontal` / `flip_vertical`: toggle a mirror in the rotated frame
    - `crop_ratio`: centre-crop to a named ratio (`Free` removes the crop)
    """,
)
async def transform_image(
    body: TransformRequest,
    session: EditorSession = Depends(get_session),
    uc: TransformImageUseCase = Depends(get_transform_use_case),
):
    try:
        if body.crop_ratio is not None:
            crop_ratio_for(body.crop_ratio)
        if body.rotate is not None:
            await uc.rotate(body.image_id, body.rotate)
        if body.flip_horizontal or body.flip_vertical:
            await uc.flip(body.image_id, body.flip_horizontal, body.flip_vertical)
        if body.crop_ratio is not None:
            await uc.set_crop_ratio(body.image_id, body.crop_ratio)
    except (EditorError, ValueError) as exc:
        raise to_http_error(exc) from exc
    session.resize_drafts.pop(body.image_id, None)
    return _edited(session, body.image_id)


# --------- adjustments & filters ---------
@router.post(
    "/adjustments",
    response_model=EditedImageResponse,
    summary="Update Adjustments",
    description="""
    Change brightness, contrast, saturation (0-200), hue (-180..180) or blur (>= 0).

    Only the preview description changes; pixels are baked on export.
    Editing an adjustment clears the active filter preset.
    """,
)
async def update_adjustments(
    body: AdjustmentsRequest,
    session: EditorSession = Depends(get_session),
    uc: AdjustImageUseCase = Depends(get_adjust_use_case),
):
    try:
        uc.update_adjustments(body.image_id, **body.changes())
    except (EditorError, ValueError) as exc:
        raise to_http_error(exc) from exc
    return _edited(session, body.image_id)


@router.get(
    "/adjustments/presets",
    response_model=AdjustmentPresetsResponse,
    summary="List Adjustment Presets",
)
async def list_adjustment_presets():
    return AdjustmentPresetsResponse(
        presets=[
            AdjustmentPresetDTO(id=p.id, name=p.name, effects=EffectsDTO.from_stack(p.stack))
            for p in ADJUSTMENT_PRESETS.values()
        ]
    )


@router.post(
    "/adjustments/presets",
    response_model=EditedImageResponse,
    summary="Apply Adjustment Preset",
    description="""
    Quick enhance: reset every adjustment to its default, then set the values
    of the named preset (`brighten`, `vivid`, `bw`, `fade`). Any active filter
    preset is removed.
    """,
)
async def apply_adjustment_preset(
    body: AdjustmentPresetRequest,
    session: EditorSession = Depends(get_session),
    uc: AdjustImageUseCase = Depends(get_adjust_use_case),
):
    try:
        uc.apply_adjustment_preset(body.image_id, body.preset_id)
    except (EditorError, ValueError) as exc:
        raise to_http_error(exc) from exc
    return _edited(session, body.image_id)


@router.get(
    "/filters",
    response_model=FilterPresetsResponse,
    summary="List Filter Presets",
)
async def list_filters():
    return FilterPresetsResponse(
        presets=[FilterPresetDTO(id=p.id, name=p.name, filter=p.filter) for p in FILTER_PRESETS.values()]
    )


@router.post(
    "/filters",
    response_model=EditedImageResponse,
    summary="Apply Filter Preset",
    description="Replace the whole adjustment stack with a named preset (`none` removes it).",
)
async def apply_filter(
    body: FilterPresetRequest,
    session: EditorSession = Depends(get_session),
    uc: AdjustImageUseCase = Depends(get_adjust_use_case),
):
    try:
        uc.apply_filter_preset(body.image_id, body.preset_id)
    except (EditorError, ValueError) as exc:
        raise to_http_error(exc) from exc
    return _edited(session, body.image_id)


# --------- text ---------
@router.get(
    "/text/fonts",
    response_model=FontFamiliesResponse,
    summary="List Font Families",
    description="Families resolve to an installed TrueType font, or Pillow's default font when none is found.",
)
async def list_font_families():
    return FontFamiliesResponse(families=list(FONT_FAMILIES))


@router.post(
    "/text",
    response_model=EditedImageResponse,
    summary="Set Text Overlay",
    description="""
    Draw styled text over the image. The position is given in percent of the
    current size, so it follows later resizes and rotations. Blank text or a
    null overlay removes it.
    """,
)
async def set_text_overlay(
    body: TextOverlayRequest,
    session: EditorSession = Depends(get_session),
    uc: TextOverlayUseCase = Depends(get_text_use_case),
):
    try:
        spec = body.text_overlay.to_spec() if body.text_overlay is not None else None
        await uc.execute(body.image_id, spec)
    except (EditorError, ValueError) as exc:
        raise to_http_error(exc) from exc
    return _edited(session, body.image_id)


# --------- reset ---------
@router.post(
    "/{image_id}/reset",
    response_model=EditedImageResponse,
    summary="Reset Image",
    description="Drop every pending edit; the preview becomes the original file again, byte for byte.",
)
async def reset_image(
    image_id: str,
    session: EditorSession = Depends(get_session),
    uc: ResetImageUseCase = Depends(get_reset_use_case),
):
    try:
        uc.execute(image_id)
    except EditorError as exc:
        raise to_http_error(exc) from exc
    session.resize_drafts.pop(image_id, None)
    return _edited(session, image_id)


# --------- bulk ---------
@router.post(
    "/batch/compress",
    response_model=BatchCompressResponse,
    summary="Batch Compress",
    description="""
    Compress the selected images one after another, in collection order.

    A failing image is listed in `failures` and the batch carries on. Each
    result can be downloaded from its `download_url`; results are handed over
    one by one with a short pause between them (`EDITOR_BATCH_DELAY_MS`).
    """,
)
async def batch_compress(
    body: BatchCompressRequest,
    session: EditorSession = Depends(get_session),
    uc: BatchCompressImagesUseCase = Depends(get_batch_use_case),
):
    try:
        settings = _settings_for(session, body.settings)
    except ValueError as exc:
        raise to_http_error(exc) from exc
    session.batch_artifacts.clear()
    result = await uc.execute(body.image_ids, settings)
    await deliver_sequentially(
        [item.outcome.artifact for item in result.items],
        session.store_artifact,
        batch_delay_seconds(),
    )
    return BatchCompressResponse(
        total=result.total,
        processed=result.processed,
        items=[
            BatchItemDTO(
                image_id=item.image_id,
                name=item.name,
                filename=item.outcome.artifact.filename,
                original_size=item.original_size,
                output_size=item.output_size,
                saved_percent=item.saved_percent,
                quality_used=item.outcome.quality_used,
                budget_met=item.outcome.budget_met,
                download_url=f"/exports/batch/{item.image_id}",
            )
            for item in result.items
        ],
        failures=[BatchFailureDTO(image_id=f.image_id, name=f.name, error=f.error) for f in result.failures],
    )
