from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from src.domain.entities.edit_settings import EffectStack, TextOverlaySpec, TransformState
from src.domain.entities.image import ImageEntity
from src.domain.services.naming_service import format_bytes


class EffectsDTO(BaseModel):
    """Fine-grained adjustment values; defaults are no-ops."""
    brightness: float = Field(100.0, description="Brightness in percent", ge=0, le=200, examples=[120])
    contrast: float = Field(100.0, description="Contrast in percent", ge=0, le=200, examples=[110])
    saturation: float = Field(100.0, description="Saturation in percent", ge=0, le=200, examples=[80])
    hue: float = Field(0.0, description="Hue rotation in degrees", ge=-180, le=180, examples=[30])
    blur: float = Field(0.0, description="Blur radius in pixels", ge=0, examples=[2])

    @classmethod
    def from_stack(cls, stack: EffectStack) -> EffectsDTO:
        return cls(
            brightness=stack.brightness,
            contrast=stack.contrast,
            saturation=stack.saturation,
            hue=stack.hue,
            blur=stack.blur,
        )


class TransformDTO(BaseModel):
    """Geometric state, expressed in the output (rotated) frame."""
    rotation: int = Field(0, description="Accumulated rotation in degrees, sign preserved", examples=[-90])
    flip_horizontal: bool = Field(False, description="Mirror left/right")
    flip_vertical: bool = Field(False, description="Mirror top/bottom")
    crop_ratio: float | None = Field(None, description="Width/height of the centred crop, null for free", examples=[1.0])
    resize_width: int | None = Field(None, description="Final output width in pixels", examples=[1080])
    resize_height: int | None = Field(None, description="Final output height in pixels", examples=[1080])

    @classmethod
    def from_state(cls, state: TransformState) -> TransformDTO:
        return cls(
            rotation=state.rotation,
            flip_horizontal=state.flip_horizontal,
            flip_vertical=state.flip_vertical,
            crop_ratio=state.crop_ratio,
            resize_width=state.resize_width,
            resize_height=state.resize_height,
        )


class TextOverlayDTO(BaseModel):
    """Styled text anchored at a position given in percent of the image size."""
    text: str = Field(..., description="Text to draw; blank text removes the overlay", examples=["© Jane Doe"])
    font_family: str = Field("Inter", description="Font family name", examples=["Georgia"])
    font_size_px: int = Field(48, description="Font size in pixels", gt=0, examples=[48])
    color: str = Field("#FFFFFF", description="CSS colour of the text", examples=["#FFFFFF"])
    bold: bool = Field(False, description="Bold face")
    italic: bool = Field(False, description="Italic face")
    align: str = Field("center", description="Horizontal alignment around the anchor", pattern="^(left|center|right)$")
    position_x_percent: float = Field(50.0, description="Anchor x in percent of the width", ge=0, le=100)
    position_y_percent: float = Field(50.0, description="Anchor y in percent of the height", ge=0, le=100)
    opacity_percent: float = Field(100.0, description="Opacity of text and shadow", ge=0, le=100)
    shadow: bool = Field(True, description="Draw a soft drop shadow behind the text")

    def to_spec(self) -> TextOverlaySpec:
        return TextOverlaySpec(**self.model_dump())

    @classmethod
    def from_spec(cls, spec: TextOverlaySpec) -> TextOverlayDTO:
        return cls(
            text=spec.text,
            font_family=spec.font_family,
            font_size_px=spec.font_size_px,
            color=spec.color,
            bold=spec.bold,
            italic=spec.italic,
            align=spec.align,
            position_x_percent=spec.position_x_percent,
            position_y_percent=spec.position_y_percent,
            opacity_percent=spec.opacity_percent,
            shadow=spec.shadow,
        )


class ImageMetadata(BaseModel):
    """Metadata and pending edit state of one image in the session."""
    id: str = Field(..., description="Unique identifier of the image", examples=["img_1718000000000_a1b2c3d4e"])
    name: str = Field(..., description="File name supplied at upload", examples=["photo.jpg"])
    mime_type: str = Field(..., description="MIME type of the original file", examples=["image/jpeg"])
    width: int = Field(..., description="Current output width in pixels", examples=[1920], gt=0)
    height: int = Field(..., description="Current output height in pixels", examples=[1080], gt=0)
    original_width: int = Field(..., description="Width of the original file", gt=0)
    original_height: int = Field(..., description="Height of the original file", gt=0)
    original_size: int = Field(..., description="Size of the original file in bytes", ge=0)
    byte_size: int = Field(..., description="Size of the most recent artifact in bytes", ge=0)
    byte_size_label: str = Field(..., description="Human readable byte_size", examples=["1.4 MB"])
    created_at: datetime = Field(..., description="When the image was loaded")
    is_current: bool = Field(..., description="Whether this is the selected image")
    preview_filter: str = Field("none", description="Filter description applied live over the preview", examples=["brightness(120%)"])
    filter_preset: str | None = Field(None, description="Active filter preset id", examples=["vintage"])
    effects: EffectsDTO
    transform: TransformDTO
    text_overlay: TextOverlayDTO | None = None
    preview_url: str = Field(..., description="Where to fetch the preview bytes", examples=["/images/img_123/preview"])

    @classmethod
    def from_entity(cls, entity: ImageEntity, current_id: str | None) -> ImageMetadata:
        return cls(
            id=entity.id,
            name=entity.name,
            mime_type=entity.mime_type,
            width=entity.width,
            height=entity.height,
            original_width=entity.original_width,
            original_height=entity.original_height,
            original_size=entity.original_size,
            byte_size=entity.byte_size,
            byte_size_label=format_bytes(entity.byte_size),
            created_at=entity.created_at,
            is_current=entity.id == current_id,
            preview_filter=entity.preview_filter,
            filter_preset=entity.filter_preset,
            effects=EffectsDTO.from_stack(entity.effects),
            transform=TransformDTO.from_state(entity.transform),
            text_overlay=TextOverlayDTO.from_spec(entity.text_overlay) if entity.text_overlay else None,
            preview_url=f"/images/{entity.id}/preview",
        )


class UploadFailure(BaseModel):
    name: str = Field(..., description="File name that could not be loaded", examples=["broken.jpg"])
    error: str = Field(..., description="Why the file was rejected")


class UploadImagesResponse(BaseModel):
    """Response model for a multi-file upload."""
    images: list[ImageMetadata] = Field(..., description="Images that were loaded, in upload order")
    failures: list[UploadFailure] = Field(default_factory=list, description="Files that were rejected")
    current_id: str | None = Field(None, description="Id of the selected image after the upload")


class ListImagesResponse(BaseModel):
    """Response model for listing the session's images in collection order."""
    images: list[ImageMetadata] = Field(..., description="Images in insertion order")
    total: int = Field(..., description="Number of images in the session", examples=[3], ge=0)
    current_id: str | None = Field(None, description="Id of the selected image")


class DeleteImageResponse(BaseModel):
    """Response model for image removal."""
    ok: bool = Field(True, description="Indicates whether the removal was successful")
    current_id: str | None = Field(None, description="Id of the selected image after removal")
