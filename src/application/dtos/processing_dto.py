from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from src.application.dtos.image_dto import EffectsDTO, ImageMetadata, TextOverlayDTO
from src.domain.entities.edit_settings import CompressionSettings


class CompressionSettingsDTO(BaseModel):
    """Encoder settings shared by every export of the session."""
    quality: int = Field(80, description="Encoder quality (ignored for png)", ge=1, le=100, examples=[80])
    format: str = Field("jpeg", description="Output format", pattern="^(jpeg|jpg|png|webp)$", examples=["jpeg"])
    target_size_kb: int | None = Field(
        None,
        description="Byte budget in KB; enables the target-size search for lossy formats",
        gt=0,
        examples=[500],
    )

    def to_settings(self) -> CompressionSettings:
        return CompressionSettings(quality=self.quality, format=self.format, target_size_kb=self.target_size_kb)

    @classmethod
    def from_settings(cls, settings: CompressionSettings) -> CompressionSettingsDTO:
        return cls(quality=settings.quality, format=settings.format, target_size_kb=settings.target_size_kb)


class CompressRequest(BaseModel):
    """Request model for compressing one image."""
    image_id: str = Field(..., description="ID of the image to compress", examples=["img_123456"])
    settings: CompressionSettingsDTO | None = Field(
        None, description="Overrides the session settings for this request only"
    )


class CompressResponse(BaseModel):
    """Result of a compression, including the encoded file as a data URL."""
    image_id: str = Field(..., description="ID of the compressed image")
    filename: str = Field(..., description="Suggested download name", examples=["photo_compressed.jpg"])
    mime_type: str = Field(..., description="MIME type of the output", examples=["image/jpeg"])
    width: int = Field(..., description="Output width in pixels", gt=0)
    height: int = Field(..., description="Output height in pixels", gt=0)
    original_size: int = Field(..., description="Original file size in bytes", ge=0)
    output_size: int = Field(..., description="Output size in bytes", ge=0)
    output_size_label: str = Field(..., description="Human readable output size", examples=["412.7 KB"])
    saved_percent: int = Field(..., description="Size saved relative to the original, in percent", examples=[95])
    quality_used: int | None = Field(None, description="Quality the encoder ran at; null for png", examples=[72])
    iterations: int = Field(0, description="Number of encodes the target-size search needed", ge=0)
    budget_met: bool = Field(True, description="False when the target size could not be reached")
    target_applied: bool = Field(False, description="Whether a target size drove the encoding")
    data_url: str = Field(..., description="The encoded file as a data URL")


class EstimateResponse(BaseModel):
    """Rough output size estimate shown before compressing."""
    image_id: str
    original_size: int = Field(..., ge=0)
    estimated_size: int = Field(..., description="Estimated output size in bytes", ge=0)
    estimated_size_label: str = Field(..., examples=["1.2 MB"])
    quality: int = Field(..., ge=1, le=100)
    format: str = Field(..., examples=["jpeg"])


class ResizeRequest(BaseModel):
    """Request model for resizing to an exact output size."""
    image_id: str = Field(..., description="ID of the image to resize", examples=["img_123456"])
    width: int = Field(..., description="Target width in pixels", gt=0, examples=[1080])
    height: int = Field(..., description="Target height in pixels", gt=0, examples=[1080])


class ResizeDraftRequest(BaseModel):
    """One edit of the resize tool's width/height fields."""
    image_id: str = Field(..., description="ID of the image being resized", examples=["img_123456"])
    width: int | None = Field(None, description="New width; recomputes height when locked", gt=0)
    height: int | None = Field(None, description="New height; recomputes width when locked", gt=0)
    lock_aspect_ratio: bool | None = Field(None, description="Turn the aspect-ratio lock on or off")
    preset: str | None = Field(None, description="Named preset; sets both sides and unlocks", examples=["Instagram Post"])
    restart: bool = Field(False, description="Start a fresh draft from the current image size")


class ResizeDraftResponse(BaseModel):
    width: int
    height: int
    lock_aspect_ratio: bool
    aspect_ratio: float
    preset: str | None = None


class ResizePresetDTO(BaseModel):
    name: str = Field(..., examples=["Instagram Post"])
    width: int = Field(..., gt=0, examples=[1080])
    height: int = Field(..., gt=0, examples=[1080])
    icon: str = Field("image", examples=["instagram"])


class ResizePresetsResponse(BaseModel):
    categories: dict[str, list[ResizePresetDTO]] = Field(..., description="Resize presets grouped by category")
    crop_ratios: list[str] = Field(..., description="Names of the crop ratio presets", examples=[["Free", "1:1"]])


class TransformRequest(BaseModel):
    """Rotate, flip or change the crop ratio of an image."""
    image_id: str = Field(..., description="ID of the image to transform", examples=["img_123456"])
    rotate: Literal["left", "right"] | None = Field(None, description="Rotate 90 degrees in this direction")
    flip_horizontal: bool = Field(False, description="Toggle the horizontal flip")
    flip_vertical: bool = Field(False, description="Toggle the vertical flip")
    crop_ratio: str | None = Field(None, description="Crop ratio preset name", examples=["16:9"])


class AdjustmentsRequest(BaseModel):
    """Change one or more adjustment values; omitted values are kept."""
    image_id: str = Field(..., description="ID of the image to adjust", examples=["img_123456"])
    brightness: float | None = Field(None, ge=0, le=200, examples=[120])
    contrast: float | None = Field(None, ge=0, le=200, examples=[110])
    saturation: float | None = Field(None, ge=0, le=200, examples=[100])
    hue: float | None = Field(None, ge=-180, le=180, examples=[30])
    blur: float | None = Field(None, ge=0, examples=[0])

    def changes(self) -> dict[str, float]:
        return self.model_dump(exclude={"image_id"}, exclude_none=True)


class AdjustmentPresetRequest(BaseModel):
    image_id: str = Field(..., description="ID of the image to adjust", examples=["img_123456"])
    preset_id: str = Field(..., description="Quick-enhance preset id", examples=["bw"])


class AdjustmentPresetDTO(BaseModel):
    id: str = Field(..., examples=["bw"])
    name: str = Field(..., examples=["B&W"])
    effects: EffectsDTO = Field(..., description="Adjustment values the preset sets")


class AdjustmentPresetsResponse(BaseModel):
    presets: list[AdjustmentPresetDTO]


class FilterPresetRequest(BaseModel):
    image_id: str = Field(..., description="ID of the image to filter", examples=["img_123456"])
    preset_id: str = Field(..., description="Filter preset id", examples=["vintage"])


class FilterPresetDTO(BaseModel):
    id: str = Field(..., examples=["noir"])
    name: str = Field(..., examples=["Noir"])
    filter: str = Field(..., description="Filter description the preset applies", examples=["grayscale(100%) contrast(120%)"])


class FilterPresetsResponse(BaseModel):
    presets: list[FilterPresetDTO]


class FontFamiliesResponse(BaseModel):
    families: list[str] = Field(..., description="Font families the text tool offers", examples=[["Inter", "Georgia"]])


class TextOverlayRequest(BaseModel):
    image_id: str = Field(..., description="ID of the image to annotate", examples=["img_123456"])
    text_overlay: TextOverlayDTO | None = Field(None, description="Overlay to draw; null removes it")


class EditedImageResponse(BaseModel):
    """Response for edits that change the pending state of an image."""
    image: ImageMetadata


class BatchCompressRequest(BaseModel):
    """Request model for compressing a selection of images."""
    image_ids: list[str] = Field(..., description="Selected image ids", min_length=1, examples=[["img_1", "img_2"]])
    settings: CompressionSettingsDTO | None = Field(None, description="Overrides the session settings")


class BatchItemDTO(BaseModel):
    image_id: str
    name: str
    filename: str = Field(..., examples=["photo_compressed.jpg"])
    original_size: int = Field(..., ge=0)
    output_size: int = Field(..., ge=0)
    saved_percent: int
    quality_used: int | None = None
    budget_met: bool = True
    download_url: str = Field(..., examples=["/exports/batch/img_1"])


class BatchFailureDTO(BaseModel):
    image_id: str
    name: str
    error: str


class BatchCompressResponse(BaseModel):
    """Per-image results of a batch run; failures never abort the batch."""
    total: int = Field(..., ge=0)
    processed: int = Field(..., ge=0)
    items: list[BatchItemDTO]
    failures: list[BatchFailureDTO] = Field(default_factory=list)


class ExportRequest(BaseModel):
    image_id: str = Field(..., description="ID of the image to export", examples=["img_123456"])
    settings: CompressionSettingsDTO | None = Field(None, description="Overrides the session settings")
