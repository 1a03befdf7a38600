from __future__ import annotations

import asyncio
import time

import numpy as np
import pytest

from src.application.use_cases.adjust_image import AdjustImageUseCase
from src.application.use_cases.export_image import ExportImageUseCase
from src.application.use_cases.ingest_images import IncomingFile, IngestImagesUseCase
from src.application.use_cases.refresh_preview import RefreshPreviewUseCase
from src.application.use_cases.reset_image import ResetImageUseCase
from src.application.use_cases.text_overlay import TextOverlayUseCase
from src.application.use_cases.transform_image import TransformImageUseCase
from src.domain.entities.collection import ImageCollection
from src.domain.entities.edit_settings import CompressionSettings, TextOverlaySpec
from src.domain.errors import EncodeError, ImageNotFound, InvalidDimension
from src.domain.services.codec_service import CodecService
from src.domain.services.compression_service import TargetSizeCompressor
from src.domain.services.render_service import RenderedPreview, RenderService


class Editor:
    """Wires the use cases around one collection, the way the API does."""

    def __init__(self):
        self.codec = CodecService()
        self.collection = ImageCollection()
        self.renderer = RenderService(codec=self.codec)
        self.refresh = RefreshPreviewUseCase(self.collection, self.renderer)
        self.ingest = IngestImagesUseCase(self.collection, self.codec)
        self.transform = TransformImageUseCase(self.collection, self.refresh)
        self.adjust = AdjustImageUseCase(self.collection)
        self.text = TextOverlayUseCase(self.collection, self.refresh)
        self.reset = ResetImageUseCase(self.collection)
        self.export = ExportImageUseCase(self.collection, self.renderer, TargetSizeCompressor(self.codec))

    def load(self, name: str, data: bytes, mime: str = "image/png") -> str:
        result = asyncio.run(self.ingest.execute([IncomingFile(name, mime, data)]))
        return result.added[0].id


@pytest.fixture()
def editor():
    return Editor()


def test_ingest_isolates_bad_files(editor, make_png):
    png = make_png(w=6, h=4)
    files = [
        IncomingFile("notes.txt", "text/plain", b"hello"),
        IncomingFile("photo.png", "image/png", png),
        IncomingFile("broken.jpg", "image/jpeg", b"\xff\xd8 not really"),
    ]
    result = asyncio.run(editor.ingest.execute(files))

    assert [img.name for img in result.added] == ["photo.png"]
    assert [f.name for f in result.failures] == ["notes.txt", "broken.jpg"]
    assert [f.unsupported for f in result.failures] == [True, False]
    image = result.added[0]
    assert image.id.startswith("img_")
    assert (image.width, image.height) == (6, 4)
    assert image.preview_bytes == png
    assert image.byte_size == len(png)
    assert editor.collection.current_id == image.id


def test_rotation_updates_dimensions_and_preview(editor, make_png):
    image_id = editor.load("photo.png", make_png(w=6, h=4))
    image = asyncio.run(editor.transform.rotate(image_id, "right"))

    assert (image.width, image.height) == (4, 6)
    assert image.preview_mime_type == "image/png"
    decoded = editor.codec.decode(image.preview_bytes)
    assert (decoded.width, decoded.height) == (4, 6)

    with pytest.raises(ValueError):
        asyncio.run(editor.transform.rotate(image_id, "sideways"))


def test_back_to_back_transforms_accumulate(editor, make_png):
    image_id = editor.load("photo.png", make_png(w=6, h=4))

    async def spin():
        await asyncio.gather(
            editor.transform.rotate(image_id, "right"),
            editor.transform.rotate(image_id, "right"),
        )

    asyncio.run(spin())
    image = editor.collection.get(image_id)
    assert image.transform.rotation == 180
    assert (image.width, image.height) == (6, 4)


def test_resize_and_crop(editor, make_png):
    image_id = editor.load("photo.png", make_png(w=40, h=20))
    image = asyncio.run(editor.transform.set_crop_ratio(image_id, "1:1"))
    assert (image.width, image.height) == (20, 20)
    image = asyncio.run(editor.transform.resize(image_id, 10, 10))
    assert (image.width, image.height) == (10, 10)
    with pytest.raises(InvalidDimension):
        asyncio.run(editor.transform.resize(image_id, 0, 10))


def test_adjustments_and_presets_are_exclusive(editor, make_png):
    image_id = editor.load("photo.png", make_png())
    image = editor.adjust.update_adjustments(image_id, brightness=120)
    assert image.preview_filter == "brightness(120%)"

    image = editor.adjust.apply_filter_preset(image_id, "vintage")
    assert image.effects.is_default
    assert image.filter_preset == "vintage"
    assert image.preview_filter == "sepia(30%) contrast(110%) brightness(105%)"

    image = editor.adjust.update_adjustments(image_id, contrast=110)
    assert image.filter_preset is None
    assert image.preview_filter == "contrast(110%)"

    image = editor.adjust.apply_filter_preset(image_id, "none")
    assert image.filter_preset is None
    assert image.preview_filter == "none"


def test_reset_restores_original_bytes(editor, make_png):
    png = make_png(w=8, h=6)
    image_id = editor.load("photo.png", png)
    editor.adjust.apply_adjustment_preset(image_id, "bw")
    asyncio.run(editor.transform.rotate(image_id, "left"))
    asyncio.run(editor.text.execute(image_id, TextOverlaySpec(text="hello", font_size_px=10)))

    image = editor.reset.execute(image_id)

    assert image.preview_bytes == png
    assert image.preview_mime_type is None
    assert image.preview_filter == "none"
    assert (image.width, image.height) == (8, 6)
    assert image.effects.is_default
    assert not image.has_pending_edits


def test_stale_preview_is_discarded(editor, make_png):
    image_id = editor.load("photo.png", make_png())
    calls = []

    class SlowFirstRenderer:
        def preview(self, image):
            calls.append(image.id)
            if len(calls) == 1:
                time.sleep(0.2)
                return RenderedPreview(b"older", "image/png", 4, 4)
            return RenderedPreview(b"newer", "image/png", 4, 4)

    refresh = RefreshPreviewUseCase(editor.collection, SlowFirstRenderer())

    async def race():
        return await asyncio.gather(refresh.execute(image_id), refresh.execute(image_id))

    first, second = asyncio.run(race())
    assert (first, second) == (False, True)
    assert editor.collection.get(image_id).preview_bytes == b"newer"


def test_reset_discards_preview_in_flight(editor, make_png):
    png = make_png()
    image_id = editor.load("photo.png", png)

    class SlowRenderer:
        def preview(self, image):
            time.sleep(0.1)
            return RenderedPreview(b"late", "image/png", 4, 4)

    refresh = RefreshPreviewUseCase(editor.collection, SlowRenderer())

    async def race():
        task = asyncio.create_task(refresh.execute(image_id))
        await asyncio.sleep(0.02)
        editor.reset.execute(image_id)
        return await task

    assert asyncio.run(race()) is False
    assert editor.collection.get(image_id).preview_bytes == png


def test_blank_text_removes_overlay(editor, make_png):
    png = make_png()
    image_id = editor.load("photo.png", png)
    image = asyncio.run(editor.text.execute(image_id, TextOverlaySpec(text="Hi", font_size_px=10)))
    assert image.text_overlay is not None
    assert image.preview_bytes != png

    image = asyncio.run(editor.text.execute(image_id, TextOverlaySpec(text="  ")))
    assert image.text_overlay is None
    assert image.preview_bytes == png


def test_filtered_export_bakes_preset(editor, make_png):
    image_id = editor.load("photo.png", make_png(w=5, h=3, color=(200, 40, 10)))
    editor.adjust.apply_filter_preset(image_id, "noir")

    outcome = asyncio.run(editor.export.execute(image_id, "filtered", CompressionSettings(format="png")))

    assert outcome.artifact.filename == "photo_filtered.png"
    assert outcome.artifact.mime_type == "image/png"
    pixels = editor.codec.decode(outcome.artifact.data).pixels
    assert np.allclose(pixels[..., 0], pixels[..., 1], atol=1 / 255)
    assert editor.collection.get(image_id).byte_size == outcome.artifact.size


def test_compressed_export_ignores_filters_but_keeps_geometry(editor, make_png):
    image_id = editor.load("photo.png", make_png(w=6, h=4, color=(200, 40, 10)))
    editor.adjust.apply_filter_preset(image_id, "noir")
    asyncio.run(editor.transform.rotate(image_id, "right"))

    outcome = asyncio.run(editor.export.execute(image_id, "compressed", CompressionSettings(format="png")))

    assert (outcome.artifact.width, outcome.artifact.height) == (4, 6)
    pixels = editor.codec.decode(outcome.artifact.data).pixels
    assert pixels[0, 0, 0] > pixels[0, 0, 1]
    assert outcome.quality_used is None
    assert not outcome.target_applied


def test_watermarked_export_draws_text(editor, make_png):
    image_id = editor.load("photo.png", make_png(w=60, h=40, color=(0, 0, 0)))
    asyncio.run(editor.text.execute(image_id, TextOverlaySpec(text="Hi", font_size_px=16, shadow=False)))
    settings = CompressionSettings(format="png")

    plain = asyncio.run(editor.export.execute(image_id, "compressed", settings))
    marked = asyncio.run(editor.export.execute(image_id, "watermarked", settings))

    assert marked.artifact.filename == "photo_watermarked.png"
    assert editor.codec.decode(marked.artifact.data).pixels.max() > 0.5
    assert editor.codec.decode(plain.artifact.data).pixels.max() == 0.0


def test_export_rejects_unknown_kind_and_image(editor, make_png):
    image_id = editor.load("photo.png", make_png())
    with pytest.raises(ValueError):
        asyncio.run(editor.export.execute(image_id, "sharpened", CompressionSettings()))
    with pytest.raises(ImageNotFound):
        asyncio.run(editor.export.execute("img_missing", "compressed", CompressionSettings()))


def test_target_size_export_reports_search(editor, make_noise_jpeg):
    data = make_noise_jpeg(w=128, h=128)
    image_id = editor.load("noise.jpg", data, "image/jpeg")
    settings = CompressionSettings(format="jpeg", target_size_kb=max(1, len(data) // 3 // 1024))

    outcome = asyncio.run(editor.export.execute(image_id, "compressed", settings))

    assert outcome.target_applied
    assert outcome.iterations <= 10
    if outcome.budget_met:
        assert outcome.artifact.size <= settings.target_bytes
    assert outcome.saved_percent > 0
    assert outcome.artifact.filename == "noise_compressed.jpg"


def test_adjustment_preset_replaces_stack(editor, make_png):
    image_id = editor.load("photo.png", make_png())
    editor.adjust.update_adjustments(image_id, hue=45, blur=2)
    editor.adjust.apply_filter_preset(image_id, "vintage")

    image = editor.adjust.apply_adjustment_preset(image_id, "fade")

    assert (image.effects.brightness, image.effects.contrast, image.effects.saturation) == (105, 85, 90)
    assert (image.effects.hue, image.effects.blur) == (0, 0)
    assert image.filter_preset is None
    assert image.preview_filter == "brightness(105%) contrast(85%) saturate(90%)"

    image = editor.adjust.apply_adjustment_preset(image_id, "bw")
    assert image.preview_filter == "saturate(0%)"
    with pytest.raises(ValueError):
        editor.adjust.apply_adjustment_preset(image_id, "sepia-ish")


def test_adjusted_export_bakes_bw_preset(editor, make_png):
    image_id = editor.load("photo.png", make_png(w=5, h=3, color=(200, 40, 10)))
    editor.adjust.apply_adjustment_preset(image_id, "bw")

    outcome = asyncio.run(editor.export.execute(image_id, "adjusted", CompressionSettings(format="png")))

    assert outcome.artifact.filename == "photo_adjusted.png"
    pixels = editor.codec.decode(outcome.artifact.data).pixels
    assert np.allclose(pixels[..., 0], pixels[..., 2], atol=1 / 255)


class BrokenRenderer:
    def preview(self, image):
        raise EncodeError("encoder unavailable")


def test_failed_render_restores_geometry(editor, make_png):
    png = make_png(w=6, h=4)
    image_id = editor.load("photo.png", png)
    transform = TransformImageUseCase(editor.collection, RefreshPreviewUseCase(editor.collection, BrokenRenderer()))

    with pytest.raises(EncodeError):
        asyncio.run(transform.rotate(image_id, "right"))

    image = editor.collection.get(image_id)
    assert image.transform.rotation == 0
    assert (image.width, image.height) == (6, 4)
    assert image.preview_bytes == png


def test_failed_render_restores_text_overlay(editor, make_png):
    image_id = editor.load("photo.png", make_png(w=20, h=20))
    asyncio.run(editor.text.execute(image_id, TextOverlaySpec(text="first", font_size_px=8)))
    before = editor.collection.get(image_id)
    text = TextOverlayUseCase(editor.collection, RefreshPreviewUseCase(editor.collection, BrokenRenderer()))

    with pytest.raises(EncodeError):
        asyncio.run(text.execute(image_id, TextOverlaySpec(text="second", font_size_px=8)))

    image = editor.collection.get(image_id)
    assert image.text_overlay == before.text_overlay
    assert image.preview_bytes == before.preview_bytes
