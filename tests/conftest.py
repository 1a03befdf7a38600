import io
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Ensure project root is on sys.path so 'src' is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("EDITOR_BATCH_DELAY_MS", "0")
os.environ.setdefault("EDITOR_LOG_LEVEL", "WARNING")


def _encode(arr: np.ndarray, fmt: str, **options) -> bytes:
    buf = io.BytesIO()
    Image.fromarray(arr).save(buf, format=fmt, **options)
    return buf.getvalue()


@pytest.fixture()
def make_png():
    def factory(w=4, h=4, color=(128, 64, 32)) -> bytes:
        arr = np.zeros((h, w, len(color)), dtype=np.uint8)
        arr[:, :] = color
        return _encode(arr, "PNG")

    return factory


@pytest.fixture()
def make_noise_jpeg():
    def factory(w=64, h=48, seed=0, quality=95) -> bytes:
        rng = np.random.default_rng(seed)
        arr = rng.integers(0, 256, size=(h, w, 3), dtype=np.uint8)
        return _encode(arr, "JPEG", quality=quality)

    return factory


@pytest.fixture()
def noise_pixels():
    def factory(w=64, h=48, seed=0) -> np.ndarray:
        rng = np.random.default_rng(seed)
        return rng.integers(0, 256, size=(h, w, 3)).astype(np.float32) / 255.0

    return factory


@pytest.fixture()
def image_factory():
    """Builds ImageEntity values directly, bypassing decode."""
    from src.domain.entities.image import ImageEntity

    def factory(image_id="img_1", name="photo.png", data=b"raw", width=4, height=4, mime_type="image/png"):
        return ImageEntity(
            id=image_id,
            name=name,
            mime_type=mime_type,
            original_bytes=data,
            original_width=width,
            original_height=height,
            created_at=datetime.now(timezone.utc),
            width=width,
            height=height,
            preview_bytes=data,
            byte_size=len(data),
        )

    return factory


@pytest.fixture()
def client() -> TestClient:
    # lazy import after env configured; a fresh app means a fresh session
    from src.main import create_app

    app = create_app()
    return TestClient(app)
