from __future__ import annotations

from fastapi import FastAPI

from src.infrastructure.api.middlewares import add_default_middlewares
from src.infrastructure.api.routes.export_routes import router as export_router
from src.infrastructure.api.routes.image_routes import router as image_router
from src.infrastructure.api.routes.processing_routes import router as processing_router
from src.infrastructure.log_config import configure_logging
from src.infrastructure.session.editor_session import EditorSession


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Image Editor Core",
        version="0.1.0",
        description="""
        ## Image Editor Core API

        Raster image editing on NumPy and Pillow: compression to a quality or a
        target file size, resize/rotate/flip/crop, non-destructive adjustments
        and filter presets, and text overlays.

        ### Features
        - **Images**: Load many files at once, select, remove and preview them
        - **Compression**: Quality or target-size encoding to JPEG, PNG or WEBP
        - **Geometry**: Resize with aspect-ratio lock and presets, 90° rotations, flips, crop ratios
        - **Adjustments**: Brightness, contrast, saturation, hue and blur, or a named filter preset
        - **Text**: Styled text with shadow and opacity at a relative position
        - **Export**: Every edit is re-applied to the original file, once, at download time

        ### Error Responses
        - **400 Bad Request**: Invalid parameters, corrupt image data or unknown preset
        - **404 Not Found**: The image is not part of the session
        - **415 Unsupported Media Type**: The uploaded file is not an image
        - **422 Unprocessable Entity**: Validation error in request body
        - **500 Internal Server Error**: Encoding failed
        """,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )
    app.state.session = EditorSession()
    add_default_middlewares(app)

    @app.get(
        "/",
        summary="API Root",
        description="Get basic information about the editor API",
        response_description="API information including status and version",
    )
    def root():
        """Get API root information."""
        return {"status": "ok", "service": "image-editor-core", "version": app.version}

    @app.get(
        "/health",
        summary="Health Check",
        description="Check if the API service is running and healthy",
        response_description="Health status of the API service",
    )
    def health():
        """Check API health status."""
        return {"status": "healthy"}

    app.include_router(image_router)
    app.include_router(processing_router)
    app.include_router(export_router)
    return app


app = create_app()
