from __future__ import annotations

import os

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

# Front-end dev servers allowed outside production
DEV_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",  # Vite default
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


def add_default_middlewares(app: FastAPI) -> None:
    env = os.getenv("ENV", "development")
    allowed_origins = DEV_ORIGINS if env in ("development", "staging") else ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        # browsers reject credentials with a wildcard origin
        allow_credentials=allowed_origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "Content-Disposition",
            "X-Preview-Filter",
            "X-Quality-Used",
            "X-Budget-Met",
            "X-Target-Applied",
        ],
    )
