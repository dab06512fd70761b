"""CORS middleware configuration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sprewards.config import Settings

# Every ledger route is a GET read or a POST command
_ALLOWED_METHODS = ["GET", "POST", "OPTIONS"]


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Allow the client origins configured in settings; skipped when none are."""
    if not settings.cors_origins:
        return
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=_ALLOWED_METHODS,
        allow_headers=["Authorization", "Content-Type", "X-Request-Id"],
        expose_headers=["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit"],
    )
