"""
CORS for the REST API and the standalone WebSocket gateway.

Origins come from ALLOWED_ORIGINS (comma-separated); without it the
local frontend dev servers are allowed.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.config.settings import settings

API_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
GATEWAY_METHODS = ["GET", "OPTIONS"]

API_HEADERS = [
    "Authorization",
    "Content-Type",
    "Accept",
    "Accept-Language",
    "X-Requested-With",
]

# The CSV export sets the download filename
EXPOSED_HEADERS = ["Content-Disposition"]


def configure_cors(app: FastAPI, methods: list[str] | None = None) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins(),
        allow_credentials=True,
        allow_methods=methods or API_METHODS,
        allow_headers=API_HEADERS,
        expose_headers=EXPOSED_HEADERS,
        max_age=0 if settings.debug else 600,
    )
