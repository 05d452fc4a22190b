"""CORS configuration driven by the service environment.

- Development: any origin
- Production: only the domains listed in CORS_ORIGINS
"""

from __future__ import annotations

import os
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

_ALLOWED_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"]
_ALLOWED_HEADERS = ["Authorization", "Content-Type", "X-Request-ID", "X-Trace-ID"]


def get_cors_origins(environment: str) -> List[str]:
    """Return the allowed origins for ``environment``.

    Raises:
        ValueError: em produção sem CORS_ORIGINS configurado
    """
    if environment not in ("production", "prod"):
        return ["*"]

    origins = [
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "").split(",")
        if origin.strip()
    ]
    if not origins:
        raise ValueError(
            "CORS_ORIGINS must be set in production, e.g. "
            "CORS_ORIGINS=https://app.example.com,https://admin.example.com"
        )
    return origins


def configure_cors(app: FastAPI, environment: str) -> None:
    """Install CORSMiddleware on ``app`` according to ``environment``."""
    origins = get_cors_origins(environment)

    # com "*" o navegador não aceita credentials
    allow_credentials = origins != ["*"] and os.getenv("CORS_ALLOW_CREDENTIALS", "true").lower() == "true"

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=allow_credentials,
        allow_methods=_ALLOWED_METHODS,
        allow_headers=_ALLOWED_HEADERS,
        max_age=int(os.getenv("CORS_MAX_AGE", "600")),
    )
