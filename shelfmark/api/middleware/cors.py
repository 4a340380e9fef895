"""
CORS configuration.

The single-page client is served from its own dev server locally and
from FRONTEND_URL in production.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware


@dataclass
class CORSConfig:
    """CORS settings for one environment."""

    allowed_origins: List[str] = field(default_factory=list)
    allowed_methods: List[str] = field(default_factory=lambda: ["GET", "POST", "PUT", "OPTIONS"])
    allowed_headers: List[str] = field(default_factory=lambda: [
        "Authorization",
        "Content-Type",
        "X-Request-ID",
    ])
    expose_headers: List[str] = field(default_factory=lambda: ["X-Request-ID"])
    allow_credentials: bool = True
    max_age: int = 600


DEFAULT_FRONTEND_URL = "https://shelfmark.example.org"


def get_cors_config(
    environment: Optional[str] = None,
    frontend_url: Optional[str] = None,
) -> CORSConfig:
    """Get CORS configuration for the environment."""
    if environment is None:
        environment = os.getenv("SHELFMARK_ENV", "development")

    if environment == "production":
        config = CORSConfig(allowed_origins=[frontend_url or DEFAULT_FRONTEND_URL], max_age=7200)
    else:
        config = CORSConfig(allowed_origins=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ])

    extra_origins = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if extra_origins:
        config.allowed_origins.extend(
            origin.strip() for origin in extra_origins.split(",") if origin.strip()
        )

    return config


def setup_cors(app: FastAPI, config: Optional[CORSConfig] = None) -> None:
    """Configure CORS middleware for the FastAPI application."""
    if config is None:
        config = get_cors_config()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=config.allow_credentials,
        allow_methods=config.allowed_methods,
        allow_headers=config.allowed_headers,
        expose_headers=config.expose_headers,
        max_age=config.max_age,
    )
