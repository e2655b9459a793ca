"""Server module -- aiohttp application factory and webhook handlers."""

from __future__ import annotations

from .app import create_app, main

__all__ = ["create_app", "main"]
