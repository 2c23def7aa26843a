"""FastAPI entry point for the gift relay and resolution API."""

from __future__ import annotations

import contextlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

load_dotenv(Path(__file__).resolve().with_name(".env"))

from giftplanner import GiftResolver, SessionCache
from giftplanner.media import AnimationLoader
from giftplanner_web.routes import gifts, relay

logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    cache = SessionCache.create()
    app.state.cache = cache
    app.state.resolver = GiftResolver.create(cache)
    app.state.animations = AnimationLoader(cache)
    logger.info("Gift resolver ready (catalog %s)", app.state.resolver.catalog.base_url)
    try:
        yield
    finally:
        cache.clear()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Keep relayed third-party markup inert in the browser."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if request.url.path.startswith("/api/proxy"):
            response.headers.setdefault(
                "Content-Security-Policy", "default-src 'none'; sandbox"
            )
        return response


app = FastAPI(title="Gift Planner API", version="1.0.0", lifespan=lifespan)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type"],
)
app.include_router(relay.router)
app.include_router(gifts.router)


def run() -> None:
    """Helper to run the development server."""

    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run("server:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    run()
