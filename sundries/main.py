# sundries/main.py
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sundries.api.exception_handlers import register_exception_handlers
from sundries.api.router import api_router
from sundries.core.config import settings
from sundries.core.log import setup_logging
from sundries.core.security import JwksCache


def create_app(jwks_cache: Optional[JwksCache] = None) -> FastAPI:
    setup_logging()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # one key cache per process, shared by every request
    app.state.jwks_cache = jwks_cache or JwksCache()

    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.API_V1_STR)
    return app


app = create_app()
