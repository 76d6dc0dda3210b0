# emporio/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import router
from .config import Settings, get_settings
from .errors import NotFoundError, PersistenceError, ValidationError
from .middleware import RateLimiter, RateLimitMiddleware, SecurityHeadersMiddleware
from .scheduler import DigestScheduler
from .services import build_services

# -----------------------------------------------------------------------------
# Config
# -----------------------------------------------------------------------------
load_dotenv()

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Error handlers
# -----------------------------------------------------------------------------
async def _validation_error(_request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": exc.reason})


async def _not_found(_request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": "Pedido não encontrado."})


async def _persistence_error(_request: Request, exc: PersistenceError) -> JSONResponse:
    # detalhes já foram para o log em OrderStore.transaction
    return JSONResponse(status_code=500, content={"detail": "Falha ao gravar no banco."})

# -----------------------------------------------------------------------------
# App
# -----------------------------------------------------------------------------
def create_app(
    settings: Optional[Settings] = None,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> FastAPI:
    """
    Cria a aplicação. Banco, serviços e agendador são criados no startup
    (lifespan) e liberados no shutdown.
    """
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # ===== STARTUP =====
        services = build_services(settings, transport=transport)
        app.state.services = services

        scheduler: Optional[DigestScheduler] = None
        if settings.DIGEST_ENABLED:
            scheduler = DigestScheduler(services.digests.run_scheduled, services.schedule)
            scheduler.start()
        app.state.scheduler = scheduler

        logger.info(f"🥩 {settings.STORE_NAME} — app iniciado")
        yield

        # ===== SHUTDOWN =====
        if scheduler is not None:
            await scheduler.stop()
        services.close()
        logger.info("👋 Servidor parado")

    app = FastAPI(title=settings.STORE_NAME, version="1.0", lifespan=lifespan)

    # a última adicionada é a mais externa: CORS e cabeçalhos valem também para o 429
    app.add_middleware(
        RateLimitMiddleware,
        limiter=RateLimiter(settings.RATE_LIMIT_MAX, settings.RATE_LIMIT_WINDOW),
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.ALLOWED_ORIGIN],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(NotFoundError, _not_found)
    app.add_exception_handler(PersistenceError, _persistence_error)
    app.include_router(router)
    return app


app = create_app()
