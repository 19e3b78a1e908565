"""
BLOCK LAB — FastAPI app
Démarrer : uvicorn blocklab.api.main:app --reload --port 8001
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from ..config import Settings, load_settings
from ..database import init_db_from_settings
from ..loader import Loader
from .routes.blocks import router as blocks_router

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s — %(message)s")
log = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db_from_settings(settings)
        log.info("DB initialisée (SQLite) : %s", settings.db_path)
        app.state.loader = Loader(settings).init()
        log.info("%d bloc(s) enregistré(s)", len(app.state.loader.registry))
        yield

    app = FastAPI(title="Block Lab", version=settings.version, docs_url="/docs", lifespan=lifespan)
    app.state.settings = settings
    app.include_router(blocks_router)

    @app.get("/health")
    def health():
        return {"status": "ok", "version": settings.version}

    return app


app = create_app()
