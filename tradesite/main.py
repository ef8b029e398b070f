# tradesite/main.py
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tradesite.api.v1.routes import inquiries, products, site_data
from tradesite.core.config import Settings, settings as default_settings
from tradesite.core.logging_config import setup_logging
from tradesite.core.timeutils import utc_now_iso
from tradesite.data.defaults import load_default_site_data
from tradesite.db.database import close_mongo_connection, create_storage
from tradesite.db.storage import ShardStore

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, storage: Optional[ShardStore] = None) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings.log_level)

    app = FastAPI(title=settings.app_name)
    app.state.settings = settings
    app.state.storage = storage

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def limit_request_size(request: Request, call_next):
        length = request.headers.get("content-length")
        if length and length.isdigit() and int(length) > settings.max_request_bytes:
            logger.warning(
                "Rejected %s %s: %s bytes exceeds %s",
                request.method, request.url.path, length, settings.max_request_bytes,
            )
            return JSONResponse(
                status_code=413,
                content={"error": "Request too large. Please use partial update methods instead."},
            )
        return await call_next(request)

    prefix = settings.api_prefix
    # Products first so /site-data/products/... is not captured by /site-data/{section}
    app.include_router(products.router, prefix=f"{prefix}/site-data/products", tags=["Products"])
    app.include_router(site_data.router, prefix=f"{prefix}/site-data", tags=["Site data"])
    app.include_router(inquiries.router, prefix=f"{prefix}/inquiries", tags=["Inquiries"])

    @app.get(f"{prefix}/health")
    async def health():
        store = app.state.storage
        return {
            "status": "ok",
            "timestamp": utc_now_iso(),
            "storage": store.backend_name if store is not None else None,
        }

    @app.on_event("startup")
    async def startup_storage():
        if app.state.storage is None:
            app.state.storage = create_storage(settings)
        if settings.seed_on_startup:
            await app.state.storage.initialize_default_data(load_default_site_data())

    @app.on_event("shutdown")
    async def shutdown_storage():
        if app.state.storage is not None:
            await app.state.storage.close()
        close_mongo_connection()

    return app


app = create_app()
