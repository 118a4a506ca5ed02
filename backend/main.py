#!/usr/bin/env python3

"""
Backend for the route-sharing search service.

Run locally:
  uvicorn backend.main:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations
import os
import traceback
from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.routing import APIRouter

from routematch.runtime import configure_logging, env_path
from routematch.search.catalog import RouteCatalog, load_route_catalog
from routematch.search.config import dataset_dir, load_search_settings
from routematch.search.router import create_router as create_routes_router


# --------------------------------------------------------------------------------------------------
# Global Constants & Environment
# --------------------------------------------------------------------------------------------------
DEBUG_API = os.getenv("DEBUG_API", "1") == "1"
BASE_DIR = env_path("PRIVATE_DATA_DIR", "./data/private")

CORS_ALLOW_ORIGINS = os.getenv("CORS_ALLOW_ORIGINS", "*")
ALLOW_ORIGINS = [o.strip() for o in CORS_ALLOW_ORIGINS.split(",") if o.strip()] or ["*"]

logger = configure_logging("backend")

CATALOG: Optional[RouteCatalog] = None
SEARCH_SETTINGS: Optional[Dict[str, Any]] = None


def load_state() -> None:
    global CATALOG, SEARCH_SETTINGS
    settings = load_search_settings()
    CATALOG = load_route_catalog(dataset_dir(), settings["default_max_deviation_km"])
    SEARCH_SETTINGS = settings


# --------------------------------------------------------------------------------------------------
# Admin Router (reload)
# --------------------------------------------------------------------------------------------------
def admin_router() -> APIRouter:
    router = APIRouter(prefix="/admin", tags=["Admin"])

    @router.post("/reload")
    def admin_reload():
        """Reload the route catalog and search settings from disk"""
        try:
            load_state()
            return {
                "status": "ok",
                "reloaded": {
                    **CATALOG.summary(),
                    "settings_keys": list(SEARCH_SETTINGS.keys()),
                },
            }
        except Exception as e:
            logger.exception("Reload failed")
            payload = {"status": "error", "error": str(e)}
            if DEBUG_API:
                payload["traceback"] = traceback.format_exc()
            return JSONResponse(status_code=500, content=payload)

    return router


# --------------------------------------------------------------------------------------------------
# Public Endpoints
# --------------------------------------------------------------------------------------------------
def register_routes(app: FastAPI):
    @app.get("/health")
    def health():
        base = {
            "status": "ok" if CATALOG is not None else "needs_data",
            "private_data_dir": str(BASE_DIR),
            "dataset_dir": str(dataset_dir()),
        }
        if CATALOG is None:
            return {**base, "message": "Route catalog not loaded. POST /admin/reload."}
        return {**base, **CATALOG.summary()}

    @app.get("/config")
    def config():
        return {
            "search_settings": SEARCH_SETTINGS or load_search_settings(),
            "cors_allow_origins": ALLOW_ORIGINS,
            "private_data_dir": str(BASE_DIR),
        }


# --------------------------------------------------------------------------------------------------
# FastAPI App (with lifespan)
# --------------------------------------------------------------------------------------------------
def create_app() -> FastAPI:
    async def lifespan(app: FastAPI):
        try:
            load_state()
            logger.info("Loaded route catalog OK: %s", CATALOG.summary())
        except Exception as e:
            logger.warning("Route catalog not loaded: %s", e)
        yield

    app = FastAPI(title="Route Match (deviation search)", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        logger.exception("Unhandled error on %s", request.url.path)
        payload = {"error": str(exc)}
        if DEBUG_API:
            payload["traceback"] = traceback.format_exc()
        return JSONResponse(status_code=500, content=payload)

    app.include_router(admin_router())
    app.include_router(create_routes_router(lambda: CATALOG, lambda: SEARCH_SETTINGS or {}))

    register_routes(app)
    return app

app = create_app()


# --------------------------------------------------------------------------------------------------
# Entrypoint
# --------------------------------------------------------------------------------------------------
if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("backend.main:app", host="0.0.0.0", port=port, reload=False)
