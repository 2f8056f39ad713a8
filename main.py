# main.py
"""
FastAPI entry point for the Plate Palette weekly variety service.
Startup/readiness behavior, request-id middleware, and explicit client
handles: the Supabase wrapper and the food catalog client are built once in
the lifespan and handed to services through app.state.
"""
import asyncio
import logging
import os
import uuid
from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from plate_palette.api.catalog import router as catalog_router
from plate_palette.api.deps import build_services
from plate_palette.api.foods import router as foods_router
from plate_palette.api.friends import router as friends_router
from plate_palette.api.profile import router as profile_router
from plate_palette.config.settings import get_settings
from plate_palette.config.supabase import SupabaseClient
from plate_palette.services.catalog_client import CatalogClient

logger = logging.getLogger("uvicorn.error")


async def _run_sync_in_executor(fn, *args, timeout: float):
    """
    Helper to run blocking sync functions in the default threadpool with a timeout.
    Returns the function's result or raises TimeoutError.
    """
    loop = asyncio.get_running_loop()
    return await asyncio.wait_for(loop.run_in_executor(None, fn, *args), timeout=timeout)


async def _store_healthy(app: FastAPI, timeout: Optional[float] = None) -> bool:
    settings = app.state.settings
    try:
        return bool(
            await _run_sync_in_executor(
                app.state.supabase.health_check,
                timeout=timeout or settings.health_check_timeout,
            )
        )
    except asyncio.TimeoutError:
        logger.warning("Supabase health_check timed out")
    except Exception as exc:
        logger.exception("Unexpected error calling supabase health_check: %s", exc)
    return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Plate Palette...")
    settings = get_settings()
    app.state.settings = settings

    # Tests (or an embedding process) may install their own handles first
    if getattr(app.state, "supabase", None) is None:
        app.state.supabase = SupabaseClient(settings)
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services(
            app.state.supabase.client, settings, catalog=CatalogClient(settings)
        )

    app.state.supabase_healthy = await _store_healthy(app)
    logger.info("Supabase health: %s", app.state.supabase_healthy)

    if not app.state.supabase_healthy and settings.fail_on_db_startup:
        logger.error("FAIL_ON_DB_STARTUP enabled and Supabase unhealthy. Aborting startup.")
        raise RuntimeError("Supabase unhealthy on startup")

    try:
        yield
    finally:
        logger.info("Shutting down Plate Palette...")


app = FastAPI(
    title="Plate Palette",
    description="Weekly food variety tracking with friends",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # you can lock this down in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Simple request-id middleware + structured request logging
@app.middleware("http")
async def add_request_id_and_log(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
    request.state.request_id = request_id
    logger.info("→ Incoming request %s %s id=%s", request.method, request.url.path, request_id)
    try:
        response: Response = await call_next(request)
    except Exception as exc:
        logger.exception("Handler error for request id=%s: %s", request_id, exc)
        return JSONResponse(
            {"ok": False, "status": 500, "message": "Internal server error", "request_id": request_id},
            status_code=500,
        )
    logger.info("← Completed request id=%s status=%s", request_id, getattr(response, "status_code", None))
    response.headers["X-Request-Id"] = request_id
    return response


app.include_router(profile_router, tags=["profile"])
app.include_router(foods_router, prefix="/foods", tags=["foods"])
app.include_router(catalog_router, prefix="/catalog", tags=["catalog"])
app.include_router(friends_router, tags=["friends"])


@app.get("/")
async def root() -> Dict[str, str]:
    return {"message": "Plate Palette is running!", "status": "healthy"}


@app.get("/health")
async def health_check():
    """
    Liveness style check with a bounded store probe; reports degraded (503)
    when the store is unreachable.
    """
    db_ok = await _store_healthy(app)
    return JSONResponse(
        {
            "status": "healthy" if db_ok else "degraded",
            "service": "plate-palette",
            "database": "connected" if db_ok else "disconnected",
            "diagnostics": app.state.supabase.diagnostics(),
        },
        status_code=200 if db_ok else 503,
    )


@app.get("/ready")
async def readiness_check():
    """
    Readiness: uses cached state from startup when available, otherwise a
    one-shot bounded check.
    """
    supabase_state: Optional[bool] = getattr(app.state, "supabase_healthy", None)
    if supabase_state is None:
        supabase_state = await _store_healthy(app, timeout=2.0)

    if supabase_state:
        return JSONResponse({"ready": True, "database": "connected"}, status_code=200)
    return JSONResponse({"ready": False, "database": "disconnected"}, status_code=503)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", 5000)), reload=True)
