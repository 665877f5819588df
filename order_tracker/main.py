import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from . import api
from .config import get_settings
from .database import build_store
from .store import BackendUnavailableError

logging.basicConfig(
    level=get_settings().LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.info("Application starting up... Selecting storage backend.")
    app.state.store = build_store(get_settings())
    logging.info("Startup complete. Storage backend: %s", app.state.store.name)
    yield
    logging.info("Application shutting down...")
    app.state.store.close()


app = FastAPI(
    title="Order Tracker",
    description="Tracks orders, commission payments and the activity log for Alex and Isa.",
    lifespan=lifespan,
)


@app.exception_handler(BackendUnavailableError)
async def backend_unavailable_handler(request: Request, exc: BackendUnavailableError) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"detail": "Storage backend is currently unavailable.", "error": str(exc)},
    )


app.include_router(api.order_router)
app.include_router(api.activity_router)
app.include_router(api.export_router)
app.include_router(api.admin_router)
app.include_router(api.monitoring_router)

metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)
