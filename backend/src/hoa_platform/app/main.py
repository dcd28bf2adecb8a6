"""FastAPI application entry point for the HOA services marketplace API."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from hoa_platform.app.config import get_settings
from hoa_platform.app.error_handlers import install_error_handlers
from hoa_platform.domain.schemas import HealthResponse
from hoa_platform.infra.database import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: initialize database on startup."""
    await init_db()
    yield


settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.debug else logging.WARNING,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

app = FastAPI(
    title="HOA Services Marketplace API",
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS middleware: allow all origins in debug mode
_cors_origins = settings.cors_origins_list
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=("*" not in _cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)

# ---------------------------------------------------------------------------
# Route includes
# ---------------------------------------------------------------------------
from hoa_platform.app.routes.auth import router as auth_router
from hoa_platform.app.routes.service_providers import router as service_providers_router
from hoa_platform.app.routes.services import router as services_router
from hoa_platform.app.routes.apartments import router as apartments_router
from hoa_platform.app.routes.jobs import router as jobs_router
from hoa_platform.app.routes.bids import router as bids_router

app.include_router(auth_router)
app.include_router(service_providers_router)
app.include_router(services_router)
app.include_router(apartments_router)
app.include_router(jobs_router)
app.include_router(bids_router)

# Static file mount for locally stored uploads
_uploads_dir = Path(settings.uploads_dir)
_uploads_dir.mkdir(parents=True, exist_ok=True)
app.mount(settings.uploads_url_prefix, StaticFiles(directory=str(_uploads_dir)), name="uploads")


@app.get("/health", tags=["health"], response_model=HealthResponse)
async def health_check():
    """Return service health status."""
    return {"status": "ok", "service": "hoa-platform"}


def run() -> None:
    """Run the application with uvicorn (used by project.scripts entry point)."""
    uvicorn.run(
        "hoa_platform.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
