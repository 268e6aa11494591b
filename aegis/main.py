import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import settings
from .routers import analysis

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("aegis")

app = FastAPI(
    title="AEGIS Engineering Service",
    description="Physics feasibility analysis and 3D blueprint generation powered by Gemini",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(analysis.router, prefix="/api")


@app.get("/health")
def health():
    keys = settings.credentials()
    return {
        "status": "ok" if keys else "degraded",
        "app": "aegis-engineering-service",
        "model": settings.GEMINI_MODEL,
        "credentials": len(keys),
    }


@app.on_event("startup")
def log_configuration():
    """Report the key count at startup; never the keys themselves."""
    count = len(settings.credentials())
    if count:
        logger.info("AEGIS starting with %d Gemini API key(s), model %s", count, settings.GEMINI_MODEL)
    else:
        logger.warning("No Gemini API keys configured: generation endpoints will return 503")
