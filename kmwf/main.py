"""
KMWF Backend: FastAPI application entry-point.
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kmwf.config import settings
from kmwf.database import init_db

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s  %(name)-30s  %(levelname)-5s  %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    os.makedirs(settings.DATA_DIR, exist_ok=True)
    init_db()
    if not settings.RAZORPAY_KEY_SECRET:
        logger.warning("RAZORPAY_KEY_SECRET is not set; payment verification will reject every request")
    yield
    logger.info("Shutting down")


app = FastAPI(
    title="KMWF Backend",
    description="Donations, 80G certificates, notifications, marketplace items and gullaks",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    return {"service": "KMWF Backend", "version": "0.1.0", "status": "running"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


# ── Register API routers ─────────────────────────────────────────────────
from kmwf.routers.certificates import router as certificates_router  # noqa: E402
from kmwf.routers.donations import router as donations_router  # noqa: E402
from kmwf.routers.gullak import router as gullak_router  # noqa: E402
from kmwf.routers.items import router as items_router  # noqa: E402

app.include_router(certificates_router, prefix="/api", tags=["80G Certificates"])
app.include_router(donations_router, prefix="/api", tags=["Donations"])
app.include_router(items_router, prefix="/api", tags=["Marketplace Items"])
app.include_router(gullak_router, prefix="/api/gullaks", tags=["Gullaks"])
