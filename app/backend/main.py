"""
FastAPI Backend for the Netzero Trees species review dashboard

This API lists trees with their AI-predicted and human-labeled species,
records species corrections, keeps the S3 training-image layout in line with
the labels, and proxies the model-training pipeline.

Run with: uvicorn main:app --port 8001
"""

import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from clients.training_pipeline import TrainingPipelineClient
from database.connection import close_engine, create_db_engine, create_session_factory
from routers import debug, species, training, trees, versioning
from services.s3_storage import S3Storage, get_s3_client

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the process-wide database engine and AWS clients."""
    engine = create_db_engine()
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.storage = S3Storage(get_s3_client())
    app.state.training_client = TrainingPipelineClient()
    logger.info("API startup complete")
    try:
        yield
    finally:
        close_engine(engine)


# Initialize FastAPI app
app = FastAPI(
    title="Netzero Trees API",
    description="API for reviewing predicted tree species and syncing the S3 image dataset",
    version=API_VERSION,
    docs_url="/api/docs",  # Swagger UI
    redoc_url="/api/redoc",  # ReDoc
    lifespan=lifespan,
)

# ============================================================================
# CORS Configuration - Allow React frontend to call API
# ============================================================================

origins = os.getenv("CORS_ORIGINS", "*").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request with its status code and duration."""
    started = time.monotonic()
    logger.info(f"{request.method} {request.url.path} {dict(request.query_params)}")
    response = await call_next(request)
    duration_ms = int((time.monotonic() - started) * 1000)
    if response.status_code >= 500:
        log = logger.error
    elif response.status_code >= 400:
        log = logger.warning
    else:
        log = logger.info
    log(f"{request.method} {request.url.path} - {response.status_code} ({duration_ms}ms)")
    return response


# ============================================================================
# Include Routers - Organize endpoints by resource
# ============================================================================

app.include_router(trees.router, prefix="/trees", tags=["Trees"])
app.include_router(species.router, prefix="/species", tags=["Species"])
app.include_router(versioning.router, prefix="/versioning", tags=["Versioning"])
app.include_router(debug.router, prefix="/debug", tags=["Debug"])
app.include_router(training.router, prefix="/api/training", tags=["Training"])

# ============================================================================
# Health Check Endpoint
# ============================================================================

@app.get("/api/health")
async def health_check():
    """Check if API is running"""
    return {"status": "healthy", "version": API_VERSION}


@app.get("/")
async def root():
    """Root endpoint - points at the docs"""
    return {
        "message": "Netzero Trees API",
        "docs": "/api/docs",
        "health": "/api/health"
    }
