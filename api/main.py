"""
Fabricator API Server

REST API for browsing stored tables and resampling them while
preserving their hierarchy.
"""

import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .routers import datasets, health

logger = logging.getLogger(__name__)


# ============================================
# Application Lifespan
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown"""
    settings = app.dependency_overrides.get(get_settings, get_settings)()

    # Configure logging
    logging.basicConfig(
        level=settings.log_level.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logger.info(f"Starting {settings.app_name} {settings.app_version}")

    yield

    logger.info(f"Shutting down {settings.app_name}")


# ============================================
# FastAPI Application
# ============================================

app = FastAPI(
    title="Fabricator API",
    description="""
    Resample stored datasets while preserving their hierarchical structure.

    ## Endpoints

    - **GET /api/v1/tables** - List stored tables
    - **GET /api/v1/tables/{name}** - Preview a stored table
    - **POST /api/v1/resample** - Hierarchical bootstrap of a stored table
    - **GET /api/v1/health** - Health check with database status
    - **GET /health** - Liveness check

    ## Usage Example

    ```python
    import requests

    response = requests.post(
        'http://localhost:8000/api/v1/resample',
        json={
            'table': 'schools',
            'N': [3, 5],
            'ID_labels': ['schools', 'students'],
            'seed': 42
        }
    )
    rows = response.json()['rows']
    ```
    """,
    version="0.1.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "http://localhost:3000").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(datasets.router)


# ============================================
# Health Endpoints
# ============================================

@app.get("/health", tags=["Health"])
async def root_health():
    """Liveness check for load balancers"""
    return {"status": "ok"}


@app.get("/", tags=["Health"])
async def root():
    """API information"""
    return {
        "name": "Fabricator API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "tables": "GET /api/v1/tables",
            "preview": "GET /api/v1/tables/{name}",
            "resample": "POST /api/v1/resample"
        }
    }


# ============================================
# Run with: uvicorn api.main:app --port 8000
# ============================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
