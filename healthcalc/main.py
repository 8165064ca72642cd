"""
Health Calculator Assessment - FastAPI Application

Main application entry point with API endpoints for:
- Calculator catalog and input schemas
- Metric assessments (readings, risk, treatment, warning flags)
- Health check
"""
from datetime import datetime

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load environment variables
load_dotenv()

from healthcalc import __version__
from healthcalc.config import settings
from healthcalc.models.assessment import HealthResponse
from healthcalc.routes.assessment import router as assessment_router, service
from healthcalc.utils import get_logger, setup_logging

setup_logging(settings.log_level, settings.log_format)
logger = get_logger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="Table-driven health calculators with risk scoring and warning flags",
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(assessment_router)


@app.get("/")
async def root():
    return {"message": settings.app_name, "status": "active", "docs": "/docs"}


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.now().isoformat(),
        metrics=len(service.metric_names()),
    )


logger.info(f"{settings.app_name} v{settings.app_version} ready ({len(service.metric_names())} metrics)")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("healthcalc.main:app", host=settings.api_host, port=settings.api_port, reload=settings.debug)
