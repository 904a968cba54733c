import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)
from app.domains.analytics.router import router as analytics_router
from app.domains.fhir.client import close_fhir_client
from app.domains.insights.router import router as insights_router
from app.domains.patients.router import router as patients_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Using FHIR server {settings.FHIR_BASE_URL}")
    yield
    await close_fhir_client()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Health check endpoint
@app.get("/health")
async def health_check():
    return {"status": "healthy"}


# Domain routers
app.include_router(
    analytics_router,
    prefix=f"{settings.API_V1_PREFIX}/analytics",
    tags=["analytics"],
)
app.include_router(
    insights_router,
    prefix=f"{settings.API_V1_PREFIX}/insights",
    tags=["insights"],
)
app.include_router(
    patients_router,
    prefix=settings.API_V1_PREFIX,
    tags=["patients"],
)
