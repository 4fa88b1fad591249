from fastapi import FastAPI
from moving_estimator.routes.estimate_router import estimate_router
from moving_estimator.routes.distance_router import distance_router
from contextlib import asynccontextmanager
from moving_estimator.core.config import settings
from moving_estimator.core.logger import get_logger
from moving_estimator.core.middleware import log_requests
from moving_estimator.services.estimation_provider import build_provider
from fastapi.middleware.cors import CORSMiddleware

logger = get_logger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    provider = build_provider(settings)
    logger.info(
        f"Application startup complete (estimator provider: {provider.name if provider else 'heuristic only'})"
    )

    yield

    logger.info("Application shutdown initiated")

app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Estimate-Source"],
)
app.middleware("http")(log_requests)
app.include_router(estimate_router)
app.include_router(distance_router)
