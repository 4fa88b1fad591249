
import time
from fastapi import Request
from moving_estimator.core.logger import get_logger

logger = get_logger("request_logger")

ESTIMATE_SOURCE_HEADER = "X-Estimate-Source"

async def log_requests(request: Request, call_next):
    start_time = time.perf_counter()
    logger.info(f"Started request {request.method} {request.url.path}")
    response = await call_next(request)
    duration = time.perf_counter() - start_time

    source = response.headers.get(ESTIMATE_SOURCE_HEADER)
    suffix = f" source={source}" if source else ""
    logger.info(
        f"Completed request {request.method} {request.url.path} "
        f"with status={response.status_code} in {duration:.3f}s{suffix}"
    )
    return response
