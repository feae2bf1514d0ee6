import time
import logging
from fastapi import Request

from invenflow.services.inventory.bulk_movement_token_service import mask_public_path

logger = logging.getLogger("access")


async def request_logging_middleware(request: Request, call_next):
    start_time = time.perf_counter()

    response = await call_next(request)

    process_time = (time.perf_counter() - start_time) * 1000

    logger.info(
        "",
        extra={
            "client_addr": request.client.host if request.client else "unknown",
            "method": request.method,
            "path": mask_public_path(request.url.path),
            "status_code": response.status_code,
            "process_time_ms": round(process_time, 2),
        },
    )

    return response
