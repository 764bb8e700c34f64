import time
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from app.core.request_context import HDR_REQUEST_ID, get_request_context

logger = logging.getLogger("access")

class LoggingMiddleware(BaseHTTPMiddleware):
    """One access line per request, tagged with the request id and the authenticated user"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        context = get_request_context(request)
        request.state.request_id = context.request_id

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"💥 {context.endpoint} - Request-Id: {context.request_id} - unhandled error")
            raise

        process_time = time.perf_counter() - start_time
        current_user = getattr(request.state, "current_user", None)

        logger.info(
            f"{'✅' if response.status_code < 400 else '⚠️'} {context.endpoint} - "
            f"Status: {response.status_code} - "
            f"Time: {process_time:.4f}s - "
            f"User: {current_user.id if current_user else '-'} - "
            f"Client: {context.ip_address or 'unknown'} - "
            f"Request-Id: {context.request_id}"
        )

        response.headers[HDR_REQUEST_ID] = context.request_id
        response.headers["X-Process-Time"] = f"{process_time:.4f}"
        return response
