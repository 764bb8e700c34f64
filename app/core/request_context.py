from typing import NamedTuple, Optional
from uuid import uuid4
from fastapi import Request

HDR_REQUEST_ID = "X-Request-Id"

class RequestContext(NamedTuple):
    endpoint: str
    ip_address: Optional[str]
    user_agent: Optional[str]
    request_id: str

def get_request_context(request: Request) -> RequestContext:
    """Endpoint, client and correlation id of a request; a request id is minted when the caller sent none"""
    return RequestContext(
        endpoint=f"{request.method} {request.url.path}",
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        request_id=request.headers.get(HDR_REQUEST_ID) or uuid4().hex,
    )
