"""
RequestContext middleware.

Stores on request.state:
- request_id: random id, echoed back as X-Request-ID and bound into logs
- ip_address: client address, proxy-aware only when configured
- user_agent: raw User-Agent header

The client address is half of a click fingerprint: the click recorder stores
it and the match endpoint falls back to it when the app sends none.
"""

import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings
from app.infrastructure.observability.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
)

logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        request.state.ip_address = client_ip(request)
        request.state.user_agent = request.headers.get("user-agent")

        bind_request_context(request_id=request_id)
        logger.debug("Request started", method=request.method, path=request.url.path)

        try:
            response = await call_next(request)
        finally:
            clear_request_context()

        response.headers["X-Request-ID"] = request_id
        return response


def client_ip(request: Request) -> str | None:
    """
    Address of the caller.

    Forwarding headers are honored only when TRUST_X_FORWARDED_FOR is on and
    the direct peer is listed in TRUSTED_PROXY_IPS; otherwise any client could
    claim another device's address and steer matches toward its clicks.
    """
    direct_ip = request.client.host if request.client else None

    if not settings.TRUST_X_FORWARDED_FOR or direct_ip not in settings.TRUSTED_PROXY_IPS:
        return direct_ip

    # "client, proxy1, proxy2"
    forwarded_for = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded_for.split(",")[0].strip()
    if first_hop:
        return first_hop

    real_ip = request.headers.get("x-real-ip", "").strip()
    return real_ip or direct_ip
