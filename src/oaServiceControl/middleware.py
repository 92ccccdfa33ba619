"""Middleware for oaServiceControl."""

import ipaddress
import logging
from typing import Callable, Iterable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

LOOPBACK_HOSTS = ("127.0.0.1", "::1", "localhost")


def is_allowed(client_ip: str | None, subnets: Iterable[ipaddress.IPv4Network | ipaddress.IPv6Network]) -> bool:
    """Check a client address against the allowed networks; loopback always passes."""
    if not client_ip:
        return False
    if client_ip in LOOPBACK_HOSTS:
        return True

    try:
        address = ipaddress.ip_address(client_ip)
    except ValueError:
        return False
    return any(address in subnet for subnet in subnets if address.version == subnet.version)


class AllowedSubnetMiddleware(BaseHTTPMiddleware):
    """Middleware to restrict access to the configured client networks."""

    def __init__(self, app, allowed_subnets: list[str]):
        super().__init__(app)
        self.subnets = [ipaddress.ip_network(s, strict=False) for s in allowed_subnets]
        logger.info(f"Subnet restriction enabled for {', '.join(allowed_subnets)}")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        client_ip = request.client.host if request.client else None

        if not is_allowed(client_ip, self.subnets):
            logger.warning(
                f"Access denied for IP {client_ip} - outside allowed subnets",
                extra={"client_host": client_ip, "event_type": "access_denied"}
            )
            return JSONResponse(
                status_code=403,
                content={"status": "error", "error": "Access denied: client network not allowed"}
            )

        return await call_next(request)
