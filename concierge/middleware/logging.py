"""One colorized summary line per HTTP request."""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from concierge.utils import AuthenticationError, decode_access_token

logger = logging.getLogger("concierge.middleware.structured")

_RESET = "\u001b[0m"
_STATUS_COLORS = {
    2: "\u001b[32m",
    4: "\u001b[33m",
    5: "\u001b[31m",
}
_DEFAULT_COLOR = "\u001b[36m"


@dataclass(slots=True)
class RequestLogLine:
    method: str
    url: str
    client_ip: Optional[str]
    user_id: Optional[str] = None
    session: Optional[str] = None
    status: Optional[int] = None
    duration_ms: Optional[float] = None
    started: float = field(default_factory=time.perf_counter)

    def finish(self, status: int) -> "RequestLogLine":
        self.status = status
        self.duration_ms = round((time.perf_counter() - self.started) * 1000, 2)
        return self

    def render(self) -> str:
        color = _STATUS_COLORS.get((self.status or 0) // 100, _DEFAULT_COLOR)
        pairs = (
            ("method", self.method),
            ("url", self.url),
            ("status", self.status),
            ("duration_ms", self.duration_ms),
            ("client_ip", self.client_ip),
            ("user_id", self.user_id),
            ("session", self.session),
        )
        body = ", ".join(f"{key}={'-' if value is None else value}" for key, value in pairs)
        return f"{color}{body}{_RESET}"


def bearer_token(request: Request) -> Optional[str]:
    scheme, _, token = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token


def session_fingerprint(subject: str, issued_at: Optional[int]) -> str:
    """Stable short id for a token, so one login session can be followed in logs."""

    digest = hashlib.sha256(f"{subject}:{issued_at or 0}".encode("utf-8"))
    return digest.hexdigest()[:16]


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        line = RequestLogLine(
            method=request.method,
            url=str(request.url),
            client_ip=request.client.host if request.client else None,
        )
        self._attach_caller(line, request)

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(line.finish(500).render())
            raise

        logger.info(line.finish(response.status_code).render())
        return response

    @staticmethod
    def _attach_caller(line: RequestLogLine, request: Request) -> None:
        token = bearer_token(request)
        if token is None:
            return
        try:
            payload = decode_access_token(token)
        except AuthenticationError:
            logger.debug("Ignoring undecodable bearer token in request log")
            return

        issued_at = int(payload.iat.timestamp()) if payload.iat else None
        line.user_id = payload.sub
        line.session = session_fingerprint(payload.sub, issued_at)
