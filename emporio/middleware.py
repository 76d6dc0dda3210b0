# emporio/middleware.py
"""
Middlewares HTTP: cabeçalhos de segurança em todas as respostas e limite de
requisições por cliente nas rotas `/api/`.

O limitador é em memória (janela deslizante por IP), suficiente para um
único processo.
"""
from __future__ import annotations

import math
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

RATE_LIMIT_MESSAGE = "Muitas requisições. Tente novamente em breve."

SECURITY_HEADERS: Dict[str, str] = {
    "x-content-type-options": "nosniff",
    "x-frame-options": "SAMEORIGIN",
    "x-xss-protection": "0",
    "referrer-policy": "no-referrer",
    "cross-origin-opener-policy": "same-origin",
    "cross-origin-resource-policy": "same-origin",
    "x-dns-prefetch-control": "off",
    "x-download-options": "noopen",
    "x-permitted-cross-domain-policies": "none",
    "strict-transport-security": "max-age=15552000; includeSubDomains",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        if "x-powered-by" in response.headers:
            del response.headers["x-powered-by"]
        return response


class RateLimiter:
    """Janela deslizante: no máximo `max_requests` por `window_seconds` por chave."""

    def __init__(
        self,
        max_requests: int = 200,
        window_seconds: float = 60.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def hit(self, key: str) -> Tuple[bool, int, int]:
        """
        Registra uma requisição. Retorna (permitida, restantes, segundos até
        liberar a vaga mais antiga).
        """
        now = self.clock()
        cutoff = now - self.window_seconds
        with self._lock:
            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= cutoff:
                hits.popleft()
            allowed = len(hits) < self.max_requests
            if allowed:
                hits.append(now)
            reset = math.ceil(hits[0] + self.window_seconds - now) if hits else 0
            return allowed, max(0, self.max_requests - len(hits)), max(0, reset)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: RateLimiter, prefix: str = "/api/"):
        super().__init__(app)
        self.limiter = limiter
        self.prefix = prefix

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(self.prefix):
            return await call_next(request)

        key = request.client.host if request.client else "anon"
        allowed, remaining, reset = self.limiter.hit(key)
        headers = {
            "RateLimit-Limit": str(self.limiter.max_requests),
            "RateLimit-Remaining": str(remaining),
            "RateLimit-Reset": str(reset),
        }
        if not allowed:
            headers["Retry-After"] = str(reset)
            return JSONResponse(status_code=429, content={"error": RATE_LIMIT_MESSAGE}, headers=headers)

        response = await call_next(request)
        response.headers.update(headers)
        return response
