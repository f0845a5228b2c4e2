"""
Cafeteria Queue — JWT Authentication Middleware
Validates Bearer token on all protected routes; returns 401 on failure.
"""
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from jose import JWTError

from app.core.security import decode_token

# Paths that do NOT require authentication
PUBLIC_PATHS = {
    "/health",
    "/metrics",
    "/",
    "/docs",
    "/openapi.json",
}

# Catalog reads are public (students browse slots and menu before logging in)
PUBLIC_READ_PREFIXES = ("/catalog/",)


class JWTAuthMiddleware(BaseHTTPMiddleware):
    """
    Intercepts every request. Validates JWT Bearer token.
    Attaches decoded claims (sub, role) to request.state.user on success.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method == "OPTIONS":
            return await call_next(request)

        path = request.url.path
        if path in PUBLIC_PATHS or path.startswith("/metrics"):
            return await call_next(request)
        if request.method == "GET" and path.startswith(PUBLIC_READ_PREFIXES):
            return await call_next(request)

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return JSONResponse(
                status_code=401,
                content={"detail": "Missing or invalid Authorization header. Expected: Bearer <token>"},
                headers={"WWW-Authenticate": "Bearer"},
            )

        token = auth_header.split(" ", 1)[1]
        try:
            claims = decode_token(token)
        except JWTError as exc:
            return JSONResponse(
                status_code=401,
                content={"detail": f"Invalid or expired JWT: {str(exc)}"},
                headers={"WWW-Authenticate": "Bearer"},
            )

        if not claims.get("sub") or not claims.get("role"):
            return JSONResponse(
                status_code=401,
                content={"detail": "JWT is missing 'sub' or 'role' claim."},
                headers={"WWW-Authenticate": "Bearer"},
            )

        request.state.user = claims
        return await call_next(request)
