from fastapi import FastAPI, Request
from typing import Dict, List, Optional, Sequence
from settings import Settings, get_allowed_origins_list

ALLOW_METHODS = "POST, OPTIONS, GET"
ALLOW_HEADERS = "Content-Type"

def resolve_allow_origin(origin: Optional[str], allowed: Sequence[str], default: str) -> str:
    if not allowed:
        return "*"
    if origin and origin in allowed:
        return origin
    return default

def cors_headers(origin: Optional[str], allowed: Sequence[str], default: str) -> Dict[str, str]:
    allow_origin = resolve_allow_origin(origin, allowed, default)
    headers = {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Methods": ALLOW_METHODS,
        "Access-Control-Allow-Headers": ALLOW_HEADERS,
    }
    if allowed:
        headers["Vary"] = "Origin"
    return headers

def allowed_origins(settings: Settings) -> List[str]:
    allowed = get_allowed_origins_list(settings.ALLOWED_ORIGINS)
    if allowed == ["*"]:
        return []
    return allowed

def request_cors_headers(request: Request, settings: Settings) -> Dict[str, str]:
    return cors_headers(request.headers.get("origin"), allowed_origins(settings), settings.DEFAULT_ORIGIN)

def attach_cors(app: FastAPI, settings: Settings):
    # every response gets the headers, 204 preflights and error bodies included;
    # unhandled 500s bypass this layer and stamp them via request_cors_headers
    @app.middleware("http")
    async def add_cors_headers(request: Request, call_next):
        response = await call_next(request)
        for k, v in request_cors_headers(request, settings).items():
            response.headers[k] = v
        return response
