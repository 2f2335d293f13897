"""HTTP interface to the session manager."""

import json
import time
from importlib.metadata import PackageNotFoundError, version

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from pot_provider.errors import ErrorKind, TokenProviderError
from pot_provider.logging import get_logger
from pot_provider.session import SessionManager

logger = get_logger("server")

ERROR_STATUS = {
    ErrorKind.IDENTIFIER_GENERATION: 502,
    ErrorKind.PROXY_CONFIG: 400,
    ErrorKind.TRANSPORT: 502,
    ErrorKind.CHALLENGE: 502,
    ErrorKind.TOKEN_GENERATION: 500,
    ErrorKind.INVALID_TOKEN: 500,
}


class RequestError(Exception):
    """Malformed inbound request."""
    pass


def _package_version() -> str:
    try:
        return version("pot-provider")
    except PackageNotFoundError:
        return "unknown"


def _error_response(message: str, code: str, status: int) -> JSONResponse:
    return JSONResponse({"error": message, "code": code}, status_code=status)


async def _read_json(request: Request) -> dict:
    body = await request.body()
    if not body:
        return {}
    try:
        data = json.loads(body)
    except ValueError:
        raise RequestError("Request body must be valid JSON")
    if not isinstance(data, dict):
        raise RequestError("Request body must be a JSON object")
    return data


def _optional_str(data: dict, key: str) -> str | None:
    value = data.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise RequestError(f"Field '{key}' must be a string")
    return value


def _flag(data: dict, key: str) -> bool:
    value = data.get(key, False)
    if not isinstance(value, bool):
        raise RequestError(f"Field '{key}' must be a boolean")
    return value


def create_app(manager: SessionManager) -> Starlette:
    """Create the ASGI application around a manager."""
    started_at = time.monotonic()

    async def get_pot(request: Request) -> Response:
        try:
            data = await _read_json(request)
            kwargs = {
                "content_binding": _optional_str(data, "content_binding"),
                "proxy": _optional_str(data, "proxy"),
                "bypass_cache": _flag(data, "bypass_cache"),
                "source_address": _optional_str(data, "source_address"),
                "disable_tls_verification": _flag(data, "disable_tls_verification"),
            }
        except RequestError as e:
            return _error_response(str(e), "INVALID_REQUEST", 400)

        try:
            session = await manager.request_token(**kwargs)
        except TokenProviderError as e:
            logger.error("Token request failed (%s): %s", e.kind.value, e.message)
            return _error_response(e.message, e.kind.value, ERROR_STATUS[e.kind])

        return JSONResponse(session.to_dict())

    async def invalidate_caches(request: Request) -> Response:
        manager.invalidate_all()
        return Response(status_code=204)

    async def get_cache(request: Request) -> Response:
        cleanup = request.query_params.get("cleanup", "").lower() in ("1", "true", "yes")
        snapshot = manager.get_cache_snapshot(cleanup=cleanup)
        return JSONResponse({key: session.to_dict() for key, session in snapshot.items()})

    async def put_cache(request: Request) -> Response:
        try:
            data = await _read_json(request)
            manager.set_cache(data)
        except (RequestError, ValueError, TypeError) as e:
            return _error_response(str(e), "INVALID_REQUEST", 400)
        return Response(status_code=204)

    async def ping(request: Request) -> Response:
        return JSONResponse({
            "server_uptime": time.monotonic() - started_at,
            "version": _package_version(),
        })

    async def health(request: Request) -> Response:
        return JSONResponse({"status": "ok"})

    return Starlette(
        routes=[
            Route("/get_pot", endpoint=get_pot, methods=["POST"]),
            Route("/invalidate_caches", endpoint=invalidate_caches, methods=["POST"]),
            Route("/cache", endpoint=get_cache, methods=["GET"]),
            Route("/cache", endpoint=put_cache, methods=["PUT"]),
            Route("/ping", endpoint=ping),
            Route("/health", endpoint=health),
        ]
    )
