"""
Success Response Interceptor Middleware.

Wraps every successful JSON response in the API envelope:
{
    "success": true,
    "data": <original response>,
    "count": <length> (only when data is a list)
}
Error responses are already enveloped by the exception handlers and pass through.
"""

import json
from typing import Any, Callable, Dict
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.middleware.base import BaseHTTPMiddleware


# request.state attribute (and endpoint attribute) that disables wrapping
SKIP_INTERCEPTOR_KEY = "skip_interceptor"

# Docs and liveness keep their own shapes
EXCLUDED_PATHS = ("/openapi.json", "/docs", "/redoc", "/health")


def envelope(data: Any) -> Dict[str, Any]:
    body = {"success": True, "data": data}
    if isinstance(data, list):
        body["count"] = len(data)
    return body


def _should_wrap(request: Request, response: Response) -> bool:
    return (
        request.url.path not in EXCLUDED_PATHS
        and 200 <= response.status_code < 300
        and not getattr(request.state, SKIP_INTERCEPTOR_KEY, False)
        and "application/json" in response.headers.get("content-type", "")
    )


class SuccessResponseInterceptor(BaseHTTPMiddleware):
    """
    Envelope middleware.

    Routes decorated with @skip_interceptor (and served through CustomAPIRoute)
    return their body untouched.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        if not _should_wrap(request, response):
            return response

        raw = b"".join([chunk async for chunk in response.body_iterator])
        headers = dict(response.headers)
        try:
            payload = json.loads(raw.decode())
        except (json.JSONDecodeError, UnicodeDecodeError):
            return Response(content=raw, status_code=response.status_code, headers=headers)

        # JSONResponse sets its own length
        headers.pop("content-length", None)
        return JSONResponse(
            content=envelope(payload), status_code=response.status_code, headers=headers
        )


def skip_interceptor(func: Callable) -> Callable:
    """
    Serve the endpoint's body as is, without the success envelope.
    Only effective on routers built with ``route_class=CustomAPIRoute``.

    Usage:
        @router.delete("/{id}")
        @skip_interceptor
        async def remove(id: int):
            return {"success": True, "message": "Deleted"}
    """
    setattr(func, SKIP_INTERCEPTOR_KEY, True)
    return func


class CustomAPIRoute(APIRoute):
    """Copies the endpoint's skip flag onto request.state for the middleware."""

    def get_route_handler(self) -> Callable:
        handler = super().get_route_handler()
        skip = getattr(self.endpoint, SKIP_INTERCEPTOR_KEY, False)

        async def route_handler(request: Request) -> Response:
            if skip:
                setattr(request.state, SKIP_INTERCEPTOR_KEY, True)
            return await handler(request)

        return route_handler
