"""
Compile endpoints into FastAPI routes.

POST routes take the request model as a JSON body; GET routes read it from
the query string, or take nothing when the model has no fields. Storefront
errors, raised or returned, become JSON error responses with the status of
their family.
"""

import logging
from typing import Annotated, Any

import fastapi
from fastapi.responses import JSONResponse
from kungfu import Result

from storefront.errors import StorefrontError
from storefront.ops import Op, Runner
from storefront.wire._endpoint import Application, Endpoint
from storefront.wire._errors import status_for

logger = logging.getLogger(__name__)


def _make_handler(method: str, req_cls: type[Any], resp_cls: type[Any], runner: Runner) -> Any:
    async def run(req: Any) -> Any:
        op: Op[Any, Any] = req.to_domain()
        result: Result[Any, Any] = await runner.run(op)
        return resp_cls.from_domain(result)

    if method == "GET" and not getattr(req_cls, "model_fields", None):

        async def no_params() -> Any:
            return await run(req_cls())

        no_params.__annotations__ = {"return": resp_cls}
        return no_params

    async def route_handler(req: Any) -> Any:
        return await run(req)

    annotated = Annotated[req_cls, fastapi.Query()] if method == "GET" else req_cls
    route_handler.__annotations__ = {"req": annotated, "return": resp_cls}
    return route_handler


def compile_routes(endp: Endpoint) -> list[tuple[str, str, Any]]:
    """(method, path, handler) for every exposure of ``endp``."""
    routes: list[tuple[str, str, Any]] = []
    for trigger, codec in endp.exposures:
        method = trigger.method.upper()
        routes.append((method, trigger.path, _make_handler(method, codec.request, codec.response, endp.runner)))
    return routes


async def _storefront_error(request: fastapi.Request, exc: StorefrontError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


def add_endpoint(app: fastapi.FastAPI, endp: Endpoint) -> None:
    for method, path, handler in compile_routes(endp):
        app.add_api_route(path, handler, methods=[method])


def from_application(app: Application, *, title: str = "storefront") -> fastapi.FastAPI:
    f_app = fastapi.FastAPI(title=title)
    f_app.add_exception_handler(StorefrontError, _storefront_error)  # type: ignore[arg-type]
    for endp in app.endpoints:
        add_endpoint(f_app, endp)
    return f_app


__all__ = ("compile_routes", "add_endpoint", "from_application")
