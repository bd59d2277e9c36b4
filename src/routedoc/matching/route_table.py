from __future__ import annotations

import inspect
from typing import Any, Iterable

from routedoc.config import import_target
from routedoc.domain.models import RouteHandle
from routedoc.errors import ConfigError

_HTTP_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _sorted_methods(methods: Iterable[str]) -> list[str]:
    upper = {m.upper() for m in methods}
    known = [m for m in _HTTP_METHODS if m in upper]
    return known + sorted(upper - set(known))


def _class_endpoint_methods(cls: type, declared: list[str]) -> list[str]:
    # HTTPEndpoint-style classes implement one method per verb
    if declared:
        return declared
    return [m for m in _HTTP_METHODS if callable(getattr(cls, m.lower(), None))]


def adapt_app_routes(routes: Iterable[Any]) -> list[RouteHandle]:
    """
    Turn Starlette/FastAPI-style route objects into RouteHandles by duck typing:
    route.path, route.methods, route.endpoint (and route.name when present).
    Mounts and websocket routes without an endpoint or methods are skipped.
    """
    out: list[RouteHandle] = []
    for r in routes:
        path = getattr(r, "path", None)
        endpoint = getattr(r, "endpoint", None)
        if path is None or endpoint is None:
            continue
        methods = _sorted_methods(getattr(r, "methods", None) or ())
        name = getattr(r, "name", None)

        if inspect.isclass(endpoint):
            for m in _class_endpoint_methods(endpoint, methods):
                out.append(RouteHandle(methods=(m,), uri=path, handler=(endpoint, m.lower()), name=name))
            continue

        if not methods:
            continue
        out.append(RouteHandle(methods=tuple(methods), uri=path, handler=endpoint, name=name))
    return out


def load_route_table(target: str) -> list[RouteHandle]:
    """
    Resolve a "module:attribute" target into an ordered route table.

    The attribute may be a sequence of RouteHandles, a zero-argument callable
    returning one, or an app object exposing `.routes`.
    """
    obj = import_target(target)
    if callable(obj) and not hasattr(obj, "routes"):
        obj = obj()

    if hasattr(obj, "routes") and not isinstance(obj, (list, tuple)):
        return adapt_app_routes(obj.routes)

    if isinstance(obj, (list, tuple)):
        if all(isinstance(r, RouteHandle) for r in obj):
            return list(obj)
        return adapt_app_routes(obj)

    raise ConfigError(f"{target!r} is not a route table (got {type(obj).__name__})")
