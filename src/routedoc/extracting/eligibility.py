from __future__ import annotations

import functools
import importlib
import inspect
from dataclasses import dataclass
from typing import Any, Optional

from routedoc.domain.models import RouteHandle

INVOKE_METHOD = "__call__"

CLASS_NOT_FOUND = "class_not_found"
METHOD_MISSING = "method_missing"


@dataclass(frozen=True)
class HandlerRef:
    """A handler resolved to (class or dotted class path or instance, method name)."""

    target: Any
    method: str
    is_invokable: bool = False


@dataclass(frozen=True)
class ExistenceCheck:
    ok: bool
    reason: Optional[str] = None
    cls: Optional[type] = None
    detail: str = ""


def _is_plain_callable(obj: Any) -> bool:
    # functions, lambdas, builtins, partials: callables with no backing class
    if inspect.isfunction(obj) or inspect.isbuiltin(obj):
        return True
    if inspect.ismethod(obj):
        return inspect.ismodule(obj.__self__)
    return callable(obj) and not inspect.isclass(obj) and not _is_invokable_object(obj)


def _is_invokable_object(obj: Any) -> bool:
    # any instance whose class (not object, not a partial) defines __call__, however decorated
    if inspect.isclass(obj) or inspect.isroutine(obj) or isinstance(obj, functools.partial):
        return False
    return any(INVOKE_METHOD in vars(klass) for klass in type(obj).__mro__ if klass is not object)


def _parse_handler_string(value: str) -> Optional[HandlerRef]:
    value = value.strip()
    if not value:
        return None
    if "@" in value:
        class_path, _, method = value.partition("@")
        if not class_path or not method:
            return None
        return HandlerRef(target=class_path, method=method)
    return HandlerRef(target=value, method=INVOKE_METHOD)


def resolve_handler(handler: Any) -> Optional[HandlerRef]:
    """
    Normalize a registered handler into a HandlerRef.

    Returns None for handlers that cannot be documented: None itself,
    plain functions/lambdas and anything else without a backing class.
    """
    if handler is None:
        return None

    if isinstance(handler, str):
        return _parse_handler_string(handler)

    if isinstance(handler, (tuple, list)):
        if len(handler) != 2 or not isinstance(handler[1], str) or not handler[1]:
            return None
        target, method = handler
        if target is None:
            return None
        if _is_invokable_object(target):
            return HandlerRef(target=target, method=method, is_invokable=True)
        if isinstance(target, str) or inspect.isclass(target):
            return HandlerRef(target=target, method=method)
        if _is_plain_callable(target):
            return None
        return HandlerRef(target=type(target), method=method)

    if inspect.isclass(handler):
        return HandlerRef(target=handler, method=INVOKE_METHOD)

    if inspect.ismethod(handler) and not inspect.ismodule(handler.__self__):
        owner = handler.__self__
        cls = owner if inspect.isclass(owner) else type(owner)
        return HandlerRef(target=cls, method=handler.__func__.__name__)

    if _is_invokable_object(handler):
        return HandlerRef(target=handler, method=INVOKE_METHOD, is_invokable=True)

    return None


def is_eligible(route: RouteHandle) -> bool:
    return resolve_handler(route.handler) is not None


def load_class(path: str) -> type:
    """Import "pkg.mod:Class" or "pkg.mod.Class"."""
    if ":" in path:
        module_name, _, qualname = path.partition(":")
    else:
        module_name, _, qualname = path.rpartition(".")
    if not module_name or not qualname:
        raise ImportError(f"Not a dotted class path: {path!r}")

    obj: Any = importlib.import_module(module_name)
    for part in qualname.split("."):
        obj = getattr(obj, part)
    if not inspect.isclass(obj):
        raise ImportError(f"{path!r} does not name a class")
    return obj


def method_exists(ref: HandlerRef) -> ExistenceCheck:
    """
    Load the backing class and check that it declares the handler method.
    Never raises: load failures are reported through the result.
    """
    target = ref.target
    if isinstance(target, str):
        try:
            cls = load_class(target)
        except Exception as exc:
            return ExistenceCheck(ok=False, reason=CLASS_NOT_FOUND, detail=str(exc))
    elif inspect.isclass(target):
        cls = target
    else:
        cls = type(target)

    if not callable(getattr(cls, ref.method, None)):
        return ExistenceCheck(
            ok=False,
            reason=METHOD_MISSING,
            cls=cls,
            detail=f"{cls.__qualname__} has no method {ref.method!r}",
        )
    return ExistenceCheck(ok=True, cls=cls)
