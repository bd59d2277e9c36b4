from __future__ import annotations

import re
from typing import Any, Iterable, Mapping, Optional, Protocol

from routedoc.domain.models import (
    DEFAULT_GROUP,
    EndpointRecord,
    Metadata,
    Parameter,
    Response,
    RouteHandle,
)
from routedoc.extracting.docblock import DocBlock, DocstringCommentSource, Tag
from routedoc.extracting.eligibility import method_exists, resolve_handler

_URI_PARAM = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)(?::[^}]*)?\??\}")

# rule token -> documented parameter type
_RULE_TYPES = {
    "integer": "integer",
    "int": "integer",
    "numeric": "number",
    "number": "number",
    "boolean": "boolean",
    "bool": "boolean",
    "array": "array",
    "list": "array",
    "file": "file",
    "image": "file",
    "string": "string",
    "str": "string",
}


class Extractor(Protocol):
    def process_route(self, route: RouteHandle, rules: Mapping[str, Any]) -> EndpointRecord: ...


def _rule_tokens(rule: Any) -> list[str]:
    if isinstance(rule, str):
        return [t.split(":", 1)[0].strip().lower() for t in rule.split("|") if t.strip()]
    if isinstance(rule, (list, tuple, set)):
        return [str(t).split(":", 1)[0].strip().lower() for t in rule]
    return []


def _parse_param_tag(tag: Tag) -> Optional[Parameter]:
    # @bodyParam name type [required] description...
    parts = tag.value.split()
    if not parts:
        return None
    name = parts[0]
    type_ = parts[1] if len(parts) > 1 else "string"
    rest = parts[2:]
    required = bool(rest) and rest[0].lower() == "required"
    if required:
        rest = rest[1:]
    return Parameter(name=name, type=type_, required=required, description=" ".join(rest))


def _parse_response_tag(tag: Tag) -> Response:
    # @response [status] content
    value = tag.value.strip()
    head, _, tail = value.partition(" ")
    if head.isdigit():
        return Response(status=int(head), content=tail.strip() or None)
    return Response(status=200, content=value or None)


def _params(tags: Iterable[Tag]) -> dict[str, Parameter]:
    out: dict[str, Parameter] = {}
    for tag in tags:
        p = _parse_param_tag(tag)
        if p is not None:
            out[p.name] = p
    return out


class DocstringExtractor:
    """
    Builds an EndpointRecord from the handler's docstrings.

    Class docstring tags (@group, @groupDescription, @authenticated) apply to
    every method; method tags override them.
    """

    def __init__(self, default_group: str = DEFAULT_GROUP, auth_default: bool = False):
        self.default_group = default_group
        self.auth_default = auth_default
        self.source = DocstringCommentSource()

    def process_route(self, route: RouteHandle, rules: Mapping[str, Any]) -> EndpointRecord:
        ref = resolve_handler(route.handler)
        if ref is None:
            raise ValueError(f"Route handler cannot be resolved: {route.handler!r}")
        check = method_exists(ref)
        if not check.ok or check.cls is None:
            raise LookupError(check.detail or f"Handler method {ref.method!r} not found")

        class_doc = self.source.class_doc(check.cls)
        method_doc = self.source.method_doc(check.cls, ref.method)

        return EndpointRecord(
            http_methods=[m.upper() for m in route.methods],
            uri=route.uri,
            metadata=self._metadata(class_doc, method_doc),
            url_parameters=self._url_parameters(route.uri, method_doc),
            query_parameters=_params(method_doc.get("queryParam")),
            body_parameters=self._body_parameters(method_doc, rules),
            responses=[_parse_response_tag(t) for t in method_doc.get("response")],
        )

    def _metadata(self, class_doc: DocBlock, method_doc: DocBlock) -> Metadata:
        def last_value(name: str) -> Optional[str]:
            for doc in (method_doc, class_doc):
                tags = doc.get(name)
                if tags:
                    return tags[-1].value or None
            return None

        authenticated = self.auth_default
        for doc in (class_doc, method_doc):
            if doc.has("authenticated"):
                authenticated = True
            if doc.has("unauthenticated"):
                authenticated = False

        return Metadata(
            group_name=last_value("group") or self.default_group,
            group_description=last_value("groupDescription"),
            title=method_doc.short_description or None,
            description=method_doc.long_description or None,
            authenticated=authenticated,
        )

    def _url_parameters(self, uri: str, method_doc: DocBlock) -> dict[str, Parameter]:
        declared = _params(method_doc.get("urlParam"))
        out: dict[str, Parameter] = {}
        for name in _URI_PARAM.findall(uri):
            out[name] = declared.pop(name, Parameter(name=name, required=True))
        out.update(declared)
        return out

    def _body_parameters(self, method_doc: DocBlock, rules: Mapping[str, Any]) -> dict[str, Parameter]:
        out = _params(method_doc.get("bodyParam"))
        for name, rule in (rules or {}).items():
            tokens = _rule_tokens(rule)
            type_ = next((_RULE_TYPES[t] for t in tokens if t in _RULE_TYPES), "string")
            required = "required" in tokens
            if name in out:
                p = out[name]
                out[name] = p.model_copy(update={"required": p.required or required})
            else:
                out[name] = Parameter(name=name, type=type_, required=required)
        return out
