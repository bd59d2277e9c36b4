from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_GROUP = "Endpoints"


@dataclass(frozen=True)
class RouteHandle:
    """One registered route as handed over by the route table.

    `handler` is whatever the host app registered: a (class, method) pair,
    a "module:Class@method" string, a plain callable, an invokable instance
    or None.
    """

    methods: tuple[str, ...]
    uri: str
    handler: Any = None
    rules: Mapping[str, Any] = field(default_factory=dict)
    name: Optional[str] = None


def _json_native(value: Any) -> Any:
    """Coerce to what YAML/JSON stores (tuples become lists); reject NaN, inf and opaque objects."""
    if value is None:
        return None
    try:
        return json.loads(json.dumps(value, allow_nan=False))
    except (TypeError, ValueError) as exc:
        raise ValueError(f"not a JSON-compatible value: {exc}") from exc


class Metadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    group_name: Optional[str] = None
    group_description: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    authenticated: bool = False


class Parameter(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    type: str = "string"
    description: str = ""
    required: bool = False
    example: Any = None

    @field_validator("example")
    @classmethod
    def example_is_json(cls, v: Any) -> Any:
        return _json_native(v)


class Response(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: int = 200
    content: Optional[str] = None
    description: str = ""


class EndpointRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    http_methods: list[str]
    uri: str
    metadata: Metadata = Field(default_factory=Metadata)

    headers: dict[str, str] = Field(default_factory=dict)
    url_parameters: dict[str, Parameter] = Field(default_factory=dict)
    query_parameters: dict[str, Parameter] = Field(default_factory=dict)
    body_parameters: dict[str, Parameter] = Field(default_factory=dict)
    responses: list[Response] = Field(default_factory=list)
    response_fields: Optional[dict[str, Any]] = None

    @field_validator("response_fields")
    @classmethod
    def response_fields_are_json(cls, v: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
        return _json_native(v)

    @property
    def group_name(self) -> str:
        return self.metadata.group_name or DEFAULT_GROUP

    def endpoint_id(self) -> str:
        # content identity; file indices are not stable across runs
        return f"{','.join(self.http_methods)} {self.uri}"


@dataclass(frozen=True)
class EndpointGroup:
    name: str
    description: Optional[str]
    endpoints: tuple[EndpointRecord, ...]
