from __future__ import annotations

import importlib
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ValidationError

from routedoc.domain.models import DEFAULT_GROUP
from routedoc.errors import ConfigError

DEFAULT_CONFIG_FILE = "routedoc.yaml"


class DocsConfig(BaseModel):
    title: str = "API Documentation"
    base_url: Optional[str] = None

    # "module:attribute" pointing at the route table or the app
    routes: Optional[str] = None
    # "module:attribute" of an Extractor class or factory; None -> docstrings
    extractor: Optional[str] = None

    intermediate_dir: str = ".endpoints"
    default_group: str = DEFAULT_GROUP
    auth_default: bool = False


def load_config(path: Optional[Path] = None) -> DocsConfig:
    path = Path(path) if path is not None else Path(DEFAULT_CONFIG_FILE)
    if not path.exists():
        return DocsConfig()

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Could not read config {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must be a mapping")

    try:
        return DocsConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config {path}: {exc}") from exc


def import_target(target: str) -> Any:
    """Resolve "pkg.module:attr.sub" to the object it names."""
    module_name, sep, attr_path = target.partition(":")
    if not sep or not module_name or not attr_path:
        raise ConfigError(f"Expected 'module:attribute', got {target!r}")

    try:
        obj: Any = importlib.import_module(module_name)
        for part in attr_path.split("."):
            obj = getattr(obj, part)
    except (ImportError, AttributeError) as exc:
        raise ConfigError(f"Could not import {target!r}: {exc}") from exc
    return obj
