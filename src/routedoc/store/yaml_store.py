from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable

import yaml
from pydantic import ValidationError

from routedoc.domain.models import EndpointGroup, EndpointRecord
from routedoc.errors import IntermediateFileError, PersistenceError

logger = logging.getLogger("routedoc.store")


def group_endpoints(records: Iterable[EndpointRecord]) -> list[EndpointGroup]:
    """Group by group name: first-seen group order, extraction order inside a group."""
    by_group: dict[str, list[EndpointRecord]] = {}
    descriptions: dict[str, str | None] = {}

    for r in records:
        name = r.group_name
        by_group.setdefault(name, []).append(r)
        if descriptions.get(name) is None:
            descriptions[name] = r.metadata.group_description

    return [
        EndpointGroup(name=name, description=descriptions.get(name), endpoints=tuple(eps))
        for name, eps in by_group.items()
    ]


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def _file_sort_key(path: Path) -> tuple[int, int, str]:
    # 2.yaml before 10.yaml; non-numeric names last
    if path.stem.isdigit():
        return (0, int(path.stem), path.name)
    return (1, 0, path.name)


class EndpointYAMLStore:
    """Numbered YAML files, one per endpoint group.

    The directory is the only artifact handed from extraction to the writers,
    and users may edit the files by hand between runs.
    """

    DEFAULT_DIR = ".endpoints"
    EXTENSION = ".yaml"

    def __init__(self, directory: Path | str = DEFAULT_DIR):
        self.directory = Path(directory)

    # ----------------------------
    # Write
    # ----------------------------

    def persist(self, records: Iterable[EndpointRecord]) -> list[Path]:
        groups = group_endpoints(records)

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(
                f"Could not create intermediate directory {self.directory}: {exc}",
                path=self.directory,
            ) from exc

        self._remove_group_files()

        written: list[Path] = []
        for i, group in enumerate(groups):
            path = self.directory / f"{i}{self.EXTENSION}"
            self._write_atomic(path, self._dump_group(group))
            written.append(path)

        logger.debug("Wrote %d group file(s) to %s", len(written), self.directory)
        return written

    def _remove_group_files(self) -> None:
        # stale files from a run with more groups would otherwise be reloaded
        for stale in self.group_files():
            try:
                stale.unlink()
            except OSError as exc:
                raise PersistenceError(f"Could not remove stale file {stale}: {exc}", path=stale) from exc

    def _dump_group(self, group: EndpointGroup) -> str:
        payload = {
            "name": group.name,
            "description": group.description,
            "endpoints": [e.model_dump(mode="json") for e in group.endpoints],
        }
        return yaml.safe_dump(
            payload,
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
            width=120,
        )

    def _write_atomic(self, path: Path, text: str) -> None:
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}-", suffix=".tmp", dir=self.directory)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            # mkstemp creates 0600; group files get the usual umask-derived mode
            os.chmod(tmp_name, 0o666 & ~_current_umask())
            os.replace(tmp_name, path)
        except OSError as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError(f"Could not write {path}: {exc}", path=path) from exc

    # ----------------------------
    # Read
    # ----------------------------

    def group_files(self) -> list[Path]:
        if not self.directory.is_dir():
            return []
        files = [p for p in self.directory.iterdir() if p.is_file() and p.suffix == self.EXTENSION]
        return sorted(files, key=_file_sort_key)

    def load_groups(self) -> list[EndpointGroup]:
        return [self._load_file(p) for p in self.group_files()]

    def load(self) -> list[EndpointRecord]:
        out: list[EndpointRecord] = []
        for group in self.load_groups():
            out.extend(group.endpoints)
        return out

    def _load_file(self, path: Path) -> EndpointGroup:
        try:
            data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise IntermediateFileError(f"Could not read {path}: {exc}", path=path) from exc

        if data is None:
            return EndpointGroup(name=path.stem, description=None, endpoints=())

        # a bare list of endpoints is accepted for hand-written files
        if isinstance(data, list):
            data = {"endpoints": data}
        if not isinstance(data, dict) or not isinstance(data.get("endpoints", []), list):
            raise IntermediateFileError(f"{path} must contain a mapping with an 'endpoints' list", path=path)

        try:
            endpoints = tuple(EndpointRecord.model_validate(e) for e in data.get("endpoints") or [])
        except ValidationError as exc:
            raise IntermediateFileError(f"Invalid endpoint in {path}: {exc}", path=path) from exc

        name = data.get("name")
        if not name:
            name = endpoints[0].group_name if endpoints else path.stem
        return EndpointGroup(name=str(name), description=data.get("description"), endpoints=endpoints)


def persist_endpoints(records: Iterable[EndpointRecord], directory: Path | str) -> list[Path]:
    return EndpointYAMLStore(directory).persist(records)


def load_endpoints(directory: Path | str) -> list[EndpointRecord]:
    return EndpointYAMLStore(directory).load()
