from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Sequence

from routedoc.config import DocsConfig, import_target
from routedoc.domain.models import EndpointRecord, RouteHandle
from routedoc.errors import ConfigError
from routedoc.extracting.docblock import DescriptiveCommentSource, HIDE_TAG, is_hidden
from routedoc.extracting.eligibility import CLASS_NOT_FOUND, method_exists, resolve_handler
from routedoc.extracting.extractor import DocstringExtractor, Extractor
from routedoc.matching.route_table import load_route_table
from routedoc.store.yaml_store import EndpointYAMLStore
from routedoc.tools.diagnostics import Diagnostics, format_route
from routedoc.writing.summary import ConsoleSummaryWriter, Writer

EXTRACTED = "extracted"
INVALID = "invalid"
MISSING = "missing"
HIDDEN = "hidden"
FAILED = "failed"


@dataclass(frozen=True)
class ExtractionOutcome:
    route: RouteHandle
    status: str
    record: Optional[EndpointRecord] = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status == EXTRACTED


class ExtractionDriver:
    """
    Runs every route through eligibility, existence, suppression and the
    extractor, in table order. One route's failure never stops the batch.
    """

    def __init__(
        self,
        extractor: Extractor,
        diagnostics: Optional[Diagnostics] = None,
        comment_source: Optional[DescriptiveCommentSource] = None,
    ):
        self.extractor = extractor
        self.diagnostics = diagnostics or Diagnostics()
        self.comment_source = comment_source
        self.log = self.diagnostics.logger

    def process(self, route: RouteHandle) -> ExtractionOutcome:
        label = format_route(route)

        ref = resolve_handler(route.handler)
        if ref is None:
            self.log.warning("Skipping invalid route: %s", label)
            return ExtractionOutcome(route, INVALID, reason="invalid handler")

        check = method_exists(ref)
        if not check.ok:
            if check.reason == CLASS_NOT_FOUND:
                self.log.warning("Skipping route: %s - Controller class could not be loaded.", label)
            else:
                self.log.warning("Skipping route: %s - Controller method does not exist.", label)
            return ExtractionOutcome(route, MISSING, reason=check.detail)

        if is_hidden(check.cls, ref.method, self.comment_source):
            self.log.info("Skipping route: %s: @%s was specified.", label, HIDE_TAG)
            return ExtractionOutcome(route, HIDDEN, reason=f"@{HIDE_TAG}")

        try:
            self.log.info("Processing route: %s", label)
            record = self.extractor.process_route(route, route.rules)
        except Exception as exc:
            self.log.error("Failed processing route: %s - Exception encountered.", label)
            self.diagnostics.dump_exception(exc)
            return ExtractionOutcome(route, FAILED, reason=type(exc).__name__)

        self.log.info("Processed route: %s", label)
        return ExtractionOutcome(route, EXTRACTED, record=record)

    def run(self, routes: Iterable[RouteHandle]) -> list[ExtractionOutcome]:
        return [self.process(r) for r in routes]

    def extract_all(self, routes: Iterable[RouteHandle]) -> list[EndpointRecord]:
        return [o.record for o in self.run(routes) if o.ok and o.record is not None]


def build_extractor(config: DocsConfig) -> Extractor:
    if not config.extractor:
        return DocstringExtractor(default_group=config.default_group, auth_default=config.auth_default)
    factory = import_target(config.extractor)
    return factory(config) if callable(factory) else factory


@dataclass(frozen=True)
class GenerateResult:
    mode: str  # "full" | "reuse"
    routes_seen: int
    extracted: int
    skipped: int
    files_written: list[str]
    endpoints: list[EndpointRecord]
    intermediate_dir: str


def run_generate(
    config: DocsConfig,
    routes: Optional[Sequence[RouteHandle]] = None,
    *,
    force: bool = False,
    no_extraction: bool = False,
    extractor: Optional[Extractor] = None,
    writer: Optional[Writer] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> GenerateResult:
    """
    Extract (unless no_extraction), persist grouped records, reload them from
    the intermediate directory and hand them to the writer.
    """
    store = EndpointYAMLStore(Path(config.intermediate_dir))
    log = logging.getLogger("routedoc.generate")

    routes_seen = extracted = skipped = 0
    files_written: list[str] = []
    mode = "reuse" if no_extraction else "full"

    if not no_extraction:
        if routes is None:
            if not config.routes:
                raise ConfigError("No route table given; set 'routes' in the config or pass --routes")
            routes = load_route_table(config.routes)

        driver = ExtractionDriver(extractor or build_extractor(config), diagnostics)
        records = driver.extract_all(routes)

        routes_seen = len(routes)
        extracted = len(records)
        skipped = routes_seen - extracted

        files_written = [str(p) for p in store.persist(records)]
    else:
        log.info("Skipping extraction; reusing %s", store.directory)

    endpoints = store.load()

    if writer is None:
        writer = ConsoleSummaryWriter(title=config.title, base_url=config.base_url)
    writer.write_docs(endpoints, force=force)

    return GenerateResult(
        mode=mode,
        routes_seen=routes_seen,
        extracted=extracted,
        skipped=skipped,
        files_written=files_written,
        endpoints=endpoints,
        intermediate_dir=str(store.directory),
    )
