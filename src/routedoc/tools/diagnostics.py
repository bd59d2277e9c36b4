from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from routedoc.domain.models import RouteHandle

LOGGER_NAME = "routedoc"


def setup_logging(verbose: bool = False, console: Optional[Console] = None) -> logging.Logger:
    """Attach a RichHandler to the package logger (idempotent)."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    for h in list(logger.handlers):
        if isinstance(h, RichHandler):
            logger.removeHandler(h)

    handler = RichHandler(
        console=console,
        show_time=False,
        show_path=verbose,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return logger


def format_route(route: RouteHandle) -> str:
    # [GET,HEAD] /users/{id}
    return f"[{','.join(m.upper() for m in route.methods)}] {route.uri}"


@dataclass(frozen=True)
class Diagnostics:
    """Verbosity is passed in explicitly; nothing reads a global flag."""

    verbose: bool = False
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(f"{LOGGER_NAME}.extraction"))

    def dump_exception(self, exc: BaseException) -> None:
        if self.verbose:
            self.logger.error("%s: %s", type(exc).__name__, exc, exc_info=exc)
        else:
            self.logger.info("Run with --verbose for full error details.")
