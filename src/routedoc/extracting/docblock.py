from __future__ import annotations

import inspect
import re
from dataclasses import dataclass
from typing import Optional, Protocol

from routedoc.domain.models import RouteHandle
from routedoc.extracting.eligibility import method_exists, resolve_handler

HIDE_TAG = "hideFromAPIDocumentation"

_TAG_LINE = re.compile(r"^@([A-Za-z_][\w-]*)\s*(.*)$")


@dataclass(frozen=True)
class Tag:
    name: str
    value: str = ""


@dataclass(frozen=True)
class DocBlock:
    """
    A parsed docstring:

        Short description.

        Long description, any number of paragraphs.

        @group Users
        @authenticated

    Tags are lines starting with "@"; everything else is text.
    """

    short_description: str
    long_description: str
    tags: tuple[Tag, ...]

    @classmethod
    def parse(cls, text: Optional[str]) -> "DocBlock":
        if not text:
            return cls("", "", ())

        tags: list[Tag] = []
        body: list[str] = []
        for raw in inspect.cleandoc(text).splitlines():
            line = raw.strip()
            m = _TAG_LINE.match(line)
            if m:
                tags.append(Tag(name=m.group(1), value=m.group(2).strip()))
            else:
                body.append(raw.rstrip())

        paragraphs = "\n".join(body).strip().split("\n\n", 1)
        short = " ".join(paragraphs[0].split())
        long = paragraphs[1].strip() if len(paragraphs) > 1 else ""
        return cls(short, long, tuple(tags))

    def tag_names(self) -> set[str]:
        return {t.name.lower() for t in self.tags}

    def get(self, name: str) -> list[Tag]:
        name = name.lower()
        return [t for t in self.tags if t.name.lower() == name]

    def has(self, name: str) -> bool:
        return name.lower() in self.tag_names()


class DescriptiveCommentSource(Protocol):
    def class_tags(self, cls: type) -> set[str]: ...

    def method_tags(self, cls: type, method: str) -> set[str]: ...


class DocstringCommentSource:
    """Reads tags from class and method docstrings."""

    def class_doc(self, cls: type) -> DocBlock:
        return DocBlock.parse(cls.__doc__)

    def method_doc(self, cls: type, method: str) -> DocBlock:
        func = getattr(cls, method, None)
        if func is None:
            return DocBlock.parse(None)
        # the override's own docstring only; an undocumented override does not inherit tags
        return DocBlock.parse(getattr(func, "__doc__", None))

    def class_tags(self, cls: type) -> set[str]:
        return self.class_doc(cls).tag_names()

    def method_tags(self, cls: type, method: str) -> set[str]:
        return self.method_doc(cls, method).tag_names()


def is_hidden(
    cls: Optional[type],
    method: str,
    source: Optional[DescriptiveCommentSource] = None,
) -> bool:
    """Class-level marker wins; the method docstring is only read when the class has none."""
    source = source or DocstringCommentSource()
    hide = HIDE_TAG.lower()
    if cls is not None:
        if hide in source.class_tags(cls):
            return True
        return hide in source.method_tags(cls, method)
    return False


def is_suppressed(route: RouteHandle, source: Optional[DescriptiveCommentSource] = None) -> bool:
    """Route-level entry point; closures only carry their own docstring."""
    ref = resolve_handler(route.handler)
    if ref is None:
        if callable(route.handler):
            return HIDE_TAG.lower() in DocBlock.parse(getattr(route.handler, "__doc__", None)).tag_names()
        return False

    check = method_exists(ref)
    if check.cls is None:
        return False
    return is_hidden(check.cls, ref.method, source)
