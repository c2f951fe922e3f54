"""Shared helpers for rendering generated Python code."""

from dataclasses import dataclass, field
from typing import Any

from jinja2 import Environment, PackageLoader

from .types import TypeKind

env = Environment(
    loader=PackageLoader("nlcodec.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)
env.filters["hex"] = hex


@dataclass(frozen=True)
class Field:
    """A key of a generated TypedDict."""

    name: str
    type: str
    comments: list[str] = field(default_factory=list)


@dataclass
class CodeBlock:
    """Generated code for a single declared type."""

    name: str
    kind: TypeKind
    code: str
    functions: list[str] = field(default_factory=list)


def render_template(template_name: str, **kwargs: Any) -> str:
    return env.get_template(template_name).render(**kwargs)


def comment_lines(docs: list[str] | None) -> list[str]:
    """Render documentation lines as Python comments."""
    return [f"# {line}".rstrip() for line in docs or []]


def indent(lines: list[str], level: int = 1) -> list[str]:
    prefix = "    " * level
    return [prefix + line if line else line for line in lines]


def offset(base: int | str, extra: int | str) -> str:
    """Python expression for `base + extra`, folding literals."""
    if isinstance(base, int) and isinstance(extra, int):
        return str(base + extra)
    if base == 0:
        return str(extra)
    if extra == 0:
        return str(base)
    return f"{base} + {extra}"
