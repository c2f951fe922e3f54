"""Naming helpers shared by the code generators."""

import re

_SNAKE_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def to_camel_case(name: str) -> str:
    """Convert an UPPER_SNAKE constant name to camelCase, keeping leading underscores."""
    stripped = name.lstrip("_")
    prefix = name[: len(name) - len(stripped)]
    words = stripped.lower().split("_")
    return prefix + words[0] + "".join(w[:1].upper() + w[1:] for w in words[1:])


def to_snake_case(name: str) -> str:
    """Convert a CamelCase type name to snake_case."""
    return _SNAKE_BOUNDARY.sub("_", name).lower()


def flag_set_name(enum_name: str) -> str:
    """Name of the TypedDict holding the derived flag set of an enum."""
    return f"{enum_name}Set"


def parse_fn(type_name: str, suffix: str = "") -> str:
    return f"parse_{to_snake_case(type_name)}{suffix}"


def format_fn(type_name: str, suffix: str = "") -> str:
    return f"format_{to_snake_case(type_name)}{suffix}"


def length_name(struct_name: str, expandable: bool = False) -> str:
    return f"MINLENGTH_{struct_name}" if expandable else f"LENGTH_{struct_name}"
