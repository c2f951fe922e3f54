"""Schema errors raised while loading and compiling type definitions."""

from collections.abc import Iterator
from contextlib import contextmanager


class SchemaError(RuntimeError):
    """Base class for errors that reject a schema.

    The offending type and field are attached as they become known, so
    errors raised deep inside the resolver still name their site.
    """

    def __init__(self, message: str, *, type_name: str | None = None, field: str | None = None):
        self.message = message
        self.type_name = type_name
        self.field = field
        super().__init__(self._format())

    def _format(self) -> str:
        site = ".".join(part for part in (self.type_name, self.field) if part)
        return f"{site}: {self.message}" if site else self.message

    def add_context(self, type_name: str, field: str | None = None) -> None:
        """Attach the type/field being compiled, unless already known."""
        if self.type_name:
            return
        self.type_name = type_name or None
        self.field = self.field or field
        self.args = (self._format(),)


class ValidationError(SchemaError):
    """Raised when the schema is structurally invalid."""


class TypeReferenceError(SchemaError):
    """Unknown type name, or a type of the wrong kind at a reference site."""


class LowerTypeError(SchemaError):
    """Lower type over a forbidden base type, or naming the wrong kind."""


class LayoutError(SchemaError):
    """Struct field that cannot be laid out."""


class ValueDefError(SchemaError):
    """Invalid enum or flags value definition."""


@contextmanager
def error_context(type_name: str, field: str | None = None) -> Iterator[None]:
    """Name the type (and field) in any SchemaError raised inside the block."""
    try:
        yield
    except SchemaError as e:
        e.add_context(type_name, field)
        raise
