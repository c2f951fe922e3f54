"""Byte layout calculation for struct types."""

from dataclasses import dataclass
from enum import StrEnum, auto

from .errors import LayoutError, TypeReferenceError, error_context
from .types import INT_TYPE_RE, AttributeDef, TypeKind, TypeStore
from .util import length_name

# Lengths are integers when known at compile time, otherwise a Python
# expression evaluated in the generated module
Length = int | str

# Primitive (non-integer) field sizes in bytes
PRIMITIVE_SIZES: dict[str, int] = {
    "bool": 1,
    "f32": 4,
    "f64": 8,
}


class SizeKind(StrEnum):
    """Classification of struct layouts."""

    STATIC = auto()  # All offsets are compile-time integers
    DYNAMIC = auto()  # Some length is an expression, offsets use a cursor


@dataclass(frozen=True)
class FieldLayout:
    """Layout of a single struct field."""

    attr: AttributeDef
    element_length: Length
    length: Length

    @property
    def name(self) -> str:
        return self.attr.name

    @property
    def count(self) -> int | str | None:
        return self.attr.options.count


@dataclass(frozen=True)
class StructLayout:
    """Layout of a struct type.

    For expandable structs, `fields` only holds the stable prefix (up to and
    including the first field marked with `abi`); `length` is then the
    minimum length and `dropped` names the fields that were cut.
    """

    name: str
    fields: tuple[FieldLayout, ...]
    length: Length
    expandable: bool
    dropped: tuple[str, ...] = ()

    @property
    def kind(self) -> SizeKind:
        return SizeKind.STATIC if isinstance(self.length, int) else SizeKind.DYNAMIC

    @property
    def is_static(self) -> bool:
        return self.kind == SizeKind.STATIC

    @property
    def length_name(self) -> str:
        return length_name(self.name, self.expandable)

    def offsets(self) -> list[int]:
        """Offsets of each field, for static layouts."""
        if not self.is_static:
            raise ValueError(f"{self.name} has no static offsets")
        offsets: list[int] = []
        offset = 0
        for f in self.fields:
            offsets.append(offset)
            offset += f.length  # type: ignore[operator]
        return offsets


def paren(x: Length) -> str:
    if isinstance(x, int) or x.isidentifier():
        return str(x)
    return f"({x})"


def multiply(element: Length, count: int | str) -> Length:
    if isinstance(element, int) and isinstance(count, int):
        return element * count
    if element == 1:
        return count
    return f"{paren(element)} * {paren(count)}"


def calculate_length(lengths: list[Length]) -> Length:
    """Sum lengths, folding the integer parts together."""
    total = 0
    expressions: list[str] = []
    for x in lengths:
        if isinstance(x, int):
            total += x
        else:
            expressions.append(paren(x))
    if not expressions:
        return total
    if total:
        expressions.insert(0, str(total))
    return " + ".join(expressions)


class LayoutCalculator:
    """Calculate struct layouts (with caching and cycle detection)."""

    def __init__(self, types: TypeStore):
        self.types = types
        self._cache: dict[str, StructLayout] = {}
        self._visiting: list[str] = []

    @property
    def layouts(self) -> dict[str, StructLayout]:
        """Layouts computed so far, nested structs before their users."""
        return dict(self._cache)

    def calc_type_length(self, t: str) -> Length:
        """Calculate the length of a struct field element type."""
        m = INT_TYPE_RE.match(t)
        if m:
            return int(m.group(1)) // 8

        if t in PRIMITIVE_SIZES:
            return PRIMITIVE_SIZES[t]

        type_def = self.types.get(t)
        if type_def is None:
            raise TypeReferenceError(f"Unknown type: {t}")
        if type_def.kind != TypeKind.STRUCT:
            raise TypeReferenceError(f"Invalid type {t} specified as struct type")
        if type_def.is_expandable:
            raise TypeReferenceError(f"Expandable struct {t} cannot be nested in a struct")

        layout = self.calc_struct_layout(t)
        return layout.length if layout.is_static else layout.length_name

    def calc_field_layout(self, attr: AttributeDef) -> FieldLayout:
        t = attr.type
        count = attr.options.count

        if t in ("data", "string"):
            if count is None:
                raise LayoutError(f"Struct {t} member defined without count")
            return FieldLayout(attr, 1, count)

        if not isinstance(t, str) or t == "flag":
            raise LayoutError(f"Type {t} not supported on struct members")

        element = self.calc_type_length(t)
        if count is None:
            return FieldLayout(attr, element, element)
        return FieldLayout(attr, element, multiply(element, count))

    def calc_struct_layout(self, name: str) -> StructLayout:
        """Calculate the layout of a struct (with caching)."""
        if name in self._cache:
            return self._cache[name]

        if name in self._visiting:
            cycle = " -> ".join(self._visiting[self._visiting.index(name) :] + [name])
            raise TypeReferenceError(f"Struct embedding cycle: {cycle}", type_name=name)

        type_def = self.types[name]
        attrs = type_def.attrs
        dropped: tuple[str, ...] = ()
        expandable = type_def.is_expandable
        if expandable:
            # Only the fields up to the first ABI marker are laid out
            cut = next(i for i, a in enumerate(attrs) if a.options.abi) + 1
            attrs, dropped = attrs[:cut], tuple(a.name for a in attrs[cut:])

        self._visiting.append(name)
        try:
            fields: list[FieldLayout] = []
            for attr in attrs:
                with error_context(name, attr.name):
                    fields.append(self.calc_field_layout(attr))
        finally:
            self._visiting.pop()

        layout = StructLayout(
            name=name,
            fields=tuple(fields),
            length=calculate_length([f.length for f in fields]),
            expandable=expandable,
            dropped=dropped,
        )
        self._cache[name] = layout
        return layout
