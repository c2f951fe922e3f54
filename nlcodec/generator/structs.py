"""Code generation for fixed-layout struct types."""

from collections.abc import Callable
from dataclasses import dataclass

from .codegen import CodeBlock, Field, comment_lines, indent, offset, render_template
from .errors import LowerTypeError, error_context
from .layout import FieldLayout, LayoutCalculator, Length, StructLayout, paren
from .resolver import TypeResolver
from .types import FLOAT_TYPES, INT_TYPE_RE, LowerType, TypeKind
from .util import format_fn, parse_fn

# (offset) -> decoded value expression
Reader = Callable[[Length], str]
# (offset, value expression) -> statement
Writer = Callable[[Length, str], str]


@dataclass(frozen=True)
class ElementCodec:
    """How a single struct element is read and written."""

    type: str
    read: Reader
    write: Writer


def element_codec(
    t: str, lower: LowerType | None, length: Length, resolver: TypeResolver, site: str = ""
) -> ElementCodec:
    """Codec of a fixed-size element, reading from `r` and writing to `w`."""
    if INT_TYPE_RE.match(t):
        low = resolver.resolve_int(t, lower, site)
        return ElementCodec(
            low.type or "int",
            lambda o: low.parse(f'structs.read("{t}", r, {o})'),
            lambda o, v: f'structs.write("{t}", w, {low.format(v)}, {o})',
        )

    if lower is not None:
        raise LowerTypeError(f"Lower type {lower} specified over {t}")

    if t == "bool":
        return ElementCodec(
            "bool",
            lambda o: f'bool(structs.read("u8", r, {o}))',
            lambda o, v: f'structs.write("u8", w, int({v}), {o})',
        )

    if t in FLOAT_TYPES:
        return ElementCodec(
            "float",
            lambda o: f'structs.read("{t}", r, {o})',
            lambda o, v: f'structs.write("{t}", w, {v}, {o})',
        )

    # Nested struct (already validated by the layout calculator)
    return ElementCodec(
        t,
        lambda o: f"{parse_fn(t)}(r[{o}:{offset(o, length)}])",
        lambda o, v: f"{format_fn(t)}({v}, w[{o}:{offset(o, length)}])",
    )


def _length_error(name: str, message: str) -> str:
    # `message` is the body of an f-string in the generated code
    return f'raise structs.LengthError(f"{name}: {message}")'


def _field_code(
    f: FieldLayout, o: Length, resolver: TypeResolver, site: str = ""
) -> tuple[str, list[str], list[str]]:
    """Generate (annotation, parse lines, format lines) for a struct field."""
    name = f.name
    t = f.attr.type
    lower = f.attr.options.type
    count = f.count
    value = f'x["{name}"]'
    got = f"{{len(x['{name}'])}}"

    if t in ("data", "string"):
        if lower is not None:
            raise LowerTypeError(f"Lower type {lower} specified over {t}")
        # Inline strings are kept as raw, possibly NUL padded, bytes
        end = offset(o, f.length)
        return (
            "bytes",
            [f"{value} = bytes(r[{o}:{end}])"],
            [
                f"if len({value}) != {count}:",
                "    " + _length_error(name, f"expected {{{count}}} bytes, got {got}"),
                f"w[{o}:{end}] = {value}",
            ],
        )

    codec = element_codec(t, lower, f.element_length, resolver, site)  # type: ignore[arg-type]

    if count is None:
        return codec.type, [f"{value} = {codec.read(o)}"], [codec.write(o, value)]

    element = offset(o, f"{paren(f.element_length)} * i")
    return (
        f"list[{codec.type}]",
        [f"{value} = [{codec.read(element)} for i in range({count})]"],
        [
            f"if len({value}) != {count}:",
            "    " + _length_error(name, f"Unexpected array length (got {got}, expected {{{count}}})"),
            f"for i, v in enumerate({value}):",
            f"    {codec.write(element, 'v')}",
        ],
    )


def compile_struct(
    name: str, layout: StructLayout, resolver: TypeResolver, comments: list[str] | None = None
) -> CodeBlock:
    """Generate the TypedDict and fixed-layout codec of a struct.

    Static layouts use literal offsets; layouts whose length depends on an
    expression walk the buffer with a `pos` cursor.
    """
    fields: list[Field] = []
    parse_lines: list[str] = []
    format_lines: list[str] = []

    offsets: list[Length]
    if layout.is_static:
        offsets = list(layout.offsets())
    else:
        offsets = ["pos"] * len(layout.fields)
        parse_lines.append("pos = 0")
        format_lines.append("pos = 0")

    for n, (f, o) in enumerate(zip(layout.fields, offsets)):
        with error_context(name, f.name):
            annotation, parse, format = _field_code(f, o, resolver, f"{name}.{f.name}")

        fields.append(Field(f.name, annotation, comment_lines(f.attr.options.docs)))
        parse_lines += parse
        format_lines.append(f'if x.get("{f.name}") is not None:')
        format_lines += indent(format)

        if not layout.is_static and n < len(layout.fields) - 1:
            parse_lines.append(f"pos += {f.length}")
            format_lines.append(f"pos += {f.length}")

    comments = list(comments or [])
    if layout.expandable:
        fields.append(Field("__unparsed", "bytes"))
        if layout.dropped:
            comments.append(f"# Not decoded (past the stable prefix): {', '.join(layout.dropped)}")

    code = render_template(
        "struct.py.j2",
        name=name,
        fields=fields,
        comments=comments,
        expandable=layout.expandable,
        length_name=layout.length_name,
        parse_lines=parse_lines,
        format_lines=format_lines,
        parse=parse_fn(name),
        format=format_fn(name),
    )
    return CodeBlock(name, TypeKind.STRUCT, code, [parse_fn(name), format_fn(name)])


def compile_struct_type(
    name: str, calculator: LayoutCalculator, resolver: TypeResolver
) -> CodeBlock:
    layout = calculator.calc_struct_layout(name)
    return compile_struct(name, layout, resolver, comment_lines(calculator.types[name].docs))
