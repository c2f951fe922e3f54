"""Code generation for bit flag types."""

from .codegen import CodeBlock, Field, comment_lines, render_template
from .types import TypeDef, TypeKind
from .util import format_fn, parse_fn


def compile_flags(name: str, type_def: TypeDef) -> CodeBlock:
    """Generate the TypedDict and bitmask codec of a flags type.

    Bits not covered by any declared value are kept in `__unknown` so they
    survive a decode / encode round trip.
    """
    fields = [Field(v.name, "bool", comment_lines(v.docs)) for v in type_def.values]
    fields.append(Field("__unknown", "int"))

    code = render_template(
        "flags.py.j2",
        name=name,
        fields=fields,
        comments=comment_lines(type_def.docs),
        values=type_def.values,
        parse=parse_fn(name),
        format=format_fn(name),
    )
    return CodeBlock(name, TypeKind.FLAGS, code, [parse_fn(name), format_fn(name)])
