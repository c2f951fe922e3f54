"""Code generation for attribute (TLV) object types."""

from dataclasses import dataclass

from .codegen import CodeBlock, Field, comment_lines, render_template
from .errors import error_context
from .resolver import TypeResolver
from .types import TypeDef, TypeKind
from .util import format_fn, parse_fn


@dataclass(frozen=True)
class AttrEntry:
    """A resolved member of an attribute set."""

    name: str
    index: int
    parse: str
    format: str
    repeated: bool


def compile_attrs(name: str, type_def: TypeDef, resolver: TypeResolver) -> CodeBlock:
    """Generate the TypedDict and TLV object codec of an attribute set.

    Members are numbered by position, starting at 1 (or 0 if the type sets
    `zero`).
    """
    start = 0 if type_def.zero else 1
    fields: list[Field] = []
    attrs: list[AttrEntry] = []

    for index, attr in enumerate(type_def.attrs, start):
        opts = attr.options
        with error_context(name, attr.name):
            result = resolver.resolve(
                attr.type, opts.type, max_length=opts.max_length, site=f"{name}.{attr.name}"
            )

        annotation = result.type or "int"
        if opts.repeated:
            annotation = f"list[{annotation}]"
        fields.append(Field(attr.name, annotation, comment_lines(opts.docs)))
        attrs.append(AttrEntry(attr.name, index, result.parse("x"), result.format("x"), opts.repeated))

    # Raw (index, payload) pairs, emitted as they are when formatting
    fields.append(Field("__unparsed", "list[tuple[int, bytes]]"))

    code = render_template(
        "attrs.py.j2",
        name=name,
        fields=fields,
        comments=comment_lines(type_def.docs),
        attrs=attrs,
        parse=parse_fn(name),
        format=format_fn(name),
    )
    return CodeBlock(name, TypeKind.ATTRS, code, [parse_fn(name), format_fn(name)])
