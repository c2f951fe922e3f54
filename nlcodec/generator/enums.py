"""Code generation for enumeration types and their derived flag sets."""

from dataclasses import dataclass

from .codegen import CodeBlock, Field, comment_lines, render_template
from .types import EnumVariants, TypeDef, TypeKind
from .util import flag_set_name, format_fn, parse_fn, to_camel_case


@dataclass(frozen=True)
class EnumValue:
    name: str
    value: int
    field: str
    comments: list[str]


def compile_enum(name: str, type_def: TypeDef, variants: EnumVariants) -> CodeBlock:
    """Generate an IntEnum, plus the derived flag set codecs requested by other types.

    - bitmask: bit `1 << value` of an integer is set for each flag
    - tlv_flag_list: one zero-length attribute of index `value` per flag
    """
    set_name = flag_set_name(name)
    values = [
        EnumValue(v.name, v.value, to_camel_case(v.name), comment_lines(v.docs))
        for v in type_def.values
    ]

    functions: list[str] = []
    if variants.bitmask:
        functions += [parse_fn(set_name), format_fn(set_name)]
    if variants.tlv_flag_list:
        functions += [parse_fn(set_name, "_attr"), format_fn(set_name, "_attr")]

    code = render_template(
        "enum.py.j2",
        name=name,
        comments=comment_lines(type_def.docs),
        values=values,
        variants=variants,
        set_name=set_name,
        fields=[Field(v.field, "bool", v.comments) for v in values],
        parse_set=parse_fn(set_name),
        format_set=format_fn(set_name),
        parse_set_attr=parse_fn(set_name, "_attr"),
        format_set_attr=format_fn(set_name, "_attr"),
    )
    return CodeBlock(name, TypeKind.ENUM, code, functions)
