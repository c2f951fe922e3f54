"""Schema loading and validation.

Schemas are plain mappings (usually loaded from JSON) from type name to a
type definition, following the netlink type catalog layout::

    {
        "OperationFlags": {"kind": "flags", "values": [{"value": 1, "name": "adminPerm"}]},
        "Operation": {"attrs": [["id", "u32"], ["flags", "u32", {"type": "OperationFlags"}]]}
    }

Type expressions may be written as strings using a small grammar
(`array(u8)`, `array(Band, zero)`, `map(Stats)`, `asflags(LinkMode)`) or as
`{"kind": ..., "type": ...}` objects.
"""

import json
import keyword
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from lark import Lark
from lark.exceptions import LarkError
from lark.visitors import Transformer

from .errors import LayoutError, ValidationError, ValueDefError, error_context
from .types import (
    AttributeDef,
    AttributeOptions,
    LowerType,
    TypeDef,
    TypeExpr,
    TypeKind,
    TypeStore,
    ValueDef,
    WrappedType,
    WrapperKind,
)
from .util import flag_set_name, to_snake_case

_g_parser: Lark | None = None

# Names bound at the top of every generated module
RESERVED_NAMES = frozenset(
    {"annotations", "AttrFormatter", "AttrParser", "IntEnum", "TypedDict", "structs"}
)


class TreeTransformer(Transformer):
    """Transform parse tree into type expressions."""

    def named(self, args: list[Any]) -> str:
        return str(args[0])

    def array(self, args: list[Any]) -> WrappedType:
        return WrappedType(WrapperKind.ARRAY, args[0], zero=args[1] is not None)

    def map(self, args: list[Any]) -> WrappedType:
        return WrappedType(WrapperKind.MAP, args[0])

    def asflags(self, args: list[Any]) -> WrappedType:
        return WrappedType(WrapperKind.FLAGS, str(args[0]))


def parse_type_expr(text: str) -> TypeExpr:
    """Parse a compact type expression string."""
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/typeexpr.lark", encoding="utf-8") as f:
            grammar = f.read()
        _g_parser = Lark(grammar, parser="lalr")

    try:
        tree = _g_parser.parse(text)
    except LarkError as e:
        raise ValidationError(f"Invalid type expression {text!r}") from e
    return TreeTransformer().transform(tree)


def _load_type_expr(value: Any) -> TypeExpr:
    if isinstance(value, WrappedType):
        return value
    if isinstance(value, str):
        return parse_type_expr(value)
    if isinstance(value, Mapping):
        try:
            kind = WrapperKind(value["kind"])
            inner = value["type"]
        except (KeyError, ValueError) as e:
            raise ValidationError(f"Invalid type expression {value!r}") from e
        if kind == WrapperKind.FLAGS and not isinstance(inner, str):
            raise ValidationError(f"asflags() must be passed an enum name, not {inner!r}")
        return WrappedType(kind, _load_type_expr(inner), bool(value.get("zero", False)))
    raise ValidationError(f"Invalid type expression {value!r}")


def _load_lower(value: Any) -> LowerType | None:
    if value is None:
        return None
    lower = _load_type_expr(value)
    if isinstance(lower, WrappedType) and lower.kind != WrapperKind.FLAGS:
        raise ValidationError(f"Lower type must be a type name or asflags(), not {lower}")
    return lower


def _load_count(value: Any) -> int | str | None:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"Invalid count {value!r}")
    return value


def _load_attribute(item: Any) -> AttributeDef:
    if isinstance(item, AttributeDef):
        return item
    if not isinstance(item, (list, tuple)) or len(item) not in (2, 3):
        raise ValidationError(f"Attribute must be [name, type, options?], got {item!r}")

    name, type_expr = item[0], item[1]
    raw = dict(item[2]) if len(item) == 3 and item[2] is not None else {}
    with error_context("", str(name)):
        lower = raw.pop("type", None)
        count = raw.pop("count", None)
        options = AttributeOptions.from_dict(raw)
        options.type = _load_lower(lower)
        options.count = _load_count(count)
        return AttributeDef(name=str(name), type=_load_type_expr(type_expr), options=options)


def _load_type(name: str, raw: Any) -> TypeDef:
    if isinstance(raw, TypeDef):
        return raw
    if not isinstance(raw, Mapping):
        raise ValidationError(f"Type definition must be an object, got {raw!r}")

    try:
        kind = TypeKind(raw.get("kind") or TypeKind.ATTRS)
    except ValueError as e:
        raise ValidationError(f"Unknown kind {raw.get('kind')!r}") from e

    return TypeDef(
        kind=kind,
        docs=raw.get("docs"),
        orig=raw.get("orig"),
        root=bool(raw.get("root", False)),
        zero=bool(raw.get("zero", False)),
        attrs=[_load_attribute(a) for a in raw.get("attrs", [])],
        values=[v if isinstance(v, ValueDef) else ValueDef.from_dict(v) for v in raw.get("values", [])],
    )


def load_schema(data: Mapping[str, Any]) -> TypeStore:
    """Build a TypeStore from a schema mapping, keeping declaration order."""
    types: TypeStore = {}
    for name, raw in data.items():
        with error_context(name):
            types[name] = _load_type(name, raw)
    return types


def load_schema_file(path: str | Path) -> TypeStore:
    """Load a JSON schema file."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, Mapping):
        raise ValidationError(f"{path}: schema must be a JSON object")
    return load_schema(data)


def _validate_attrs(name: str, type_def: TypeDef) -> None:
    seen: set[str] = set()
    for attr in type_def.attrs:
        with error_context(name, attr.name):
            if not attr.name.isidentifier():
                raise ValidationError(f"Invalid field name {attr.name!r}")
            if attr.name in seen:
                raise ValidationError("Duplicate field name")
            seen.add(attr.name)

            opts = attr.options
            if type_def.kind == TypeKind.STRUCT:
                if opts.repeated:
                    raise LayoutError("repeated is not supported on struct fields")
            elif opts.count is not None or opts.abi:
                raise LayoutError("count and abi are only supported on struct fields")


def _is_sunder(name: str) -> bool:
    """`_name_` members are reserved by the enum module."""
    return len(name) > 2 and name[0] == name[-1] == "_" and name[1] != "_" and name[-2] != "_"


def _validate_values(name: str, type_def: TypeDef) -> None:
    seen: set[str] = set()
    for value in type_def.values:
        with error_context(name, value.name):
            # __unknown and __unparsed are taken by the generated codecs
            if not value.name.isidentifier() or value.name.startswith("__"):
                raise ValidationError(f"Invalid value name {value.name!r}")
            is_member = type_def.kind == TypeKind.ENUM
            if is_member and (keyword.iskeyword(value.name) or _is_sunder(value.name)):
                raise ValidationError(f"Invalid enum member name {value.name!r}")
            if value.name in seen:
                raise ValueDefError("Duplicate value name")
            seen.add(value.name)
            if type_def.kind == TypeKind.FLAGS and not value.value:
                raise ValueDefError(f"Flag has no value ({value.value!r})")


def validate(types: TypeStore) -> None:
    """Validate a loaded schema before compiling it."""
    generated: dict[str, str] = {}

    # Flag sets derived from enums are only emitted on demand, their names are
    # reserved regardless
    derived: dict[str, str] = {}
    for name, type_def in types.items():
        if type_def.kind == TypeKind.ENUM:
            set_name = flag_set_name(name)
            for key in (set_name, to_snake_case(set_name), to_snake_case(set_name) + "_attr"):
                derived.setdefault(key, name)

    for name, type_def in types.items():
        with error_context(name):
            if not name.isidentifier() or keyword.iskeyword(name):
                raise ValidationError(f"Invalid type name {name!r}")
            if name in RESERVED_NAMES:
                raise ValidationError(f"Type name {name!r} is reserved")

            # parse_x / format_x must not collide between types
            snake = to_snake_case(name)
            if snake in generated:
                raise ValidationError(f"Generated names collide with {generated[snake]}")
            generated[snake] = name
            for key in (name, snake):
                if derived.get(key, name) != name:
                    raise ValidationError(f"Generated names collide with {derived[key]}")

            if type_def.kind in (TypeKind.ENUM, TypeKind.FLAGS):
                if type_def.attrs:
                    raise ValidationError(f"{type_def.kind} types declare values, not attrs")
            elif type_def.values:
                raise ValidationError(f"{type_def.kind} types declare attrs, not values")

        _validate_attrs(name, type_def)
        _validate_values(name, type_def)
