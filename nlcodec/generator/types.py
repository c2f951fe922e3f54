"""Type definitions for netlink schemas and code generation."""

import re
from dataclasses import dataclass, field
from enum import StrEnum, auto
from typing import Union

from dataclasses_json import DataClassJsonMixin, config


class TypeKind(StrEnum):
    """Kind of a declared type."""

    ATTRS = auto()
    STRUCT = auto()
    ENUM = auto()
    FLAGS = auto()


class WrapperKind(StrEnum):
    """Kind of a wrapper type expression."""

    ARRAY = auto()
    MAP = auto()
    FLAGS = auto()


@dataclass(frozen=True)
class WrappedType(DataClassJsonMixin):
    """A wrapper around another type expression.

    - array: variable-length sequence of nested attributes, indexed from 1
      (or from 0 when `zero` is set)
    - map: nested attributes keyed by their own index
    - flags: TLV flag list derived from an enum (`type` names the enum)
    """

    kind: WrapperKind
    type: "TypeExpr"
    zero: bool = False

    def __str__(self) -> str:
        if self.kind == WrapperKind.FLAGS:
            return f"asflags({self.type})"
        if self.zero:
            return f"{self.kind}({self.type}, zero)"
        return f"{self.kind}({self.type})"


TypeExpr = Union[str, WrappedType]

# A lower type is either an enum/flags name, or asflags(Enum)
LowerType = Union[str, WrappedType]


@dataclass
class AttributeOptions(DataClassJsonMixin):
    """Per-field modifiers of a struct or attribute set member.

    For struct fields:
    - count=N: inline array of N elements (or N bytes for data/string)
    - count="expr": like above, with the length computed when the
      generated module is used
    - abi: marks the struct as expandable (see StructLayout)
    """

    type: LowerType | None = None
    max_length: int | None = field(default=None, metadata=config(field_name="maxLength"))
    repeated: bool = False
    count: int | str | None = None
    abi: str | None = None
    docs: list[str] | None = None
    orig: str | None = None


@dataclass
class AttributeDef(DataClassJsonMixin):
    """Represents a member of a struct or attribute set."""

    name: str
    type: TypeExpr
    options: AttributeOptions = field(default_factory=AttributeOptions)


@dataclass
class ValueDef(DataClassJsonMixin):
    """Represents a single enum constant or flag bit."""

    value: int
    name: str
    docs: list[str] | None = None
    orig: str | None = None


@dataclass
class TypeDef(DataClassJsonMixin):
    """Represents a declared type."""

    kind: TypeKind = TypeKind.ATTRS
    docs: list[str] | None = None
    orig: str | None = None
    root: bool = False
    zero: bool = False
    attrs: list[AttributeDef] = field(default_factory=list)
    values: list[ValueDef] = field(default_factory=list)

    @property
    def is_expandable(self) -> bool:
        """True if any field carries an `abi` marker."""
        return self.kind == TypeKind.STRUCT and any(a.options.abi for a in self.attrs)


TypeStore = dict[str, TypeDef]


@dataclass
class EnumVariants:
    """Derived representations of an enum required by other types."""

    bitmask: bool = False
    tlv_flag_list: bool = False

    @property
    def any(self) -> bool:
        return self.bitmask or self.tlv_flag_list


class EnumRequirements:
    """Enum variants required by compiled types, keyed by enum name."""

    def __init__(self) -> None:
        self._variants: dict[str, EnumVariants] = {}

    def require_bitmask(self, name: str) -> None:
        self._variants.setdefault(name, EnumVariants()).bitmask = True

    def require_tlv_flag_list(self, name: str) -> None:
        self._variants.setdefault(name, EnumVariants()).tlv_flag_list = True

    def get(self, name: str) -> EnumVariants:
        return self._variants.get(name, EnumVariants())

    def as_dict(self) -> dict[str, EnumVariants]:
        return dict(self._variants)

    def __contains__(self, name: object) -> bool:
        return name in self._variants

    def __repr__(self) -> str:
        return f"EnumRequirements({self._variants!r})"


INT_TYPE_RE = re.compile(r"^[su](8|16|32|64)([bl]e)?$")

FLOAT_TYPES = frozenset(["f32", "f64"])


def array(t: TypeExpr, *, zero: bool = False) -> WrappedType:
    return WrappedType(WrapperKind.ARRAY, t, zero)


def map_(t: TypeExpr) -> WrappedType:
    return WrappedType(WrapperKind.MAP, t)


def asflags(t: str) -> WrappedType:
    return WrappedType(WrapperKind.FLAGS, t)
