"""Resolution of type expressions into decode / encode code builders."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from .errors import LowerTypeError, TypeReferenceError
from .types import (
    FLOAT_TYPES,
    INT_TYPE_RE,
    EnumRequirements,
    LowerType,
    TypeExpr,
    TypeKind,
    TypeStore,
    WrappedType,
    WrapperKind,
)
from .util import flag_set_name, format_fn, parse_fn

logger = logging.getLogger(__name__)

# Python annotations for the fixed primitive codecs
SCALAR_TYPE_MAP = {
    "string": "str",
    "bool": "bool",
    "flag": "bool",
    "data": "bytes",
}

CodeBuilder = Callable[[str], str]


def _identity(x: str) -> str:
    return x


@dataclass(frozen=True)
class TypeResult:
    """Resolved type expression.

    `parse` and `format` take a Python expression (the raw payload, or the
    value to encode) and return a Python expression for the decoded value or
    the encoded payload.
    """

    type: str | None
    parse: CodeBuilder
    format: CodeBuilder


class TypeResolver:
    """Resolve type expressions against a type store.

    Resolving `asflags()` expressions records which derived enum variants
    are needed in `requirements`.
    """

    def __init__(self, types: TypeStore, requirements: EnumRequirements):
        self.types = types
        self.requirements = requirements

    def _require_enum(self, name: str, usage: str) -> None:
        type_def = self.types.get(name)
        if type_def is None:
            raise TypeReferenceError(f"Unknown type: {name}")
        if type_def.kind != TypeKind.ENUM:
            raise LowerTypeError(f"{usage} must be passed an enum type, not {name}")

    def resolve_lower(self, lower: LowerType | None) -> TypeResult:
        """Resolve the lower type applied to an integer value."""
        if lower is None:
            return TypeResult(None, _identity, _identity)

        if isinstance(lower, str):
            type_def = self.types.get(lower)
            if type_def is None:
                raise TypeReferenceError(f"Unknown type: {lower}")
            if type_def.kind == TypeKind.FLAGS:
                return TypeResult(
                    lower,
                    lambda x: f"{parse_fn(lower)}({x})",
                    lambda x: f"{format_fn(lower)}({x})",
                )
            if type_def.kind == TypeKind.ENUM:
                return TypeResult(
                    "int | str",
                    lambda x: f"structs.get_enum({lower}, {x})",
                    lambda x: f"structs.put_enum({lower}, {x})",
                )
            raise LowerTypeError(f"Incorrect type {lower} specified as lower type")

        if lower.kind == WrapperKind.FLAGS:
            self._require_enum(lower.type, "asflags()")  # type: ignore[arg-type]
            self.requirements.require_bitmask(lower.type)  # type: ignore[arg-type]
            name = flag_set_name(lower.type)  # type: ignore[arg-type]
            return TypeResult(
                name,
                lambda x: f"{parse_fn(name)}({x})",
                lambda x: f"{format_fn(name)}({x})",
            )

        raise LowerTypeError(f"Unknown lower type: {lower}")

    def resolve_int(self, t: str, lower: LowerType | None, site: str = "") -> TypeResult:
        """Resolve an integer wire type, applying the lower type to the value."""
        m = INT_TYPE_RE.match(t)
        if m is None:
            raise TypeReferenceError(f"Unknown type: {t}")
        if m.group(1) == "64" and lower is not None:
            logger.warning("%sLower type %s specified over a 64-bit value", f"{site}: " if site else "", lower)
        return self.resolve_lower(lower)

    def resolve(
        self,
        t: TypeExpr,
        lower: LowerType | None = None,
        *,
        max_length: int | None = None,
        site: str = "",
    ) -> TypeResult:
        """Resolve a TLV payload type expression."""
        if isinstance(t, str):
            return self._resolve_name(t, lower, max_length, site)
        return self._resolve_wrapped(t, lower, max_length, site)

    def _resolve_name(self, t: str, lower: LowerType | None, max_length: int | None, site: str) -> TypeResult:
        if INT_TYPE_RE.match(t):
            low = self.resolve_int(t, lower, site)
            return TypeResult(
                low.type or "int",
                lambda x: low.parse(f'structs.get_int("{t}", {x})'),
                lambda x: f'structs.put_int("{t}", {low.format(x)})',
            )

        if t in FLOAT_TYPES:
            if lower is not None:
                raise LowerTypeError(f"Lower type {lower} specified over {t}")
            return TypeResult(
                "float",
                lambda x: f'structs.get_float("{t}", {x})',
                lambda x: f'structs.put_float("{t}", {x})',
            )

        if t in SCALAR_TYPE_MAP:
            if lower is not None:
                raise LowerTypeError(f"Lower type {lower} specified over {t}")
            opts = f", max_length={max_length}" if t == "string" and max_length else ""
            return TypeResult(
                SCALAR_TYPE_MAP[t],
                lambda x: f"structs.get_{t}({x}{opts})",
                lambda x: f"structs.put_{t}({x}{opts})",
            )

        type_def = self.types.get(t)
        if type_def is None:
            raise TypeReferenceError(f"Unknown type: {t}")
        if lower is not None:
            raise LowerTypeError(f"Lower type {lower} specified over {t}")
        if type_def.kind not in (TypeKind.ATTRS, TypeKind.STRUCT):
            raise TypeReferenceError(f"Invalid type {t} ({type_def.kind}) specified as attr type")
        return TypeResult(
            t,
            lambda x: f"{parse_fn(t)}({x})",
            lambda x: f"{format_fn(t)}({x})",
        )

    def _resolve_wrapped(
        self, t: WrappedType, lower: LowerType | None, max_length: int | None, site: str
    ) -> TypeResult:
        if t.kind == WrapperKind.FLAGS:
            if lower is not None:
                raise LowerTypeError(f"Lower type {lower} specified over {t}")
            if not isinstance(t.type, str):
                raise LowerTypeError(f"asflags() must be passed an enum type, not {t.type}")
            self._require_enum(t.type, "asflags()")
            self.requirements.require_tlv_flag_list(t.type)
            name = flag_set_name(t.type)
            return TypeResult(
                name,
                lambda x: f'{parse_fn(name, "_attr")}({x})',
                lambda x: f'{format_fn(name, "_attr")}({x})',
            )

        inner = self.resolve(t.type, lower, max_length=max_length, site=site)

        if t.kind == WrapperKind.ARRAY:
            opts = ", zero=True" if t.zero else ""
            return TypeResult(
                f"list[{inner.type}]",
                lambda x: f"structs.get_array({x}, lambda x: {inner.parse('x')}{opts})",
                lambda x: f"structs.put_array({x}, lambda x: {inner.format('x')}{opts})",
            )

        return TypeResult(
            f"dict[int, {inner.type}]",
            lambda x: f"structs.get_map({x}, lambda x: {inner.parse('x')})",
            lambda x: f"structs.put_map({x}, lambda x: {inner.format('x')})",
        )
