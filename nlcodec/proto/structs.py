"""Netlink attribute (TLV) primitives used by generated parsers and formatters.

Conventions:
- `get_*` functions take the payload of a single attribute and return the
  decoded value, raising on malformed input
- `put_*` functions take a value and return the encoded payload as bytes
- Attribute streams are encoded as 4-byte aligned `(length, type)` headers
  followed by the payload, in host byte order
"""

import struct
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, NamedTuple, TypeVar

from .serialization import (
    LengthError,
    SerializationError,
    read,
    wire_format,
    write,
)

T = TypeVar("T")

NLA_F_NESTED = 1 << 15
NLA_F_NET_BYTEORDER = 1 << 14
NLA_TYPE_MASK = (1 << 14) - 1

ATTR_HEADER = struct.Struct("=HH")
ATTR_MAX_LENGTH = 0xFFFF


class AttributeFormatError(SerializationError):
    """Raised when an attribute stream is malformed."""


def padding(length: int) -> int:
    """Number of padding bytes needed after `length` bytes."""
    return -length & 3


def align(length: int) -> int:
    """Round a length up to the attribute alignment."""
    return length + padding(length)


@dataclass(frozen=True)
class Attribute:
    """A single netlink attribute."""

    type: int
    data: bytes
    nested: bool = False
    net_byteorder: bool = False


class AttrStream:
    """Builder for a stream of attributes."""

    def __init__(self) -> None:
        self._buf = bytearray()

    def __len__(self) -> int:
        return len(self._buf)

    def emit(self, data: bytes | bytearray | memoryview) -> None:
        """Append raw data to the stream."""
        self._buf.extend(data)

    def push(
        self,
        index: int,
        data: bytes | bytearray | memoryview,
        *,
        nested: bool = False,
        net_byteorder: bool = False,
    ) -> None:
        """Append an attribute, padding the stream so it starts aligned."""
        self._buf.extend(bytes(padding(len(self._buf))))

        length = ATTR_HEADER.size + len(data)
        if length > ATTR_MAX_LENGTH:
            raise AttributeFormatError(f"Maximum attribute length exceeded ({length})")

        type_ = index & NLA_TYPE_MASK
        if nested:
            type_ |= NLA_F_NESTED
        if net_byteorder:
            type_ |= NLA_F_NET_BYTEORDER
        self._buf.extend(ATTR_HEADER.pack(length, type_))
        self._buf.extend(data)

    def getvalue(self) -> bytes:
        return bytes(self._buf)


def parse_attribute(r: bytes | bytearray | memoryview) -> tuple[Attribute, int]:
    """Parse the attribute at the start of `r`.

    Returns:
        Tuple of (attribute, bytes consumed excluding trailing padding).
    """
    if len(r) < ATTR_HEADER.size:
        raise AttributeFormatError("Not enough data for attribute header")
    length, type_ = ATTR_HEADER.unpack_from(r, 0)
    if length < ATTR_HEADER.size or length > len(r):
        raise AttributeFormatError(f"Invalid attribute length ({length})")
    attr = Attribute(
        type=type_ & NLA_TYPE_MASK,
        data=bytes(r[ATTR_HEADER.size : length]),
        nested=bool(type_ & NLA_F_NESTED),
        net_byteorder=bool(type_ & NLA_F_NET_BYTEORDER),
    )
    return attr, length


def parse_attributes(r: bytes | bytearray | memoryview) -> Iterator[Attribute]:
    """Iterate over a stream of attributes, skipping padding."""
    view = memoryview(r)
    offset = 0
    while offset < len(view):
        attr, consumed = parse_attribute(view[offset:])
        yield attr
        offset += align(consumed)


def check_no(attr: Attribute) -> Attribute:
    if attr.net_byteorder:
        raise AttributeFormatError(f"Unexpected attribute {attr.type} with network byte order set")
    return attr


def check_length(x: bytes, n: int) -> bytes:
    if len(x) != n:
        raise LengthError(f"Unexpected length (got {len(x)}, expected {n})")
    return x


# Scalar payloads


def get_int(t: str, x: bytes) -> int:
    """Decode an integer payload of wire type `t`."""
    return read(t, check_length(x, wire_format(t).size))  # type: ignore[return-value]


def put_int(t: str, x: int) -> bytes:
    """Encode an integer payload of wire type `t`."""
    r = bytearray(wire_format(t).size)
    write(t, r, x)
    return bytes(r)


def get_float(t: str, x: bytes) -> float:
    return read(t, check_length(x, wire_format(t).size))


def put_float(t: str, x: float) -> bytes:
    r = bytearray(wire_format(t).size)
    write(t, r, x)
    return bytes(r)


def get_flag(x: bytes) -> bool:
    check_length(x, 0)
    return True


def put_flag(x: bool) -> bytes:
    return b""


def get_bool(x: bytes) -> bool:
    b = get_int("u8", x)
    if b not in (0, 1):
        raise SerializationError(f"Expected 0 or 1, got {b}")
    return bool(b)


def put_bool(x: bool) -> bytes:
    return put_int("u8", int(x))


def get_string(x: bytes, max_length: int | None = None, encoding: str = "utf-8") -> str:
    """Decode a NUL-terminated string payload.

    `max_length` bounds the payload length, including the terminator.
    """
    if max_length and len(x) > max_length:
        raise LengthError(f"Maximum length exceeded (max {max_length}, got {len(x)})")
    if not x or x[-1] != 0:
        raise SerializationError("String is not NUL terminated")
    try:
        return bytes(x[:-1]).decode(encoding)
    except UnicodeDecodeError as e:
        raise SerializationError(f"Invalid {encoding} string: {e.reason} at byte {e.start}") from e


def put_string(x: str, max_length: int | None = None, encoding: str = "utf-8") -> bytes:
    r = x.encode(encoding) + b"\x00"
    if max_length and len(r) > max_length:
        raise LengthError(f"Maximum length exceeded (max {max_length}, got {len(r)})")
    return r


def get_data(x: bytes) -> bytes:
    return bytes(x)


def put_data(x: bytes) -> bytes:
    return bytes(x)


# Enums


def get_enum(enum: type[IntEnum], x: int) -> int | str:
    """Name of the enum constant with value `x`, or `x` itself if unknown."""
    try:
        return enum(x).name
    except ValueError:
        return x


def put_enum(enum: type[IntEnum], x: int | str) -> int:
    """Value of an enum constant given by name, or a raw integer."""
    if isinstance(x, str):
        try:
            return int(enum[x])
        except KeyError:
            raise SerializationError(f"Invalid {enum.__name__} key {x!r}") from None
    return int(x)


# Nested attributes


class AttrParser(NamedTuple):
    """Decode handler for one attribute index of an object."""

    name: str
    parse: Callable[[bytes], Any]
    repeated: bool = False


class AttrFormatter(NamedTuple):
    """Encode handler for one field of an object."""

    index: int
    format: Callable[[Any], bytes]
    repeated: bool = False


def get_object(r: bytes, parsers: Mapping[int, AttrParser]) -> dict[str, Any]:
    """Decode a stream of attributes into a dict.

    Attributes with an index that has no parser are skipped.
    """
    x: dict[str, Any] = {}
    for attr in parse_attributes(r):
        parser = parsers.get(attr.type)
        if parser is None:
            continue
        value = parser.parse(check_no(attr).data)
        if parser.repeated:
            x.setdefault(parser.name, []).append(value)
        else:
            x[parser.name] = value
    return x


def put_object(x: Mapping[str, Any], formatters: Mapping[str, AttrFormatter]) -> bytes:
    """Encode a dict into a stream of attributes.

    Fields set to None are omitted. Raw `(index, payload)` pairs listed in
    `__unparsed` are appended as they are.
    """
    out = AttrStream()
    for key, value in x.items():
        if value is None or key == "__unparsed":
            continue
        formatter = formatters.get(key)
        if formatter is None:
            raise SerializationError(f"Unknown key {key!r}")
        for item in value if formatter.repeated else [value]:
            out.push(formatter.index, formatter.format(item))
    for index, data in x.get("__unparsed") or ():
        out.push(index, data)
    return out.getvalue()


def get_array(r: bytes, fn: Callable[[bytes], T], *, zero: bool = False) -> list[T]:
    """Decode attributes indexed sequentially from 1 (or 0) into a list."""
    offset = 0 if zero else 1
    res: list[T] = []
    for attr in parse_attributes(r):
        if attr.type != len(res) + offset:
            raise AttributeFormatError(
                f"Non-sequential array types (expected {len(res) + offset}, got {attr.type})"
            )
        res.append(fn(check_no(attr).data))
    return res


def put_array(x: Iterable[T], fn: Callable[[T], bytes], *, zero: bool = False) -> bytes:
    offset = 0 if zero else 1
    out = AttrStream()
    for n, item in enumerate(x):
        out.push(n + offset, fn(item))
    return out.getvalue()


def get_map(r: bytes, fn: Callable[[bytes], T]) -> dict[int, T]:
    """Decode attributes into a dict keyed by attribute index."""
    return {attr.type: fn(check_no(attr).data) for attr in parse_attributes(r)}


def put_map(x: Mapping[int, T], fn: Callable[[T], bytes]) -> bytes:
    out = AttrStream()
    for n, item in x.items():
        out.push(n, fn(item))
    return out.getvalue()


__all__ = [
    "AttrFormatter",
    "AttrParser",
    "AttrStream",
    "Attribute",
    "AttributeFormatError",
    "LengthError",
    "SerializationError",
    "align",
    "get_array",
    "get_bool",
    "get_data",
    "get_enum",
    "get_flag",
    "get_float",
    "get_int",
    "get_map",
    "get_object",
    "get_string",
    "padding",
    "parse_attribute",
    "parse_attributes",
    "put_array",
    "put_bool",
    "put_data",
    "put_enum",
    "put_flag",
    "put_float",
    "put_int",
    "put_map",
    "put_object",
    "put_string",
    "read",
    "write",
]
