"""Fixed-width value codecs for netlink structs and attribute payloads.

Netlink structs use the host byte order. Integer wire types may carry a
`be` / `le` suffix to force big or little endian (e.g. `u16be` for ports).
"""

import struct

# Map wire types to struct format characters
FORMAT_CHARS = {
    "u8": "B",
    "s8": "b",
    "u16": "H",
    "s16": "h",
    "u32": "I",
    "s32": "i",
    "u64": "Q",
    "s64": "q",
    "f32": "f",
    "f64": "d",
}

BYTE_ORDERS = {
    "": "=",
    "be": ">",
    "le": "<",
}

WIRE_FORMATS: dict[str, struct.Struct] = {
    f"{name}{suffix}": struct.Struct(f"{order}{char}")
    for name, char in FORMAT_CHARS.items()
    for suffix, order in BYTE_ORDERS.items()
    if not suffix or name[0] in "su"
}


class SerializationError(RuntimeError):
    """Raised when serialization or deserialization fails."""


class LengthError(SerializationError):
    """Raised when a buffer or array doesn't have the expected length."""


def wire_format(t: str) -> struct.Struct:
    try:
        return WIRE_FORMATS[t]
    except KeyError:
        raise SerializationError(f"Unknown wire type {t!r}") from None


def wire_size(t: str) -> int:
    """Size in bytes of a fixed-width wire type."""
    return wire_format(t).size


def read(t: str, buf: bytes | bytearray | memoryview, offset: int = 0) -> int | float:
    """Read a value of wire type `t` at `offset`."""
    fmt = wire_format(t)
    if offset < 0 or offset + fmt.size > len(buf):
        raise LengthError(f"Not enough data to read {t} at offset {offset}")
    return fmt.unpack_from(buf, offset)[0]


def write(t: str, buf: bytearray | memoryview, value: int | float, offset: int = 0) -> None:
    """Write a value of wire type `t` at `offset`."""
    fmt = wire_format(t)
    if offset < 0 or offset + fmt.size > len(buf):
        raise LengthError(f"Not enough room to write {t} at offset {offset}")
    try:
        fmt.pack_into(buf, offset, value)
    except struct.error as e:
        raise SerializationError(f"Cannot encode {value!r} as {t}: {e}") from e

