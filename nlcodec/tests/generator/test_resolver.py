"""Tests for type expression resolution."""

import logging

import pytest

from nlcodec.generator import (
    EnumRequirements,
    LowerTypeError,
    TypeReferenceError,
    array,
    asflags,
    load_schema,
    map_,
)
from nlcodec.generator.resolver import TypeResolver

SCHEMA = {
    "Mode": {"kind": "enum", "values": [{"value": 0, "name": "DEFAULT"}, {"value": 1, "name": "DORMANT"}]},
    "DevFlags": {"kind": "flags", "values": [{"value": 1, "name": "up"}]},
    "Stats": {"kind": "struct", "attrs": [["packets", "u32"]]},
    "Link": {"attrs": [["mtu", "u32"]]},
}


@pytest.fixture
def requirements():
    return EnumRequirements()


@pytest.fixture
def resolver(requirements):
    return TypeResolver(load_schema(SCHEMA), requirements)


def describe_integers():
    def decodes_with_wire_type(expect, resolver):
        result = resolver.resolve("u16be")
        expect(result.type) == "int"
        expect(result.parse("x")) == 'structs.get_int("u16be", x)'
        expect(result.format("x")) == 'structs.put_int("u16be", x)'

    def applies_flags_lower_type(expect, resolver):
        result = resolver.resolve("u32", "DevFlags")
        expect(result.type) == "DevFlags"
        expect(result.parse("x")) == 'parse_dev_flags(structs.get_int("u32", x))'
        expect(result.format("x")) == 'structs.put_int("u32", format_dev_flags(x))'

    def applies_enum_lower_type(expect, resolver):
        result = resolver.resolve("u8", "Mode")
        expect(result.type) == "int | str"
        expect(result.parse("x")) == 'structs.get_enum(Mode, structs.get_int("u8", x))'
        expect(result.format("x")) == 'structs.put_int("u8", structs.put_enum(Mode, x))'

    def applies_bitmask_lower_type(expect, resolver, requirements):
        result = resolver.resolve("u32", asflags("Mode"))
        expect(result.type) == "ModeSet"
        expect(result.parse("x")) == 'parse_mode_set(structs.get_int("u32", x))'
        expect(result.format("x")) == 'structs.put_int("u32", format_mode_set(x))'
        expect(requirements.get("Mode").bitmask) == True
        expect(requirements.get("Mode").tlv_flag_list) == False

    def warns_about_lower_types_over_64_bits(expect, resolver, caplog):
        with caplog.at_level(logging.WARNING):
            resolver.resolve("u64", "DevFlags", site="Link.flags")
        expect(caplog.text).contains("Link.flags: Lower type DevFlags specified over a 64-bit value")

    def rejects_unknown_lower_types(resolver):
        with pytest.raises(TypeReferenceError, match="Unknown type: Nope"):
            resolver.resolve("u32", "Nope")

    def rejects_lower_types_of_wrong_kind(resolver):
        with pytest.raises(LowerTypeError, match="Incorrect type Stats specified as lower type"):
            resolver.resolve("u32", "Stats")

    def rejects_asflags_of_non_enums(resolver):
        with pytest.raises(LowerTypeError, match="asflags\\(\\) must be passed an enum type"):
            resolver.resolve("u32", asflags("DevFlags"))


def describe_scalars():
    def resolves_strings(expect, resolver):
        result = resolver.resolve("string", max_length=16)
        expect(result.type) == "str"
        expect(result.parse("x")) == "structs.get_string(x, max_length=16)"
        expect(result.format("v")) == "structs.put_string(v, max_length=16)"

    def resolves_flags_and_data(expect, resolver):
        expect(resolver.resolve("flag").parse("x")) == "structs.get_flag(x)"
        expect(resolver.resolve("data").type) == "bytes"
        expect(resolver.resolve("bool").format("x")) == "structs.put_bool(x)"

    def resolves_floats(expect, resolver):
        result = resolver.resolve("f64")
        expect(result.type) == "float"
        expect(result.parse("x")) == 'structs.get_float("f64", x)'

    def rejects_lower_types_on_scalars(resolver):
        with pytest.raises(LowerTypeError, match="Lower type Mode specified over string"):
            resolver.resolve("string", "Mode")
        with pytest.raises(LowerTypeError):
            resolver.resolve("f32", "Mode")


def describe_references():
    def resolves_attrs_and_structs(expect, resolver):
        expect(resolver.resolve("Link").parse("x")) == "parse_link(x)"
        expect(resolver.resolve("Stats").format("x")) == "format_stats(x)"
        expect(resolver.resolve("Stats").type) == "Stats"

    def rejects_unknown_types(resolver):
        with pytest.raises(TypeReferenceError, match="Unknown type: Nope"):
            resolver.resolve("Nope")

    def rejects_enums_as_payloads(resolver):
        with pytest.raises(TypeReferenceError, match="Invalid type Mode"):
            resolver.resolve("Mode")

    def rejects_lower_types_on_references(resolver):
        with pytest.raises(LowerTypeError):
            resolver.resolve("Link", "Mode")


def describe_wrappers():
    def resolves_arrays(expect, resolver):
        result = resolver.resolve(array("u8"))
        expect(result.type) == "list[int]"
        expect(result.parse("x")) == 'structs.get_array(x, lambda x: structs.get_int("u8", x))'
        expect(result.format("x")) == 'structs.put_array(x, lambda x: structs.put_int("u8", x))'

    def resolves_zero_indexed_arrays(expect, resolver):
        result = resolver.resolve(array("Link", zero=True))
        expect(result.parse("x")) == "structs.get_array(x, lambda x: parse_link(x), zero=True)"

    def resolves_maps(expect, resolver):
        result = resolver.resolve(map_(array("Stats")))
        expect(result.type) == "dict[int, list[Stats]]"
        expect(result.parse("x")) == (
            "structs.get_map(x, lambda x: structs.get_array(x, lambda x: parse_stats(x)))"
        )

    def passes_lower_types_to_elements(expect, resolver):
        result = resolver.resolve(array("u32"), "Mode")
        expect(result.type) == "list[int | str]"

    def resolves_tlv_flag_lists(expect, resolver, requirements):
        result = resolver.resolve(asflags("Mode"))
        expect(result.type) == "ModeSet"
        expect(result.parse("x")) == "parse_mode_set_attr(x)"
        expect(result.format("x")) == "format_mode_set_attr(x)"
        expect(requirements.get("Mode").tlv_flag_list) == True
        expect(requirements.get("Mode").bitmask) == False

    def rejects_lower_types_on_flag_lists(resolver):
        with pytest.raises(LowerTypeError):
            resolver.resolve(asflags("Mode"), "DevFlags")

    def rejects_unknown_enums(resolver):
        with pytest.raises(TypeReferenceError, match="Unknown type: Nope"):
            resolver.resolve(asflags("Nope"))
