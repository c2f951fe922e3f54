"""Tests for struct layout calculation."""

import pytest

from nlcodec.generator import (
    LayoutCalculator,
    LayoutError,
    SizeKind,
    TypeReferenceError,
    load_schema,
)
from nlcodec.generator.layout import calculate_length, multiply


def calc(schema, name):
    return LayoutCalculator(load_schema(schema)).calc_struct_layout(name)


def describe_calculate_length():
    def folds_integers(expect):
        expect(calculate_length([1, 2, 4])) == 7
        expect(calculate_length([])) == 0

    def keeps_expressions(expect):
        expect(calculate_length([1, "NAMSIZ"])) == "1 + NAMSIZ"
        expect(calculate_length(["A", 2])) == "2 + A"
        expect(calculate_length(["A", 0])) == "A"
        expect(calculate_length([4, "4 * N"])) == "4 + (4 * N)"

    def multiplies(expect):
        expect(multiply(4, 3)) == 12
        expect(multiply(1, "N")) == "N"
        expect(multiply(4, "N + 1")) == "4 * (N + 1)"
        expect(multiply("LENGTH_Foo", 2)) == "LENGTH_Foo * 2"


def describe_static_layouts():
    def lays_out_primitives(expect):
        layout = calc(
            {"S": {"kind": "struct", "attrs": [["a", "u8"], ["b", "s32"], ["c", "f64"], ["d", "bool"]]}},
            "S",
        )
        expect(layout.length) == 14
        expect(layout.kind) == SizeKind.STATIC
        expect(layout.offsets()) == [0, 1, 5, 13]
        expect(layout.length_name) == "LENGTH_S"

    def packs_without_padding(expect):
        layout = calc({"S": {"kind": "struct", "attrs": [["a", "u8"], ["b", "u16be"]]}}, "S")
        expect(layout.length) == 3

    def lays_out_counted_fields(expect):
        schema = {
            "S": {
                "kind": "struct",
                "attrs": [["addr", "u8", {"count": 6}], ["name", "string", {"count": 16}], ["ids", "u32", {"count": 2}]],
            }
        }
        layout = calc(schema, "S")
        expect([f.length for f in layout.fields]) == [6, 16, 8]
        expect([f.element_length for f in layout.fields]) == [1, 1, 4]
        expect(layout.length) == 30

    def nests_structs(expect):
        schema = {
            "Outer": {"kind": "struct", "attrs": [["tag", "u8"], ["inner", "Inner", {"count": 2}]]},
            "Inner": {"kind": "struct", "attrs": [["a", "u16"], ["b", "u16"]]},
        }
        calculator = LayoutCalculator(load_schema(schema))
        expect(calculator.calc_struct_layout("Outer").length) == 9
        expect(list(calculator.layouts)) == ["Inner", "Outer"]


def describe_dynamic_layouts():
    def keeps_count_expressions(expect):
        layout = calc({"S": {"kind": "struct", "attrs": [["a", "u8"], ["b", "u32", {"count": "2 * 3"}]]}}, "S")
        expect(layout.kind) == SizeKind.DYNAMIC
        expect(layout.length) == "1 + (4 * (2 * 3))"
        with pytest.raises(ValueError):
            layout.offsets()

    def references_nested_dynamic_lengths(expect):
        schema = {
            "Outer": {"kind": "struct", "attrs": [["inner", "Inner"], ["x", "u8"]]},
            "Inner": {"kind": "struct", "attrs": [["name", "string", {"count": "NAMSIZ"}]]},
        }
        layout = calc(schema, "Outer")
        expect(layout.fields[0].length) == "LENGTH_Inner"
        expect(layout.length) == "1 + LENGTH_Inner"


def describe_expandable_layouts():
    def stops_after_the_abi_marker(expect):
        schema = {
            "S": {
                "kind": "struct",
                "attrs": [["a", "u32"], ["b", "u16", {"abi": "5.4"}], ["c", "u64"], ["d", "u8"]],
            }
        }
        layout = calc(schema, "S")
        expect(layout.expandable) == True
        expect([f.name for f in layout.fields]) == ["a", "b"]
        expect(layout.dropped) == ("c", "d")
        expect(layout.length) == 6
        expect(layout.length_name) == "MINLENGTH_S"

    def cannot_be_nested():
        schema = {
            "Outer": {"kind": "struct", "attrs": [["inner", "Inner"]]},
            "Inner": {"kind": "struct", "attrs": [["a", "u8", {"abi": "1"}]]},
        }
        with pytest.raises(TypeReferenceError, match="Outer.inner: Expandable struct Inner"):
            calc(schema, "Outer")


def describe_layout_errors():
    def rejects_data_without_count():
        with pytest.raises(LayoutError, match="S.d: Struct data member defined without count"):
            calc({"S": {"kind": "struct", "attrs": [["d", "data"]]}}, "S")

    def rejects_flags_and_wrappers():
        with pytest.raises(LayoutError, match="Type flag not supported on struct members"):
            calc({"S": {"kind": "struct", "attrs": [["f", "flag"]]}}, "S")
        with pytest.raises(LayoutError, match="not supported on struct members"):
            calc({"S": {"kind": "struct", "attrs": [["f", "array(u8)"]]}}, "S")

    def rejects_unknown_and_non_struct_types():
        schema = {
            "S": {"kind": "struct", "attrs": [["a", "Attrs"]]},
            "Attrs": {"attrs": []},
        }
        with pytest.raises(TypeReferenceError, match="Invalid type Attrs specified as struct type"):
            calc(schema, "S")
        with pytest.raises(TypeReferenceError, match="S.a: Unknown type: Nope"):
            calc({"S": {"kind": "struct", "attrs": [["a", "Nope"]]}}, "S")

    def detects_embedding_cycles(expect):
        schema = {
            "A": {"kind": "struct", "attrs": [["b", "B"]]},
            "B": {"kind": "struct", "attrs": [["a", "A"]]},
        }
        with pytest.raises(TypeReferenceError) as e:
            calc(schema, "A")
        expect(str(e.value)) == "A: Struct embedding cycle: A -> B -> A"
