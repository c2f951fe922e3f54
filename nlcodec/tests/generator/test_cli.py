"""Tests for CLI interface."""

import json
import os
import tempfile

from click.testing import CliRunner

from nlcodec.generator.cli import cli

FILE_DIR = os.path.dirname(os.path.realpath(__file__))
GENL_SCHEMA = f"{FILE_DIR}/schemas/genl_controller.json"
LINK_SCHEMA = f"{FILE_DIR}/schemas/link.json"


def describe_gen_command():
    def generates_python_code(expect):
        runner = CliRunner()
        with tempfile.NamedTemporaryFile(suffix=".py", delete=False) as f:
            output_file = f.name

        try:
            result = runner.invoke(cli, ["gen", "-i", GENL_SCHEMA, "-o", output_file])
            expect(result.exit_code) == 0
            with open(output_file) as f:
                content = f.read()
            expect("def parse_family(r: bytes) -> Family:" in content) == True
            expect("from nlcodec_runtime import structs" in content) == True
            expect("generated by nlcodec from genl_controller.json" in content) == True
        finally:
            os.unlink(output_file)

    def uses_bundled_runtime_without_value(expect):
        runner = CliRunner()
        with tempfile.NamedTemporaryFile(suffix=".py", delete=False) as f:
            output_file = f.name

        try:
            result = runner.invoke(
                cli, ["gen", "-i", LINK_SCHEMA, "-o", output_file, "--runtime-import"]
            )
            expect(result.exit_code) == 0
            with open(output_file) as f:
                content = f.read()
            expect("from nlcodec.proto import structs" in content) == True
        finally:
            os.unlink(output_file)

    def reports_schema_errors(expect):
        runner = CliRunner()
        with tempfile.NamedTemporaryFile("w", suffix=".json", delete=False) as f:
            json.dump({"A": {"attrs": [["x", "Nope"]]}}, f)
            schema_file = f.name

        try:
            result = runner.invoke(cli, ["gen", "-i", schema_file, "-o", "/tmp/nlcodec_out.py"])
            expect(result.exit_code) == 1
            expect("A.x: Unknown type: Nope" in result.output) == True
        finally:
            os.unlink(schema_file)

    def generates_every_fixture_schema(expect):
        runner = CliRunner()
        with tempfile.TemporaryDirectory() as tmpdir:
            for schema in (GENL_SCHEMA, LINK_SCHEMA):
                output_file = os.path.join(tmpdir, "out.py")
                result = runner.invoke(cli, ["gen", "-i", schema, "-o", output_file])
                expect(result.exit_code) == 0
                expect(result.exception) == None
                with open(output_file) as f:
                    compile(f.read(), output_file, "exec")

    def reports_malformed_json(expect):
        runner = CliRunner()
        with tempfile.NamedTemporaryFile("w", suffix=".json", delete=False) as f:
            f.write("{not json")
            schema_file = f.name

        try:
            result = runner.invoke(cli, ["gen", "-i", schema_file, "-o", "/tmp/nlcodec_out.py"])
            expect(result.exit_code) == 1
            expect(f"{schema_file}: Expecting property name" in result.output) == True
        finally:
            os.unlink(schema_file)

    def reports_missing_files(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["info", "-i", "/nonexistent/schema.json"])
        expect(result.exit_code) == 1
        expect("/nonexistent/schema.json: No such file or directory" in result.output) == True

    def requires_input(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["gen", "-o", "/tmp/out.py"])
        expect(result.exit_code) == 2


def describe_runtime_command():
    def copies_runtime_files(expect):
        runner = CliRunner()
        with tempfile.TemporaryDirectory() as tmpdir:
            result = runner.invoke(cli, ["runtime", "-o", tmpdir, "--name", "nlrt"])
            expect(result.exit_code) == 0
            files = sorted(os.listdir(os.path.join(tmpdir, "nlrt")))
            expect(files) == ["__init__.py", "serialization.py", "structs.py"]
            with open(os.path.join(tmpdir, "nlrt", "structs.py")) as f:
                expect("def get_object(" in f.read()) == True


def describe_info_command():
    def shows_types_and_layouts(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["info", "-i", LINK_SCHEMA])
        expect(result.exit_code) == 0
        expect("Types" in result.output) == True
        expect("Structs" in result.output) == True
        expect("LinkStats" in result.output) == True
        expect("bitmask, attrs" in result.output) == True

    def outputs_json(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["info", "-i", LINK_SCHEMA, "--json"])
        expect(result.exit_code) == 0
        data = json.loads(result.output)
        expect(data["roots"]) == ["Message", "Link"]
        expect(data["types"]["LinkMode"]["variants"]) == ["bitmask", "attrs"]
        expect(data["types"]["OperState"]["variants"]) == []
        expect(data["types"]["Link"]["functions"]) == ["parse_link", "format_link"]
        expect(data["structs"]["LinkStats"]) == {
            "length": 16,
            "kind": "static",
            "expandable": False,
            "fields": ["rxPackets", "txPackets", "rxBytes", "txBytes"],
            "dropped": [],
        }
