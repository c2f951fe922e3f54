"""Unit tests configuration file."""

import pytest

from nlcodec.generator import compile_types, load_schema


def pytest_configure(config):
    """Disable verbose output when running tests."""
    terminal = config.pluginmanager.getplugin("terminal")
    if terminal:
        terminal.TerminalReporter.showfspath = False


@pytest.fixture
def gen_module():
    """Compile a schema mapping and load the generated module."""

    def gen(schema):
        return compile_types(load_schema(schema)).load()

    return gen
