"""Python module rendering for compiled schemas."""

from __future__ import annotations

import sys
from importlib import resources
from types import ModuleType
from typing import TYPE_CHECKING

from .codegen import render_template

if TYPE_CHECKING:
    from .compiler import CompiledBundle

RUNTIME_FILES = [
    "__init__.py",
    "serialization.py",
    "structs.py",
]


def render(
    bundle: CompiledBundle,
    runtime_import: str = "nlcodec_runtime",
    source: str | None = None,
) -> str:
    """Render a compiled schema to Python source code."""
    return render_template(
        "module.py.j2",
        blocks=list(bundle.blocks.values()),
        constants=bundle.constants,
        runtime_import=runtime_import,
        source=source,
    )


def load(source: str, module_name: str = "nlcodec_generated") -> ModuleType:
    """Execute generated source code as a new module.

    The module is registered in `sys.modules` under `module_name`, so that
    `typing.get_type_hints()` can resolve its TypedDict annotations.
    """
    module = ModuleType(module_name)
    module.__file__ = f"<{module_name}>"
    code = compile(source, module.__file__, "exec")
    sys.modules[module_name] = module
    try:
        exec(code, module.__dict__)
    except BaseException:
        del sys.modules[module_name]
        raise
    return module


def runtime() -> dict[str, str]:
    """Return the Python runtime files as a dict of filename -> content."""
    result: dict[str, str] = {}
    for filename in RUNTIME_FILES:
        content = resources.files("nlcodec.proto").joinpath(filename).read_text()
        result[filename] = content
    return result
