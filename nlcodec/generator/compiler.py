"""Two-pass compilation of a schema into generated code blocks.

Pass 1 compiles structs, flags and attribute sets. While doing so the
resolver records which derived representations of each enum are used
(`asflags()` as a lower type needs the bitmask codec, as an attribute type
the TLV flag list codec). Pass 2 then compiles the enums with exactly the
variants that were requested.
"""

import logging
from dataclasses import dataclass, field
from enum import StrEnum, auto
from types import ModuleType

from . import python
from .attrs import compile_attrs
from .codegen import CodeBlock
from .enums import compile_enum
from .errors import SchemaError, error_context
from .flags import compile_flags
from .layout import LayoutCalculator, StructLayout
from .parser import validate
from .resolver import TypeResolver
from .structs import compile_struct_type
from .types import EnumRequirements, TypeKind, TypeStore

logger = logging.getLogger(__name__)


class CompilerState(StrEnum):
    COMPILING_NON_ENUMS = auto()
    COMPILING_ENUMS = auto()
    DONE = auto()


@dataclass
class CompiledBundle:
    """Result of compiling a schema."""

    types: TypeStore
    blocks: dict[str, CodeBlock]
    requirements: EnumRequirements
    layouts: dict[str, StructLayout]
    roots: list[str] = field(default_factory=list)

    @property
    def constants(self) -> list[tuple[str, str]]:
        """Module level length constants, nested structs first."""
        return [(layout.length_name, str(layout.length)) for layout in self.layouts.values()]

    @property
    def functions(self) -> list[str]:
        return [fn for block in self.blocks.values() for fn in block.functions]

    def render(self, runtime_import: str = "nlcodec_runtime", source: str | None = None) -> str:
        """Render the generated Python module."""
        return python.render(self, runtime_import=runtime_import, source=source)

    def load(self, module_name: str = "nlcodec_generated") -> ModuleType:
        """Render and execute the generated module, using the bundled runtime."""
        return python.load(self.render(runtime_import="nlcodec.proto"), module_name)


class Compiler:
    """Compile a type store into code blocks.

    A compiler instance owns the enum requirement table, so several schemas
    can be compiled independently. Each instance compiles once.
    """

    def __init__(self, types: TypeStore):
        self.types = types
        self.requirements = EnumRequirements()
        self.resolver = TypeResolver(types, self.requirements)
        self.calculator = LayoutCalculator(types)
        self.blocks: dict[str, CodeBlock] = {}
        self.state: CompilerState | None = None

    def _emit(self, block: CodeBlock) -> None:
        if block.name in self.blocks:
            raise RuntimeError(f"Type {block.name} compiled twice")
        self.blocks[block.name] = block

    def _compile_type(self, name: str) -> CodeBlock:
        type_def = self.types[name]
        logger.debug("Compiling %s %s", type_def.kind, name)

        if type_def.kind == TypeKind.STRUCT:
            return compile_struct_type(name, self.calculator, self.resolver)
        if type_def.kind == TypeKind.FLAGS:
            return compile_flags(name, type_def)
        if type_def.kind == TypeKind.ATTRS:
            return compile_attrs(name, type_def, self.resolver)
        return compile_enum(name, type_def, self.requirements.get(name))

    def compile(self) -> CompiledBundle:
        """Validate and compile all types.

        Raises:
            SchemaError: on the first invalid type; nothing is returned then.
        """
        if self.state is not None:
            raise RuntimeError("Compiler instances can only compile once")

        validate(self.types)

        self.state = CompilerState.COMPILING_NON_ENUMS
        logger.info("Compiling %d types", len(self.types))
        for name, type_def in self.types.items():
            if type_def.kind != TypeKind.ENUM:
                with error_context(name):
                    self._emit(self._compile_type(name))

        self.state = CompilerState.COMPILING_ENUMS
        enums = [name for name, t in self.types.items() if t.kind == TypeKind.ENUM]
        logger.info(
            "Compiling %d enums (%d with derived flag sets)",
            len(enums),
            len(self.requirements.as_dict()),
        )
        for name in enums:
            with error_context(name):
                self._emit(self._compile_type(name))

        self.state = CompilerState.DONE

        return CompiledBundle(
            types=self.types,
            blocks={name: self.blocks[name] for name in self.types},
            requirements=self.requirements,
            layouts=self.calculator.layouts,
            roots=[name for name, t in self.types.items() if t.root],
        )


def compile_types(types: TypeStore) -> CompiledBundle:
    """Compile a type store (see `Compiler`)."""
    return Compiler(types).compile()


__all__ = ["CompiledBundle", "Compiler", "CompilerState", "SchemaError", "compile_types"]
