"""nlcodec schema compiler."""

from .compiler import CompiledBundle as CompiledBundle
from .compiler import Compiler as Compiler
from .compiler import compile_types as compile_types
from .errors import *
from .layout import LayoutCalculator as LayoutCalculator
from .layout import SizeKind as SizeKind
from .layout import StructLayout as StructLayout
from .parser import load_schema as load_schema
from .parser import load_schema_file as load_schema_file
from .parser import parse_type_expr as parse_type_expr
from .parser import validate as validate
from .types import *
