"""wirepack schema parser, compiler and code generator."""

from .compiler import CapabilityMismatch as CapabilityMismatch
from .compiler import compile_schema as compile_schema
from .parser import ValidationError as ValidationError
from .parser import parse as parse
from .parser import validate as validate
from .sizes import SchemaSizeInfo as SchemaSizeInfo
from .sizes import SizeCalculator as SizeCalculator
from .sizes import SizeInfo as SizeInfo
from .sizes import SizeKind as SizeKind
from .sizes import StructSizeInfo as StructSizeInfo
from .sizes import calculate_sizes as calculate_sizes
from .types import *
