"""Resolution of coverage units to packages, files and functions."""

from tarp.resolve.functions import (
    FuncExtent,
    FunctionExtractor,
    TreeSitterFunctionExtractor,
)
from tarp.resolve.packages import (
    GoListResolver,
    ModuleResolver,
    Resolver,
    make_resolver,
)

__all__ = [
    "FuncExtent",
    "FunctionExtractor",
    "GoListResolver",
    "ModuleResolver",
    "Resolver",
    "TreeSitterFunctionExtractor",
    "make_resolver",
]
