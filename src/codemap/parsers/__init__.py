# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Source parsers that turn source files into type declarations.

Components:
- PythonSourceParser: Parses a Python source tree with caching and a thread pool
- DeclarationExtractor: Maps one module AST to TypeDeclarations
"""

from codemap.parsers.extractor import DeclarationExtractor
from codemap.parsers.python_parser import (
    FileTooLargeError,
    PythonSourceParser,
    SourceParseError,
    classify_supertypes,
    module_name,
)

__all__ = [
    "DeclarationExtractor",
    "FileTooLargeError",
    "PythonSourceParser",
    "SourceParseError",
    "classify_supertypes",
    "module_name",
]
