# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Python source parser producing type declarations.

This module implements the parsing pipeline for a Python source tree:
- File discovery with built-in and user ignore patterns
- File reading with UTF-8/latin-1 fallback encoding
- File size limits
- AST parsing with error recovery (a bad file is skipped, not fatal)
- Parallel parsing on a thread pool with a fingerprint cache
- Interface/superclass classification across the whole codebase
"""

import ast
import concurrent.futures
import dataclasses
import fnmatch
import logging
import os
import time
from functools import partial
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple, Union

from codemap.fingerprint_cache import FingerprintCache
from codemap.models import TypeDeclaration, TypeKind
from codemap.parsers.extractor import DeclarationExtractor

logger = logging.getLogger(__name__)


class SourceParseError(Exception):
    """Raised when a source file cannot be read or parsed."""

    pass


class FileTooLargeError(SourceParseError):
    """Raised when a source file exceeds the configured size limits."""

    pass


class PythonSourceParser:
    """Parses a Python source tree into TypeDeclarations.

    Error Recovery:
    - Syntax errors: Skip file, log warning, continue with other files
    - Encoding errors: Try UTF-8 first, fallback to latin-1
    - Oversized files: Skip file, log warning

    After parse(), ``last_stats`` holds counts for the run:
    total, success, failed, skipped, cache_hits, types, members, duration_ms.
    """

    MAX_FILE_LINES = 10000
    MAX_FILE_SIZE_BYTES = 10 * 1024 * 1024
    DEFAULT_WORKERS = 4

    ALWAYS_IGNORED = {
        ".git",
        "__pycache__",
        ".venv",
        "venv",
        "env",
        "node_modules",
        ".tox",
        ".pytest_cache",
        ".mypy_cache",
        ".ruff_cache",
        ".eggs",
        "*.egg-info",
        "dist",
        "build",
    }

    def __init__(
        self,
        cache: Optional[FingerprintCache] = None,
        max_file_lines: int = MAX_FILE_LINES,
        workers: int = DEFAULT_WORKERS,
        ignore_patterns: Sequence[str] = (),
    ):
        """Initialize the parser.

        Args:
            cache: Optional fingerprint cache; unchanged files are not re-parsed.
            max_file_lines: Files with more lines are skipped (default: 10000).
            workers: Thread pool size for parsing (default: 4).
            ignore_patterns: Extra glob patterns matched against relative paths and names.
        """
        self.cache = cache
        self.max_file_lines = max_file_lines
        self.workers = max(1, workers)
        self.ignore_patterns = list(ignore_patterns)
        self.last_stats: Dict[str, Any] = {}

    def discover_files(self, source_root: Union[str, Path]) -> List[Path]:
        """List the Python files under source_root in sorted order."""
        root = Path(source_root)
        files: List[Path] = []
        for dirpath, dirnames, filenames in os.walk(root):
            current = Path(dirpath)
            dirnames[:] = sorted(
                d for d in dirnames if not self.should_ignore(current / d, root)
            )
            for filename in sorted(filenames):
                path = current / filename
                if filename.endswith(".py") and not self.should_ignore(path, root):
                    files.append(path)
        return files

    def should_ignore(self, path: Path, root: Path) -> bool:
        """Check if a path should be skipped during discovery.

        Built-in patterns match any path component; user patterns match the
        relative path or the file name.
        """
        try:
            rel_path = path.relative_to(root)
        except ValueError:
            rel_path = path
        rel_path_str = rel_path.as_posix()

        for pattern in self.ALWAYS_IGNORED:
            if any(fnmatch.fnmatch(part, pattern) for part in rel_path.parts):
                return True

        for pattern in self.ignore_patterns:
            if fnmatch.fnmatch(rel_path_str, pattern) or fnmatch.fnmatch(path.name, pattern):
                return True

        return False

    def parse(self, source_root: Union[str, Path]) -> List[TypeDeclaration]:
        """Parse every Python file under source_root.

        Files that fail to read or parse are logged and left out; the run
        always completes.

        Args:
            source_root: Root directory of the codebase.

        Returns:
            Declarations of all parsed files, in sorted file order.

        Raises:
            NotADirectoryError: If source_root is not a directory.
        """
        root = Path(source_root).resolve()
        if not root.is_dir():
            raise NotADirectoryError(f"Source root is not a directory: {source_root}")

        start_time = time.time()
        files = self.discover_files(root)
        hits_before = self.cache.stats()["hits"] if self.cache is not None else 0
        stats = {"total": len(files), "success": 0, "failed": 0, "skipped": 0}

        declarations: List[TypeDeclaration] = []
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = [executor.submit(self._parse_with_cache, path, root) for path in files]
            for path, future in zip(files, futures):
                try:
                    declarations.extend(future.result())
                    stats["success"] += 1
                except FileTooLargeError as e:
                    logger.warning(f"⚠️ Skipping {path}: {e}")
                    stats["skipped"] += 1
                except SourceParseError as e:
                    logger.warning(f"⚠️ Skipping {path}: {e}")
                    stats["failed"] += 1

        declarations = classify_supertypes(declarations)

        cache_hits = self.cache.stats()["hits"] - hits_before if self.cache is not None else 0
        stats.update(
            {
                "cache_hits": cache_hits,
                "types": len(declarations),
                "members": sum(len(d.members) for d in declarations),
                "duration_ms": int((time.time() - start_time) * 1000),
            }
        )
        self.last_stats = stats
        logger.info(
            f"Parsed {stats['success']}/{stats['total']} files under {root} "
            f"({stats['failed']} failed, {stats['skipped']} skipped, {cache_hits} cached): "
            f"{stats['types']} types, {stats['members']} members"
        )
        return declarations

    def parse_file(
        self, filepath: Union[str, Path], source_root: Union[str, Path]
    ) -> List[TypeDeclaration]:
        """Parse a single file.

        Args:
            filepath: Path to the Python file.
            source_root: Root the module name is computed from.

        Returns:
            Declarations of the classes in the file.

        Raises:
            FileTooLargeError: If the file exceeds the size limits.
            SourceParseError: If the file cannot be read or has a syntax error.
        """
        path = Path(filepath)
        source = self._read_file(path)
        try:
            module = ast.parse(source, filename=str(path), mode="exec")
        except SyntaxError as e:
            raise SourceParseError(f"Syntax error at line {e.lineno}: {e.msg}") from e
        except (ValueError, RecursionError) as e:
            raise SourceParseError(f"Cannot parse: {e}") from e

        package, is_package = module_name(path, Path(source_root))
        extractor = DeclarationExtractor(package, str(path), is_package=is_package)
        return extractor.extract(module)

    def _parse_with_cache(self, path: Path, root: Path) -> List[TypeDeclaration]:
        parse = partial(self.parse_file, source_root=root)
        if self.cache is None:
            return parse(path)
        return self.cache.get_or_parse(path, parse)

    def _read_file(self, path: Path) -> str:
        """Read file with UTF-8/latin-1 fallback and size limits."""
        try:
            file_size = path.stat().st_size
            if file_size > self.MAX_FILE_SIZE_BYTES:
                raise FileTooLargeError(
                    f"{file_size} bytes exceeds limit ({self.MAX_FILE_SIZE_BYTES})"
                )

            with open(path, encoding="utf-8", errors="ignore") as f:
                line_count = sum(1 for _ in f)
            if line_count > self.max_file_lines:
                raise FileTooLargeError(
                    f"{line_count} lines exceeds limit ({self.max_file_lines})"
                )

            try:
                with open(path, encoding="utf-8") as f:
                    return f.read()
            except UnicodeDecodeError:
                logger.warning(f"⚠️ File {path} is not UTF-8, using latin-1 fallback encoding")
                with open(path, encoding="latin-1") as f:
                    return f.read()
        except FileNotFoundError as e:
            raise SourceParseError("File not found") from e
        except PermissionError as e:
            raise SourceParseError("Permission denied") from e
        except OSError as e:
            raise SourceParseError(f"Cannot read file: {e}") from e


def module_name(path: Path, source_root: Path) -> Tuple[str, bool]:
    """Dotted module name of a file relative to source_root.

    Returns:
        Tuple of (module name, whether the file is a package __init__).
    """
    try:
        rel_path = path.resolve().relative_to(source_root.resolve())
    except ValueError:
        rel_path = Path(path.name)
    parts = list(rel_path.with_suffix("").parts)
    is_package = bool(parts) and parts[-1] == "__init__"
    if is_package:
        parts = parts[:-1]
    return ".".join(parts), is_package


def classify_supertypes(declarations: List[TypeDeclaration]) -> List[TypeDeclaration]:
    """Move interface bases of classes and enums from supertype to interfaces.

    Python bases do not say whether they name an interface. Once the whole
    codebase is known, a base naming a known interface becomes an
    implemented interface and the first remaining base becomes the
    supertype. Interfaces keep their bases as declared.
    """
    interface_names: Set[str] = set()
    for decl in declarations:
        if decl.kind == TypeKind.INTERFACE:
            interface_names.add(decl.name)
            interface_names.add(decl.qualified_name)

    if not interface_names:
        return declarations

    result: List[TypeDeclaration] = []
    for decl in declarations:
        bases = ([decl.super_type] if decl.super_type else []) + list(decl.interfaces)
        if decl.kind == TypeKind.INTERFACE or not bases:
            result.append(decl)
            continue
        interfaces = [base for base in bases if base in interface_names]
        classes = [base for base in bases if base not in interface_names]
        result.append(
            dataclasses.replace(
                decl,
                super_type=classes[0] if classes else None,
                interfaces=tuple(interfaces + classes[1:]),
            )
        )
    return result
