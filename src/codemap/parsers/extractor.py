# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Extraction of type declarations from a Python module AST.

Mapping from Python constructs to declarations:
- class -> TypeDeclaration (nested classes qualified as Outer.Inner)
- Enum subclasses -> enum; Protocol subclasses and pure abstract ABCs -> interface
- first base -> supertype, remaining bases -> interfaces
- def inside a class -> MemberDeclaration (__init__ is the constructor)
- @staticmethod / @classmethod -> static, @abstractmethod -> abstract
- leading underscores -> protected / private visibility
- class annotations and self attributes -> field descriptors
- module-level imports -> absolute dotted import names

Call targets are recorded in the shapes the graph builder resolves:
``self.m()`` -> "m", ``self.x.m()`` and ``x.m()`` -> "x.m",
``super().m()`` -> "<FirstBase>.m", and ``Name()`` -> "<module.Name>.__init__"
when Name is a class defined in or imported into the module. Any other
bare call is not recorded.
"""

import ast
import logging
from typing import Dict, Iterator, List, Optional, Sequence, Set, Tuple, Union

from codemap.models import MemberDeclaration, TypeDeclaration, TypeKind, Visibility

logger = logging.getLogger(__name__)

ENUM_BASES = {"Enum", "IntEnum", "StrEnum", "Flag", "IntFlag"}
PROTOCOL_BASES = {"Protocol"}
ABSTRACT_BASES = {"ABC"}
# Bases that classify a type rather than name a supertype
MARKER_BASES = ENUM_BASES | PROTOCOL_BASES | ABSTRACT_BASES | {"object", "Generic"}

# Wrappers whose first type argument is the interesting type
WRAPPER_TYPES = {
    "Optional",
    "List",
    "Sequence",
    "MutableSequence",
    "Set",
    "FrozenSet",
    "Iterable",
    "Iterator",
    "Collection",
    "Tuple",
    "Type",
    "ClassVar",
    "Final",
    "Deque",
    "list",
    "set",
    "frozenset",
    "tuple",
    "type",
    "deque",
}
# Mappings whose value type is the interesting type
MAPPING_TYPES = {"Dict", "Mapping", "MutableMapping", "DefaultDict", "OrderedDict", "dict"}

STATIC_DECORATORS = {"staticmethod", "classmethod"}
ABSTRACT_DECORATORS = {"abstractmethod"}

ANY_TYPE = "Any"

FunctionNode = Union[ast.FunctionDef, ast.AsyncFunctionDef]


def dotted_name(node: ast.AST) -> Optional[str]:
    """Return ``a.b.c`` for a Name/Attribute chain, None for anything else."""
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        base = dotted_name(node.value)
        return f"{base}.{node.attr}" if base else None
    return None


def last_segment(name: str) -> str:
    return name.rsplit(".", 1)[-1]


def decorator_name(node: ast.expr) -> Optional[str]:
    """Bare name of a decorator, ignoring call arguments and module prefixes."""
    if isinstance(node, ast.Call):
        node = node.func
    name = dotted_name(node)
    return last_segment(name) if name else None


def element_type(annotation: Optional[ast.expr]) -> Optional[str]:
    """Reduce an annotation to the single type name it is about.

    ``Optional[Repo]``, ``List[Repo]``, ``Repo | None``, ``Dict[str, Repo]``
    and ``"Repo"`` all reduce to ``Repo``.
    """
    if annotation is None:
        return None
    if isinstance(annotation, ast.Constant):
        if isinstance(annotation.value, str) and annotation.value:
            try:
                parsed = ast.parse(annotation.value, mode="eval").body
            except SyntaxError:
                return last_segment(annotation.value.strip())
            return element_type(parsed)
        return None
    if isinstance(annotation, (ast.Name, ast.Attribute)):
        name = dotted_name(annotation)
        return last_segment(name) if name else None
    if isinstance(annotation, ast.BinOp) and isinstance(annotation.op, ast.BitOr):
        left = element_type(annotation.left)
        return left if left and left != "None" else element_type(annotation.right)
    if isinstance(annotation, ast.Subscript):
        container = element_type(annotation.value)
        args: Sequence[ast.expr]
        if isinstance(annotation.slice, ast.Tuple):
            args = annotation.slice.elts
        else:
            args = [annotation.slice]
        if container in MAPPING_TYPES and len(args) >= 2:
            return element_type(args[1])
        if container == "Union":
            for arg in args:
                reduced = element_type(arg)
                if reduced and reduced != "None":
                    return reduced
            return None
        if container in WRAPPER_TYPES and args:
            return element_type(args[0])
        return container
    return None


def annotation_text(annotation: Optional[ast.expr], default: str = ANY_TYPE) -> str:
    if annotation is None:
        return default
    return ast.unparse(annotation)


def visibility_of(name: str) -> str:
    if name.startswith("__") and not name.endswith("__"):
        return Visibility.PRIVATE
    if name.startswith("_") and not (name.startswith("__") and name.endswith("__")):
        return Visibility.PROTECTED
    return Visibility.PUBLIC


def _import_statements(statements: Sequence[ast.stmt]) -> Iterator[ast.stmt]:
    """Import statements at module level, including those in ``if``/``try`` blocks."""
    for stmt in statements:
        if isinstance(stmt, (ast.Import, ast.ImportFrom)):
            yield stmt
        elif isinstance(stmt, ast.If):
            yield from _import_statements(stmt.body)
            yield from _import_statements(stmt.orelse)
        elif isinstance(stmt, ast.Try):
            yield from _import_statements(stmt.body)
            for handler in stmt.handlers:
                yield from _import_statements(handler.body)
            yield from _import_statements(stmt.orelse)
            yield from _import_statements(stmt.finalbody)


def _imported_names(
    module: ast.Module, package: str, is_package: bool
) -> Iterator[Tuple[Optional[str], str]]:
    """Yield ``(bound name, absolute dotted name)`` for every module-level import.

    The bound name is None for a plain ``import a.b``, which binds only ``a``.

    Relative imports are resolved against the module's own package; wildcard
    imports and relative imports reaching above the root are skipped.
    """
    parts = package.split(".") if package else []
    containing = parts if is_package else parts[:-1]

    for stmt in _import_statements(module.body):
        if isinstance(stmt, ast.Import):
            for alias in stmt.names:
                yield alias.asname, alias.name
            continue

        assert isinstance(stmt, ast.ImportFrom)
        if stmt.level:
            keep = len(containing) - (stmt.level - 1)
            if keep < 0:
                continue
            base_parts = containing[:keep]
            if stmt.module:
                base_parts = base_parts + stmt.module.split(".")
            base = ".".join(base_parts)
        else:
            base = stmt.module or ""
        for alias in stmt.names:
            if alias.name == "*":
                continue
            yield alias.asname or alias.name, f"{base}.{alias.name}" if base else alias.name


def module_imports(module: ast.Module, package: str, is_package: bool) -> List[str]:
    """Absolute dotted names imported at module level.

    Relative imports are resolved against the module's own package. Imports
    inside ``if``/``try`` blocks at module level (e.g. TYPE_CHECKING guards)
    are included; wildcard imports are not.

    Args:
        module: Parsed module.
        package: Dotted name of the module (or of the package for __init__.py).
        is_package: Whether the module is a package __init__.

    Returns:
        Import names in source order, without duplicates.
    """
    imports: List[str] = []
    seen: Set[str] = set()
    for _, name in _imported_names(module, package, is_package):
        if name and name not in seen:
            seen.add(name)
            imports.append(name)
    return imports


def class_bindings(module: ast.Module, package: str, is_package: bool) -> Dict[str, str]:
    """Map names usable as ``Name()`` in the module to the class they may denote.

    Covers ``from x import Name`` (or ``as Alias``), ``import x.Name as Alias``
    and classes defined at module level. A local class shadows an import.
    """
    bindings: Dict[str, str] = {}
    for bound, name in _imported_names(module, package, is_package):
        if bound is not None:
            bindings[bound] = name
    for stmt in module.body:
        if isinstance(stmt, ast.ClassDef):
            bindings[stmt.name] = f"{package}.{stmt.name}" if package else stmt.name
    return bindings


class DeclarationExtractor:
    """Extracts TypeDeclarations from one parsed Python module.

    Usage:
        extractor = DeclarationExtractor("app.services", "/src/app/services.py")
        declarations = extractor.extract(ast.parse(source))
    """

    def __init__(self, package: str, file_path: Optional[str] = None, is_package: bool = False):
        """Initialize the extractor.

        Args:
            package: Dotted module name the declarations belong to.
            file_path: Source file path recorded on each declaration.
            is_package: Whether the module is a package __init__.
        """
        self.package = package
        self.file_path = file_path
        self.is_package = is_package
        self._class_bindings: Dict[str, str] = {}

    def extract(self, module: ast.Module) -> List[TypeDeclaration]:
        """Extract all class declarations, including nested ones, in source order."""
        imports = tuple(module_imports(module, self.package, self.is_package))
        self._class_bindings = class_bindings(module, self.package, self.is_package)
        declarations: List[TypeDeclaration] = []
        for stmt in module.body:
            if isinstance(stmt, ast.ClassDef):
                self._extract_class(stmt, (), imports, declarations)
        return declarations

    def _extract_class(
        self,
        node: ast.ClassDef,
        outer: Tuple[str, ...],
        imports: Tuple[str, ...],
        declarations: List[TypeDeclaration],
    ) -> None:
        path = outer + (node.name,)
        local_name = ".".join(path)
        qualified_name = f"{self.package}.{local_name}" if self.package else local_name

        raw_bases = [
            dotted_name(base.value if isinstance(base, ast.Subscript) else base)
            for base in node.bases
        ]
        base_names = [last_segment(name) for name in raw_bases if name]
        has_abc_metaclass = any(
            keyword.arg == "metaclass" and decorator_name(keyword.value) == "ABCMeta"
            for keyword in node.keywords
        )
        supertypes = [name for name in base_names if name not in MARKER_BASES]

        members: List[MemberDeclaration] = []
        fields: Dict[str, str] = {}
        for stmt in node.body:
            if isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
                members.append(self._extract_member(stmt, qualified_name, supertypes))
                if stmt.name == "__init__":
                    self._collect_init_fields(stmt, fields)
            elif isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name):
                field_type = element_type(stmt.annotation)
                if field_type and stmt.target.id not in fields:
                    fields[stmt.target.id] = field_type

        abstract_members = [m for m in members if m.is_abstract]
        is_abc = has_abc_metaclass or any(name in ABSTRACT_BASES for name in base_names)

        if any(name in ENUM_BASES for name in base_names):
            kind = TypeKind.ENUM
        elif any(name in PROTOCOL_BASES for name in base_names):
            kind = TypeKind.INTERFACE
        elif (
            is_abc
            and members
            and not fields
            and all(m.is_abstract or m.is_constructor for m in members)
            and abstract_members
        ):
            kind = TypeKind.INTERFACE
        else:
            kind = TypeKind.CLASS

        declarations.append(
            TypeDeclaration(
                name=node.name,
                package=self.package,
                qualified_name=qualified_name,
                file_path=self.file_path,
                line=node.lineno,
                kind=kind,
                is_abstract=bool(abstract_members) or (is_abc and kind == TypeKind.CLASS),
                super_type=supertypes[0] if supertypes else None,
                interfaces=tuple(supertypes[1:]),
                members=tuple(members),
                fields=tuple(f"{field_type} {name}" for name, field_type in fields.items()),
                annotations=tuple(
                    name for name in (decorator_name(d) for d in node.decorator_list) if name
                ),
                imports=imports,
            )
        )

        for stmt in node.body:
            if isinstance(stmt, ast.ClassDef):
                self._extract_class(stmt, path, imports, declarations)

    def _extract_member(
        self,
        node: FunctionNode,
        owner: str,
        supertypes: List[str],
    ) -> MemberDeclaration:
        decorators = [name for name in (decorator_name(d) for d in node.decorator_list) if name]
        is_static = any(name in STATIC_DECORATORS for name in decorators)
        is_constructor = node.name == "__init__"

        positional = list(node.args.posonlyargs) + list(node.args.args)
        if positional and "staticmethod" not in decorators:
            positional = positional[1:]  # self / cls
        parameter_types = [annotation_text(arg.annotation) for arg in positional]
        if node.args.vararg is not None:
            parameter_types.append("*" + annotation_text(node.args.vararg.annotation))
        parameter_types.extend(annotation_text(arg.annotation) for arg in node.args.kwonlyargs)
        if node.args.kwarg is not None:
            parameter_types.append("**" + annotation_text(node.args.kwarg.annotation))

        return MemberDeclaration(
            name=node.name,
            owner=owner,
            return_type=annotation_text(node.returns, "None" if is_constructor else ANY_TYPE),
            parameter_types=tuple(parameter_types),
            calls=tuple(self._collect_calls(node, supertypes)),
            line=node.lineno,
            is_constructor=is_constructor,
            is_static=is_static,
            is_abstract=any(name in ABSTRACT_DECORATORS for name in decorators),
            visibility=visibility_of(node.name),
            annotations=tuple(decorators),
        )

    def _collect_calls(self, node: FunctionNode, supertypes: List[str]) -> List[str]:
        calls: List[str] = []
        seen: Set[str] = set()
        for child in ast.walk(node):
            if not isinstance(child, ast.Call):
                continue
            target = self._call_target(child.func, supertypes)
            if target and target not in seen:
                seen.add(target)
                calls.append(target)
        return calls

    def _call_target(self, func: ast.expr, supertypes: List[str]) -> Optional[str]:
        if isinstance(func, ast.Name):
            qualified = self._class_bindings.get(func.id)
            if qualified is not None and func.id[:1].isupper():
                return f"{qualified}.__init__"
            return None

        if not isinstance(func, ast.Attribute):
            return None

        receiver = func.value
        if isinstance(receiver, ast.Name):
            if receiver.id in ("self", "cls"):
                return func.attr
            return f"{receiver.id}.{func.attr}"
        if (
            isinstance(receiver, ast.Attribute)
            and isinstance(receiver.value, ast.Name)
            and receiver.value.id in ("self", "cls")
        ):
            return f"{receiver.attr}.{func.attr}"
        if (
            isinstance(receiver, ast.Call)
            and isinstance(receiver.func, ast.Name)
            and receiver.func.id == "super"
            and supertypes
        ):
            return f"{supertypes[0]}.{func.attr}"
        return None

    def _collect_init_fields(self, node: FunctionNode, fields: Dict[str, str]) -> None:
        """Record ``self.x`` attributes assigned in __init__ whose type is known."""
        parameter_types: Dict[str, str] = {}
        for arg in list(node.args.posonlyargs) + list(node.args.args) + list(node.args.kwonlyargs):
            reduced = element_type(arg.annotation)
            if reduced:
                parameter_types[arg.arg] = reduced

        for child in ast.walk(node):
            if isinstance(child, ast.AnnAssign):
                name = self._self_attribute(child.target)
                field_type = element_type(child.annotation)
                if name and field_type and name not in fields:
                    fields[name] = field_type
            elif isinstance(child, ast.Assign):
                field_type = self._value_type(child.value, parameter_types)
                if not field_type:
                    continue
                for target in child.targets:
                    name = self._self_attribute(target)
                    if name and name not in fields:
                        fields[name] = field_type

    @staticmethod
    def _self_attribute(target: ast.expr) -> Optional[str]:
        if (
            isinstance(target, ast.Attribute)
            and isinstance(target.value, ast.Name)
            and target.value.id == "self"
        ):
            return target.attr
        return None

    @staticmethod
    def _value_type(value: ast.expr, parameter_types: Dict[str, str]) -> Optional[str]:
        if isinstance(value, ast.Name):
            return parameter_types.get(value.id)
        if isinstance(value, ast.Call):
            name = dotted_name(value.func)
            if name and last_segment(name)[:1].isupper():
                return last_segment(name)
        if isinstance(value, ast.BoolOp):
            # self.repo = repo or Repository()
            for operand in value.values:
                reduced = DeclarationExtractor._value_type(operand, parameter_types)
                if reduced:
                    return reduced
        return None
