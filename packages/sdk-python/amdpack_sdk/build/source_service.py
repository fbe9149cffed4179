"""
AMD Source Parsing and Rendering
================================

Extracts ``define(...)`` calls from JavaScript source and regenerates them
with explicit ids and dependency lists.

``SourceModuleService`` is the protocol the registry talks to;
``AmdSourceService`` implements it on top of tree-sitter's JavaScript grammar.
Rendering only rewrites the argument lists of define calls, everything else
in the file is emitted byte-for-byte.
"""

import re
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from amdpack_common import ParseError, RESERVED_MODULE_IDS, get_logger

try:
    from tree_sitter import Node, Parser
    from tree_sitter_language_pack import get_language
except ImportError as e:
    raise ImportError(
        "tree-sitter-language-pack is required. " "Install with: pip install tree-sitter tree-sitter-language-pack"
    ) from e

logger = get_logger("build.source")

DEFINE = b"define"
REQUIRE = b"require"

FUNCTION_TYPES = {"function_expression", "function", "arrow_function"}

_ESCAPE_PAT = re.compile(r"\\(.)", re.DOTALL)


@dataclass
class ModuleDefinition:
    """One ``define(...)`` call."""

    id: Optional[str]
    """Module id; None for anonymous definitions until the registry names them"""

    dependencies: Optional[List[str]]
    """Dependency references as written, None when no array was given"""

    actual_dependencies: List[str] = field(default_factory=list)
    """References the module really needs, in declaration order"""

    factory: Optional[str] = None
    """Factory source text, opaque to the bundler"""

    span: Optional[Tuple[int, int]] = field(default=None, repr=False, compare=False)
    """Byte span of the call's argument list in the parsed source"""


@dataclass
class ParsedSource:
    """Source bytes together with the definitions found in them."""

    source: bytes
    definitions: List[ModuleDefinition] = field(default_factory=list)

    @property
    def text(self) -> str:
        return self.source.decode("utf-8")


@runtime_checkable
class SourceModuleService(Protocol):
    """
    Protocol for turning module source into definitions and back.

    The bundler never looks inside source bytes itself.
    """

    def parse(self, source: bytes) -> ParsedSource:
        """
        Parse source bytes.

        Raises:
            ParseError: If the source cannot be parsed
        """
        ...

    def render(self, definitions: Sequence[ModuleDefinition], parsed: Optional[ParsedSource] = None) -> str:
        """Regenerate source text for ``definitions``."""
        ...


def quote_module_id(value: str) -> str:
    """Module id as a single-quoted JavaScript string literal."""
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def _string_value(node: Node) -> str:
    raw = node.text.decode("utf-8")[1:-1]
    return _ESCAPE_PAT.sub(lambda m: m.group(1), raw)


def _arguments(node: Node) -> List[Node]:
    return [child for child in node.named_children if child.type != "comment"]


def _is_call_to(node: Node, name: bytes) -> bool:
    if node.type != "call_expression":
        return False
    callee = node.child_by_field_name("function")
    return callee is not None and callee.type == "identifier" and callee.text == name


def _walk(root: Node, stop_at_define: bool = True) -> Iterator[Node]:
    """Pre-order walk; define calls are yielded but not descended into."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        if stop_at_define and _is_call_to(node, DEFINE):
            continue
        stack.extend(reversed(node.children))


def _factory_arity(factory: Node) -> int:
    params = factory.child_by_field_name("parameters")
    if params is not None:
        return len(_arguments(params))
    return 1 if factory.child_by_field_name("parameter") is not None else 0


def _factory_requires(factory: Node) -> List[str]:
    found: List[str] = []
    for node in _walk(factory, stop_at_define=False):
        if not _is_call_to(node, REQUIRE):
            continue
        arguments = node.child_by_field_name("arguments")
        args = _arguments(arguments) if arguments is not None else []
        if len(args) == 1 and args[0].type == "string":
            value = _string_value(args[0])
            if value not in found:
                found.append(value)
    return found


class AmdSourceService:
    """
    tree-sitter backed ``SourceModuleService`` for AMD modules.

    Recognised forms:
        define(factory)
        define([deps], factory)
        define('id', factory)
        define('id', [deps], factory)

    For a factory-only definition the actual dependencies are the loader ids
    matching the factory's parameters (``require, exports, module``) followed
    by every literal ``require('x')`` in the factory body. A dependency array
    holding anything but string literals is a ``ParseError``.
    """

    def __init__(self, language: str = "javascript"):
        self._parser = Parser(get_language(language))

    def parse(self, source: bytes) -> ParsedSource:
        if isinstance(source, str):
            source = source.encode("utf-8")
        try:
            source.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"Parse code failed: source is not valid UTF-8 ({e.reason})") from e

        tree = self._parser.parse(source)
        if tree is None or tree.root_node.has_error:
            raise ParseError("Parse code failed")

        definitions = []
        for node in _walk(tree.root_node):
            if _is_call_to(node, DEFINE):
                definition = self._analyse_define(node, source)
                if definition is not None:
                    definitions.append(definition)

        logger.debug("Source parsed", definitions=len(definitions))
        return ParsedSource(source=source, definitions=definitions)

    def _analyse_define(self, call: Node, source: bytes) -> Optional[ModuleDefinition]:
        arguments = call.child_by_field_name("arguments")
        rest = _arguments(arguments) if arguments is not None else []

        module_id = None
        if len(rest) > 1 and rest[0].type == "string":
            module_id = _string_value(rest.pop(0))

        dependencies = None
        if len(rest) > 1 and rest[0].type == "array":
            elements = _arguments(rest.pop(0))
            # elements map positionally onto the factory's parameters
            for element in elements:
                if element.type != "string":
                    raise ParseError(
                        f"Parse code failed: dependency array holds a non-literal "
                        f"'{element.text.decode('utf-8')}' at line {element.start_point[0] + 1}"
                    )
            dependencies = [_string_value(e) for e in elements]

        if len(rest) != 1:
            logger.warning(
                "Skipping define call with unsupported arguments",
                line=call.start_point[0] + 1,
            )
            return None

        factory = rest[0]
        if dependencies is not None:
            actual = list(dependencies)
        elif factory.type in FUNCTION_TYPES:
            arity = min(_factory_arity(factory), len(RESERVED_MODULE_IDS))
            actual = list(RESERVED_MODULE_IDS[:arity])
            actual += [dep for dep in _factory_requires(factory) if dep not in actual]
        else:
            actual = []

        return ModuleDefinition(
            id=module_id,
            dependencies=dependencies,
            actual_dependencies=actual,
            factory=source[factory.start_byte : factory.end_byte].decode("utf-8"),
            span=(arguments.start_byte, arguments.end_byte),
        )

    @staticmethod
    def format_arguments(definition: ModuleDefinition) -> str:
        """Argument list of a regenerated define call, parentheses included."""
        written = list(definition.dependencies or [])
        deps = written + [dep for dep in definition.actual_dependencies if dep not in written]

        args = []
        if definition.id:
            args.append(quote_module_id(definition.id))
        args.append("[" + ", ".join(quote_module_id(dep) for dep in deps) + "]")
        args.append(definition.factory or "function () {}")
        return "(" + ", ".join(args) + ")"

    def render(self, definitions: Sequence[ModuleDefinition], parsed: Optional[ParsedSource] = None) -> str:
        """
        Regenerate source for ``definitions``.

        With ``parsed`` the original text is kept and only the argument lists
        of the define calls are replaced. Without it one ``define`` statement
        per definition is generated.
        """
        if parsed is None:
            return "\n".join(f"define{self.format_arguments(d)};" for d in definitions)

        pieces: List[bytes] = []
        cursor = 0
        for definition in sorted((d for d in definitions if d.span), key=lambda d: d.span[0]):
            start, end = definition.span
            pieces.append(parsed.source[cursor:start])
            pieces.append(self.format_arguments(definition).encode("utf-8"))
            cursor = end
        pieces.append(parsed.source[cursor:])
        return b"".join(pieces).decode("utf-8")
