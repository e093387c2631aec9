"""Tree-sitter backed scope extraction.

Builds the :class:`~scip_ctags.models.Scope` tree that the tag emitter
flattens.  Each supported language is described by a :class:`LanguageSpec`:
which syntax nodes open a named scope, which declare leaf symbols, and which
open an anonymous scope whose locals are not globals.

Grammars come from the per-language ``tree-sitter-<lang>`` packages and are
loaded lazily the first time a file of that language is seen.
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple

from tree_sitter import Language, Parser as TSParser

from .errors import ParseError
from .models import Descriptor, LeafSymbol, Scope, Suffix

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Language <-> file-extension mapping
# ---------------------------------------------------------------------------
LANGUAGE_MAP: Dict[str, str] = {
    "py": "python",
    "pyi": "python",
    "js": "javascript",
    "mjs": "javascript",
    "cjs": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "mts": "typescript",
    "cts": "typescript",
    "tsx": "tsx",
    "go": "go",
}

DescriptorsFn = Callable[[Any], List[List[Descriptor]]]


def _text(node: Any) -> str:
    return node.text.decode("utf-8", errors="replace")


def _node_range(node: Any) -> Tuple[int, int]:
    return (node.start_point[0], node.end_point[0])


def _name_node(node: Any) -> Optional[Any]:
    for field_name in ("name", "property"):
        found = node.child_by_field_name(field_name)
        if found is not None:
            return found
    return None


# ===================================================================
# Language descriptions
# ===================================================================

@dataclass(frozen=True)
class ScopeRule:
    suffix: Suffix
    owns_globals: bool = True


@dataclass(frozen=True)
class LanguageSpec:
    """How to find scopes and globals in one tree-sitter grammar."""

    name: str
    grammar_module: str
    language_attr: str = "language"
    scopes: Dict[str, ScopeRule] = field(default_factory=dict)
    leaves: Dict[str, Suffix] = field(default_factory=dict)
    anonymous_scopes: FrozenSet[str] = frozenset()
    # Node types with custom descriptor extraction, overriding ``leaves``.
    leaf_hooks: Dict[str, DescriptorsFn] = field(default_factory=dict)

    def leaf_descriptors(self, node: Any) -> List[List[Descriptor]]:
        hook = self.leaf_hooks.get(node.type)
        if hook is not None:
            return hook(node)
        name = _name_node(node)
        if name is None or name.type not in _IDENTIFIER_TYPES:
            return []
        return [[Descriptor(_text(name), self.leaves[node.type])]]

    def is_leaf(self, node: Any) -> bool:
        return node.type in self.leaves or node.type in self.leaf_hooks


_IDENTIFIER_TYPES = frozenset({
    "identifier",
    "type_identifier",
    "property_identifier",
    "private_property_identifier",
    "field_identifier",
    "package_identifier",
})


# -- Python -----------------------------------------------------------------

def _python_assignment(node: Any) -> List[List[Descriptor]]:
    """``a = b = 1`` and ``a, b = pair`` declare one term per identifier."""
    left = node.child_by_field_name("left")
    if left is None:
        return []
    if left.type == "identifier":
        targets = [left]
    elif left.type in ("pattern_list", "tuple_pattern", "list_pattern"):
        targets = [c for c in left.named_children if c.type == "identifier"]
    else:
        targets = []
    return [[Descriptor(_text(t), Suffix.TERM)] for t in targets]


PYTHON = LanguageSpec(
    name="python",
    grammar_module="tree_sitter_python",
    scopes={
        "class_definition": ScopeRule(Suffix.TYPE),
        "function_definition": ScopeRule(Suffix.METHOD, owns_globals=False),
    },
    leaf_hooks={"assignment": _python_assignment},
    anonymous_scopes=frozenset({"lambda"}),
)


# -- JavaScript / TypeScript ------------------------------------------------

_JS_SCOPES: Dict[str, ScopeRule] = {
    "class_declaration": ScopeRule(Suffix.TYPE),
    "class": ScopeRule(Suffix.TYPE),
    "function_declaration": ScopeRule(Suffix.METHOD, owns_globals=False),
    "generator_function_declaration": ScopeRule(Suffix.METHOD, owns_globals=False),
    "method_definition": ScopeRule(Suffix.METHOD, owns_globals=False),
}
_JS_LEAVES: Dict[str, Suffix] = {
    "variable_declarator": Suffix.TERM,
    "field_definition": Suffix.TERM,
}
_JS_ANONYMOUS = frozenset({
    "arrow_function",
    "function_expression",
    "function",
    "generator_function",
})

_TS_SCOPES: Dict[str, ScopeRule] = {
    **_JS_SCOPES,
    "abstract_class_declaration": ScopeRule(Suffix.TYPE),
    "interface_declaration": ScopeRule(Suffix.TYPE),
    "internal_module": ScopeRule(Suffix.NAMESPACE),
    "module": ScopeRule(Suffix.NAMESPACE),
}
_TS_LEAVES: Dict[str, Suffix] = {
    **_JS_LEAVES,
    "public_field_definition": Suffix.TERM,
    "property_signature": Suffix.TERM,
    "method_signature": Suffix.METHOD,
    "abstract_method_signature": Suffix.METHOD,
    "type_alias_declaration": Suffix.TYPE,
    "enum_declaration": Suffix.TYPE,
}

JAVASCRIPT = LanguageSpec(
    name="javascript",
    grammar_module="tree_sitter_javascript",
    scopes=_JS_SCOPES,
    leaves=_JS_LEAVES,
    anonymous_scopes=_JS_ANONYMOUS,
)

TYPESCRIPT = LanguageSpec(
    name="typescript",
    grammar_module="tree_sitter_typescript",
    language_attr="language_typescript",
    scopes=_TS_SCOPES,
    leaves=_TS_LEAVES,
    anonymous_scopes=_JS_ANONYMOUS,
)

TSX = LanguageSpec(
    name="tsx",
    grammar_module="tree_sitter_typescript",
    language_attr="language_tsx",
    scopes=_TS_SCOPES,
    leaves=_TS_LEAVES,
    anonymous_scopes=_JS_ANONYMOUS,
)


# -- Go ---------------------------------------------------------------------

def _go_receiver_type(node: Any) -> Optional[str]:
    receiver = node.child_by_field_name("receiver")
    if receiver is None:
        return None
    stack = list(receiver.named_children)
    while stack:
        current = stack.pop(0)
        if current.type == "type_identifier":
            return _text(current)
        stack[:0] = current.named_children
    return None


def _go_method(node: Any) -> List[List[Descriptor]]:
    name = node.child_by_field_name("name")
    if name is None:
        return []
    descriptors = [Descriptor(_text(name), Suffix.METHOD)]
    receiver = _go_receiver_type(node)
    if receiver:
        descriptors.insert(0, Descriptor(receiver, Suffix.TYPE))
    return [descriptors]


def _go_names(node: Any) -> List[List[Descriptor]]:
    """``const a, b = 1, 2`` declares one term per name."""
    return [
        [Descriptor(_text(n), Suffix.TERM)]
        for n in node.children_by_field_name("name")
        if n.type == "identifier" and _text(n) != "_"
    ]


def _go_package(node: Any) -> List[List[Descriptor]]:
    return [
        [Descriptor(_text(c), Suffix.PACKAGE)]
        for c in node.named_children
        if c.type == "package_identifier"
    ]


GO = LanguageSpec(
    name="go",
    grammar_module="tree_sitter_go",
    leaves={
        "function_declaration": Suffix.METHOD,
        "type_spec": Suffix.TYPE,
        "type_alias": Suffix.TYPE,
    },
    leaf_hooks={
        "method_declaration": _go_method,
        "const_spec": _go_names,
        "var_spec": _go_names,
        "package_clause": _go_package,
    },
)

LANGUAGE_SPECS: Dict[str, LanguageSpec] = {
    spec.name: spec for spec in (PYTHON, JAVASCRIPT, TYPESCRIPT, TSX, GO)
}


# ===================================================================
# Parser handles and registry
# ===================================================================

@dataclass
class BundledParser:
    """A ready-to-use tree-sitter parser for one language."""

    language: str
    spec: LanguageSpec
    ts_parser: Any

    def parse(self, data: bytes) -> Any:
        return self.ts_parser.parse(data)


class ParserRegistry:
    """Resolve file extensions to :class:`BundledParser` handles.

    Grammars are imported on first use; a grammar package that is not
    installed makes its extensions unsupported rather than failing.
    """

    _default: Optional[ParserRegistry] = None

    def __init__(self, languages: Optional[Iterable[str]] = None) -> None:
        enabled = set(languages) if languages is not None else set(LANGUAGE_SPECS)
        unknown = enabled - set(LANGUAGE_SPECS)
        for lang in sorted(unknown):
            logger.warning("Ignoring unknown language '%s'", lang)
        self._enabled = enabled & set(LANGUAGE_SPECS)
        self._parsers: Dict[str, Optional[BundledParser]] = {}

    @classmethod
    def default(cls) -> ParserRegistry:
        if cls._default is None:
            cls._default = cls()
        return cls._default

    @property
    def languages(self) -> List[str]:
        return sorted(self._enabled)

    def supported_extensions(self) -> Dict[str, str]:
        return {ext: lang for ext, lang in LANGUAGE_MAP.items() if lang in self._enabled}

    def get_parser_from_extension(self, extension: str) -> Optional[BundledParser]:
        lang = LANGUAGE_MAP.get(extension.lower())
        if lang is None or lang not in self._enabled:
            return None
        return self.get_parser(lang)

    def get_parser(self, language: str) -> Optional[BundledParser]:
        if language not in self._parsers:
            self._parsers[language] = self._load(language)
        return self._parsers[language]

    @staticmethod
    def _load(language: str) -> Optional[BundledParser]:
        spec = LANGUAGE_SPECS[language]
        try:
            mod = importlib.import_module(spec.grammar_module)
        except ImportError:
            logger.warning(
                "Grammar package '%s' not installed for language '%s'. "
                "Install with: pip install %s",
                spec.grammar_module, language, spec.grammar_module.replace("_", "-"),
            )
            return None
        ts_lang = Language(getattr(mod, spec.language_attr)())
        logger.debug("Loaded tree-sitter parser for %s", language)
        return BundledParser(language=language, spec=spec, ts_parser=TSParser(ts_lang))


# ===================================================================
# Globals extraction
# ===================================================================

def get_globals(parser: BundledParser, data: bytes) -> Tuple[Scope, Any]:
    """Build the scope tree of *data*.

    Returns the root scope together with the tree-sitter syntax tree it was
    built from.  Syntax errors are tolerated: declarations tree-sitter could
    recover are still extracted.  Raises :class:`ParseError` when no tree is
    produced or the tree cannot be walked.
    """
    try:
        tree = parser.parse(data)
    except (TypeError, ValueError) as exc:
        raise ParseError(f"tree-sitter failed on {parser.language} input: {exc}") from exc
    if tree is None:
        raise ParseError(f"tree-sitter produced no tree for {parser.language} input")

    root_node = tree.root_node
    if root_node.has_error:
        logger.debug("Extracting from partial tree: %s", _describe_error(root_node, parser.language))

    root = Scope(descriptors=[], range=_node_range(root_node))
    try:
        _ScopeCollector(parser.spec).collect(root_node, root, owns_globals=True)
    except RecursionError as exc:
        raise ParseError(f"{parser.language} syntax tree is nested too deeply") from exc
    return root, tree


def _describe_error(root_node: Any, language: str) -> str:
    stack = [root_node]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            row, col = node.start_point[0], node.start_point[1]
            return f"syntax error in {language} source at line {row + 1}, column {col + 1}"
        stack.extend(reversed(node.children))
    return f"syntax error in {language} source"


class _ScopeCollector:
    """Walks a syntax tree and attaches scopes and globals to their owners."""

    def __init__(self, spec: LanguageSpec) -> None:
        self.spec = spec

    def collect(self, ts_node: Any, scope: Scope, owns_globals: bool) -> None:
        for child in ts_node.children:
            rule = self.spec.scopes.get(child.type)
            if rule is not None:
                self._named_scope(child, rule, scope)
            elif child.type in self.spec.anonymous_scopes:
                self._anonymous_scope(child, scope)
            elif self.spec.is_leaf(child):
                if owns_globals:
                    for descriptors in self.spec.leaf_descriptors(child):
                        scope.globals.append(LeafSymbol(descriptors, _node_range(child)))
            else:
                self.collect(child, scope, owns_globals)

    def _named_scope(self, ts_node: Any, rule: ScopeRule, parent: Scope) -> None:
        name = _name_node(ts_node)
        if name is not None and name.type == "nested_identifier":
            # namespace A.B.C { ... }
            descriptors = [Descriptor(part, rule.suffix) for part in _text(name).split(".")]
        elif name is not None and name.type in _IDENTIFIER_TYPES:
            descriptors = [Descriptor(_text(name), rule.suffix)]
        else:
            # Class expressions, computed method names, string module names.
            self._anonymous_scope(ts_node, parent)
            return
        scope = Scope(descriptors=descriptors, range=_node_range(ts_node))
        parent.children.append(scope)
        self.collect(ts_node, scope, rule.owns_globals)

    def _anonymous_scope(self, ts_node: Any, parent: Scope) -> None:
        scope = Scope(descriptors=[], range=_node_range(ts_node))
        self.collect(ts_node, scope, owns_globals=False)
        if not scope.is_empty():
            parent.children.append(scope)
