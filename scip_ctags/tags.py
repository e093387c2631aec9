"""Flatten a scope tree into ctags-style tag records.

Tags come out depth-first: a scope's own tag, then the complete subtree of
each child in source order, then the scope's globals in source order.
Streaming consumers rely on this order to infer nesting.
"""

from __future__ import annotations

import logging
from pathlib import PurePath
from typing import Dict, Iterator, List, Optional, Sequence

from .errors import MissingExtension, UnknownParser
from .models import Descriptor, Scope, Suffix, Tag
from .parser import ParserRegistry, get_globals

logger = logging.getLogger(__name__)

KIND_BY_SUFFIX: Dict[Suffix, str] = {
    Suffix.NAMESPACE: "namespace",
    Suffix.PACKAGE: "package",
    Suffix.METHOD: "method",
    Suffix.TYPE: "type",
}
DEFAULT_KIND = "variable"


def descriptors_to_kind(descriptors: Sequence[Descriptor]) -> str:
    """Classify a symbol by its innermost descriptor."""
    last = descriptors[-1] if descriptors else Descriptor()
    return KIND_BY_SUFFIX.get(last.suffix, DEFAULT_KIND)


def _join(names: Sequence[str]) -> Optional[str]:
    return ".".join(names) if names else None


def emit_tags_for_scope(
    scope: Scope,
    path: str,
    language: str,
    parent_scopes: Sequence[str] = (),
) -> Iterator[Tag]:
    """Yield the tags for *scope* and everything below it."""
    curr_scopes: List[str] = list(parent_scopes) + [d.name for d in scope.descriptors]

    if scope.descriptors:
        yield Tag(
            name=".".join(d.name for d in scope.descriptors),
            path=path,
            language=language,
            line=scope.range[0] + 1,
            kind=descriptors_to_kind(scope.descriptors),
            scope=_join(parent_scopes),
        )

    for child in scope.children:
        yield from emit_tags_for_scope(child, path, language, curr_scopes)

    for leaf in scope.globals:
        *qualifiers, last = leaf.descriptors
        yield Tag(
            name=last.name,
            path=path,
            language=language,
            line=leaf.range[0] + 1,
            kind=descriptors_to_kind(leaf.descriptors),
            scope=_join(curr_scopes + [d.name for d in qualifiers]),
        )


def generate_tags(
    filename: str,
    data: bytes,
    registry: Optional[ParserRegistry] = None,
) -> Iterator[Tag]:
    """Parse *data* as the contents of *filename* and yield its tags.

    Raises MissingExtension or UnknownParser when no parser applies, and
    ParseError when the parser rejects the content. All of these are raised
    before the first tag is yielded.
    """
    registry = registry or ParserRegistry.default()
    file_path = PurePath(filename)
    extension = file_path.suffix.lstrip(".")
    if not extension:
        raise MissingExtension(filename)

    parser = registry.get_parser_from_extension(extension)
    if parser is None:
        raise UnknownParser(extension)

    root_scope, _ = get_globals(parser, data)
    logger.debug("Extracted scope tree for %s (%s)", filename, parser.language)
    return emit_tags_for_scope(root_scope, file_path.name, parser.language)
