"""Scope tree and tag records exchanged between the parser and the emitter."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class Suffix(Enum):
    """Semantic category the parser assigns to a descriptor."""

    UNSPECIFIED = "unspecified"
    NAMESPACE = "namespace"
    PACKAGE = "package"
    TYPE = "type"
    TERM = "term"
    METHOD = "method"
    TYPE_PARAMETER = "type_parameter"
    PARAMETER = "parameter"
    META = "meta"
    LOCAL = "local"
    MACRO = "macro"


@dataclass(frozen=True)
class Descriptor:
    name: str = ""
    suffix: Suffix = Suffix.UNSPECIFIED


@dataclass
class LeafSymbol:
    """A symbol declared directly in a scope that is not itself a scope."""

    descriptors: List[Descriptor]
    range: Tuple[int, int]

    def __post_init__(self) -> None:
        if not self.descriptors:
            raise ValueError("LeafSymbol requires at least one descriptor")


@dataclass
class Scope:
    """A lexical scope; the root scope of a file has no descriptors."""

    descriptors: List[Descriptor] = field(default_factory=list)
    range: Tuple[int, int] = (0, 0)
    children: List[Scope] = field(default_factory=list)
    globals: List[LeafSymbol] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.children and not self.globals


@dataclass
class Tag:
    name: str
    path: str
    language: str
    line: int
    kind: str
    scope: Optional[str] = None
