"""Pytest configuration and fixtures for scip-ctags tests."""

import json
import logging
from pathlib import Path
from typing import Generator, List

import pytest

from scip_ctags.models import Descriptor, LeafSymbol, Scope, Suffix
from scip_ctags.parser import ParserRegistry


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Generator[None, None, None]:
    """The CLI installs its own handlers; undo that so caplog keeps working."""
    yield
    package_logger = logging.getLogger("scip_ctags")
    package_logger.handlers = []
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture(scope="session")
def registry() -> ParserRegistry:
    """A registry with every bundled grammar enabled."""
    return ParserRegistry()


@pytest.fixture
def example_tree() -> Scope:
    """Anonymous root holding type ``Foo`` with one global method ``bar``."""
    foo = Scope(
        descriptors=[Descriptor("Foo", Suffix.TYPE)],
        range=(2, 10),
        globals=[
            LeafSymbol(descriptors=[Descriptor("bar", Suffix.METHOD)], range=(3, 3))
        ],
    )
    return Scope(descriptors=[], range=(0, 12), children=[foo])


@pytest.fixture
def nested_tree() -> Scope:
    """Root package ``app`` with nested scopes and globals at every level."""
    inner = Scope(
        descriptors=[Descriptor("Inner", Suffix.TYPE)],
        range=(5, 8),
        globals=[LeafSymbol([Descriptor("depth", Suffix.TERM)], (6, 6))],
    )
    outer = Scope(
        descriptors=[Descriptor("Outer", Suffix.TYPE)],
        range=(2, 12),
        children=[
            Scope(descriptors=[Descriptor("run", Suffix.METHOD)], range=(3, 4)),
            inner,
        ],
        globals=[LeafSymbol([Descriptor("size", Suffix.TERM)], (10, 10))],
    )
    sibling = Scope(descriptors=[Descriptor("helper", Suffix.METHOD)], range=(14, 16))
    return Scope(
        descriptors=[Descriptor("app", Suffix.PACKAGE)],
        range=(0, 20),
        children=[outer, sibling],
        globals=[LeafSymbol([Descriptor("VERSION", Suffix.TERM)], (18, 18))],
    )


@pytest.fixture
def sample_python_code() -> str:
    return '''"""Sample module for testing."""

import os

VERSION = "1.0"
a, b = 1, 2


def helper(x):
    local = x + 1
    return local


class Calculator:
    """Simple calculator."""

    precision = 2

    def add(self, a, b):
        self.total = a + b
        return a + b

    class Memory:
        slots = 4


@staticmethod
def decorated():
    pass
'''


@pytest.fixture
def sample_go_code() -> str:
    return '''package main

import "fmt"

const Pi, E = 3.14, 2.71

var counter int

type Foo struct {
	name string
}

func (f *Foo) Bar() string {
	x := 1
	_ = x
	return f.name
}

func main() {
	fmt.Println("hi")
}
'''


@pytest.fixture
def sample_js_code() -> str:
    return '''const API_URL = "https://example.com";

class Widget {
  count = 0;

  render() {
    const inner = 1;
    return inner;
  }
}

function build() {
  class Local {}
  return new Local();
}

(function () {
  class Hidden {}
  var secret = 1;
})();
'''


@pytest.fixture
def sample_ts_code() -> str:
    return '''namespace Geometry.Shapes {
  export interface Shape {
    area(): number;
    label: string;
  }

  export type Point = { x: number; y: number };
}
'''


def line_of(source: str, needle: str) -> int:
    """1-based line of the first line containing *needle*."""
    for number, text in enumerate(source.splitlines(), 1):
        if needle in text:
            return number
    raise AssertionError(f"{needle!r} not in source")


def json_lines(output: str) -> List[dict]:
    """Decode the JSON reply lines of *output*, ignoring log noise."""
    return [json.loads(line) for line in output.splitlines() if line.startswith("{")]


@pytest.fixture
def temp_source(tmp_path: Path) -> Path:
    """A small Python file on disk."""
    path = tmp_path / "greeter.py"
    path.write_text(
        'class Greeter:\n'
        '    def greet(self):\n'
        '        return "hi"\n'
        '\n'
        '\n'
        'DEFAULT = Greeter()\n'
    )
    return path


@pytest.fixture
def too_deep_python() -> bytes:
    """Valid Python whose syntax tree is deeper than the interpreter stack."""
    return b"[" * 3000 + b"]" * 3000 + b"\n"
