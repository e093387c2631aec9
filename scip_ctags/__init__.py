"""scip-ctags: ctags-compatible tag generation from tree-sitter scope trees."""

__version__ = "0.1.0"
