"""Exceptions raised while generating and streaming tags."""

from __future__ import annotations


class CtagsError(Exception):
    """Base class for every scip-ctags error."""


class GenerateTagsError(CtagsError):
    """A single generate-tags request could not produce tags."""


class MissingExtension(GenerateTagsError):
    def __init__(self, filename: str) -> None:
        super().__init__(f"no file extension: {filename!r}")
        self.filename = filename


class UnknownParser(GenerateTagsError):
    def __init__(self, extension: str) -> None:
        super().__init__(f"no parser for extension {extension!r}")
        self.extension = extension


class ParseError(GenerateTagsError):
    """The parser could not build a scope tree for the file."""


class ProtocolError(CtagsError):
    """A request line could not be understood."""


class OutputChannelError(CtagsError):
    """Writing to the output stream failed; the session cannot continue."""
