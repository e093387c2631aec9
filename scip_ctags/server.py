"""Interactive request loop, compatible with ``ctags --_interactive``.

The client writes a ``generate-tags`` request line followed by exactly
``size`` bytes of file content; the server answers with one ``tag`` line per
symbol and a closing ``completed`` line.  Requests are served strictly one
at a time.
"""

from __future__ import annotations

import logging
from typing import BinaryIO, Iterable, Optional, TextIO

from . import __version__
from .errors import MissingExtension, ParseError, ProtocolError, UnknownParser
from .models import Tag
from .parser import ParserRegistry
from .protocol import (
    CompletedReply,
    ErrorReply,
    GenerateTagsRequest,
    ProgramReply,
    TagReply,
    parse_request,
    write_reply,
)
from .tags import generate_tags

logger = logging.getLogger(__name__)

PROGRAM_NAME = "scip-ctags"
READ_CHUNK_SIZE = 64 * 1024


def _read_content(instream: BinaryIO, size: int) -> bytes:
    """Read up to *size* bytes, stopping early at end of input."""
    buf = bytearray()
    while len(buf) < size:
        chunk = instream.read(min(READ_CHUNK_SIZE, size - len(buf)))
        if not chunk:
            break
        buf.extend(chunk)
    return bytes(buf)


class CtagsServer:
    """Serve generate-tags requests from a byte stream."""

    def __init__(
        self,
        registry: Optional[ParserRegistry] = None,
        program_name: str = PROGRAM_NAME,
        version: str = __version__,
    ) -> None:
        self.registry = registry or ParserRegistry.default()
        self.program_name = program_name
        self.version = version

    def serve(self, instream: BinaryIO, outstream: TextIO) -> bool:
        """Run until end of input.

        Returns False if the session was ended by a fatal error reply.
        OutputChannelError propagates to the caller.
        """
        write_reply(ProgramReply(name=self.program_name, version=self.version), outstream)

        while True:
            line = instream.readline()
            if not line:
                logger.debug("End of input, closing session")
                return True
            if not line.strip():
                continue

            try:
                request = parse_request(line)
            except ProtocolError as exc:
                logger.error("Malformed request: %s", exc)
                write_reply(ErrorReply(message=str(exc), fatal=True), outstream)
                return False

            data = _read_content(instream, request.size)
            if len(data) < request.size:
                message = (
                    f"unexpected end of input: expected {request.size} bytes "
                    f"for {request.filename}, got {len(data)}"
                )
                logger.error("%s", message)
                write_reply(ErrorReply(message=message, fatal=True), outstream)
                return False

            self.generate_tags(request, data, outstream)

    def generate_tags(self, request: GenerateTagsRequest, data: bytes, outstream: TextIO) -> None:
        """Answer one request: its tags (if any), then ``completed``."""
        tags: Iterable[Tag] = ()
        try:
            tags = generate_tags(request.filename, data, self.registry)
        except (MissingExtension, UnknownParser) as exc:
            logger.debug("No tags for %s: %s", request.filename, exc)
        except ParseError as exc:
            logger.warning("Could not parse %s: %s", request.filename, exc)
            write_reply(ErrorReply(message=f"{request.filename}: {exc}", fatal=False), outstream)

        count = 0
        for tag in tags:
            write_reply(TagReply.from_tag(tag), outstream)
            count += 1
        logger.debug("Emitted %d tag(s) for %s", count, request.filename)
        write_reply(CompletedReply(command=request.command), outstream)
