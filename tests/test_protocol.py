"""Tests for request parsing and reply encoding."""

import io
import json

import pytest

from scip_ctags.errors import OutputChannelError, ProtocolError
from scip_ctags.models import Tag
from scip_ctags.protocol import (
    CompletedReply,
    ErrorReply,
    GenerateTagsRequest,
    ProgramReply,
    TagReply,
    parse_request,
    write_reply,
)


class _BrokenStream(io.StringIO):
    def write(self, s):
        raise BrokenPipeError("pipe closed")


class TestParseRequest:

    def test_generate_tags(self):
        request = parse_request(b'{"command": "generate-tags", "filename": "a/b.go", "size": 42}\n')
        assert request == GenerateTagsRequest(filename="a/b.go", size=42)
        assert request.command == "generate-tags"

    def test_accepts_text(self):
        request = parse_request('{"command": "generate-tags", "filename": "x.py", "size": 0}')
        assert request.size == 0

    def test_extra_fields_are_ignored(self):
        request = parse_request('{"command": "generate-tags", "filename": "x.py", "size": 1, "lang": "py"}')
        assert request.filename == "x.py"

    @pytest.mark.parametrize(
        "line",
        [
            "not json",
            "[1, 2]",
            '{"filename": "x.py", "size": 1}',
            '{"command": "list-kinds"}',
            '{"command": "generate-tags", "filename": "x.py"}',
            '{"command": "generate-tags", "filename": "x.py", "size": -1}',
            '{"command": "generate-tags", "filename": "x.py", "size": true}',
            '{"command": "generate-tags", "filename": "x.py", "size": "5"}',
            '{"command": "generate-tags", "filename": "x.py", "size": 5.0}',
            b'\xff\xfe',
        ],
    )
    def test_invalid_requests(self, line):
        with pytest.raises(ProtocolError):
            parse_request(line)


class TestReplies:

    def test_program(self):
        line = ProgramReply(name="scip-ctags", version="1.2.3").to_line()
        assert line == '{"_type":"program","name":"scip-ctags","version":"1.2.3"}\n'

    def test_completed(self):
        line = CompletedReply(command="generate-tags").to_line()
        assert line == '{"_type":"completed","command":"generate-tags"}\n'

    def test_error(self):
        line = ErrorReply(message="boom", fatal=False).to_line()
        assert json.loads(line) == {"_type": "error", "message": "boom", "fatal": False}

    def test_tag_scope_is_always_present(self):
        tag = Tag(name="main", path="x.go", language="go", line=1, kind="method")
        decoded = json.loads(TagReply.from_tag(tag).to_line())
        assert list(decoded) == ["_type", "name", "path", "language", "line", "kind", "scope"]
        assert decoded["scope"] is None

    def test_tag_with_scope(self):
        tag = Tag(name="bar", path="x.go", language="go", line=4, kind="method", scope="Foo")
        assert json.loads(TagReply.from_tag(tag).to_line())["scope"] == "Foo"


class TestWriteReply:

    def test_writes_one_line_per_reply(self):
        out = io.StringIO()
        write_reply(ProgramReply(name="p", version="1"), out)
        write_reply(CompletedReply(command="generate-tags"), out)
        assert out.getvalue().count("\n") == 2
        assert [json.loads(l)["_type"] for l in out.getvalue().splitlines()] == ["program", "completed"]

    def test_broken_stream(self):
        with pytest.raises(OutputChannelError):
            write_reply(CompletedReply(command="generate-tags"), _BrokenStream())

    def test_closed_stream(self):
        out = io.StringIO()
        out.close()
        with pytest.raises(OutputChannelError):
            write_reply(CompletedReply(command="generate-tags"), out)
