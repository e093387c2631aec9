"""Line-delimited JSON protocol spoken in interactive mode.

Every message is one compact JSON object on its own line.  Requests carry a
``command`` field; replies carry a ``_type`` field naming their variant.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Literal, Optional, TextIO, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import OutputChannelError, ProtocolError
from .models import Tag


# ===================================================================
# Requests
# ===================================================================

class GenerateTagsRequest(BaseModel):
    """Tag a file whose ``size`` bytes of content follow the request line."""

    model_config = ConfigDict(extra="ignore")

    command: Literal["generate-tags"] = "generate-tags"
    filename: str
    size: int = Field(ge=0, strict=True)


Request = GenerateTagsRequest

REQUEST_TYPES: Dict[str, Type[BaseModel]] = {
    "generate-tags": GenerateTagsRequest,
}


def parse_request(line: Union[str, bytes]) -> Request:
    """Decode one request line, raising :class:`ProtocolError` if invalid."""
    try:
        payload: Any = json.loads(line)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ProtocolError(f"request is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ProtocolError("request must be a JSON object")

    command = payload.get("command")
    model = REQUEST_TYPES.get(command) if isinstance(command, str) else None
    if model is None:
        raise ProtocolError(f"unknown command: {command!r}")
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ProtocolError(f"invalid {command} request: {exc.error_count()} error(s)") from exc


# ===================================================================
# Replies
# ===================================================================

class _Reply(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_line(self) -> str:
        return self.model_dump_json(by_alias=True) + "\n"


class ProgramReply(_Reply):
    type_: Literal["program"] = Field("program", alias="_type")
    name: str
    version: str


class CompletedReply(_Reply):
    type_: Literal["completed"] = Field("completed", alias="_type")
    command: str


class ErrorReply(_Reply):
    type_: Literal["error"] = Field("error", alias="_type")
    message: str
    fatal: bool


class TagReply(_Reply):
    type_: Literal["tag"] = Field("tag", alias="_type")
    name: str
    path: str
    language: str
    line: int = Field(ge=1)
    kind: str
    scope: Optional[str] = None

    @classmethod
    def from_tag(cls, tag: Tag) -> TagReply:
        return cls(
            name=tag.name,
            path=tag.path,
            language=tag.language,
            line=tag.line,
            kind=tag.kind,
            scope=tag.scope,
        )


Reply = Union[ProgramReply, CompletedReply, ErrorReply, TagReply]


def write_reply(reply: Reply, stream: TextIO) -> None:
    """Write one reply line and flush it.

    A failing output stream cannot be recovered from, so any I/O error is
    surfaced as :class:`OutputChannelError`.
    """
    try:
        stream.write(reply.to_line())
        stream.flush()
    except (OSError, ValueError) as exc:
        raise OutputChannelError(f"cannot write reply: {exc}") from exc
