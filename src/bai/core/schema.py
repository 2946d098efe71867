"""
Schema definitions for model <-> session <-> tool messages.

These data models serve as the contract between the model client, the session loop, the history
store and the tool host.  We keep them separate from runtime logic so they can be imported anywhere
without side-effects.  Turns are serialized in the chat-completions wire shape, which is also the
shape of the persisted history file.
"""

from enum import Enum
from pathlib import Path
from typing import (
    Annotated,
    Any,
    Dict,
    List,
    Literal,
    Optional,
    Union,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


class QueryType(str, Enum):
    """Query mode selecting the system instruction and exemplar set."""

    EXECUTE = "execute"
    QUESTION = "question"
    ERROR = "error"


class ToolDescriptor(BaseModel):
    """A discovered tool plugin, immutable once registered."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Function name, unique process-wide")
    source: Path = Field(..., description="Plugin script implementing the tool")
    json_schema: Dict[str, Any] = Field(..., description="Tool schema sent to the model")


class ToolFunction(BaseModel):
    """Function part of a tool call as the model sends it."""

    model_config = ConfigDict(frozen=True)

    name: str
    arguments: str = "{}"


class ToolCallRequest(BaseModel):
    """A tool invocation requested by the model, consumed exactly once."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: Literal["function"] = "function"
    function: ToolFunction

    @property
    def name(self) -> str:
        """Requested tool name."""
        return self.function.name

    @property
    def arguments(self) -> str:
        """Raw JSON arguments string."""
        return self.function.arguments


# ---------------------------------------------------------------------------
# Conversation turns
# ---------------------------------------------------------------------------
class SystemTurn(BaseModel):
    """System instruction or runtime context."""

    model_config = ConfigDict(frozen=True)

    role: Literal["system"] = "system"
    content: str

    def to_message(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content}


class UserTurn(BaseModel):
    """Text typed by the user, or synthesized on their behalf."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user"] = "user"
    content: str

    def to_message(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content}


class AssistantTurn(BaseModel):
    """Model output: a final JSON reply, or a batch of tool calls."""

    model_config = ConfigDict(frozen=True)

    role: Literal["assistant"] = "assistant"
    content: Optional[str] = None
    tool_calls: List[ToolCallRequest] = Field(default_factory=list)

    def to_message(self) -> Dict[str, Any]:
        message: Dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            message["tool_calls"] = [call.model_dump() for call in self.tool_calls]
        return message


class ToolTurn(BaseModel):
    """Output of one tool call, keyed by the call id."""

    model_config = ConfigDict(frozen=True)

    role: Literal["tool"] = "tool"
    tool_call_id: str
    content: str = ""

    def to_message(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content, "tool_call_id": self.tool_call_id}


ConversationTurn = Annotated[
    Union[SystemTurn, UserTurn, AssistantTurn, ToolTurn], Field(discriminator="role")
]


# ---------------------------------------------------------------------------
# Model request / reply
# ---------------------------------------------------------------------------
class ChatRequest(BaseModel):
    """Fully assembled outbound request."""

    model: str
    max_tokens: int
    temperature: float
    messages: List[ConversationTurn]
    tools: List[Dict[str, Any]] = Field(default_factory=list)
    json_mode: bool = False

    def to_payload(self) -> Dict[str, Any]:
        """Return the JSON body sent to the chat-completions endpoint."""
        payload: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        if self.json_mode:
            payload["response_format"] = {"type": "json_object"}
        payload["messages"] = [turn.to_message() for turn in self.messages]
        if self.tools:
            payload["tools"] = self.tools
            payload["tool_choice"] = "auto"
        return payload


class ModelResponse(BaseModel):
    """Decoded model transport reply, or the error it carried."""

    content: Optional[str] = None
    finish_reason: Optional[str] = None
    tool_calls: List[ToolCallRequest] = Field(default_factory=list)
    error: Optional[str] = None


class Reply(BaseModel):
    """Decoded model answer. An empty ``cmd`` means a purely informational reply."""

    info: str = ""
    cmd: Optional[str] = None

    @field_validator("info", mode="before")
    @classmethod
    def _coerce_info(cls, value: Any) -> str:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @field_validator("cmd", mode="before")
    @classmethod
    def _coerce_cmd(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        value = value if isinstance(value, str) else str(value)
        return value or None


# ---------------------------------------------------------------------------
# Interpretation outcomes
# ---------------------------------------------------------------------------
class FinalAnswer(BaseModel):
    """The model answered; ``reply.cmd`` may hold a proposed command."""

    reply: Reply
    raw: str = ""


class ToolCallBatch(BaseModel):
    """The model asked for tools to run before it answers."""

    content: Optional[str] = None
    calls: List[ToolCallRequest]


class Rejected(BaseModel):
    """The reply was withheld (content filter)."""

    reason: str


Outcome = Union[FinalAnswer, ToolCallBatch, Rejected]
