"""
Model client for Bash AI.

This module is the only place that *directly* calls a language model.  Everything else (session
loop, tools, history) stays transport-agnostic.

One wire shape is supported: an OpenAI-compatible ``/chat/completions`` endpoint reached with
``httpx``.  Tests and alternative transports subclass :class:`ModelClient`.
"""

import json
import logging
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Any,
    Dict,
    List,
)

import httpx
from pydantic import ValidationError

from bai.config import Settings
from bai.core.schema import (
    ChatRequest,
    ModelResponse,
    ToolCallRequest,
)

logger = logging.getLogger(__name__)

UNKNOWN_ERROR = "An unknown error occurred."


class TransportError(RuntimeError):
    """Raised when the model endpoint returns nothing at all."""


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------
class ModelClient(ABC):
    """Abstract client that sends one assembled conversation and returns the decoded reply."""

    @abstractmethod
    def send(self, request: ChatRequest) -> ModelResponse:
        """Send *request*; raise :class:`TransportError` if no reply arrives."""


# ---------------------------------------------------------------------------
# Concrete client
# ---------------------------------------------------------------------------
class ChatCompletionsClient(ModelClient):
    """Chat-completions client with httpx and Pydantic validation."""

    def __init__(self, settings: Settings, transport: httpx.BaseTransport | None = None) -> None:
        self.settings = settings
        self._transport = transport

    def send(self, request: ChatRequest) -> ModelResponse:
        payload = request.to_payload()
        logger.debug("Model request payload: %s", json.dumps(payload))

        try:
            with httpx.Client(timeout=self.settings.TIMEOUT, transport=self._transport) as client:
                resp = client.post(
                    self.settings.API,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.settings.KEY}"},
                )
        except httpx.HTTPError as e:
            logger.error("Model request error: %s", str(e))
            raise TransportError(f"Error calling {self.settings.API}: {str(e)}") from e

        body = resp.text
        logger.debug("Model response (HTTP %d): %s", resp.status_code, body)
        if not body.strip():
            raise TransportError(f"Empty response from {self.settings.API}")
        return parse_response(body)


def parse_response(body: str) -> ModelResponse:
    """
    Decode a chat-completions response body.

    Only the first choice is used.  Error-shaped payloads come back with ``error`` set, and bodies
    that are not JSON objects are reported as an unknown error.
    """
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        logger.error("Model response is not JSON: %s", body)
        return ModelResponse(error=UNKNOWN_ERROR)
    if not isinstance(data, dict):
        return ModelResponse(error=UNKNOWN_ERROR)

    choices = data.get("choices")
    choice = choices[0] if isinstance(choices, list) and choices else {}
    if not isinstance(choice, dict):
        choice = {}
    message = choice.get("message")
    if not isinstance(message, dict):
        message = {}
    content = message.get("content")
    finish_reason = choice.get("finish_reason")
    raw_calls = message.get("tool_calls")

    return ModelResponse(
        content=content if isinstance(content, str) else None,
        finish_reason=finish_reason if isinstance(finish_reason, str) else None,
        tool_calls=_parse_tool_calls(raw_calls if isinstance(raw_calls, list) else []),
        error=_error_message(data),
    )


def _error_message(data: Dict[str, Any]) -> str | None:
    error = data.get("error")
    if isinstance(error, dict):
        return str(error.get("message") or UNKNOWN_ERROR)
    if isinstance(error, str):
        return error
    return None


def _parse_tool_calls(raw_calls: List[Any]) -> List[ToolCallRequest]:
    calls = []
    for raw in raw_calls:
        if isinstance(raw, dict) and isinstance(raw.get("function"), dict):
            arguments = raw["function"].get("arguments")
            if isinstance(arguments, dict):
                raw = {**raw, "function": {**raw["function"], "arguments": json.dumps(arguments)}}
        try:
            calls.append(ToolCallRequest.model_validate(raw))
        except ValidationError as e:
            logger.warning("Dropping malformed tool call %s: %s", raw, e)
    return calls
