"""
Tool registry for Bash AI.

This module discovers tool plugins through a tool host and keeps them in a registry to look them up
by function name.  Every accepted tool schema gains a required ``tool_reason`` parameter, so the
model has to state why it calls a tool before it is allowed to.
"""

import copy
import json
import logging
from pathlib import Path
from typing import (
    Any,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
)

from bai.core.schema import ToolDescriptor
from bai.tools.shell_host import PluginListing

logger = logging.getLogger(__name__)

TOOL_REASON = "tool_reason"
"""Name of the justification parameter injected into every tool schema."""

TOOL_REASON_PARAMETER: Mapping[str, str] = {
    "type": "string",
    "description": (
        'Reason why this tool must be used. e.g. "This will help me ensure that the command runs '
        "without errors, by allowing me to verify that the system is in order. If I do not check "
        'the system I cannot find an alternative if there are errors."'
    ),
}


class ToolRegistryError(RuntimeError):
    """Base class for fatal tool discovery problems."""


class DuplicateToolError(ToolRegistryError):
    """Raised when two plugins claim the same function name."""


class ToolDescriptorError(ToolRegistryError):
    """Raised when a plugin describes itself with malformed JSON."""


class ToolLister(Protocol):
    """Anything able to enumerate plugins (see :class:`bai.tools.shell_host.ShellToolHost`)."""

    def list(self) -> Sequence[PluginListing]: ...


def augment_schema(schema: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of *schema* whose parameters require ``tool_reason``.

    Parameters
    ----------
    schema:
        A tool object ``{"type": "function", "function": {...}}``.

    Returns
    -------
    Dict[str, Any]
        The augmented copy; *schema* itself is left untouched.
    """
    augmented = copy.deepcopy(dict(schema))
    function = augmented.setdefault("function", {})
    parameters = function.get("parameters") or {"type": "object"}
    function["parameters"] = parameters

    properties = parameters.get("properties") or {}
    properties[TOOL_REASON] = dict(TOOL_REASON_PARAMETER)
    parameters["properties"] = properties

    required = list(parameters.get("required") or [])
    if TOOL_REASON not in required:
        required.append(TOOL_REASON)
    parameters["required"] = required
    return augmented


class ToolRegistry:
    """Registry of discovered tools, keyed by function name."""

    def __init__(self) -> None:
        self._tools: Dict[str, ToolDescriptor] = {}

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolDescriptor]:
        return iter(self._tools.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def register(self, name: str, source: Path, schema: Mapping[str, Any]) -> ToolDescriptor:
        """
        Register the tool *name* implemented by *source*.

        Raises
        ------
        DuplicateToolError
            If *name* is already claimed by another plugin.
        """
        existing = self._tools.get(name)
        if existing is not None:
            raise DuplicateToolError(
                f"{source} tried to claim function name \"{name}\" which is already claimed "
                f"by {existing.source}"
            )
        logger.debug("Registering tool '%s' from %s", name, source)
        descriptor = ToolDescriptor(name=name, source=source, json_schema=augment_schema(schema))
        self._tools[name] = descriptor
        return descriptor

    def get(self, name: str) -> Optional[ToolDescriptor]:
        """Look up a tool by function name."""
        return self._tools.get(name)

    def schemas(self) -> List[Dict[str, Any]]:
        """Tool schemas in registration order, ready for the request payload."""
        return [descriptor.json_schema for descriptor in self._tools.values()]

    def discover(self, host: ToolLister) -> List[ToolDescriptor]:
        """
        Register every plugin *host* enumerates.

        Plugins without an ``init`` function and descriptors of an unknown type are skipped with a
        warning.

        Raises
        ------
        ToolDescriptorError
            If a plugin prints anything other than one well-formed tool object.
        DuplicateToolError
            If two plugins claim the same function name.
        """
        discovered = []
        for listing in host.list():
            if listing.description is None:
                logger.warning("%s does not contain an init function.", listing.path)
                continue

            schema = _parse_descriptor(listing)
            tool_type = schema["type"]
            if tool_type != "function":
                logger.warning("Unknown tool type \"%s\" in %s, skipping.", tool_type, listing.path)
                continue

            discovered.append(self.register(schema["function"]["name"], listing.path, schema))
        return discovered


def _parse_descriptor(listing: PluginListing) -> Dict[str, Any]:
    """Validate what a plugin's ``init`` printed and return it as a dict."""
    try:
        schema = json.loads(listing.description or "")
    except json.JSONDecodeError as exc:
        raise ToolDescriptorError(f"{listing.path} init function has JSON syntax errors.") from exc

    if not isinstance(schema, dict):
        raise ToolDescriptorError(f"{listing.path} init function must print a single JSON object.")
    if not isinstance(schema.get("type"), str):
        raise ToolDescriptorError(f"{listing.path} init function does not declare a tool type.")
    if schema["type"] != "function":
        return schema

    function = schema.get("function")
    if not isinstance(function, dict) or not isinstance(function.get("name"), str) or not function["name"]:
        raise ToolDescriptorError(f"{listing.path} init function does not declare a function name.")
    parameters = function.get("parameters")
    if parameters is None:
        return schema
    if not isinstance(parameters, dict):
        raise ToolDescriptorError(f"{listing.path} function parameters must be a JSON object.")
    if not isinstance(parameters.get("properties", {}), dict):
        raise ToolDescriptorError(f"{listing.path} parameter properties must be a JSON object.")
    required = parameters.get("required", [])
    if not isinstance(required, list) or not all(isinstance(name, str) for name in required):
        raise ToolDescriptorError(f"{listing.path} required parameters must be a list of names.")
    return schema
