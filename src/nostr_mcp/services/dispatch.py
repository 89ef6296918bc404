"""Tool call dispatch: validate, execute, classify.

Every call goes through two states:

1. **validating**: look the tool up by name and check the arguments
   against its pydantic model. Failures raise
   [ToolNotFoundError][nostr_mcp.core.exceptions.ToolNotFoundError] or
   [InvalidInputError][nostr_mcp.core.exceptions.InvalidInputError]
   before any network call.
2. **executing**: run the tool's handler, which performs exactly one
   [NostrClient][nostr_mcp.services.client.NostrClient] operation.
   [NostrError][nostr_mcp.core.exceptions.NostrError] is converted into a
   [ToolResult][nostr_mcp.services.dispatch.ToolResult] with
   ``is_error=True``; any other exception propagates to the transport.

See Also:
    [TOOLS][nostr_mcp.services.tools.TOOLS]: The catalog dispatched over.
    [NostrMcpServer][nostr_mcp.services.server.NostrMcpServer]: Maps the
        protocol faults raised here to JSON-RPC errors.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from nostr_mcp.core.exceptions import InvalidInputError, NostrError, ToolNotFoundError
from nostr_mcp.core.logger import Logger
from nostr_mcp.core.metrics import TOOL_CALL_DURATION_SECONDS, TOOL_CALLS

from .tools import TOOLS, ToolSpec


if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from .client import NostrClient


_UNKNOWN_TOOL_LABEL = "unknown"


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Text response of a tool call; ``is_error`` marks a domain error payload."""

    text: str
    is_error: bool = False


def _invalid_input(error: ValidationError) -> InvalidInputError:
    """Convert a pydantic ValidationError into an InvalidInputError."""
    fields: list[str] = []
    messages: list[str] = []
    for detail in error.errors():
        field = ".".join(str(part) for part in detail["loc"]) or "arguments"
        if field not in fields:
            fields.append(field)
        messages.append(f"{field}: {detail['msg']}")
    return InvalidInputError("Invalid parameters: " + "; ".join(messages), tuple(fields))


class ToolDispatcher:
    """Routes MCP tool calls to [NostrClient][nostr_mcp.services.client.NostrClient].

    Args:
        client: The connected Nostr client.
        tools: Tool catalog (defaults to [TOOLS][nostr_mcp.services.tools.TOOLS]).
    """

    def __init__(self, client: NostrClient, tools: Iterable[ToolSpec] = TOOLS) -> None:
        self._client = client
        self._tools = {tool.name: tool for tool in tools}
        self._logger = Logger("nostr_mcp.dispatch")

    def list_tools(self) -> list[ToolSpec]:
        """Return the catalog entries in registration order."""
        return list(self._tools.values())

    def validate(self, name: str, arguments: Mapping[str, Any] | None) -> tuple[ToolSpec, Any]:
        """Resolve *name* and validate *arguments* without executing anything.

        Raises:
            ToolNotFoundError: If *name* is not in the catalog.
            InvalidInputError: If *arguments* do not match the tool's model.
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        try:
            args = tool.arguments.model_validate(dict(arguments or {}))
        except ValidationError as e:
            raise _invalid_input(e) from e
        return tool, args

    async def call(self, name: str, arguments: Mapping[str, Any] | None) -> ToolResult:
        """Validate and execute a single tool call.

        Returns:
            The rendered text on success, or a ``Nostr error: ...`` text with
            ``is_error=True`` when the client raised a domain error.

        Raises:
            ToolNotFoundError: Unknown tool name.
            InvalidInputError: Arguments failed validation.
            Exception: Anything unclassified raised during execution.
        """
        self._logger.debug("tool_called", tool=name)
        try:
            tool, args = self.validate(name, arguments)
        except ToolNotFoundError:
            TOOL_CALLS.labels(tool=_UNKNOWN_TOOL_LABEL, outcome="not_found").inc()
            self._logger.warning("tool_not_found", tool=name)
            raise
        except InvalidInputError as e:
            TOOL_CALLS.labels(tool=name, outcome="invalid_input").inc()
            self._logger.warning("tool_invalid_input", tool=name, fields=",".join(e.fields))
            raise

        start = time.monotonic()
        try:
            text = await tool.handler(self._client, args)
        except InvalidInputError as e:
            TOOL_CALLS.labels(tool=name, outcome="invalid_input").inc()
            self._logger.warning("tool_invalid_input", tool=name, fields=",".join(e.fields))
            raise
        except NostrError as e:
            TOOL_CALLS.labels(tool=name, outcome="domain_error").inc()
            self._logger.error("tool_failed", tool=name, code=e.code, error=str(e))
            return ToolResult(text=f"Nostr error: {e}", is_error=True)
        except Exception:
            TOOL_CALLS.labels(tool=name, outcome="internal_error").inc()
            self._logger.exception("tool_crashed", tool=name)
            raise
        finally:
            TOOL_CALL_DURATION_SECONDS.labels(tool=name).observe(time.monotonic() - start)

        TOOL_CALLS.labels(tool=name, outcome="ok").inc()
        duration = time.monotonic() - start
        self._logger.info("tool_completed", tool=name, duration_s=round(duration, 3))
        return ToolResult(text=text)
