"""
Client for the external tool capability.

Indexing, index status and entity/decision/context search are reached
through a single ``call_tool(name, params)`` method so that hooks and the
impact analyzer never depend on how those operations are implemented.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Protocol, runtime_checkable

import requests

logger = logging.getLogger(__name__)


class ToolCallError(RuntimeError):
    """Tool call failed or returned an error payload"""


@runtime_checkable
class ToolClientProtocol(Protocol):
    """Single-method tool capability"""

    async def call_tool(self, name: str, params: Dict[str, Any]) -> Dict[str, Any]:
        ...


class HttpToolClient:
    """
    Tool client posting JSON to ``<server_url>/tools/call``.

    Args:
        server_url: Base URL of the tool server
        timeout: Request timeout in seconds
        session: Optional requests session, mainly for tests
    """

    def __init__(
        self,
        server_url: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None
    ):
        self.server_url = server_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return f"{self.server_url}/tools/call"

    async def call_tool(self, name: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Invoke a named tool.

        Raises:
            ToolCallError: On transport failure, non-2xx status or an error payload
        """
        logger.debug(f"Calling tool {name} at {self.endpoint}")
        return await asyncio.to_thread(self._post, name, params)

    def _post(self, name: str, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.session.post(
                self.endpoint,
                headers={"Content-Type": "application/json"},
                json={"name": name, "arguments": params},
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            raise ToolCallError(f"Tool {name} failed: {e}") from e

        if not isinstance(payload, dict):
            raise ToolCallError(f"Tool {name} returned {type(payload).__name__}, expected object")
        if payload.get("error"):
            raise ToolCallError(f"Tool {name} failed: {payload['error']}")

        result = payload.get("result", payload)
        return result if isinstance(result, dict) else {"result": result}

    def close(self) -> None:
        self.session.close()
