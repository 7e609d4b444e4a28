"""
MCP client for tool integration via Agent Gateway.
"""

import logging
from typing import Optional, Dict, Any, List
import httpx

from ..errors import UpstreamError

logger = logging.getLogger(__name__)


class MCPClient:
    """
    Async HTTP client for MCP tools via Agent Gateway.

    Backs the web_search and execute_code actions.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize MCP client.

        Args:
            base_url: Agent Gateway URL
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def call_tool(
        self,
        name: str,
        arguments: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Call an MCP tool.

        Args:
            name: Tool name
            arguments: Tool arguments

        Returns:
            Tool result
        """
        client = await self._get_client()

        response = await client.post(
            "/mcp/tools/call",
            json={
                "name": name,
                "arguments": arguments,
            }
        )

        if response.status_code != 200:
            raise UpstreamError(
                f"Tool call failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

        return response.json()

    async def search_web(self, query: str, count: int = 10) -> List[Dict[str, Any]]:
        """
        Search the web using Brave Search MCP.

        Args:
            query: Search query
            count: Number of results

        Returns:
            Search results
        """
        result = await self.call_tool("brave_search", {"query": query, "count": count})
        return result.get("results", [])

    async def execute_code(self, code: str, language: str = "javascript") -> Dict[str, Any]:
        """
        Run code in the gateway's sandbox.

        Returns:
            Dict with ``output`` and ``error`` (empty when the run succeeded)
        """
        result = await self.call_tool("execute_code", {"code": code, "language": language})
        return {
            "output": result.get("output", ""),
            "error": result.get("error") or "",
        }
