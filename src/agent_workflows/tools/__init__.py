"""
LLM and tool gateway clients used by action handlers.
"""

from .llm_client import LLMClient
from .mcp_binding import MCPClient

__all__ = ["LLMClient", "MCPClient"]
