"""
Agent personas.
"""

from .registry import AGENT_DEFINITIONS, AgentRegistry, create_agent

__all__ = ["AGENT_DEFINITIONS", "AgentRegistry", "create_agent"]
