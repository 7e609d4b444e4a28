"""
Built-in agent personas and agent construction.
"""

import logging
import uuid
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Union

from ..actions.base import Action
from ..actions.registry import ActionRegistry
from ..models.agent import Agent, AgentType

logger = logging.getLogger(__name__)


AGENT_DEFINITIONS: Mapping[AgentType, Mapping[str, Any]] = MappingProxyType({
    AgentType.RESEARCHER: MappingProxyType({
        "type": AgentType.RESEARCHER,
        "name": "Researcher",
        "description": "Specialized in web search, data gathering, and information synthesis",
        "capabilities": ("web_search", "summarize", "extract_facts", "find_sources"),
        "system_prompt": (
            "You are a research specialist. Your role is to:\n"
            "1. Conduct thorough web searches on given topics\n"
            "2. Synthesize information from multiple sources\n"
            "3. Extract key facts, statistics, and insights\n"
            "4. Provide properly cited sources\n"
            "5. Identify credible vs questionable information\n\n"
            "When researching, be comprehensive but concise. Focus on accuracy and credibility."
        ),
        "model_preference": "groq/compound",
        "temperature": 0.3,
        "max_tokens": 4096,
    }),
    AgentType.CODER: MappingProxyType({
        "type": AgentType.CODER,
        "name": "Coder",
        "description": "Specialized in code generation, execution, debugging, and testing",
        "capabilities": ("generate_code", "execute_code", "debug", "test", "refactor"),
        "system_prompt": (
            "You are an expert software engineer. Your role is to:\n"
            "1. Write clean, efficient, well-documented code\n"
            "2. Execute and test code to verify correctness\n"
            "3. Debug errors and fix issues\n"
            "4. Refactor code for better performance and readability\n"
            "5. Follow best practices and design patterns\n\n"
            "When coding, prioritize correctness, clarity, and maintainability."
        ),
        "model_preference": "llama-3.3-70b-versatile",
        "temperature": 0.2,
        "max_tokens": 8192,
    }),
    AgentType.WRITER: MappingProxyType({
        "type": AgentType.WRITER,
        "name": "Writer",
        "description": "Specialized in content creation, editing, and creative writing",
        "capabilities": ("write_content", "edit", "summarize", "rewrite", "format"),
        "system_prompt": (
            "You are a professional content writer and editor. Your role is to:\n"
            "1. Create engaging, well-structured content\n"
            "2. Edit and improve existing text\n"
            "3. Adapt tone and style to the target audience\n"
            "4. Ensure clarity, coherence, and readability\n"
            "5. Format content appropriately\n\n"
            "When writing, focus on clarity, engagement, and purpose."
        ),
        "model_preference": "llama-3.3-70b-versatile",
        "temperature": 0.7,
        "max_tokens": 4096,
    }),
    AgentType.ANALYST: MappingProxyType({
        "type": AgentType.ANALYST,
        "name": "Analyst",
        "description": "Specialized in data analysis, visualization, and insights",
        "capabilities": ("analyze_data", "create_charts", "find_patterns", "compare", "predict"),
        "system_prompt": (
            "You are a data analyst. Your role is to:\n"
            "1. Analyze datasets for patterns and insights\n"
            "2. Create visualizations to communicate findings\n"
            "3. Compare data across different dimensions\n"
            "4. Identify trends and anomalies\n"
            "5. Make data-driven recommendations\n\n"
            "When analyzing, be thorough, objective, and insightful."
        ),
        "model_preference": "llama-3.3-70b-versatile",
        "temperature": 0.3,
        "max_tokens": 4096,
    }),
    AgentType.CUSTOM: MappingProxyType({
        "type": AgentType.CUSTOM,
        "name": "Custom Agent",
        "description": "User-defined agent with custom capabilities and prompts",
        "capabilities": ("custom_action",),
        "system_prompt": "You are a helpful AI assistant.",
        "model_preference": None,
        "temperature": 0.7,
        "max_tokens": 2048,
    }),
})


def create_agent(
    type: Union[AgentType, str],
    id: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
    definitions: Mapping[AgentType, Mapping[str, Any]] = AGENT_DEFINITIONS,
) -> Agent:
    """
    Create an agent from its persona defaults.

    Args:
        type: Persona type
        id: Agent id, generated from the type when omitted
        overrides: Fields applied last; they win over the defaults
        definitions: Persona table

    Returns:
        New Agent
    """
    agent_type = AgentType(type)
    fields = dict(definitions[agent_type])
    fields["capabilities"] = list(fields["capabilities"])
    fields["id"] = id or f"{agent_type.value}-{uuid.uuid4().hex[:8]}"
    fields.update(overrides or {})
    return Agent(**fields)


class AgentRegistry:
    """
    Instantiates personas and resolves their capabilities.

    Capability names with no registered action are dropped when resolving,
    so a persona may list an action before it exists.
    """

    def __init__(
        self,
        actions: ActionRegistry,
        definitions: Mapping[AgentType, Mapping[str, Any]] = AGENT_DEFINITIONS,
    ):
        self.actions = actions
        self.definitions = definitions

    def create_agent(
        self,
        type: Union[AgentType, str],
        id: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> Agent:
        """Create an agent from this registry's persona table; overrides win."""
        return create_agent(type, id, overrides, definitions=self.definitions)

    def get_capabilities(self, agent: Agent) -> List[Action]:
        """Resolve an agent's capability names to registered actions, in order."""
        resolved = []
        for name in agent.capabilities:
            action = self.actions.find(name)
            if action is None:
                logger.debug(f"Agent {agent.id} lists unregistered capability {name}")
                continue
            resolved.append(action)
        return resolved

    def list_personas(self) -> List[Dict[str, Any]]:
        return [
            {
                "type": agent_type.value,
                "name": definition["name"],
                "description": definition["description"],
                "capabilities": list(definition["capabilities"]),
                "available_actions": [
                    name for name in definition["capabilities"] if name in self.actions
                ],
            }
            for agent_type, definition in self.definitions.items()
        ]
