"""
Agent persona models.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class AgentType(str, Enum):
    """Built-in agent persona types."""
    RESEARCHER = "researcher"
    CODER = "coder"
    WRITER = "writer"
    ANALYST = "analyst"
    CUSTOM = "custom"


class Agent(BaseModel):
    """A named persona that limits which actions a step may invoke."""
    id: str = Field(..., description="Unique agent identifier within a workflow")
    type: AgentType = Field(default=AgentType.CUSTOM)
    name: str = ""
    description: str = ""
    capabilities: List[str] = Field(default_factory=list, description="Action names this agent may invoke")
    system_prompt: str = ""
    model_preference: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None

    class Config:
        use_enum_values = True
        frozen = True
        protected_namespaces = ()

    def can_invoke(self, action_name: str) -> bool:
        return action_name in self.capabilities
