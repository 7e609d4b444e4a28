"""
Workflow definition models.
"""

from typing import Optional, List, Dict, Any
from enum import Enum
from datetime import datetime
from pydantic import BaseModel, Field

from .agent import Agent


class ConditionType(str, Enum):
    """Comparison used by a conditional step."""
    EQUALS = "equals"
    CONTAINS = "contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    EXISTS = "exists"


class StepCondition(BaseModel):
    """Guard evaluated before a step runs; the step is skipped when false."""
    type: ConditionType
    left: str = Field(..., description="Reference to a variable or step result, e.g. {step1.success}")
    right: Any = None

    class Config:
        use_enum_values = True


class WorkflowStep(BaseModel):
    """One pipeline stage binding an agent, an action and an input template."""
    id: Optional[str] = Field(default=None, description="Key under which the step result is stored")
    agent_id: str = Field(..., description="Agent declared in the workflow")
    action_name: str = Field(..., description="Action the agent invokes")
    input: Any = Field(default_factory=dict, description="Input template")
    output: Optional[str] = Field(default=None, description="Variable name to write the result to")
    condition: Optional[StepCondition] = None


class WorkflowDefinition(BaseModel):
    """Agents, ordered steps and initial input of a pipeline."""
    name: Optional[str] = None
    description: Optional[str] = None
    agents: List[Agent] = Field(default_factory=list)
    steps: List[WorkflowStep] = Field(default_factory=list)
    input: Dict[str, Any] = Field(default_factory=dict)
    output: Optional[List[str]] = Field(
        default=None,
        description="Variable or step names returned as the final output",
    )

    def step_key(self, index: int) -> str:
        """Key for the step at ``index`` (explicit id or its 1-based position)."""
        step = self.steps[index]
        return step.id or f"step{index + 1}"

    def get_agent(self, agent_id: str) -> Optional[Agent]:
        for agent in self.agents:
            if agent.id == agent_id:
                return agent
        return None


class WorkflowCreate(BaseModel):
    """Request body for storing a workflow definition."""
    name: str = Field(..., description="Workflow name")
    description: Optional[str] = None
    category: str = Field(default="Custom")
    definition: WorkflowDefinition


class StoredWorkflow(BaseModel):
    """A workflow definition owned by a user."""
    id: str
    owner_id: str
    name: str
    description: Optional[str] = None
    category: str = "Custom"
    definition: WorkflowDefinition
    use_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TemplateInfo(BaseModel):
    """Catalog entry for a built-in template."""
    name: str
    description: str
    category: str
