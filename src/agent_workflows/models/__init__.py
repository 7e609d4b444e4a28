"""
Agent workflow data models.
"""

from .agent import Agent, AgentType
from .workflow import (
    ConditionType,
    StepCondition,
    WorkflowStep,
    WorkflowDefinition,
    WorkflowCreate,
    StoredWorkflow,
    TemplateInfo,
)
from .execution import (
    ExecutionStatus,
    StepStatus,
    StepResult,
    ExecutionResult,
    WorkflowRun,
    RunRequest,
    InvocationResult,
)
from .context import WorkflowContext

__all__ = [
    "Agent",
    "AgentType",
    "ConditionType",
    "StepCondition",
    "WorkflowStep",
    "WorkflowDefinition",
    "WorkflowCreate",
    "StoredWorkflow",
    "TemplateInfo",
    "ExecutionStatus",
    "StepStatus",
    "StepResult",
    "ExecutionResult",
    "WorkflowRun",
    "RunRequest",
    "InvocationResult",
    "WorkflowContext",
]
