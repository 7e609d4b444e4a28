"""
Workflow execution result models.
"""

from typing import Optional, List, Dict, Any
from enum import Enum
from datetime import datetime
from pydantic import BaseModel, Field


class ExecutionStatus(str, Enum):
    """Terminal status of a workflow run."""
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    PARTIAL = "partial"


class StepStatus(str, Enum):
    """Outcome of a single step."""
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class StepResult(BaseModel):
    """Outcome of one step in a run."""
    key: str
    agent_id: str
    action_name: str
    status: StepStatus
    input: Any = None
    output: Any = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    duration_ms: float = 0.0
    started_at: Optional[datetime] = None

    class Config:
        use_enum_values = True
        frozen = True

    @property
    def success(self) -> bool:
        return self.status == StepStatus.SUCCEEDED

    @property
    def skipped(self) -> bool:
        return self.status == StepStatus.SKIPPED

    def to_record(self) -> Dict[str, Any]:
        """Serializable form including the derived success flag."""
        record = self.model_dump(mode="json")
        record["success"] = self.success
        return record


class ExecutionResult(BaseModel):
    """The single value returned by one engine execution."""
    status: ExecutionStatus
    output: Any = None
    step_results: List[StepResult] = Field(default_factory=list)
    error: Optional[str] = None
    total_duration_ms: float = 0.0

    class Config:
        use_enum_values = True
        frozen = True

    @property
    def failed_steps(self) -> List[StepResult]:
        return [r for r in self.step_results if r.status == StepStatus.FAILED]

    @property
    def warnings(self) -> List[str]:
        return [f"{r.key}: {r.error}" for r in self.failed_steps]


class WorkflowRun(BaseModel):
    """Archived run record."""
    id: str
    workflow_id: str
    session_id: Optional[str] = None
    input: Optional[Dict[str, Any]] = None
    output: Any = None
    status: str
    error: Optional[str] = None
    current_step: int = 0
    total_steps: int = 0
    step_results: List[Dict[str, Any]] = Field(default_factory=list)
    total_duration_ms: float = 0.0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class RunRequest(BaseModel):
    """Input for running a workflow or template."""
    input: Dict[str, Any] = Field(default_factory=dict)
    session_id: Optional[str] = None


class InvocationResult(BaseModel):
    """Summarized view of a run returned to the caller."""
    status: str
    output: Any = None
    step_results: List[Dict[str, Any]] = Field(default_factory=list)
    error: Optional[str] = None
    total_duration_ms: float = 0.0
    run_id: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
