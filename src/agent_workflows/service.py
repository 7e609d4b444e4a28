"""
Workflow invocation service.

Loads a definition (stored or template), runs it through the engine,
archives the result and returns a summarized view to the HTTP layer.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from .agents.registry import AgentRegistry
from .engine.executor import WorkflowEngine
from .errors import (
    StorageUnavailableError,
    TemplateNotFoundError,
    WorkflowAccessDeniedError,
    WorkflowNotFoundError,
)
from .models.context import WorkflowContext
from .models.execution import InvocationResult, WorkflowRun
from .models.workflow import StoredWorkflow, WorkflowCreate, WorkflowDefinition
from .persistence.repository import WorkflowRepository
from .templates import get_template, template_name_from_id

logger = logging.getLogger(__name__)


class WorkflowManager:
    """Manages workflow execution."""

    def __init__(
        self,
        repository: Optional[WorkflowRepository],
        agents: AgentRegistry,
        api_key: Optional[str] = None,
        step_timeout: Optional[float] = None,
        run_timeout: Optional[float] = None,
        run_history_limit: int = 50,
    ):
        """
        Args:
            repository: Workflow storage; None serves templates only
            agents: Agent registry shared by every run
            api_key: LLM credential injected into each run context
            step_timeout: Per-step deadline override
            run_timeout: Run deadline override
            run_history_limit: Default number of runs listed
        """
        self.repository = repository
        self.agents = agents
        self.api_key = api_key
        self.step_timeout = step_timeout
        self.run_timeout = run_timeout
        self.run_history_limit = run_history_limit

    def _require_repository(self) -> WorkflowRepository:
        if self.repository is None:
            raise StorageUnavailableError("Workflow storage is not available")
        return self.repository

    async def get_workflow(self, user_id: str, workflow_id: str) -> StoredWorkflow:
        """Load a stored workflow the caller owns."""
        workflow = await self._require_repository().load_workflow(workflow_id)
        if workflow is None:
            raise WorkflowNotFoundError(f"Workflow not found: {workflow_id}")
        if workflow.owner_id != str(user_id):
            raise WorkflowAccessDeniedError(f"Access denied to workflow {workflow_id}")
        return workflow

    async def create_workflow(self, user_id: str, workflow: WorkflowCreate) -> StoredWorkflow:
        repository = self._require_repository()
        workflow_id = await repository.create_workflow(str(user_id), workflow)
        logger.info(f"Workflow {workflow_id} created by user {user_id}")
        return await self.get_workflow(user_id, workflow_id)

    async def list_workflows(self, user_id: str) -> List[StoredWorkflow]:
        return await self._require_repository().list_workflows(str(user_id))

    async def resolve_definition(
        self,
        user_id: str,
        workflow_id: Optional[str] = None,
        template_name: Optional[str] = None,
    ) -> Tuple[WorkflowDefinition, Optional[StoredWorkflow]]:
        """
        Find the definition to run.

        ``template-<name>`` workflow ids address templates.

        Returns:
            (definition, stored workflow or None for templates)
        """
        if workflow_id and template_name is None:
            template_name = template_name_from_id(workflow_id)

        if template_name:
            definition = get_template(template_name)
            if definition is None:
                raise TemplateNotFoundError(f"Template not found: {template_name}")
            return definition, None

        if not workflow_id:
            raise WorkflowNotFoundError("Either workflow_id or template_name must be provided")

        stored = await self.get_workflow(user_id, workflow_id)
        return stored.definition.model_copy(deep=True), stored

    async def run_workflow(
        self,
        user_id: str,
        workflow_id: Optional[str] = None,
        template_name: Optional[str] = None,
        input: Optional[Dict[str, Any]] = None,
        session_id: Optional[str] = None,
    ) -> InvocationResult:
        """
        Run a stored workflow or template.

        Caller input is merged over the definition's input. Runs of stored
        workflows are archived; template runs are not.
        """
        definition, stored = await self.resolve_definition(user_id, workflow_id, template_name)
        definition = definition.model_copy(update={"input": {**definition.input, **(input or {})}})

        context = WorkflowContext(
            session_id=session_id,
            user_id=str(user_id),
            api_key=self.api_key,
        )
        engine = WorkflowEngine(
            definition,
            context,
            self.agents,
            step_timeout=self.step_timeout,
            run_timeout=self.run_timeout,
        )
        result = await engine.execute()

        run_id = None
        if stored is not None:
            repository = self._require_repository()
            run_id = await repository.save_run(stored.id, result, session_id, input=definition.input)
            await repository.increment_use_count(stored.id)

        return InvocationResult(
            status=result.status,
            output=result.output,
            step_results=[step.to_record() for step in result.step_results],
            error=result.error,
            total_duration_ms=result.total_duration_ms,
            run_id=run_id,
            warnings=result.warnings,
        )

    async def list_runs(
        self,
        user_id: str,
        workflow_id: str,
        limit: Optional[int] = None,
    ) -> List[WorkflowRun]:
        """List runs of a workflow the caller owns."""
        await self.get_workflow(user_id, workflow_id)
        return await self._require_repository().list_runs(workflow_id, limit or self.run_history_limit)

    async def get_run(self, user_id: str, run_id: str) -> WorkflowRun:
        run = await self._require_repository().get_run(run_id)
        if run is None:
            raise WorkflowNotFoundError(f"Run not found: {run_id}")
        await self.get_workflow(user_id, run.workflow_id)
        return run
