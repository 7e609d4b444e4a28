"""
Workflow execution engine.

Runs a workflow definition's steps strictly in declared order:

    validate → for each step: [condition] → resolve input → check dependencies
             → validate input → dispatch (with deadline) → record result

Step failures are recorded in the step's result and never raised; only a
structurally invalid definition stops the run before any step executes.
"""

import asyncio
import copy
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from opentelemetry import trace

from ..actions.base import Action
from ..agents.registry import AgentRegistry
from ..config import config
from ..errors import (
    ContextInUseError,
    DeadlineExceededError,
    DependencyError,
    HandlerError,
    StepTimeoutError,
    StructuralError,
    ValidationError,
    WorkflowError,
)
from ..models.agent import Agent
from ..models.context import WorkflowContext
from ..models.execution import ExecutionResult, ExecutionStatus, StepResult, StepStatus
from ..models.workflow import WorkflowDefinition, WorkflowStep
from .resolver import VariableResolver

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class WorkflowEngine:
    """
    Executes one workflow definition against one run context.

    The engine mutates ``context`` (``variables`` and ``step_results``) as a
    trace of the run and owns it exclusively until ``execute()`` returns.
    An engine instance executes once.
    """

    def __init__(
        self,
        definition: WorkflowDefinition,
        context: WorkflowContext,
        agents: AgentRegistry,
        resolver: Optional[VariableResolver] = None,
        step_timeout: Optional[float] = None,
        run_timeout: Optional[float] = None,
        max_steps: Optional[int] = None,
    ):
        """
        Args:
            definition: Workflow to run
            context: Run context, exclusively owned by this engine while running
            agents: Agent registry (and through it the action registry)
            resolver: Variable resolver
            step_timeout: Per-step deadline in seconds; 0 disables
            run_timeout: Overall run deadline in seconds; 0 disables
            max_steps: Step budget checked before execution
        """
        self.definition = definition
        self.context = context
        self.agents = agents
        self.actions = agents.actions
        self.resolver = resolver or VariableResolver()
        self.step_timeout = config.step_timeout_seconds if step_timeout is None else step_timeout
        self.run_timeout = config.default_timeout_seconds if run_timeout is None else run_timeout
        self.max_steps = config.max_workflow_steps if max_steps is None else max_steps

        self._step_results: List[StepResult] = []
        self._failed_keys: Set[str] = set()
        # output variable name -> key of the failed step that should have written it
        self._failed_outputs: Dict[str, str] = {}
        self._executed = False

    def validate(self) -> None:
        """
        Check agent and action wiring for every step.

        Raises:
            StructuralError: listing every problem found
        """
        problems = []
        steps = self.definition.steps

        if not steps:
            problems.append("Workflow has no steps")
        if self.max_steps and len(steps) > self.max_steps:
            problems.append(f"Workflow has {len(steps)} steps, limit is {self.max_steps}")

        agent_ids = [agent.id for agent in self.definition.agents]
        for agent_id in sorted({a for a in agent_ids if agent_ids.count(a) > 1}):
            problems.append(f"Duplicate agent id: {agent_id}")

        seen_keys: Set[str] = set()
        for index, step in enumerate(steps):
            key = self.definition.step_key(index)
            if key in seen_keys:
                problems.append(f"Duplicate step key: {key}")
            seen_keys.add(key)

            agent = self.definition.get_agent(step.agent_id)
            if agent is None:
                problems.append(f"Step {key}: agent not found: {step.agent_id}")
                continue
            if step.action_name not in self.actions:
                problems.append(f"Step {key}: unknown action: {step.action_name}")
                continue
            allowed = [action.name for action in self.agents.get_capabilities(agent)]
            if step.action_name not in allowed:
                problems.append(
                    f"Step {key}: agent {agent.id} does not support action: {step.action_name}"
                )

        if problems:
            raise StructuralError(problems)

    async def execute(self) -> ExecutionResult:
        """
        Run the workflow.

        Returns:
            The run's ExecutionResult; step failures are reported in it

        Raises:
            ContextInUseError: the engine already ran or the context is owned
                by another running engine
        """
        if self._executed:
            raise ContextInUseError("Workflow engine has already executed")
        self.context.claim(self)
        self._executed = True

        try:
            with tracer.start_as_current_span("workflow.execute") as span:
                span.set_attribute("workflow.name", self.definition.name or "")
                span.set_attribute("workflow.step_count", len(self.definition.steps))
                result = await self._execute()
                span.set_attribute("workflow.status", result.status)
                span.set_attribute("workflow.duration_ms", result.total_duration_ms)
                return result
        finally:
            self.context.release(self)

    def get_progress(self) -> Dict[str, int]:
        """Steps recorded so far out of the declared total."""
        total = len(self.definition.steps)
        current = len(self._step_results)
        percentage = round(current / total * 100) if total > 0 else 0
        return {"current": current, "total": total, "percentage": percentage}

    async def _execute(self) -> ExecutionResult:
        self.context.variables.update(copy.deepcopy(self.definition.input))

        try:
            self.validate()
        except StructuralError as e:
            logger.warning(f"Workflow {self.definition.name or '<unnamed>'} rejected: {e.message}")
            return ExecutionResult(status=ExecutionStatus.FAILED, error=e.message)

        logger.info(
            f"Workflow {self.definition.name or '<unnamed>'} started: "
            f"{len(self.definition.steps)} steps, session={self.context.session_id}"
        )

        started = time.perf_counter()
        deadline = started + self.run_timeout if self.run_timeout and self.run_timeout > 0 else None

        for index, step in enumerate(self.definition.steps):
            result = await self._run_step(index, step, deadline)
            self._step_results.append(result)

        total_duration_ms = (time.perf_counter() - started) * 1000
        return self._finish(total_duration_ms)

    async def _run_step(self, index: int, step: WorkflowStep, deadline: Optional[float]) -> StepResult:
        key = self.definition.step_key(index)
        agent = self.definition.get_agent(step.agent_id)
        started_at = datetime.now(timezone.utc)
        started = time.perf_counter()

        with tracer.start_as_current_span("workflow.step") as span:
            span.set_attribute("step.key", key)
            span.set_attribute("step.agent", step.agent_id)
            span.set_attribute("step.action", step.action_name)

            if step.condition is not None and not self.resolver.evaluate_condition(step.condition, self.context):
                logger.info(f"Step {key} skipped: condition not met")
                span.set_attribute("step.status", StepStatus.SKIPPED.value)
                return StepResult(
                    key=key,
                    agent_id=step.agent_id,
                    action_name=step.action_name,
                    status=StepStatus.SKIPPED,
                    started_at=started_at,
                )

            action = self.actions.get(step.action_name)
            resolution = self.resolver.resolve_detailed(step.input, self.context)
            payload: Any = resolution.value
            output: Any = None
            error: Optional[WorkflowError] = None

            try:
                if deadline is not None and time.perf_counter() >= deadline:
                    raise DeadlineExceededError("Run deadline exceeded before step started", key)

                failed = [k for k in resolution.step_keys() if k in self._failed_keys]
                failed += [
                    self._failed_outputs[name]
                    for name in resolution.variable_names()
                    if name in self._failed_outputs
                ]
                failed = list(dict.fromkeys(failed))
                if failed:
                    raise DependencyError(failed, key)

                payload = self._bind_input(action, payload)
                validation = self.actions.validate_input(action, payload)
                if not validation.valid:
                    raise ValidationError(validation.errors, key)

                output = await self._dispatch(action, payload, agent, key, deadline)
            except WorkflowError as e:
                error = e
                output = getattr(e, "output", None)

            duration_ms = (time.perf_counter() - started) * 1000
            span.set_attribute("step.duration_ms", duration_ms)

            if error is not None:
                self._failed_keys.add(key)
                if step.output:
                    self._failed_outputs[step.output] = key
                span.set_attribute("step.status", StepStatus.FAILED.value)
                span.set_attribute("step.success", False)
                logger.warning(f"Step {key} ({step.action_name}) failed [{error.error_type}]: {error.message}")
                return StepResult(
                    key=key,
                    agent_id=step.agent_id,
                    action_name=step.action_name,
                    status=StepStatus.FAILED,
                    input=payload,
                    output=output,
                    error=error.message,
                    error_type=error.error_type,
                    duration_ms=duration_ms,
                    started_at=started_at,
                )

            self.context.step_results[key] = output
            if step.output:
                self.context.variables[step.output] = output

            span.set_attribute("step.status", StepStatus.SUCCEEDED.value)
            span.set_attribute("step.success", True)
            logger.info(f"Step {key} ({step.action_name}) completed in {duration_ms:.0f}ms")
            return StepResult(
                key=key,
                agent_id=step.agent_id,
                action_name=step.action_name,
                status=StepStatus.SUCCEEDED,
                input=payload,
                output=output,
                duration_ms=duration_ms,
                started_at=started_at,
            )

    async def _dispatch(
        self,
        action: Action,
        payload: Dict[str, Any],
        agent: Optional[Agent],
        key: str,
        deadline: Optional[float],
    ) -> Any:
        timeout = self.step_timeout if self.step_timeout and self.step_timeout > 0 else None
        bounded_by_deadline = False
        if deadline is not None:
            remaining = deadline - time.perf_counter()
            if timeout is None or remaining < timeout:
                timeout = max(remaining, 0.0)
                bounded_by_deadline = True

        try:
            output = await asyncio.wait_for(
                self.actions.execute(action, payload, self.context, agent),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            if bounded_by_deadline:
                raise DeadlineExceededError("Run deadline exceeded during step", key)
            raise StepTimeoutError(f"Action {action.name} timed out after {timeout:g}s", key)
        except HandlerError:
            raise
        except Exception as e:
            logger.error(f"Action {action.name} raised in step {key}: {e}")
            raise HandlerError(str(e) or type(e).__name__, key) from e

        if isinstance(output, dict) and output.get("success") is False:
            raise HandlerError(
                output.get("error") or f"Action {action.name} reported failure",
                key,
                output=output,
            )
        return output

    @staticmethod
    def _bind_input(action: Action, value: Any) -> Any:
        """Bind a non-mapping input to the action's first required field."""
        if isinstance(value, dict):
            return value
        if value is None:
            return {}
        fields = action.required_fields or list(action.input_schema)
        if not fields:
            return {}
        return {fields[0]: value}

    def _finish(self, total_duration_ms: float) -> ExecutionResult:
        succeeded = [r for r in self._step_results if r.status == StepStatus.SUCCEEDED]
        failed = [r for r in self._step_results if r.status == StepStatus.FAILED]

        if failed and succeeded:
            status = ExecutionStatus.PARTIAL
        elif succeeded:
            status = ExecutionStatus.SUCCEEDED
        else:
            status = ExecutionStatus.FAILED

        error = None
        if failed:
            executed = len(succeeded) + len(failed)
            details = "; ".join(f"{r.key}: {r.error}" for r in failed)
            error = f"{len(failed)} of {executed} steps failed: {details}"
        elif not succeeded:
            error = f"No step ran: all {len(self._step_results)} steps were skipped"

        logger.info(
            f"Workflow {self.definition.name or '<unnamed>'} finished: {status.value} "
            f"({len(succeeded)} succeeded, {len(failed)} failed) in {total_duration_ms:.0f}ms"
        )

        return ExecutionResult(
            status=status,
            output=self._build_output(succeeded),
            step_results=list(self._step_results),
            error=error,
            total_duration_ms=total_duration_ms,
        )

    def _build_output(self, succeeded: List[StepResult]) -> Any:
        if self.definition.output:
            output = {}
            for name in self.definition.output:
                if name in self.context.variables:
                    output[name] = self.context.variables[name]
                elif name in self.context.step_results:
                    output[name] = self.context.step_results[name]
            return output
        if succeeded:
            return succeeded[-1].output
        return None
