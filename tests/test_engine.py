"""Tests for the sequential workflow engine."""

import pytest

from agent_workflows.agents import create_agent
from agent_workflows.engine import WorkflowEngine
from agent_workflows.errors import ContextInUseError, UpstreamError
from agent_workflows.models import ExecutionStatus, StepStatus, WorkflowContext

from conftest import make_definition


def engine_for(definition, context, agents, **kwargs):
    return WorkflowEngine(definition, context, agents, **kwargs)


class TestScenarios:
    """End-to-end runs over the built-in actions."""

    @pytest.mark.asyncio
    async def test_single_search_step_succeeds(self, agents, context, mcp):
        definition = make_definition([
            {"agent_id": "researcher", "action_name": "web_search", "input": {"query": "rust ownership"}},
        ])

        result = await engine_for(definition, context, agents).execute()

        assert result.status == ExecutionStatus.SUCCEEDED
        assert result.step_results[0].success
        assert result.output == {
            "success": True,
            "query": "rust ownership",
            "results": mcp.search_results,
        }
        assert result.error is None

    @pytest.mark.asyncio
    async def test_missing_required_field_fails_step(self, agents, context, mcp):
        definition = make_definition([
            {"agent_id": "coder", "action_name": "execute_code", "input": {}},
        ])

        result = await engine_for(definition, context, agents).execute()

        assert result.status == ExecutionStatus.FAILED
        step = result.step_results[0]
        assert not step.success
        assert step.error_type == "validation"
        assert "code" in step.error
        assert mcp.calls == []

    @pytest.mark.asyncio
    async def test_reference_to_failed_step_is_dependency_error(self, agents, context, mcp, llm):
        mcp.execution = {"output": "", "error": "ReferenceError: x is not defined"}
        definition = make_definition([
            {"agent_id": "coder", "action_name": "execute_code", "input": {"code": "x"}},
            {
                "agent_id": "coder",
                "action_name": "generate_code",
                "input": {"requirements": "Fix: {stepResults.step1.output}"},
            },
        ])

        result = await engine_for(definition, context, agents).execute()

        assert result.status == ExecutionStatus.FAILED
        first, second = result.step_results
        assert first.error_type == "handler"
        assert "ReferenceError" in first.error
        assert second.error_type == "dependency"
        assert "step1" in second.error
        assert llm.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reference", ["{run}", "{variables.run}", "{input.run.output}", "Log: {run}"])
    async def test_reference_to_failed_step_output_variable(self, agents, context, mcp, llm, reference):
        mcp.execution = {"output": "", "error": "boom"}
        definition = make_definition([
            {"id": "s1", "agent_id": "coder", "action_name": "execute_code", "input": {"code": "x"}, "output": "run"},
            {"id": "s2", "agent_id": "writer", "action_name": "summarize", "input": {"text": reference}},
        ])

        result = await engine_for(definition, context, agents).execute()

        second = result.step_results[1]
        assert second.error_type == "dependency"
        assert second.error == "Depends on failed step(s): s1"
        assert result.status == ExecutionStatus.FAILED
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_failure_propagates_through_dependent_outputs(self, agents, context, mcp):
        mcp.execution = {"output": "", "error": "boom"}
        definition = make_definition([
            {"id": "s1", "agent_id": "coder", "action_name": "execute_code", "input": {"code": "x"}, "output": "run"},
            {"id": "s2", "agent_id": "writer", "action_name": "summarize", "input": {"text": "{run}"}, "output": "digest"},
            {"id": "s3", "agent_id": "writer", "action_name": "write_content", "input": {"topic": "{digest}"}},
        ])

        result = await engine_for(definition, context, agents).execute()

        assert result.step_results[2].error == "Depends on failed step(s): s2"

    @pytest.mark.asyncio
    async def test_unrelated_missing_variable_is_permissive(self, agents, context, mcp, llm):
        mcp.execution = {"output": "", "error": "boom"}
        definition = make_definition([
            {"id": "s1", "agent_id": "coder", "action_name": "execute_code", "input": {"code": "x"}, "output": "run"},
            {"id": "s2", "agent_id": "writer", "action_name": "summarize", "input": {"text": "{notes}"}},
        ])

        result = await engine_for(definition, context, agents).execute()

        assert result.step_results[1].success
        assert "{notes}" in llm.calls[0]["prompt"]
        assert result.status == ExecutionStatus.PARTIAL


class TestStatus:

    @pytest.mark.asyncio
    async def test_mixed_outcomes_are_partial(self, agents, context):
        definition = make_definition([
            {"agent_id": "researcher", "action_name": "web_search", "input": {"query": "asyncio"}},
            {"agent_id": "coder", "action_name": "execute_code", "input": {}},
        ])

        result = await engine_for(definition, context, agents).execute()

        assert result.status == ExecutionStatus.PARTIAL
        assert [r.status for r in result.step_results] == [StepStatus.SUCCEEDED, StepStatus.FAILED]
        assert result.error.startswith("1 of 2 steps failed")
        assert result.warnings == [f"step2: {result.step_results[1].error}"]

    @pytest.mark.asyncio
    async def test_one_result_per_step_in_order(self, agents, context):
        definition = make_definition([
            {"id": "search", "agent_id": "researcher", "action_name": "web_search", "input": {"query": "a"}},
            {"agent_id": "researcher", "action_name": "summarize", "input": {"text": "{search.results}"}},
            {"id": "write", "agent_id": "writer", "action_name": "write_content", "input": {"topic": "a"}},
        ])

        result = await engine_for(definition, context, agents).execute()

        assert [r.key for r in result.step_results] == ["search", "step2", "write"]
        assert result.status == ExecutionStatus.SUCCEEDED
        assert list(context.step_results) == ["search", "step2", "write"]
        assert result.total_duration_ms > 0
        assert result.total_duration_ms >= max(r.duration_ms for r in result.step_results)
        assert all(r.duration_ms >= 0 for r in result.step_results)

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_later_steps(self, agents, context, llm):
        definition = make_definition([
            {"agent_id": "coder", "action_name": "execute_code", "input": {}},
            {"agent_id": "writer", "action_name": "write_content", "input": {"topic": "still runs"}},
        ])

        result = await engine_for(definition, context, agents).execute()

        assert result.step_results[1].success
        assert len(llm.calls) == 1


class TestStructuralValidation:

    @pytest.mark.asyncio
    async def test_unknown_agent_fails_before_any_step(self, agents, context, llm):
        definition = make_definition([
            {"agent_id": "writer", "action_name": "write_content", "input": {"topic": "x"}},
            {"agent_id": "ghost", "action_name": "write_content", "input": {"topic": "x"}},
        ])

        result = await engine_for(definition, context, agents).execute()

        assert result.status == ExecutionStatus.FAILED
        assert result.step_results == []
        assert "agent not found: ghost" in result.error
        assert result.total_duration_ms == 0
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_action_outside_agent_capabilities(self, agents, context):
        definition = make_definition([
            {"agent_id": "writer", "action_name": "web_search", "input": {"query": "x"}},
        ])

        result = await engine_for(definition, context, agents).execute()

        assert result.status == ExecutionStatus.FAILED
        assert "does not support action: web_search" in result.error

    @pytest.mark.asyncio
    async def test_unknown_action(self, agents, context):
        definition = make_definition([
            {"agent_id": "writer", "action_name": "teleport", "input": {}},
        ])

        result = await engine_for(definition, context, agents).execute()

        assert "unknown action: teleport" in result.error

    @pytest.mark.asyncio
    async def test_every_problem_is_reported(self, agents, context):
        definition = make_definition([
            {"agent_id": "ghost", "action_name": "write_content"},
            {"agent_id": "writer", "action_name": "teleport"},
        ])

        result = await engine_for(definition, context, agents).execute()

        assert "ghost" in result.error
        assert "teleport" in result.error

    @pytest.mark.asyncio
    async def test_empty_workflow_fails(self, agents, context):
        result = await engine_for(make_definition([]), context, agents).execute()

        assert result.status == ExecutionStatus.FAILED
        assert "no steps" in result.error

    @pytest.mark.asyncio
    async def test_step_budget(self, agents, context):
        definition = make_definition([
            {"agent_id": "writer", "action_name": "write_content", "input": {"topic": "a"}},
            {"agent_id": "writer", "action_name": "write_content", "input": {"topic": "b"}},
        ])

        result = await engine_for(definition, context, agents, max_steps=1).execute()

        assert result.status == ExecutionStatus.FAILED
        assert "limit is 1" in result.error

    @pytest.mark.asyncio
    async def test_duplicate_step_keys(self, agents, context):
        definition = make_definition([
            {"id": "same", "agent_id": "writer", "action_name": "write_content", "input": {"topic": "a"}},
            {"id": "same", "agent_id": "writer", "action_name": "write_content", "input": {"topic": "b"}},
        ])

        result = await engine_for(definition, context, agents).execute()

        assert "Duplicate step key: same" in result.error


class TestDataFlow:

    @pytest.mark.asyncio
    async def test_definition_input_seeds_variables(self, agents, context, llm):
        definition = make_definition(
            [{"agent_id": "writer", "action_name": "write_content", "input": {"topic": "Report on {topic}"}}],
            input={"topic": "ownership"},
        )

        result = await engine_for(definition, context, agents).execute()

        assert result.step_results[0].input["topic"] == "Report on ownership"
        assert "Report on ownership" in llm.calls[0]["prompt"]
        assert context.variables["topic"] == "ownership"

    @pytest.mark.asyncio
    async def test_output_variable_is_written(self, agents, context):
        definition = make_definition([
            {"agent_id": "researcher", "action_name": "web_search", "input": {"query": "q"}, "output": "found"},
            {"agent_id": "researcher", "action_name": "summarize", "input": {"text": "{found.results}"}},
        ])

        result = await engine_for(definition, context, agents).execute()

        assert context.variables["found"]["query"] == "q"
        assert result.step_results[1].input["text"] == context.variables["found"]["results"]

    @pytest.mark.asyncio
    async def test_declared_output_names(self, agents, context):
        definition = make_definition(
            [
                {"agent_id": "researcher", "action_name": "web_search", "input": {"query": "q"}, "output": "found"},
                {"agent_id": "writer", "action_name": "write_content", "input": {"topic": "q"}},
            ],
            output=["found", "step2", "missing"],
        )

        result = await engine_for(definition, context, agents).execute()

        assert set(result.output) == {"found", "step2"}
        assert result.output["step2"]["content"] == "LLM response"

    @pytest.mark.asyncio
    async def test_plain_value_input_binds_to_first_required_field(self, agents, context, llm):
        definition = make_definition([
            {"agent_id": "writer", "action_name": "summarize", "input": "long text"},
        ])

        result = await engine_for(definition, context, agents).execute()

        assert result.step_results[0].input == {"text": "long text"}
        assert "long text" in llm.calls[0]["prompt"]

    @pytest.mark.asyncio
    async def test_agent_parameters_and_credentials_reach_llm(self, agents, context, llm):
        writer = create_agent("writer", "writer", {"model_preference": "gpt-4o", "temperature": 0.1})
        definition = make_definition(
            [{"agent_id": "writer", "action_name": "write_content", "input": {"topic": "x"}}],
            agents=[writer],
        )

        await engine_for(definition, context, agents).execute()

        call = llm.calls[0]
        assert call["model"] == "gpt-4o"
        assert call["temperature"] == 0.1
        assert call["max_tokens"] == 4096
        assert call["api_key"] == "sk-test"
        assert call["system_prompt"].startswith("You are a professional content writer")


class TestConditions:

    @pytest.mark.asyncio
    async def test_false_condition_skips_step(self, agents, context, llm):
        definition = make_definition([
            {
                "agent_id": "writer",
                "action_name": "write_content",
                "input": {"topic": "x"},
                "condition": {"type": "exists", "left": "{draft}"},
            },
        ])

        result = await engine_for(definition, context, agents).execute()

        assert result.step_results[0].status == StepStatus.SKIPPED
        assert result.status == ExecutionStatus.FAILED
        assert result.error == "No step ran: all 1 steps were skipped"
        assert result.warnings == []
        assert result.output is None
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_skipped_step_beside_success_is_succeeded(self, agents, context):
        definition = make_definition([
            {"agent_id": "writer", "action_name": "write_content", "input": {"topic": "x"}},
            {
                "agent_id": "writer",
                "action_name": "write_content",
                "input": {"topic": "y"},
                "condition": {"type": "exists", "left": "{draft}"},
            },
        ])

        result = await engine_for(definition, context, agents).execute()

        assert result.status == ExecutionStatus.SUCCEEDED
        assert result.error is None

    @pytest.mark.asyncio
    async def test_contains_with_unhashable_operand_skips(self, agents, context, llm):
        definition = make_definition([
            {"id": "s1", "agent_id": "researcher", "action_name": "web_search", "input": {"query": "q"}},
            {
                "id": "s2",
                "agent_id": "writer",
                "action_name": "write_content",
                "input": {"topic": "x"},
                "condition": {"type": "contains", "left": "{s1}", "right": ["x"]},
            },
        ])

        result = await engine_for(definition, context, agents).execute()

        assert result.step_results[1].skipped
        assert result.status == ExecutionStatus.SUCCEEDED
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_condition_on_earlier_result(self, agents, context, mcp):
        mcp.execution = {"output": "", "error": "SyntaxError"}
        definition = make_definition([
            {"agent_id": "coder", "action_name": "execute_code", "input": {"code": "1 +"}},
            {
                "agent_id": "coder",
                "action_name": "generate_code",
                "input": {"requirements": "fix it"},
                "condition": {"type": "equals", "left": "{step1.success}", "right": True},
            },
        ])

        result = await engine_for(definition, context, agents).execute()

        assert result.step_results[1].skipped
        assert result.status == ExecutionStatus.FAILED


class TestHandlerFailures:

    @pytest.mark.asyncio
    async def test_handler_exception_is_recorded(self, agents, context, llm):
        llm.error = RuntimeError("model overloaded")
        definition = make_definition([
            {"agent_id": "writer", "action_name": "write_content", "input": {"topic": "x"}},
        ])

        result = await engine_for(definition, context, agents).execute()

        step = result.step_results[0]
        assert step.error == "model overloaded"
        assert step.error_type == "handler"

    @pytest.mark.asyncio
    async def test_upstream_error_is_handler_failure(self, agents, context, llm):
        llm.error = UpstreamError("LLM call failed: 502 - bad gateway", status_code=502)
        definition = make_definition([
            {"agent_id": "writer", "action_name": "write_content", "input": {"topic": "x"}},
        ])

        result = await engine_for(definition, context, agents).execute()

        assert result.step_results[0].error_type == "handler"
        assert "502" in result.step_results[0].error

    @pytest.mark.asyncio
    async def test_reported_failure_keeps_handler_output(self, agents, context, mcp):
        mcp.execution = {"output": "partial", "error": "exit 1"}
        definition = make_definition([
            {"agent_id": "coder", "action_name": "execute_code", "input": {"code": "exit(1)"}},
        ])

        result = await engine_for(definition, context, agents).execute()

        step = result.step_results[0]
        assert step.output == {"success": False, "output": "partial", "error": "exit 1"}
        assert "step1" not in context.step_results


class TestTimeouts:

    @pytest.mark.asyncio
    async def test_step_timeout(self, slow_agents, context):
        agent = create_agent("custom", "sleeper", {"capabilities": ["slow"]})
        definition = make_definition(
            [{"agent_id": "sleeper", "action_name": "slow", "input": {}}],
            agents=[agent],
        )

        result = await engine_for(definition, context, slow_agents, step_timeout=0.05, run_timeout=0).execute()

        assert result.step_results[0].error_type == "timeout"
        assert result.status == ExecutionStatus.FAILED

    @pytest.mark.asyncio
    async def test_run_deadline(self, slow_agents, context):
        agent = create_agent("custom", "sleeper", {"capabilities": ["slow"]})
        definition = make_definition(
            [
                {"agent_id": "sleeper", "action_name": "slow", "input": {}},
                {"agent_id": "sleeper", "action_name": "slow", "input": {}},
            ],
            agents=[agent],
        )

        result = await engine_for(definition, context, slow_agents, step_timeout=0, run_timeout=0.05).execute()

        assert [r.error_type for r in result.step_results] == ["deadline", "deadline"]

    @pytest.mark.asyncio
    async def test_fast_step_within_timeout(self, slow_agents, context):
        agent = create_agent("custom", "sleeper", {"capabilities": ["slow"]})
        definition = make_definition(
            [{"agent_id": "sleeper", "action_name": "slow", "input": {"delay": 0}}],
            agents=[agent],
        )

        result = await engine_for(definition, context, slow_agents, step_timeout=1).execute()

        assert result.status == ExecutionStatus.SUCCEEDED


class TestContextOwnership:

    @pytest.mark.asyncio
    async def test_engine_runs_once(self, agents, context):
        definition = make_definition([
            {"agent_id": "writer", "action_name": "write_content", "input": {"topic": "x"}},
        ])
        engine = engine_for(definition, context, agents)
        await engine.execute()

        with pytest.raises(ContextInUseError):
            await engine.execute()

    @pytest.mark.asyncio
    async def test_owned_context_is_rejected(self, agents, context):
        definition = make_definition([
            {"agent_id": "writer", "action_name": "write_content", "input": {"topic": "x"}},
        ])
        context.claim(object())

        with pytest.raises(ContextInUseError):
            await engine_for(definition, context, agents).execute()

    @pytest.mark.asyncio
    async def test_context_released_after_run(self, agents):
        context = WorkflowContext()
        definition = make_definition([
            {"agent_id": "writer", "action_name": "write_content", "input": {"topic": "x"}},
        ])

        await engine_for(definition, context, agents).execute()

        assert not context.in_use

    @pytest.mark.asyncio
    async def test_progress(self, agents, context):
        definition = make_definition([
            {"agent_id": "writer", "action_name": "write_content", "input": {"topic": "a"}},
            {"agent_id": "writer", "action_name": "write_content", "input": {"topic": "b"}},
        ])
        engine = engine_for(definition, context, agents)
        assert engine.get_progress() == {"current": 0, "total": 2, "percentage": 0}

        await engine.execute()

        assert engine.get_progress() == {"current": 2, "total": 2, "percentage": 100}
