"""Shared fixtures for the agent workflow tests."""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from agent_workflows.actions import Action, ActionRegistry, InputField, create_action_registry
from agent_workflows.agents import AgentRegistry, create_agent
from agent_workflows.models import WorkflowContext, WorkflowDefinition, WorkflowStep


class FakeLLMClient:
    """Records completions and answers from a queue, then a default reply."""

    def __init__(self, responses: Optional[List[str]] = None, default: str = "LLM response"):
        self.responses = list(responses or [])
        self.default = default
        self.error: Optional[Exception] = None
        self.calls: List[Dict[str, Any]] = []

    async def complete(
        self,
        prompt,
        system_prompt=None,
        model=None,
        temperature=0.7,
        max_tokens=2000,
        api_key=None,
    ):
        self.calls.append({
            "prompt": prompt,
            "system_prompt": system_prompt,
            "model": model,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "api_key": api_key,
        })
        if self.error is not None:
            raise self.error
        if self.responses:
            return self.responses.pop(0)
        return self.default

    async def close(self):
        pass


class FakeMCPClient:
    """Stands in for the Agent Gateway's search and sandbox tools."""

    def __init__(self):
        self.search_results = [
            {"title": "Understanding Ownership", "url": "https://doc.rust-lang.org/book/ch04-01-what-is-ownership.html"},
            {"title": "Rust by Example", "url": "https://doc.rust-lang.org/rust-by-example/scope/move.html"},
        ]
        self.execution = {"output": "42\n", "error": ""}
        self.calls: List[Dict[str, Any]] = []

    async def search_web(self, query, count=10):
        self.calls.append({"tool": "brave_search", "query": query, "count": count})
        return list(self.search_results)

    async def execute_code(self, code, language="javascript"):
        self.calls.append({"tool": "execute_code", "code": code, "language": language})
        return dict(self.execution)

    async def close(self):
        pass


class SlowAction(Action):
    name = "slow"
    description = "Sleeps before answering"
    input_schema = {"delay": InputField(type="number", default=5)}

    async def execute(self, input, context, agent=None):
        await asyncio.sleep(input["delay"])
        return {"success": True}


@pytest.fixture
def llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def mcp() -> FakeMCPClient:
    return FakeMCPClient()


@pytest.fixture
def actions(llm, mcp) -> ActionRegistry:
    return create_action_registry(llm, mcp)


@pytest.fixture
def agents(actions) -> AgentRegistry:
    return AgentRegistry(actions)


@pytest.fixture
def slow_agents() -> AgentRegistry:
    return AgentRegistry(ActionRegistry([SlowAction()]))


@pytest.fixture
def context() -> WorkflowContext:
    return WorkflowContext(session_id="session-1", user_id="user-1", api_key="sk-test")


def make_definition(steps, agents=None, **kwargs) -> WorkflowDefinition:
    """Definition with one agent per built-in persona unless agents are given."""
    if agents is None:
        agents = [
            create_agent("researcher", "researcher"),
            create_agent("coder", "coder"),
            create_agent("writer", "writer"),
            create_agent("analyst", "analyst"),
        ]
    return WorkflowDefinition(
        agents=agents,
        steps=[s if isinstance(s, WorkflowStep) else WorkflowStep(**s) for s in steps],
        **kwargs,
    )
