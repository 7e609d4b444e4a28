"""
Built-in action handlers.

Search and code execution go through the Agent Gateway's MCP tools; the
text-producing actions call the LiteLLM proxy with the invoking agent's
model preferences.
"""

import json
import logging
import re
from types import MappingProxyType
from typing import Any, Dict, List, Optional

from ..models.agent import Agent
from ..models.context import WorkflowContext
from ..tools.llm_client import LLMClient
from ..tools.mcp_binding import MCPClient
from .base import Action, InputField
from .registry import ActionRegistry

logger = logging.getLogger(__name__)

CODE_FENCE = re.compile(r"```[\w+#.-]*\n(.*?)```", re.DOTALL)


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, indent=2, default=str)


class LLMAction(Action):
    """Base for actions answered by a single LLM completion."""

    def __init__(self, llm_client: LLMClient):
        self.llm_client = llm_client

    async def _complete(
        self,
        prompt: str,
        context: WorkflowContext,
        agent: Optional[Agent],
    ) -> str:
        kwargs: Dict[str, Any] = {"api_key": context.api_key}
        if agent is not None:
            kwargs["system_prompt"] = agent.system_prompt or None
            kwargs["model"] = agent.model_preference
            if agent.temperature is not None:
                kwargs["temperature"] = agent.temperature
            if agent.max_tokens is not None:
                kwargs["max_tokens"] = agent.max_tokens
        return await self.llm_client.complete(prompt, **kwargs)


class WebSearchAction(Action):
    name = "web_search"
    description = "Search the web for information on a topic"
    input_schema = MappingProxyType({
        "query": InputField(type="string", required=True),
        "max_results": InputField(type="number", default=5),
    })

    def __init__(self, mcp_client: MCPClient):
        self.mcp_client = mcp_client

    async def execute(self, input, context, agent=None):
        query = input["query"]
        max_results = input.get("max_results")
        if max_results is None:
            max_results = self.input_schema["max_results"].default
        max_results = int(max_results)
        results = await self.mcp_client.search_web(query, count=max_results)
        logger.info(f"web_search returned {len(results)} results for {query!r}")
        return {
            "success": True,
            "query": query,
            "results": results[:max_results],
        }


class SummarizeAction(LLMAction):
    name = "summarize"
    description = "Summarize text or data into key points"
    input_schema = MappingProxyType({
        "text": InputField(type="string", required=True),
        "max_length": InputField(type="number", default=500),
    })

    async def execute(self, input, context, agent=None):
        prompt = (
            f"Summarize the following text in {input.get('max_length', 500)} words or less:"
            f"\n\n{_as_text(input['text'])}"
        )
        summary = await self._complete(prompt, context, agent)
        return {"success": True, "summary": summary.strip()}


class GenerateCodeAction(LLMAction):
    name = "generate_code"
    description = "Generate code based on requirements"
    input_schema = MappingProxyType({
        "requirements": InputField(type="string", required=True),
        "language": InputField(type="string", default="javascript"),
    })

    async def execute(self, input, context, agent=None):
        language = input.get("language") or "javascript"
        prompt = (
            f"Generate {language} code for: {_as_text(input['requirements'])}\n\n"
            f"Return only the code in a single fenced code block."
        )
        text = await self._complete(prompt, context, agent)
        match = CODE_FENCE.search(text)
        code = match.group(1) if match else text
        return {"success": True, "code": code.strip(), "language": language}


class ExecuteCodeAction(Action):
    name = "execute_code"
    description = "Execute code and return the result"
    input_schema = MappingProxyType({
        "code": InputField(type="string", required=True),
        "language": InputField(type="string", default="javascript"),
    })

    def __init__(self, mcp_client: MCPClient):
        self.mcp_client = mcp_client

    async def execute(self, input, context, agent=None):
        result = await self.mcp_client.execute_code(
            input["code"],
            language=input.get("language") or "javascript",
        )
        error = result.get("error") or None
        return {
            "success": not error,
            "output": result.get("output", ""),
            "error": error,
        }


class WriteContentAction(LLMAction):
    name = "write_content"
    description = "Write content based on a topic and style"
    input_schema = MappingProxyType({
        "topic": InputField(type="string", required=True),
        "style": InputField(type="string", default="professional"),
        "length": InputField(type="number", default=500),
        "context": InputField(type="string", description="Source material to draw on"),
    })

    async def execute(self, input, context, agent=None):
        prompt = (
            f"Write a {input.get('style', 'professional')} article about "
            f"{_as_text(input['topic'])} (approximately {input.get('length', 500)} words)"
        )
        if input.get("context"):
            prompt += f"\n\nUse the following material:\n{_as_text(input['context'])}"
        content = await self._complete(prompt, context, agent)
        return {"success": True, "content": content.strip()}


class AnalyzeDataAction(LLMAction):
    name = "analyze_data"
    description = "Analyze a dataset and provide insights"
    input_schema = MappingProxyType({
        "data": InputField(type="any", required=True),
        "analysis_type": InputField(type="string", default="general"),
    })

    async def execute(self, input, context, agent=None):
        prompt = (
            f"Perform a {input.get('analysis_type', 'general')} analysis of the data below.\n"
            'Respond in JSON: {"insights": ["..."], "summary": "..."}\n\n'
            f"{_as_text(input['data'])}"
        )
        text = await self._complete(prompt, context, agent)
        insights, summary = self._parse(text)
        return {"success": True, "insights": insights, "summary": summary}

    @staticmethod
    def _parse(text: str):
        match = CODE_FENCE.search(text)
        body = match.group(1) if match else text
        try:
            parsed = json.loads(body)
        except ValueError:
            return [], text.strip()
        if not isinstance(parsed, dict):
            return [], text.strip()
        insights: List[str] = [str(i) for i in parsed.get("insights") or []]
        return insights, str(parsed.get("summary") or "")


class CustomAction(LLMAction):
    name = "custom_action"
    description = "Custom user-defined action"
    input_schema = MappingProxyType({
        "prompt": InputField(type="string", required=True),
    })

    async def execute(self, input, context, agent=None):
        result = await self._complete(_as_text(input["prompt"]), context, agent)
        return {"success": True, "result": result}


def create_action_registry(llm_client: LLMClient, mcp_client: MCPClient) -> ActionRegistry:
    """Build the registry of built-in actions bound to the given clients."""
    return ActionRegistry([
        WebSearchAction(mcp_client),
        SummarizeAction(llm_client),
        GenerateCodeAction(llm_client),
        ExecuteCodeAction(mcp_client),
        WriteContentAction(llm_client),
        AnalyzeDataAction(llm_client),
        CustomAction(llm_client),
    ])
