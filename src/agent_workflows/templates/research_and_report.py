"""
Research and Report Template

Researches a topic on the web, condenses the findings and writes a report.

Flow:
    web_search (researcher) → summarize (researcher) → write_content (writer)

Input:
    topic: subject to research
"""

from ..agents.registry import create_agent
from ..models.agent import AgentType
from ..models.workflow import WorkflowDefinition, WorkflowStep

NAME = "research-and-report"
DESCRIPTION = "Research a topic, summarize findings, and write a comprehensive report"
CATEGORY = "Research"

DEFINITION = WorkflowDefinition(
    name=NAME,
    description=DESCRIPTION,
    agents=[
        create_agent(AgentType.RESEARCHER, "researcher-1", {
            "description": "Web search and data gathering",
            "capabilities": ["web_search", "summarize"],
        }),
        create_agent(AgentType.WRITER, "writer-1", {
            "description": "Report writing",
            "capabilities": ["write_content"],
        }),
    ],
    steps=[
        WorkflowStep(
            id="step1",
            agent_id="researcher-1",
            action_name="web_search",
            input={"query": "{topic}"},
            output="search_results",
        ),
        WorkflowStep(
            id="step2",
            agent_id="researcher-1",
            action_name="summarize",
            input={"text": "{step1.results}"},
            output="summary",
        ),
        WorkflowStep(
            id="step3",
            agent_id="writer-1",
            action_name="write_content",
            input={"topic": "{topic}", "context": "{step2.summary}"},
            output="report",
        ),
    ],
    output=["report", "summary", "search_results"],
)
