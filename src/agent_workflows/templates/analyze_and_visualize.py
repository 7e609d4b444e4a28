"""
Analyze and Visualize Template

Analyzes a dataset and turns the findings into a short summary.

Flow:
    analyze_data (analyst) → summarize (writer)

Input:
    data: dataset to analyze (any JSON value)
"""

from ..agents.registry import create_agent
from ..models.agent import AgentType
from ..models.workflow import WorkflowDefinition, WorkflowStep

NAME = "analyze-and-visualize"
DESCRIPTION = "Analyze data, find insights, and create a summary report"
CATEGORY = "Analysis"

DEFINITION = WorkflowDefinition(
    name=NAME,
    description=DESCRIPTION,
    agents=[
        create_agent(AgentType.ANALYST, "analyst-1", {
            "description": "Data analysis",
            "capabilities": ["analyze_data"],
        }),
        create_agent(AgentType.WRITER, "writer-1", {
            "description": "Report writing",
            "capabilities": ["write_content", "summarize"],
        }),
    ],
    steps=[
        WorkflowStep(
            id="step1",
            agent_id="analyst-1",
            action_name="analyze_data",
            input={"data": "{data}"},
            output="analysis",
        ),
        WorkflowStep(
            id="step2",
            agent_id="writer-1",
            action_name="summarize",
            input={"text": "{step1}"},
            output="summary",
        ),
    ],
    output=["analysis", "summary"],
)
