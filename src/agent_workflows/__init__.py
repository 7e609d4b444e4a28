"""
Agent Workflows

Sequential multi-agent workflow orchestration: agents bound to actions,
steps wired together through variable references, and a service that runs
stored workflows and pre-built templates.
"""

__version__ = "1.0.0"
