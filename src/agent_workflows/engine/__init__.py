"""
Workflow execution engine and variable resolution.
"""

from .resolver import VariableResolver, Resolution, Reference
from .executor import WorkflowEngine

__all__ = ["VariableResolver", "Resolution", "Reference", "WorkflowEngine"]
