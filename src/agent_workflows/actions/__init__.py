"""
Action registry and built-in action handlers.
"""

from .base import Action, InputField
from .registry import ActionRegistry, ValidationResult
from .handlers import (
    WebSearchAction,
    SummarizeAction,
    GenerateCodeAction,
    ExecuteCodeAction,
    WriteContentAction,
    AnalyzeDataAction,
    CustomAction,
    create_action_registry,
)

__all__ = [
    "Action",
    "InputField",
    "ActionRegistry",
    "ValidationResult",
    "WebSearchAction",
    "SummarizeAction",
    "GenerateCodeAction",
    "ExecuteCodeAction",
    "WriteContentAction",
    "AnalyzeDataAction",
    "CustomAction",
    "create_action_registry",
]
