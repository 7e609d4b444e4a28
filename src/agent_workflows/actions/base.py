"""
Action interface and input schema types.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from ..models.agent import Agent
from ..models.context import WorkflowContext


@dataclass(frozen=True)
class InputField:
    """Schema entry for one action input field."""
    type: str = "string"
    required: bool = False
    default: Any = None
    description: str = ""


class Action(ABC):
    """
    A named async capability with an input schema.

    Actions are stateless and shared read-only across all runs. Remote
    clients are bound at construction; per-run data arrives through
    ``input`` and ``context``.
    """

    name: str = ""
    description: str = ""
    input_schema: Mapping[str, InputField] = MappingProxyType({})

    @abstractmethod
    async def execute(
        self,
        input: Dict[str, Any],
        context: WorkflowContext,
        agent: Optional[Agent] = None,
    ) -> Any:
        """
        Run the action.

        Args:
            input: Resolved input with schema defaults applied
            context: Run context (credentials, session identity)
            agent: Agent invoking the action, for model parameters

        Returns:
            Action result
        """

    @property
    def required_fields(self):
        return [key for key, spec in self.input_schema.items() if spec.required]

    def describe(self) -> Dict[str, Any]:
        """Catalog view of the action."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": {
                key: {
                    "type": spec.type,
                    "required": spec.required,
                    "default": spec.default,
                }
                for key, spec in self.input_schema.items()
            },
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
