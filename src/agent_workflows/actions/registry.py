"""
Registry of invocable actions.
"""

import logging
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Union

from ..errors import ActionNotFoundError
from ..models.agent import Agent
from ..models.context import WorkflowContext
from .base import Action

logger = logging.getLogger(__name__)


class ValidationResult(NamedTuple):
    valid: bool
    errors: List[str]


class ActionRegistry:
    """
    Immutable name -> action table.

    Built once at startup and shared by every run; lookups of unknown
    names raise ``ActionNotFoundError``.
    """

    def __init__(self, actions: Iterable[Action] = ()):
        table: Dict[str, Action] = {}
        for action in actions:
            if action.name in table:
                raise ValueError(f"Duplicate action name: {action.name}")
            table[action.name] = action
        self._actions = MappingProxyType(table)
        logger.debug(f"Action registry built with {len(table)} actions")

    def __contains__(self, name: object) -> bool:
        return name in self._actions

    def __len__(self) -> int:
        return len(self._actions)

    def get(self, name: str) -> Action:
        """Look up an action by name."""
        action = self._actions.get(name)
        if action is None:
            raise ActionNotFoundError(name)
        return action

    def find(self, name: str) -> Optional[Action]:
        return self._actions.get(name)

    def names(self) -> List[str]:
        return list(self._actions)

    def list_actions(self) -> List[Dict[str, Any]]:
        return [action.describe() for action in self._actions.values()]

    @staticmethod
    def validate_input(action: Action, input: Any) -> ValidationResult:
        """
        Check that every required schema field is present.

        Only presence is checked; values are not type-checked.
        """
        errors = []
        present = input if isinstance(input, dict) else {}
        for key in action.required_fields:
            if key not in present:
                errors.append(f"Missing required field: {key}")
        return ValidationResult(valid=not errors, errors=errors)

    @staticmethod
    def apply_defaults(action: Action, input: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of ``input`` with schema defaults filled in."""
        merged = dict(input)
        for key, spec in action.input_schema.items():
            if key not in merged and spec.default is not None:
                merged[key] = spec.default
        return merged

    async def execute(
        self,
        action: Union[Action, str],
        input: Dict[str, Any],
        context: WorkflowContext,
        agent: Optional[Agent] = None,
    ) -> Any:
        """
        Invoke an action's handler.

        The registry does not retry; a handler failure propagates to the caller.
        """
        if isinstance(action, str):
            action = self.get(action)
        return await action.execute(self.apply_defaults(action, input), context, agent)
