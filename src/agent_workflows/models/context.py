"""
Run-scoped workflow context.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..errors import ContextInUseError


@dataclass
class WorkflowContext:
    """
    Mutable state owned by exactly one run.

    ``variables`` is seeded from the definition input and may be written by
    steps; ``step_results`` maps step keys to results in execution order.
    """

    session_id: Optional[str] = None
    user_id: Optional[str] = None
    variables: Dict[str, Any] = field(default_factory=dict)
    step_results: Dict[str, Any] = field(default_factory=dict)
    api_key: Optional[str] = field(default=None, repr=False)
    _owner: Optional[object] = field(default=None, repr=False, compare=False)

    @property
    def in_use(self) -> bool:
        return self._owner is not None

    def claim(self, owner: object) -> None:
        """Take exclusive ownership for the duration of a run."""
        if self._owner is not None and self._owner is not owner:
            raise ContextInUseError("Workflow context is already owned by a running workflow")
        self._owner = owner

    def release(self, owner: object) -> None:
        if self._owner is owner:
            self._owner = None
