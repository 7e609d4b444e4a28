"""
Variable resolution for step input templates.

A reference token is ``{path}`` with a dotted path:

    {stepResults.step1.summary}   result of step ``step1``, field ``summary``
    {variables.topic}             run variable (``{input.topic}`` is an alias)
    {topic}                       variable ``topic``, else step result ``topic``
    {step1.summary}               step result ``step1``, else variable ``step1``

A string that is exactly one token resolves to the referenced value as-is;
tokens inside longer text are interpolated. Tokens that cannot be resolved
are left in place and reported, never raised.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from ..models.context import WorkflowContext
from ..models.workflow import ConditionType, StepCondition

logger = logging.getLogger(__name__)

TOKEN = re.compile(r"\{\s*([A-Za-z_][\w-]*(?:\.[\w-]+)*)\s*\}")

STEP_ROOTS = ("stepResults", "step_results")
VARIABLE_ROOTS = ("variables", "input")

# Typed inputs as stored by earlier versions of the workflow builder
TYPED_INPUT_TYPES = {"static", "variable", "user_input", "step_output"}
TYPED_INPUT_KEYS = {"type", "value", "variable_name", "variableName", "step_id", "stepId"}

_MISSING = object()


@dataclass(frozen=True)
class Reference:
    """An unresolved reference found in a template."""
    token: str
    path: str
    step_key: Optional[str] = None


@dataclass
class Resolution:
    value: Any
    unresolved: List[Reference] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.unresolved

    def step_keys(self) -> List[str]:
        return [ref.step_key for ref in self.unresolved if ref.step_key]

    def variable_names(self) -> List[str]:
        """Variable names the unresolved references may point at."""
        names = []
        for ref in self.unresolved:
            parts = ref.path.split(".")
            if parts[0] in STEP_ROOTS:
                continue
            if parts[0] in VARIABLE_ROOTS and len(parts) > 1:
                names.append(parts[1])
            else:
                names.append(parts[0])
        return names


def _traverse(value: Any, parts: List[str]) -> Any:
    for part in parts:
        if isinstance(value, dict) and part in value:
            value = value[part]
        elif isinstance(value, (list, tuple)) and part.isdigit() and int(part) < len(value):
            value = value[int(part)]
        else:
            return _MISSING
    return value


def _is_typed_input(value: dict) -> bool:
    return value.get("type") in TYPED_INPUT_TYPES and set(value) <= TYPED_INPUT_KEYS


class VariableResolver:
    """
    Resolves step input templates against a run context.

    Stateless; reads ``context.variables`` and ``context.step_results`` at
    call time so each step sees the latest state. Resolution is a single
    pass: substituted values are never resolved again.
    """

    def resolve(self, template: Any, context: WorkflowContext) -> Any:
        """Resolve ``template``, leaving unresolved references as literals."""
        return self.resolve_detailed(template, context).value

    def resolve_detailed(self, template: Any, context: WorkflowContext) -> Resolution:
        """Resolve ``template`` and report every reference left unresolved."""
        unresolved: List[Reference] = []
        value = self._walk(template, context, unresolved)
        return Resolution(value=value, unresolved=unresolved)

    def _lookup(self, path: str, context: WorkflowContext) -> Tuple[Any, Optional[str]]:
        """Return (value or _MISSING, key of the step the path points at)."""
        parts = path.split(".")
        root, rest = parts[0], parts[1:]

        if root in STEP_ROOTS and rest:
            key = rest[0]
            if key not in context.step_results:
                return _MISSING, key
            return _traverse(context.step_results[key], rest[1:]), key

        if root in VARIABLE_ROOTS and rest:
            name = rest[0]
            if name not in context.variables:
                return _MISSING, None
            return _traverse(context.variables[name], rest[1:]), None

        if not rest:
            if root in context.variables:
                return context.variables[root], None
            if root in context.step_results:
                return context.step_results[root], root
            return _MISSING, root

        if root in context.step_results:
            return _traverse(context.step_results[root], rest), root
        if root in context.variables:
            return _traverse(context.variables[root], rest), None
        return _MISSING, root

    def evaluate_condition(self, condition: StepCondition, context: WorkflowContext) -> bool:
        """Evaluate a step guard; unresolved left operands count as absent."""
        resolution = self.resolve_detailed(condition.left, context)
        left = resolution.value if resolution.complete else None
        right = condition.right
        kind = ConditionType(condition.type)

        if kind == ConditionType.EXISTS:
            return left is not None
        if kind == ConditionType.EQUALS:
            return left == right
        if kind == ConditionType.CONTAINS:
            if left is None:
                return False
            if isinstance(left, (list, tuple, set, dict)):
                try:
                    return right in left
                except TypeError:
                    return False
            return str(right) in str(left)
        try:
            if kind == ConditionType.GREATER_THAN:
                return float(left) > float(right)
            if kind == ConditionType.LESS_THAN:
                return float(left) < float(right)
        except (TypeError, ValueError):
            return False
        return False

    def _walk(self, value: Any, context: WorkflowContext, unresolved: List[Reference]) -> Any:
        if isinstance(value, str):
            return self._resolve_string(value, context, unresolved)
        if isinstance(value, dict):
            if _is_typed_input(value):
                return self._resolve_typed(value, context, unresolved)
            return {key: self._walk(item, context, unresolved) for key, item in value.items()}
        if isinstance(value, list):
            return [self._walk(item, context, unresolved) for item in value]
        if isinstance(value, tuple):
            return tuple(self._walk(item, context, unresolved) for item in value)
        return value

    def _resolve_string(self, text: str, context: WorkflowContext, unresolved: List[Reference]) -> Any:
        whole = TOKEN.fullmatch(text)
        if whole:
            found, step_key = self._lookup(whole.group(1), context)
            if found is _MISSING:
                unresolved.append(Reference(text, whole.group(1), step_key))
                return text
            return found

        def substitute(match: "re.Match[str]") -> str:
            found, step_key = self._lookup(match.group(1), context)
            if found is _MISSING:
                unresolved.append(Reference(match.group(0), match.group(1), step_key))
                return match.group(0)
            if isinstance(found, str):
                return found
            return json.dumps(found, default=str)

        return TOKEN.sub(substitute, text)

    def _resolve_typed(self, typed: dict, context: WorkflowContext, unresolved: List[Reference]) -> Any:
        kind = typed["type"]
        if kind == "static":
            return typed.get("value")

        if kind == "step_output":
            key = typed.get("step_id") or typed.get("stepId")
            if key and key in context.step_results:
                return context.step_results[key]
            unresolved.append(Reference(f"{{stepResults.{key}}}", f"stepResults.{key}", key))
            return typed

        name = typed.get("variable_name") or typed.get("variableName")
        if not name:
            return typed.get("value")
        if name in context.variables:
            return context.variables[name]
        unresolved.append(Reference(f"{{variables.{name}}}", f"variables.{name}"))
        return typed
