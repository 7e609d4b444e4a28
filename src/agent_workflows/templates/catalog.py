"""
Catalog of built-in workflow templates.
"""

from types import MappingProxyType
from typing import List, Optional

from ..models.workflow import TemplateInfo, WorkflowDefinition
from . import analyze_and_visualize, code_and_test, research_and_report

_TEMPLATE_MODULES = (research_and_report, code_and_test, analyze_and_visualize)

TEMPLATES = MappingProxyType({module.NAME: module for module in _TEMPLATE_MODULES})

# Stored workflow ids use this prefix to address a template
TEMPLATE_ID_PREFIX = "template-"


def list_templates() -> List[TemplateInfo]:
    """Name, description and category of every template."""
    return [
        TemplateInfo(name=module.NAME, description=module.DESCRIPTION, category=module.CATEGORY)
        for module in TEMPLATES.values()
    ]


def get_template(name: str) -> Optional[WorkflowDefinition]:
    """
    Get a template by name.

    Returns a deep copy, so callers may merge input into it freely.
    """
    module = TEMPLATES.get(name)
    if module is None:
        return None
    return module.DEFINITION.model_copy(deep=True)


def template_name_from_id(workflow_id: str) -> Optional[str]:
    """Template name for a ``template-<name>`` id, else None."""
    if workflow_id.startswith(TEMPLATE_ID_PREFIX):
        return workflow_id[len(TEMPLATE_ID_PREFIX):]
    return None
