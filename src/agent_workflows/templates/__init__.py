"""
Pre-built workflow templates.
"""

from .catalog import (
    TEMPLATES,
    TEMPLATE_ID_PREFIX,
    list_templates,
    get_template,
    template_name_from_id,
)

__all__ = [
    "TEMPLATES",
    "TEMPLATE_ID_PREFIX",
    "list_templates",
    "get_template",
    "template_name_from_id",
]
