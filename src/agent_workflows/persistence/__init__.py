"""
Persistence layer for stored workflows and runs.
"""

from .repository import WorkflowRepository

__all__ = ["WorkflowRepository"]
