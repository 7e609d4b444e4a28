"""
HTTP API for agent workflows.
"""

from .routes import router, set_dependencies

__all__ = ["router", "set_dependencies"]
