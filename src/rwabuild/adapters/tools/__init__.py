# src/rwabuild/adapters/tools/__init__.py
"""
Tool Invocation Boundary

Files that USE this module:
- rwabuild.app (ToolRegistry)
"""

from rwabuild.adapters.tools.registry import Tool, ToolRegistry, default_tools

__all__ = ["Tool", "ToolRegistry", "default_tools"]
