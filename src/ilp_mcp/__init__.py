"""ilp-mcp package.

Provides an MCP server that lets LLMs submit integer polyhedra with a batch of
linear objectives and solve them with the configured ILP engine.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
