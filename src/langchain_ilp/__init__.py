"""LangChain tools for multi-objective ILP solving."""

from .tools import create_solve_tool, create_validate_polyhedron_tool

__all__ = [
	"create_solve_tool",
	"create_validate_polyhedron_tool",
]
