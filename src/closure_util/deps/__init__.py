"""Closure dependency resolution package."""

from closure_util.deps.graph import DependencyGraph
from closure_util.deps.manager import Manager, ManagerConfig, ManagerState
from closure_util.deps.parser import ParsedSource, parse_source
from closure_util.deps.script import DeclaredDependency, Script, ScriptRole

__all__ = [
    "DeclaredDependency",
    "DependencyGraph",
    "Manager",
    "ManagerConfig",
    "ManagerState",
    "ParsedSource",
    "Script",
    "ScriptRole",
    "parse_source",
]
