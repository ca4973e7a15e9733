"""
Change impact analysis for repo-graph.
"""

from .analyzer import ImpactAnalyzer, assess_risk, generate_suggestions
from .git import GitCommandError, get_changed_files, parse_name_status, run_git
from .tool_client import HttpToolClient, ToolCallError, ToolClientProtocol

__all__ = [
    "ImpactAnalyzer",
    "assess_risk",
    "generate_suggestions",
    "GitCommandError",
    "get_changed_files",
    "parse_name_status",
    "run_git",
    "HttpToolClient",
    "ToolCallError",
    "ToolClientProtocol"
]
