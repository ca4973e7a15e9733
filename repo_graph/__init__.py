"""
repo-graph - Code knowledge graph maintenance for git repositories.

Extracts structural relationships from parse results, links entities by
embedding similarity, analyzes change impact, and keeps the graph in sync
through git hooks.
"""

__version__ = "1.0.0"

# Package imports for convenient access
from core.models.entities import Entity, EntityType, Relationship, RelationshipType
from core.models.config import ProjectConfig, HookConfig
from core.models.hooks import HookEvent, HookResult, HookType
from core.models.impact import ImpactReport, RiskLevel

__all__ = [
    "Entity",
    "EntityType",
    "Relationship",
    "RelationshipType",
    "ProjectConfig",
    "HookConfig",
    "HookEvent",
    "HookResult",
    "HookType",
    "ImpactReport",
    "RiskLevel",
    "__version__",
]
