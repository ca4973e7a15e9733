"""
repo-graph core package

Knowledge graph over a source repository: structural relationship
extraction, semantic linking, and git change impact analysis.
"""

__version__ = "1.0.0"

from .models import Entity, EntityType, Relationship, RelationshipType, ProjectConfig

__all__ = [
    "Entity",
    "EntityType",
    "Relationship",
    "RelationshipType",
    "ProjectConfig"
]
