"""
Core data models for repo-graph

All Pydantic models for entities, parse results, hooks, impact reports,
linking results, operation outcomes, and configuration.
"""

from .entities import (
    Entity,
    EntityType,
    ExtractedRelationship,
    GraphRelationshipType,
    Relationship,
    RelationshipType,
)
from .parse import ParseResult, Symbol, ImportRecord, ImportSpecifier, Parameter
from .storage import OperationResult, OperationStatus
from .config import (
    EmbeddingConfig,
    GlobalSettings,
    HookConfig,
    LinkingConfig,
    ProjectConfig,
    QdrantConfig,
    Verbosity,
)
from .hooks import HookEvent, HookExecution, HookResult, HookType, InstallResult
from .impact import (
    AffectedDecision,
    AffectedEntity,
    ChangedFiles,
    ChangeType,
    ImpactReport,
    RelatedContext,
    RiskLevel,
)
from .linking import BatchLinkResult, DiscoveryResult, LinkSuggestion, RelatedEntity, SemanticLink

__all__ = [
    # Entities
    "Entity",
    "EntityType",
    "ExtractedRelationship",
    "GraphRelationshipType",
    "Relationship",
    "RelationshipType",

    # Parse results
    "ParseResult",
    "Symbol",
    "ImportRecord",
    "ImportSpecifier",
    "Parameter",

    # Outcomes
    "OperationResult",
    "OperationStatus",

    # Configuration
    "EmbeddingConfig",
    "GlobalSettings",
    "HookConfig",
    "LinkingConfig",
    "ProjectConfig",
    "QdrantConfig",
    "Verbosity",

    # Hooks
    "HookEvent",
    "HookExecution",
    "HookResult",
    "HookType",
    "InstallResult",

    # Impact
    "AffectedDecision",
    "AffectedEntity",
    "ChangedFiles",
    "ChangeType",
    "ImpactReport",
    "RelatedContext",
    "RiskLevel",

    # Linking
    "BatchLinkResult",
    "DiscoveryResult",
    "LinkSuggestion",
    "RelatedEntity",
    "SemanticLink",
]
