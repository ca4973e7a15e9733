"""
Result models for semantic relationship discovery.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from .entities import Entity, Relationship


class DiscoveryResult(BaseModel):
    """Totals from a batch discovery pass"""
    created: int = 0
    entities_processed: int = 0
    entities_skipped: int = 0
    warnings: List[str] = Field(default_factory=list)


class RelatedEntity(BaseModel):
    """Entity returned by a read-only similarity query"""
    model_config = ConfigDict(frozen=True)

    entity: Entity
    similarity: float


class SemanticLink(BaseModel):
    """Existing similarity edge together with the entity on the other end"""
    model_config = ConfigDict(frozen=True)

    relationship: Relationship
    entity: Optional[Entity] = None
    direction: str  # "in" or "out"


class LinkSuggestion(BaseModel):
    """Unlinked similar entity with a human-readable reason"""
    model_config = ConfigDict(frozen=True)

    entity: Entity
    similarity: float
    reason: str


class BatchLinkResult(BaseModel):
    """Totals from linking a list of entities"""
    total_created: int = 0
    entities_processed: int = 0
    warnings: List[str] = Field(default_factory=list)
