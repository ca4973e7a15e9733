"""
Impact analysis models.

An ImpactReport is an immutable snapshot of what a branch or commit range
touches: changed files, graph entities defined in them, recorded decisions
that mention them, and the resulting risk classification.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class RiskLevel(Enum):
    """Risk classification of a change set"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ChangeType(Enum):
    """How an affected entity was touched"""
    MODIFIED = "modified"
    DELETED = "deleted"
    SIGNATURE_CHANGED = "signature-changed"


class ChangedFiles(BaseModel):
    """Files changed between two refs, grouped by status"""
    added: List[str] = Field(default_factory=list)
    modified: List[str] = Field(default_factory=list)
    deleted: List[str] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.added) + len(self.modified) + len(self.deleted)

    @property
    def all_files(self) -> List[str]:
        """Added, modified, then deleted paths"""
        return [*self.added, *self.modified, *self.deleted]

    @property
    def is_empty(self) -> bool:
        return self.total == 0


class AffectedEntity(BaseModel):
    """Graph entity defined in a modified or deleted file"""
    model_config = ConfigDict(frozen=True)

    entity_id: str
    name: str
    type: str
    file_path: str
    change_type: ChangeType = ChangeType.MODIFIED
    usage_count: int = 0


class AffectedDecision(BaseModel):
    """Recorded decision whose text mentions a changed file"""
    model_config = ConfigDict(frozen=True)

    decision_id: str
    summary: str
    related_files: List[str] = Field(default_factory=list)
    might_be_invalidated: bool = False


class RelatedContext(BaseModel):
    """Context snippet useful when reviewing the change"""
    model_config = ConfigDict(frozen=True)

    title: str
    summary: str = ""
    relevance_score: float = 0.0
    file_paths: List[str] = Field(default_factory=list)


class ImpactReport(BaseModel):
    """Computed, immutable change impact snapshot"""
    model_config = ConfigDict(frozen=True, use_enum_values=False)

    generated_at: datetime = Field(default_factory=datetime.now)
    base_branch: str
    target_branch: str
    commit_range: Optional[str] = None

    # Changed files summary
    files_added: List[str] = Field(default_factory=list)
    files_modified: List[str] = Field(default_factory=list)
    files_deleted: List[str] = Field(default_factory=list)

    # Impact analysis
    affected_entities: List[AffectedEntity] = Field(default_factory=list)
    affected_decisions: List[AffectedDecision] = Field(default_factory=list)
    related_contexts: List[RelatedContext] = Field(default_factory=list)

    # Risk indicators
    risk_level: RiskLevel = RiskLevel.LOW
    reasons: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)

    # Enrichment lookups that failed without aborting the report
    warnings: List[str] = Field(default_factory=list)

    @property
    def total_files_changed(self) -> int:
        return len(self.files_added) + len(self.files_modified) + len(self.files_deleted)

    @property
    def changed_files(self) -> ChangedFiles:
        return ChangedFiles(
            added=list(self.files_added),
            modified=list(self.files_modified),
            deleted=list(self.files_deleted)
        )
