"""
Hook models for git lifecycle integration.

Covers the event handed to the dispatcher, the result it returns, and the
audit record written for every invocation.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import uuid4
from pydantic import BaseModel, Field, ConfigDict, field_validator


class HookType(Enum):
    """Git hooks handled by the dispatcher"""
    PRE_COMMIT = "pre-commit"
    POST_MERGE = "post-merge"
    PRE_PUSH = "pre-push"
    POST_CHECKOUT = "post-checkout"


class HookEvent(BaseModel):
    """Single git hook invocation"""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        use_enum_values=False
    )

    type: HookType
    timestamp: datetime = Field(default_factory=datetime.now)

    # Repository state
    repository: str
    current_branch: str = ""
    current_commit: str = ""
    previous_commit: Optional[str] = None

    # Files supplied by the caller; computed from git when absent
    staged_files: Optional[List[str]] = None
    merged_files: Optional[List[str]] = None

    @field_validator('repository')
    @classmethod
    def validate_repository(cls, v: str) -> str:
        """Repository path must be provided"""
        if not v:
            raise ValueError('Repository path cannot be empty')
        return v

    @property
    def is_branch_switch(self) -> bool:
        """post-checkout only: whether HEAD moved to another commit"""
        return bool(self.previous_commit) and self.previous_commit != self.current_commit


class HookResult(BaseModel):
    """Outcome of one hook invocation"""

    success: bool
    hook_type: HookType
    duration_ms: float = 0.0

    files_indexed: int = 0
    entities_updated: int = 0

    message: str = ""
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    @classmethod
    def failure(
        cls,
        hook_type: HookType,
        error: str,
        duration_ms: float = 0.0
    ) -> 'HookResult':
        """Create failed result from an unexpected error"""
        return cls(
            success=False,
            hook_type=hook_type,
            duration_ms=duration_ms,
            message=f"Hook failed: {error}",
            errors=[error]
        )


class HookExecution(BaseModel):
    """Audit record of one hook invocation, never mutated after creation"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    project_id: str
    hook_type: HookType
    timestamp: datetime = Field(default_factory=datetime.now)

    repository: str
    branch: str = ""
    commit_hash: str = ""

    duration_ms: float = 0.0
    success: bool
    files_indexed: int = 0
    entities_updated: int = 0

    message: str = ""
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)

    @classmethod
    def from_result(
        cls,
        project_id: str,
        event: HookEvent,
        result: HookResult
    ) -> 'HookExecution':
        """Build the audit row for an event and its result"""
        return cls(
            project_id=project_id,
            hook_type=event.type,
            timestamp=event.timestamp,
            repository=event.repository,
            branch=event.current_branch,
            commit_hash=event.current_commit,
            duration_ms=result.duration_ms,
            success=result.success,
            files_indexed=result.files_indexed,
            entities_updated=result.entities_updated,
            message=result.message,
            warnings=list(result.warnings),
            errors=list(result.errors)
        )


class InstallResult(BaseModel):
    """Outcome of installing or removing hook shims"""

    installed: List[HookType] = Field(default_factory=list)
    removed: List[HookType] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    hooks_dir: str = ""

    @property
    def changed(self) -> bool:
        return bool(self.installed or self.removed)
