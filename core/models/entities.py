"""
Core graph models for the repository knowledge graph.

Defines entities (nodes), stored relationships (edges), and the
name-addressed relationships produced by structural extraction.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator


class EntityType(Enum):
    """Types of graph entities"""
    # Code entities
    FUNCTION = "function"
    CLASS = "class"
    METHOD = "method"
    PROPERTY = "property"
    INTERFACE = "interface"
    TYPE = "type"
    VARIABLE = "variable"
    MODULE = "module"
    FILE = "file"

    # Knowledge entities
    CONCEPT = "concept"
    TECHNOLOGY = "technology"
    PATTERN = "pattern"
    REQUIREMENT = "requirement"
    DOCUMENT = "document"
    SECTION = "section"
    DECISION = "decision"


class RelationshipType(Enum):
    """Structural relationship types produced by extractors"""
    IMPORTS = "imports"             # File imports a module
    EXPORTS = "exports"             # File exports a symbol
    CALLS = "calls"                 # Function calls another
    EXTENDS = "extends"             # Class extends another class
    IMPLEMENTS = "implements"       # Class implements an interface
    USES_TYPE = "uses_type"         # Signature references a type
    CONTAINS = "contains"           # Container holds a member
    INSTANTIATES = "instantiates"   # Code creates an instance
    REFERENCES = "references"       # General reference to a symbol


class GraphRelationshipType(Enum):
    """Relationship taxonomy used by semantic linking and impact discovery"""
    CONTAINS = "CONTAINS"
    CALLS = "CALLS"
    IMPORTS = "IMPORTS"
    IMPLEMENTS = "IMPLEMENTS"
    EXTENDS = "EXTENDS"
    MENTIONS = "MENTIONS"
    RELATES_TO = "RELATES_TO"
    DEPENDS_ON = "DEPENDS_ON"
    DEFINED_IN = "DEFINED_IN"
    USES = "USES"
    REFERENCES = "REFERENCES"
    DOCUMENTS = "DOCUMENTS"
    CONFIGURES = "CONFIGURES"
    TESTS = "TESTS"


# Metadata tag carried by edges created from embedding similarity
DISCOVERED_BY_KEY = "discoveredBy"
SEMANTIC_DISCOVERY = "semantic"


def relationship_tag(value: Any) -> str:
    """Normalize an enum member or plain string to a relationship tag"""
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


class Entity(BaseModel):
    """Graph node representing a code symbol, document section, or concept"""
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        use_enum_values=False
    )

    # Identification
    id: str
    type: EntityType
    name: str
    qualified_name: str

    # Content
    content: Optional[str] = None
    summary: Optional[str] = None

    # Location
    file_path: Optional[str] = None
    start_line: Optional[int] = None
    end_line: Optional[int] = None

    # Additional metadata
    metadata: Dict[str, Any] = Field(default_factory=dict)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @field_validator('id', 'name', 'qualified_name')
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        """Identifiers must not be blank"""
        if not v.strip():
            raise ValueError('Entity identifiers cannot be empty')
        return v

    @property
    def search_text(self) -> str:
        """Text used to seed similarity searches"""
        return self.summary or self.content or self.name


class Relationship(BaseModel):
    """Directed, typed, weighted edge between two stored entities"""
    model_config = ConfigDict(frozen=True)

    id: str
    source_id: str
    target_id: str
    relationship: str

    weight: float = Field(default=1.0, ge=0.0, le=1.0)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.now)

    @field_validator('relationship', mode='before')
    @classmethod
    def coerce_relationship(cls, v: Any) -> str:
        """Accept enum members as relationship tags"""
        return relationship_tag(v)

    @property
    def is_semantic(self) -> bool:
        """Whether the edge was created by similarity discovery"""
        return self.metadata.get(DISCOVERED_BY_KEY) == SEMANTIC_DISCOVERY


class ExtractedRelationship(BaseModel):
    """Relationship produced by structural extraction, addressed by name"""
    model_config = ConfigDict(frozen=True, use_enum_values=False)

    source: str
    source_type: str
    target: str
    target_type: Optional[str] = None

    type: RelationshipType
    weight: float = Field(default=1.0, ge=0.0, le=1.0)
    metadata: Dict[str, Any] = Field(default_factory=dict)
