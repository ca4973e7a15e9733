"""
Configuration models for repo-graph.

Handles project settings, git hook behavior, semantic linking thresholds,
and the Qdrant and embedding setup behind similarity search.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


CONFIG_DIR_NAME = ".repo-graph"


class Verbosity(Enum):
    """Console verbosity for hook output"""
    SILENT = "silent"
    NORMAL = "normal"
    VERBOSE = "verbose"


class HookConfig(BaseModel):
    """Per-project git hook behavior"""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        use_enum_values=False,
        coerce_numbers_to_str=True
    )

    # Which hooks are installed
    enable_pre_commit: bool = True
    enable_post_merge: bool = True
    enable_pre_push: bool = False
    enable_post_checkout: bool = False

    # Behavior flags
    index_on_commit: bool = True
    sync_on_merge: bool = True
    validate_on_push: bool = False
    generate_impact_report: bool = True

    # Limits
    max_files_to_index: int = Field(default=100, ge=1)
    timeout_ms: int = Field(default=10000, ge=100)
    async_mode: bool = False

    # Tool server
    server_url: str = "http://localhost:3000"
    project_id: str = ""

    # Output
    verbosity: Verbosity = Verbosity.NORMAL
    notify_on_error: bool = True

    @field_validator('server_url')
    @classmethod
    def validate_server_url(cls, v: str) -> str:
        """Validate tool server URL format"""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('Server URL must start with http:// or https://')
        return v.rstrip('/')

    def is_enabled(self, hook_name: str) -> bool:
        """Check the enable flag for a hook name such as 'pre-commit'"""
        return bool(getattr(self, f"enable_{hook_name.replace('-', '_')}", False))

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0


class LinkingConfig(BaseModel):
    """Semantic linking thresholds"""
    model_config = ConfigDict(validate_assignment=True)

    relationship_type: str = "RELATES_TO"
    min_similarity: float = Field(default=0.75, ge=0.0, le=1.0)
    max_links_per_entity: int = Field(default=5, ge=1, le=100)
    prune_below: float = Field(default=0.6, ge=0.0, le=1.0)
    entity_types: List[str] = Field(
        default_factory=lambda: ["function", "class", "requirement", "concept", "document"]
    )


class QdrantConfig(BaseModel):
    """Qdrant vector database configuration"""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True
    )

    # Connection settings
    url: str = "http://localhost:6333"
    api_key: Optional[str] = None
    timeout: float = 60.0

    # Collection settings
    collection_name: str = "repo-graph-entities"
    vector_size: int = 384
    distance_metric: str = "cosine"

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate Qdrant URL format"""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('Qdrant URL must start with http:// or https://')
        return v.rstrip('/')

    @field_validator('distance_metric')
    @classmethod
    def validate_distance_metric(cls, v: str) -> str:
        """Validate distance metric"""
        valid_metrics = {'cosine', 'euclidean', 'dot'}
        if v.lower() not in valid_metrics:
            raise ValueError(f'Distance metric must be one of: {valid_metrics}')
        return v.lower()

    def get_collection_name(self, project_name: str) -> str:
        """Collection holding entity vectors for a project"""
        safe_project = project_name.lower().replace(' ', '-').replace('_', '-')
        return f"{safe_project}-entities"


class EmbeddingConfig(BaseModel):
    """Sentence-transformers embedding configuration"""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True
    )

    model_name: str = "sentence-transformers/all-MiniLM-L6-v2"
    dimensions: int = Field(default=384, ge=1)

    cache_dir: Optional[Path] = None
    device: Optional[str] = None  # Auto-detect if None (cuda, mps, cpu)
    batch_size: int = Field(default=32, ge=1, le=512)
    normalize_embeddings: bool = True

    def get_device(self) -> str:
        """Auto-detect or return configured device"""
        if self.device:
            return self.device

        import torch
        if torch.cuda.is_available():
            return "cuda"
        elif hasattr(torch.backends, 'mps') and torch.backends.mps.is_available():
            return "mps"
        return "cpu"


class ProjectConfig(BaseModel):
    """Project-specific configuration with validation"""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        use_enum_values=False
    )

    # Project identification
    name: str
    path: Path

    # Graph database (relative paths resolve against the project)
    database_path: Path = Path(CONFIG_DIR_NAME) / "graph.db"

    # Component configurations
    hooks: HookConfig = Field(default_factory=HookConfig)
    linking: LinkingConfig = Field(default_factory=LinkingConfig)
    qdrant: QdrantConfig = Field(default_factory=QdrantConfig)
    embeddings: EmbeddingConfig = Field(default_factory=EmbeddingConfig)

    description: Optional[str] = None
    version: str = "1.0.0"

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate project name"""
        if not v or not v.replace('-', '').replace('_', '').replace(' ', '').replace('.', '').isalnum():
            raise ValueError('Project name must be alphanumeric with dashes, underscores, or spaces')
        return v.strip()

    @field_validator('path')
    @classmethod
    def validate_path(cls, v: Path) -> Path:
        """Validate project path exists"""
        if not v.exists():
            raise ValueError(f'Project path does not exist: {v}')
        if not v.is_dir():
            raise ValueError(f'Project path is not a directory: {v}')
        return v.resolve()

    @property
    def project_id(self) -> str:
        """Identifier used for tool calls and audit rows"""
        return self.hooks.project_id or self.name

    def get_config_dir(self) -> Path:
        """Get project configuration directory"""
        config_dir = self.path / CONFIG_DIR_NAME
        config_dir.mkdir(exist_ok=True)
        return config_dir

    def get_config_file(self) -> Path:
        """Get project configuration file path"""
        return self.get_config_dir() / "config.json"

    def get_database_path(self) -> Path:
        """Absolute path of the SQLite graph database"""
        if self.database_path.is_absolute():
            return self.database_path
        return self.path / self.database_path

    @property
    def is_initialized(self) -> bool:
        """Check if project is properly initialized"""
        return (self.path / CONFIG_DIR_NAME / "config.json").exists()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProjectConfig':
        """Create from dictionary"""
        return cls.model_validate(data)


class GlobalSettings(BaseSettings):
    """Global application settings with environment variable support"""
    model_config = SettingsConfigDict(
        env_prefix="REPO_GRAPH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Defaults applied to new projects
    default_server_url: str = "http://localhost:3000"
    default_qdrant_url: str = "http://localhost:6333"
    default_embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"

    global_config_dir: Path = Field(
        default_factory=lambda: Path.home() / CONFIG_DIR_NAME
    )

    # Logging
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    log_to_file: bool = False

    def get_log_file(self) -> Optional[Path]:
        """Get log file path if logging to file is enabled"""
        if not self.log_to_file:
            return None
        log_dir = self.global_config_dir / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        return log_dir / "repo-graph.log"
