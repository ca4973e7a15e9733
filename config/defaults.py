"""
Default configuration values for repo-graph.

Centralized defaults that can be overridden by environment variables or config files.
"""

from typing import Any, Dict

# Global default settings
DEFAULT_SETTINGS = {
    # Git hook behavior
    "hooks": {
        "enable_pre_commit": True,
        "enable_post_merge": True,
        "enable_pre_push": False,
        "enable_post_checkout": False,
        "index_on_commit": True,
        "sync_on_merge": True,
        "validate_on_push": False,
        "generate_impact_report": True,
        "max_files_to_index": 100,
        "timeout_ms": 10000,
        "async_mode": False,
        "server_url": "http://localhost:3000",
        "project_id": "${project_name}",
        "verbosity": "normal",
        "notify_on_error": True
    },

    # Semantic linking
    "linking": {
        "relationship_type": "RELATES_TO",
        "min_similarity": 0.75,
        "max_links_per_entity": 5,
        "prune_below": 0.6,
        "entity_types": ["function", "class", "requirement", "concept", "document"]
    },

    # Qdrant configuration
    "qdrant": {
        "url": "http://localhost:6333",
        "timeout": 60.0,
        "collection_name": "${project_name}-entities",
        "vector_size": 384,
        "distance_metric": "cosine"
    },

    # Sentence-transformers embeddings
    "embeddings": {
        "model_name": "sentence-transformers/all-MiniLM-L6-v2",
        "dimensions": 384,
        "device": None,  # Auto-detect
        "batch_size": 32,
        "normalize_embeddings": True
    },

    # Project defaults
    "project": {
        "version": "1.0.0",
        "database_path": ".repo-graph/graph.db"
    },

    # Logging
    "logging": {
        "level": "INFO",
        "log_to_file": False
    }
}

# Environment variable mappings
ENV_VAR_MAPPING = {
    'REPO_GRAPH_SERVER_URL': 'hooks.server_url',
    'REPO_GRAPH_PROJECT_ID': 'hooks.project_id',
    'REPO_GRAPH_VERBOSITY': 'hooks.verbosity',
    'REPO_GRAPH_MAX_FILES_TO_INDEX': 'hooks.max_files_to_index',
    'REPO_GRAPH_MIN_SIMILARITY': 'linking.min_similarity',
    'REPO_GRAPH_QDRANT_URL': 'qdrant.url',
    'REPO_GRAPH_QDRANT_TIMEOUT': 'qdrant.timeout',
    'REPO_GRAPH_EMBEDDING_MODEL': 'embeddings.model_name',
    'REPO_GRAPH_EMBEDDING_DEVICE': 'embeddings.device',
    'REPO_GRAPH_DATABASE_PATH': 'database_path'
}


def get_default_project_config() -> Dict[str, Any]:
    """Get default project configuration template"""
    return {
        'name': '${project_name}',
        'path': '${project_path}',
        'database_path': DEFAULT_SETTINGS['project']['database_path'],
        'hooks': dict(DEFAULT_SETTINGS['hooks']),
        'linking': dict(DEFAULT_SETTINGS['linking']),
        'qdrant': dict(DEFAULT_SETTINGS['qdrant']),
        'embeddings': dict(DEFAULT_SETTINGS['embeddings']),
        'description': None,
        'version': DEFAULT_SETTINGS['project']['version']
    }
