"""
Storage package for repo-graph.

SQLite graph and hook persistence plus the Qdrant similarity index.
"""

from .database import Database
from .graph_store import GraphStoreProtocol, SQLiteGraphStore
from .hook_store import HookStore
from .vector_index import QdrantSimilarityIndex

__all__ = [
    "Database",
    "GraphStoreProtocol",
    "SQLiteGraphStore",
    "HookStore",
    "QdrantSimilarityIndex"
]
