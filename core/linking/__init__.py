"""
Semantic linking for repo-graph.
"""

from .semantic_linker import SemanticLinker, similarity_band

__all__ = ["SemanticLinker", "similarity_band"]
