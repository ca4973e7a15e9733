"""
Embedding providers and similarity search for repo-graph.
"""

from .base import (
    BaseEmbedder,
    EmbeddingResponse,
    SimilarityIndexProtocol,
    SimilarityMatch,
    SimilaritySearchProtocol
)
from .sentence_transformer import SentenceTransformerEmbedder

__all__ = [
    "BaseEmbedder",
    "EmbeddingResponse",
    "SimilarityIndexProtocol",
    "SimilarityMatch",
    "SimilaritySearchProtocol",
    "SentenceTransformerEmbedder"
]
