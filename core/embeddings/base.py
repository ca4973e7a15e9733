"""
Embedding and similarity-search interfaces for repo-graph.

BaseEmbedder is the abstract provider turning text into vectors.
SimilaritySearchProtocol is the capability the semantic linker consumes:
embed text, and find stored entities similar to a piece of text.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable
import asyncio

from ..models.entities import Entity
from ..models.storage import OperationResult


@dataclass
class EmbeddingResponse:
    """Response containing generated embeddings"""
    embeddings: List[List[float]]
    processing_time_ms: float
    model_info: Optional[Dict[str, Any]] = None

    @property
    def embedding_count(self) -> int:
        """Get number of embeddings generated"""
        return len(self.embeddings)


@dataclass(frozen=True)
class SimilarityMatch:
    """Stored entity ranked by similarity to a query"""
    entity_id: str
    score: float
    entity_type: Optional[str] = None


@runtime_checkable
class SimilaritySearchProtocol(Protocol):
    """Capability used by semantic linking"""

    async def embed(self, text: str) -> List[float]:
        """Embed a single text"""
        ...

    async def find_similar(
        self,
        text: str,
        limit: int = 10,
        threshold: float = 0.0,
        entity_types: Optional[Sequence[str]] = None
    ) -> List[SimilarityMatch]:
        """Entities whose score is at least threshold, best first"""
        ...


@runtime_checkable
class SimilarityIndexProtocol(SimilaritySearchProtocol, Protocol):
    """Similarity search that can also take in graph entities"""

    async def index_entities(self, entities: Sequence[Entity]) -> OperationResult[int]:
        """Embed and store entities so they can be found"""
        ...


class BaseEmbedder(ABC):
    """Abstract base class for embedding providers"""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self._model = None
        self._is_loaded = False
        self._load_time: Optional[datetime] = None

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Get the name of the embedding model"""
        pass

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Get the dimensionality of the embeddings"""
        pass

    @property
    def is_loaded(self) -> bool:
        """Check if the model is loaded and ready"""
        return self._is_loaded and self._model is not None

    @abstractmethod
    async def load_model(self) -> bool:
        """Load the embedding model"""
        pass

    @abstractmethod
    async def unload_model(self) -> None:
        """Unload the embedding model to free memory"""
        pass

    @abstractmethod
    async def _generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        """Internal method to generate embeddings"""
        pass

    async def embed_texts(self, texts: List[str]) -> EmbeddingResponse:
        """Generate embeddings for a list of texts"""
        if not self.is_loaded:
            loaded = await self.load_model()
            if not loaded:
                raise RuntimeError(f"Embedding model {self.model_name} could not be loaded")

        if not texts:
            return EmbeddingResponse(embeddings=[], processing_time_ms=0.0)

        loop = asyncio.get_running_loop()
        start_time = loop.time()

        try:
            embeddings = await self._generate_embeddings(texts)
        except Exception as e:
            raise RuntimeError(f"Embedding generation failed: {e}") from e

        return EmbeddingResponse(
            embeddings=embeddings,
            processing_time_ms=(loop.time() - start_time) * 1000,
            model_info=self.get_model_info()
        )

    async def embed_single(self, text: str) -> List[float]:
        """Generate embedding for a single text"""
        if not text.strip():
            # Return zero vector for empty text
            return [0.0] * self.dimensions

        response = await self.embed_texts([text])
        if response.embeddings:
            return response.embeddings[0]
        raise RuntimeError("Failed to generate embedding for single text")

    def get_model_info(self) -> Dict[str, Any]:
        """Get information about the model"""
        return {
            "model_name": self.model_name,
            "dimensions": self.dimensions,
            "is_loaded": self.is_loaded,
            "load_time": self._load_time.isoformat() if self._load_time else None
        }
