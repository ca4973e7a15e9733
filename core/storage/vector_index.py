"""
Qdrant-backed similarity index over graph entities.

Implements SimilaritySearchProtocol for the semantic linker: entity texts
are embedded with a BaseEmbedder and stored as Qdrant points whose payload
carries the entity id and type.
"""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Sequence

from qdrant_client import QdrantClient
from qdrant_client.models import (
    Distance, FieldCondition, Filter, MatchAny, PointIdsList, PointStruct, VectorParams
)

from .utils import entity_id_to_qdrant_id
from ..embeddings.base import BaseEmbedder, SimilarityMatch
from ..models.config import QdrantConfig
from ..models.entities import Entity
from ..models.storage import OperationResult

logger = logging.getLogger(__name__)

_DISTANCES = {
    "cosine": Distance.COSINE,
    "euclidean": Distance.EUCLID,
    "dot": Distance.DOT
}


class QdrantSimilarityIndex:
    """
    Similarity search over entity embeddings stored in Qdrant.

    Features:
    - Lazy collection creation sized from the embedder
    - Entity-type filtering pushed down to Qdrant payload filters
    - Score thresholds applied server-side
    """

    def __init__(
        self,
        config: Optional[QdrantConfig] = None,
        embedder: Optional[BaseEmbedder] = None,
        collection_name: Optional[str] = None,
        client: Optional[QdrantClient] = None
    ):
        """
        Initialize the index.

        Args:
            config: Qdrant connection and collection settings
            embedder: Embedder used for both indexing and queries
            collection_name: Overrides config.collection_name
            client: Preconfigured QdrantClient (created from config if None)
        """
        self.config = config or QdrantConfig()
        self.embedder = embedder
        self.collection_name = collection_name or self.config.collection_name
        self._client = client
        self._collection_ready = False
        self._collection_lock = asyncio.Lock()

        if embedder is None:
            logger.warning("No embedder configured; similarity search will be unavailable")

        logger.info(f"Initialized QdrantSimilarityIndex: {self.config.url}/{self.collection_name}")

    @property
    def client(self) -> QdrantClient:
        """Get Qdrant client instance"""
        if self._client is None:
            self._client = QdrantClient(
                url=self.config.url,
                api_key=self.config.api_key,
                timeout=int(self.config.timeout)
            )
        return self._client

    def _require_embedder(self) -> BaseEmbedder:
        if self.embedder is None:
            raise ValueError(
                "No embedder configured for similarity search. "
                "Pass an embedder when creating QdrantSimilarityIndex."
            )
        return self.embedder

    async def ensure_collection(self) -> None:
        """Create the collection on first use"""
        async with self._collection_lock:
            if self._collection_ready:
                return

            exists = await asyncio.to_thread(self.client.collection_exists, self.collection_name)
            if not exists:
                vector_size = self.embedder.dimensions if self.embedder else self.config.vector_size
                await asyncio.to_thread(
                    self.client.create_collection,
                    collection_name=self.collection_name,
                    vectors_config=VectorParams(
                        size=vector_size,
                        distance=_DISTANCES[self.config.distance_metric]
                    )
                )
                logger.info(f"Created collection '{self.collection_name}' ({vector_size} dims)")

            self._collection_ready = True

    async def embed(self, text: str) -> List[float]:
        """Embed a single text with the configured embedder"""
        return await self._require_embedder().embed_single(text)

    async def index_entities(self, entities: Sequence[Entity]) -> OperationResult[int]:
        """Embed and upsert entities, keyed by entity id"""
        start_time = time.time()
        if not entities:
            return OperationResult.success_result(0, "index_entities", 0.0, items_processed=0)

        embedder = self._require_embedder()
        try:
            await self.ensure_collection()
            response = await embedder.embed_texts([entity.search_text for entity in entities])

            points = [
                PointStruct(
                    id=entity_id_to_qdrant_id(entity.id),
                    vector=vector,
                    payload=self._payload(entity)
                )
                for entity, vector in zip(entities, response.embeddings)
            ]
            await asyncio.to_thread(
                self.client.upsert,
                collection_name=self.collection_name,
                points=points
            )

            processing_time = (time.time() - start_time) * 1000
            logger.info(f"Indexed {len(points)} entities into {self.collection_name} in {processing_time:.2f}ms")
            return OperationResult.success_result(
                len(points), "index_entities", processing_time, items_processed=len(points)
            )

        except Exception as e:
            processing_time = (time.time() - start_time) * 1000
            logger.error(f"Failed to index entities into {self.collection_name}: {e}")
            return OperationResult.error_result(
                f"Failed to index entities: {e}",
                "index_entities",
                data=0,
                error_details={"total_entities": len(entities)},
                processing_time_ms=processing_time
            )

    async def remove_entities(self, entity_ids: Sequence[str]) -> None:
        if not entity_ids:
            return
        await asyncio.to_thread(
            self.client.delete,
            collection_name=self.collection_name,
            points_selector=PointIdsList(points=[entity_id_to_qdrant_id(i) for i in entity_ids])
        )

    async def find_similar(
        self,
        text: str,
        limit: int = 10,
        threshold: float = 0.0,
        entity_types: Optional[Sequence[str]] = None
    ) -> List[SimilarityMatch]:
        """
        Find entities similar to a text.

        Raises on transport errors; callers decide whether a failure is
        fatal for their batch.
        """
        query_vector = await self.embed(text)
        await self.ensure_collection()

        query_filter = None
        if entity_types:
            query_filter = Filter(must=[
                FieldCondition(key="entity_type", match=MatchAny(any=[str(t) for t in entity_types]))
            ])

        response = await asyncio.to_thread(
            self.client.query_points,
            collection_name=self.collection_name,
            query=query_vector,
            query_filter=query_filter,
            limit=limit,
            score_threshold=threshold,
            with_payload=True,
            with_vectors=False
        )

        matches = []
        for point in response.points:
            payload = point.payload or {}
            entity_id = payload.get("entity_id")
            if not entity_id:
                continue
            matches.append(SimilarityMatch(
                entity_id=entity_id,
                score=float(point.score),
                entity_type=payload.get("entity_type")
            ))

        logger.debug(f"Similarity search in {self.collection_name}: {len(matches)} matches")
        return matches

    def _payload(self, entity: Entity) -> Dict[str, Any]:
        return {
            "entity_id": entity.id,
            "entity_type": entity.type.value,
            "name": entity.name,
            "qualified_name": entity.qualified_name,
            "file_path": entity.file_path
        }

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
