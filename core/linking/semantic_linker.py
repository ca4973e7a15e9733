"""
Semantic relationship discovery.

Links entities whose text embeddings are similar. Every edge created here
carries ``discoveredBy: semantic`` in its metadata so that relinking and
pruning only ever touch automatically discovered edges; hand-authored
edges of the same type are left alone.

Entities are processed strictly one after another.
"""

import logging
from typing import Callable, List, Optional, Sequence, Set, Union

from ..embeddings.base import SimilarityMatch, SimilaritySearchProtocol
from ..models.entities import (
    DISCOVERED_BY_KEY,
    SEMANTIC_DISCOVERY,
    Entity,
    EntityType,
    GraphRelationshipType,
    relationship_tag,
)
from ..models.linking import (
    BatchLinkResult,
    DiscoveryResult,
    LinkSuggestion,
    RelatedEntity,
    SemanticLink,
)
from ..storage.graph_store import GraphStoreProtocol

logger = logging.getLogger(__name__)

DEFAULT_LINK_TYPES = (
    EntityType.FUNCTION,
    EntityType.CLASS,
    EntityType.REQUIREMENT,
    EntityType.CONCEPT,
    EntityType.DOCUMENT,
)

CONCEPT_TYPES = (EntityType.CONCEPT, EntityType.TECHNOLOGY, EntityType.PATTERN)

ProgressCallback = Callable[[int, int], None]


def similarity_band(score: float) -> str:
    """Human-readable strength for a similarity score"""
    if score >= 0.9:
        return "very similar"
    if score >= 0.8:
        return "similar"
    if score >= 0.7:
        return "related"
    return "possibly related"


class SemanticLinker:
    """
    Creates, queries and maintains similarity edges in the graph.

    Args:
        store: Graph storage for entities and edges
        similarity: Embedding search over stored entities
        relationship_type: Edge tag used for similarity links
    """

    def __init__(
        self,
        store: GraphStoreProtocol,
        similarity: SimilaritySearchProtocol,
        relationship_type: Union[str, GraphRelationshipType] = GraphRelationshipType.RELATES_TO
    ):
        self.store = store
        self.similarity = similarity
        self.relationship_type = relationship_tag(relationship_type)

    async def discover_relationships(
        self,
        min_similarity: float = 0.75,
        max_per_entity: int = 5,
        entity_types: Sequence[Union[EntityType, str]] = DEFAULT_LINK_TYPES,
        relationship_type: Optional[str] = None,
        skip_existing: bool = True
    ) -> DiscoveryResult:
        """
        Link every entity of the given types to its nearest neighbours.

        An entity that already has an outgoing edge of the link type is
        skipped when skip_existing is set. A failing similarity search is
        recorded as a warning and the pass continues with the next entity.
        """
        tag = relationship_tag(relationship_type or self.relationship_type)
        result = DiscoveryResult()

        entities = await self.store.get_entities_by_type(list(entity_types))
        logger.info(f"Discovering {tag} links across {len(entities)} entities")

        for entity in entities:
            if skip_existing:
                existing = await self.store.get_relationships_for_entity(
                    entity.id, direction="out", types=[tag], limit=1
                )
                if existing:
                    result.entities_skipped += 1
                    continue

            try:
                matches = await self._candidates(
                    entity, limit=max_per_entity + 1, threshold=min_similarity,
                    entity_types=[relationship_tag(t) for t in entity_types]
                )
            except Exception as e:
                message = f"Similarity search failed for {entity.id}: {e}"
                logger.warning(message)
                result.warnings.append(message)
                continue

            created_here = 0
            for match in matches:
                if await self._link(entity.id, match.entity_id, tag, match.score):
                    created_here += 1

            result.created += created_here
            result.entities_processed += 1

        logger.info(
            f"Discovery complete: {result.created} links created, "
            f"{result.entities_processed} processed, {result.entities_skipped} skipped"
        )
        return result

    async def link_new_entity(
        self,
        entity_id: str,
        min_similarity: float = 0.75,
        max_links: int = 5,
        relationship_type: Optional[str] = None,
        bidirectional: bool = False
    ) -> int:
        """
        Link a single entity to similar entities.

        At most max_links outgoing edges are created. With bidirectional set,
        reverse edges are created too and count toward the returned total.
        A failing similarity search is logged and yields 0.

        Returns:
            Number of edges created
        """
        try:
            return await self._link_entity(
                entity_id, min_similarity, max_links, relationship_type, bidirectional
            )
        except Exception as e:
            logger.warning(f"Linking failed for {entity_id}: {e}")
            return 0

    async def _link_entity(
        self,
        entity_id: str,
        min_similarity: float,
        max_links: int,
        relationship_type: Optional[str] = None,
        bidirectional: bool = False,
        matches: Optional[List[SimilarityMatch]] = None
    ) -> int:
        """link_new_entity without error containment; batch_link reports the errors"""
        tag = relationship_tag(relationship_type or self.relationship_type)
        entity = await self.store.get_entity(entity_id)
        if entity is None:
            logger.warning(f"Cannot link unknown entity {entity_id}")
            return 0

        if matches is None:
            matches = await self._candidates(entity, limit=max_links + 1, threshold=min_similarity)

        created = 0
        outgoing = 0
        for match in matches:
            if outgoing >= max_links:
                break

            if await self._link(entity_id, match.entity_id, tag, match.score):
                outgoing += 1
                created += 1

            if bidirectional and await self._link(match.entity_id, entity_id, tag, match.score):
                created += 1

        logger.debug(f"Created {created} {tag} links for {entity_id}")
        return created

    async def find_related(
        self,
        query: str,
        limit: int = 10,
        min_similarity: float = 0.5,
        entity_types: Optional[Sequence[Union[EntityType, str]]] = None
    ) -> List[RelatedEntity]:
        """Entities similar to free text, best first"""
        types = [relationship_tag(t) for t in entity_types] if entity_types else None
        try:
            matches = await self.similarity.find_similar(
                query, limit=limit, threshold=min_similarity, entity_types=types
            )
        except Exception as e:
            logger.warning(f"Similarity search failed for query {query!r}: {e}")
            return []
        return await self._hydrate(matches)

    async def find_related_concepts(
        self,
        entity_id: str,
        limit: int = 10,
        min_similarity: float = 0.6
    ) -> List[RelatedEntity]:
        """Concepts, technologies and patterns similar to an entity"""
        entity = await self.store.get_entity(entity_id)
        if entity is None:
            return []

        try:
            matches = await self._candidates(
                entity, limit=limit + 1, threshold=min_similarity,
                entity_types=[t.value for t in CONCEPT_TYPES]
            )
        except Exception as e:
            logger.warning(f"Similarity search failed for {entity_id}: {e}")
            return []
        return (await self._hydrate(matches))[:limit]

    async def get_semantic_links(
        self,
        entity_id: str,
        direction: str = "both",
        min_weight: Optional[float] = None
    ) -> List[SemanticLink]:
        """Existing similarity edges of an entity with the entity at the other end"""
        relationships = await self.store.get_relationships_for_entity(
            entity_id, direction=direction, types=[self.relationship_type], min_weight=min_weight
        )

        links = []
        for rel in relationships:
            outgoing = rel.source_id == entity_id
            other_id = rel.target_id if outgoing else rel.source_id
            links.append(SemanticLink(
                relationship=rel,
                entity=await self.store.get_entity(other_id),
                direction="out" if outgoing else "in"
            ))
        return links

    async def update_links(
        self,
        entity_id: str,
        min_similarity: float = 0.75,
        max_links: int = 5
    ) -> int:
        """
        Replace an entity's semantically discovered outgoing links.

        The similarity search runs before anything is deleted; when it fails
        the current links are kept.

        Returns:
            Number of edges created by relinking
        """
        entity = await self.store.get_entity(entity_id)
        if entity is None:
            logger.warning(f"Cannot relink unknown entity {entity_id}")
            return 0

        try:
            matches = await self._candidates(entity, limit=max_links + 1, threshold=min_similarity)
        except Exception as e:
            logger.warning(f"Similarity search failed for {entity_id}, keeping existing links: {e}")
            return 0

        existing = await self.store.get_relationships_for_entity(
            entity_id, direction="out", types=[self.relationship_type]
        )
        removed = 0
        for rel in existing:
            if rel.is_semantic and await self.store.delete_relationship(rel.id):
                removed += 1

        logger.debug(f"Removed {removed} semantic links from {entity_id}")
        return await self._link_entity(entity_id, min_similarity, max_links, matches=matches)

    async def get_suggestions(
        self,
        entity_id: str,
        limit: int = 5,
        min_similarity: float = 0.7
    ) -> List[LinkSuggestion]:
        """Similar entities not yet connected to this one, with a reason"""
        entity = await self.store.get_entity(entity_id)
        if entity is None:
            return []

        try:
            matches = await self._candidates(entity, limit=limit * 2, threshold=min_similarity)
        except Exception as e:
            logger.warning(f"Similarity search failed for {entity_id}: {e}")
            return []

        suggestions: List[LinkSuggestion] = []
        for match in matches:
            if len(suggestions) >= limit:
                break
            if await self.store.relationship_exists(entity_id, match.entity_id):
                continue

            other = await self.store.get_entity(match.entity_id)
            if other is None:
                continue

            suggestions.append(LinkSuggestion(
                entity=other,
                similarity=match.score,
                reason=self._reason(entity, other, match.score)
            ))

        return suggestions

    async def batch_link(
        self,
        entity_ids: Sequence[str],
        min_similarity: float = 0.75,
        max_links_per_entity: int = 5,
        on_progress: Optional[ProgressCallback] = None
    ) -> BatchLinkResult:
        """Link each entity in turn, reporting progress after every entity"""
        result = BatchLinkResult()
        total = len(entity_ids)

        for entity_id in entity_ids:
            try:
                result.total_created += await self._link_entity(
                    entity_id, min_similarity, max_links_per_entity
                )
            except Exception as e:
                message = f"Linking failed for {entity_id}: {e}"
                logger.warning(message)
                result.warnings.append(message)

            result.entities_processed += 1
            if on_progress:
                on_progress(result.entities_processed, total)

        return result

    async def prune_weak_links(self, min_weight: float = 0.6) -> int:
        """
        Delete semantically discovered links weaker than min_weight.

        Returns:
            Number of edges deleted
        """
        candidates = await self.store.get_relationships_by_type(
            self.relationship_type, max_weight=min_weight
        )

        pruned = 0
        for rel in candidates:
            if rel.weight < min_weight and rel.is_semantic:
                if await self.store.delete_relationship(rel.id):
                    pruned += 1

        logger.info(f"Pruned {pruned} weak {self.relationship_type} links below {min_weight}")
        return pruned

    async def _candidates(
        self,
        entity: Entity,
        limit: int,
        threshold: float,
        entity_types: Optional[List[str]] = None
    ) -> List[SimilarityMatch]:
        """Similarity matches for an entity, without itself or repeated targets"""
        matches = await self.similarity.find_similar(
            entity.search_text, limit=limit, threshold=threshold, entity_types=entity_types
        )

        seen: Set[str] = {entity.id}
        unique = []
        for match in matches:
            if match.entity_id in seen:
                continue
            seen.add(match.entity_id)
            unique.append(match)
        return unique

    async def _link(self, source_id: str, target_id: str, tag: str, score: float) -> bool:
        """Create a semantic edge unless one of this type already exists"""
        if await self.store.relationship_exists(source_id, target_id, tag):
            return False

        created = await self.store.create_relationship(
            source_id,
            target_id,
            tag,
            weight=max(0.0, min(1.0, score)),
            metadata={DISCOVERED_BY_KEY: SEMANTIC_DISCOVERY, "similarity": score}
        )
        return created is not None

    async def _hydrate(self, matches: List[SimilarityMatch]) -> List[RelatedEntity]:
        related = []
        for match in matches:
            entity = await self.store.get_entity(match.entity_id)
            if entity is not None:
                related.append(RelatedEntity(entity=entity, similarity=match.score))
        return related

    @staticmethod
    def _reason(entity: Entity, other: Entity, score: float) -> str:
        band = similarity_band(score)
        percent = round(score * 100)
        if entity.type == other.type:
            return f"{band} {entity.type.value} ({percent}% match)"
        return f"{band} content ({percent}% match)"
