"""
Persist structural extraction results into the graph store.
"""

import hashlib
import logging
from typing import Dict, List, Optional

from ..models.entities import Entity, EntityType, ExtractedRelationship
from ..models.storage import OperationResult
from ..storage.graph_store import GraphStoreProtocol

logger = logging.getLogger(__name__)

# Symbol kinds reported by parsers that are not EntityType values
_TYPE_ALIASES = {
    "constructor": EntityType.METHOD,
    "getter": EntityType.PROPERTY,
    "setter": EntityType.PROPERTY,
    "field": EntityType.PROPERTY,
    "attribute": EntityType.PROPERTY,
    "enum": EntityType.TYPE,
    "type_alias": EntityType.TYPE,
    "struct": EntityType.CLASS,
    "constant": EntityType.VARIABLE,
}


def resolve_entity_type(tag: Optional[str], default: EntityType = EntityType.VARIABLE) -> EntityType:
    """Map an extractor type tag onto EntityType"""
    if not tag:
        return default
    try:
        return EntityType(tag)
    except ValueError:
        return _TYPE_ALIASES.get(tag, default)


def placeholder_id(qualified_name: str) -> str:
    """Deterministic id for an entity first seen as a relationship endpoint"""
    return "ent_" + hashlib.sha256(qualified_name.encode("utf-8")).hexdigest()[:24]


class StructuralGraphWriter:
    """
    Writes extracted relationships as stored edges.

    Endpoints are resolved by qualified name. Unknown endpoints become
    placeholder entities; existing entities are never overwritten.
    """

    def __init__(self, store: GraphStoreProtocol):
        self.store = store

    async def write(
        self,
        relationships: List[ExtractedRelationship],
        file_path: Optional[str] = None
    ) -> OperationResult[int]:
        """
        Store relationships, skipping edges that already exist.

        Returns:
            Result whose data is the number of edges created
        """
        resolved: Dict[str, str] = {}
        created = 0
        failed = 0
        warnings: List[str] = []

        for rel in relationships:
            try:
                source_id = await self._resolve(rel.source, rel.source_type, file_path, resolved)
                target_id = await self._resolve(rel.target, rel.target_type, None, resolved)
                tag = rel.type.value

                if await self.store.relationship_exists(source_id, target_id, tag):
                    continue

                edge = await self.store.create_relationship(
                    source_id, target_id, tag, weight=rel.weight, metadata=dict(rel.metadata)
                )
                if edge is not None:
                    created += 1

            except Exception as e:
                failed += 1
                message = f"Failed to store {rel.type.value} {rel.source} -> {rel.target}: {e}"
                logger.warning(message)
                warnings.append(message)

        logger.debug(f"Stored {created} structural relationships ({failed} failed)")

        if failed:
            return OperationResult.partial_result(
                created, "write_structural", warnings,
                items_processed=len(relationships), items_failed=failed
            )
        return OperationResult.success_result(
            created, "write_structural", items_processed=len(relationships)
        )

    async def _resolve(
        self,
        qualified_name: str,
        type_tag: Optional[str],
        file_path: Optional[str],
        resolved: Dict[str, str]
    ) -> str:
        if qualified_name in resolved:
            return resolved[qualified_name]

        entity = await self.store.get_entity_by_qualified_name(qualified_name)
        if entity is None:
            entity_type = resolve_entity_type(type_tag)
            if type_tag == "file":
                file_path = qualified_name
            entity = await self.store.upsert_entity(Entity(
                id=placeholder_id(qualified_name),
                type=entity_type,
                name=_display_name(qualified_name, entity_type),
                qualified_name=qualified_name,
                file_path=file_path,
                metadata={"placeholder": True}
            ))

        resolved[qualified_name] = entity.id
        return entity.id


def _display_name(qualified_name: str, entity_type: EntityType) -> str:
    if entity_type == EntityType.FILE:
        return qualified_name.rstrip("/").rsplit("/", 1)[-1] or qualified_name
    return qualified_name.replace("::", ".").rsplit(".", 1)[-1] or qualified_name
