"""
Entity and relationship storage for the knowledge graph.

GraphStoreProtocol is the capability the linker and writer depend on.
SQLiteGraphStore is the bundled implementation.

Relationship creation is a two-step exists-then-create at the caller.
The relationships table carries a UNIQUE (source_id, target_id,
relationship) constraint, so when two callers race past the existence
check the loser's insert is ignored and create_relationship returns None.
"""

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union, runtime_checkable
from uuid import uuid4

from ..models.entities import Entity, EntityType, Relationship, relationship_tag
from .database import Database

logger = logging.getLogger(__name__)

DIRECTIONS = ("in", "out", "both")

GRAPH_SCHEMA = """
CREATE TABLE IF NOT EXISTS entities (
    id             TEXT PRIMARY KEY,
    type           TEXT NOT NULL,
    name           TEXT NOT NULL,
    qualified_name TEXT NOT NULL UNIQUE,
    content        TEXT,
    summary        TEXT,
    file_path      TEXT,
    start_line     INTEGER,
    end_line       INTEGER,
    metadata_json  TEXT NOT NULL DEFAULT '{}',
    created_at     TEXT NOT NULL,
    updated_at     TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_entities_type ON entities(type);
CREATE INDEX IF NOT EXISTS idx_entities_file ON entities(file_path);

CREATE TABLE IF NOT EXISTS relationships (
    id            TEXT PRIMARY KEY,
    source_id     TEXT NOT NULL,
    target_id     TEXT NOT NULL,
    relationship  TEXT NOT NULL,
    weight        REAL NOT NULL DEFAULT 1.0,
    metadata_json TEXT NOT NULL DEFAULT '{}',
    created_at    TEXT NOT NULL,
    UNIQUE (source_id, target_id, relationship)
);
CREATE INDEX IF NOT EXISTS idx_relationships_source ON relationships(source_id, relationship);
CREATE INDEX IF NOT EXISTS idx_relationships_target ON relationships(target_id, relationship);
CREATE INDEX IF NOT EXISTS idx_relationships_type ON relationships(relationship);
"""


@runtime_checkable
class GraphStoreProtocol(Protocol):
    """Graph storage capability used by linking and structural writes"""

    async def get_entity(self, entity_id: str) -> Optional[Entity]:
        ...

    async def get_entity_by_qualified_name(self, qualified_name: str) -> Optional[Entity]:
        ...

    async def get_entities_by_type(
        self,
        entity_types: Optional[Sequence[Union[EntityType, str]]] = None,
        limit: Optional[int] = None
    ) -> List[Entity]:
        ...

    async def upsert_entity(self, entity: Entity) -> Entity:
        ...

    async def create_relationship(
        self,
        source_id: str,
        target_id: str,
        relationship: str,
        weight: float = 1.0,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Optional[Relationship]:
        ...

    async def relationship_exists(
        self,
        source_id: str,
        target_id: str,
        relationship: Optional[str] = None
    ) -> bool:
        ...

    async def get_relationships_for_entity(
        self,
        entity_id: str,
        direction: str = "both",
        types: Optional[Sequence[str]] = None,
        min_weight: Optional[float] = None,
        limit: Optional[int] = None
    ) -> List[Relationship]:
        ...

    async def get_relationships_by_type(
        self,
        relationship: str,
        max_weight: Optional[float] = None
    ) -> List[Relationship]:
        ...

    async def delete_relationship(self, relationship_id: str) -> bool:
        ...


def _entity_from_row(row: sqlite3.Row) -> Entity:
    return Entity(
        id=row["id"],
        type=EntityType(row["type"]),
        name=row["name"],
        qualified_name=row["qualified_name"],
        content=row["content"],
        summary=row["summary"],
        file_path=row["file_path"],
        start_line=row["start_line"],
        end_line=row["end_line"],
        metadata=json.loads(row["metadata_json"] or "{}"),
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"])
    )


def _relationship_from_row(row: sqlite3.Row) -> Relationship:
    return Relationship(
        id=row["id"],
        source_id=row["source_id"],
        target_id=row["target_id"],
        relationship=row["relationship"],
        weight=row["weight"],
        metadata=json.loads(row["metadata_json"] or "{}"),
        created_at=datetime.fromisoformat(row["created_at"])
    )


class SQLiteGraphStore:
    """SQLite-backed GraphStoreProtocol implementation"""

    def __init__(self, database: Union[Database, str, Path] = ":memory:"):
        self.database = database if isinstance(database, Database) else Database(database)
        self.database.ensure_schema("graph", GRAPH_SCHEMA)

    # Entities

    async def get_entity(self, entity_id: str) -> Optional[Entity]:
        def query(conn: sqlite3.Connection) -> Optional[Entity]:
            row = conn.execute("SELECT * FROM entities WHERE id = ?", (entity_id,)).fetchone()
            return _entity_from_row(row) if row else None

        return await self.database.run(query)

    async def get_entity_by_qualified_name(self, qualified_name: str) -> Optional[Entity]:
        def query(conn: sqlite3.Connection) -> Optional[Entity]:
            row = conn.execute(
                "SELECT * FROM entities WHERE qualified_name = ?", (qualified_name,)
            ).fetchone()
            return _entity_from_row(row) if row else None

        return await self.database.run(query)

    async def get_entities_by_type(
        self,
        entity_types: Optional[Sequence[Union[EntityType, str]]] = None,
        limit: Optional[int] = None
    ) -> List[Entity]:
        """Entities of the given types in insertion order, all types when None"""
        sql = "SELECT * FROM entities"
        params: List[Any] = []
        if entity_types:
            tags = [relationship_tag(t) for t in entity_types]
            sql += f" WHERE type IN ({', '.join('?' for _ in tags)})"
            params.extend(tags)
        sql += " ORDER BY rowid"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        def query(conn: sqlite3.Connection) -> List[Entity]:
            return [_entity_from_row(row) for row in conn.execute(sql, params).fetchall()]

        return await self.database.run(query)

    async def upsert_entity(self, entity: Entity) -> Entity:
        """
        Insert or update an entity keyed by qualified name.

        An existing row keeps its id and created_at; every other field is
        replaced.
        """
        def upsert(conn: sqlite3.Connection) -> Entity:
            now = datetime.now().isoformat()
            conn.execute(
                """
                INSERT INTO entities (
                    id, type, name, qualified_name, content, summary, file_path,
                    start_line, end_line, metadata_json, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(qualified_name) DO UPDATE SET
                    type = excluded.type,
                    name = excluded.name,
                    content = excluded.content,
                    summary = excluded.summary,
                    file_path = excluded.file_path,
                    start_line = excluded.start_line,
                    end_line = excluded.end_line,
                    metadata_json = excluded.metadata_json,
                    updated_at = excluded.updated_at
                """,
                (
                    entity.id,
                    entity.type.value,
                    entity.name,
                    entity.qualified_name,
                    entity.content,
                    entity.summary,
                    entity.file_path,
                    entity.start_line,
                    entity.end_line,
                    json.dumps(entity.metadata),
                    entity.created_at.isoformat(),
                    now
                )
            )
            row = conn.execute(
                "SELECT * FROM entities WHERE qualified_name = ?", (entity.qualified_name,)
            ).fetchone()
            return _entity_from_row(row)

        return await self.database.run(upsert)

    # Relationships

    async def create_relationship(
        self,
        source_id: str,
        target_id: str,
        relationship: str,
        weight: float = 1.0,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Optional[Relationship]:
        """Create an edge; None when an identical edge already exists"""
        edge = Relationship(
            id=str(uuid4()),
            source_id=source_id,
            target_id=target_id,
            relationship=relationship,
            weight=weight,
            metadata=metadata or {}
        )

        def insert(conn: sqlite3.Connection) -> bool:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO relationships (
                    id, source_id, target_id, relationship, weight, metadata_json, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    edge.id,
                    edge.source_id,
                    edge.target_id,
                    edge.relationship,
                    edge.weight,
                    json.dumps(edge.metadata),
                    edge.created_at.isoformat()
                )
            )
            return cursor.rowcount == 1

        created = await self.database.run(insert)
        if not created:
            logger.debug(
                f"Relationship {edge.relationship} {source_id} -> {target_id} already exists, skipped"
            )
            return None
        return edge

    async def relationship_exists(
        self,
        source_id: str,
        target_id: str,
        relationship: Optional[str] = None
    ) -> bool:
        """Directional existence check, for one edge type or any type when None"""
        sql = "SELECT 1 FROM relationships WHERE source_id = ? AND target_id = ?"
        params: List[Any] = [source_id, target_id]
        if relationship is not None:
            sql += " AND relationship = ?"
            params.append(relationship_tag(relationship))
        sql += " LIMIT 1"

        def query(conn: sqlite3.Connection) -> bool:
            return conn.execute(sql, params).fetchone() is not None

        return await self.database.run(query)

    async def get_relationships_for_entity(
        self,
        entity_id: str,
        direction: str = "both",
        types: Optional[Sequence[str]] = None,
        min_weight: Optional[float] = None,
        limit: Optional[int] = None
    ) -> List[Relationship]:
        """Edges touching an entity, filtered by direction, type and weight"""
        if direction not in DIRECTIONS:
            raise ValueError(f"direction must be one of {DIRECTIONS}, got {direction!r}")

        clauses: List[str] = []
        params: List[Any] = []

        if direction == "out":
            clauses.append("source_id = ?")
            params.append(entity_id)
        elif direction == "in":
            clauses.append("target_id = ?")
            params.append(entity_id)
        else:
            clauses.append("(source_id = ? OR target_id = ?)")
            params.extend([entity_id, entity_id])

        if types:
            tags = [relationship_tag(t) for t in types]
            clauses.append(f"relationship IN ({', '.join('?' for _ in tags)})")
            params.extend(tags)

        if min_weight is not None:
            clauses.append("weight >= ?")
            params.append(min_weight)

        sql = f"SELECT * FROM relationships WHERE {' AND '.join(clauses)} ORDER BY rowid"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        def query(conn: sqlite3.Connection) -> List[Relationship]:
            return [_relationship_from_row(row) for row in conn.execute(sql, params).fetchall()]

        return await self.database.run(query)

    async def get_relationships_by_type(
        self,
        relationship: str,
        max_weight: Optional[float] = None
    ) -> List[Relationship]:
        """All edges of one type, optionally only those weighing less than max_weight"""
        sql = "SELECT * FROM relationships WHERE relationship = ?"
        params: List[Any] = [relationship_tag(relationship)]
        if max_weight is not None:
            sql += " AND weight < ?"
            params.append(max_weight)
        sql += " ORDER BY rowid"

        def query(conn: sqlite3.Connection) -> List[Relationship]:
            return [_relationship_from_row(row) for row in conn.execute(sql, params).fetchall()]

        return await self.database.run(query)

    async def delete_relationship(self, relationship_id: str) -> bool:
        def delete(conn: sqlite3.Connection) -> bool:
            cursor = conn.execute("DELETE FROM relationships WHERE id = ?", (relationship_id,))
            return cursor.rowcount > 0

        return await self.database.run(delete)

    async def count_relationships(self, relationship: Optional[str] = None) -> int:
        """Number of stored edges, optionally of one type"""
        def query(conn: sqlite3.Connection) -> int:
            if relationship is None:
                row = conn.execute("SELECT COUNT(*) FROM relationships").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) FROM relationships WHERE relationship = ?",
                    (relationship_tag(relationship),)
                ).fetchone()
            return int(row[0])

        return await self.database.run(query)

    def close(self) -> None:
        self.database.close()
