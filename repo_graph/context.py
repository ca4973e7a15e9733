"""
Project wiring.

RepoGraphContext builds the stores, clients and services for one project
from its ProjectConfig. Components are created on first use so commands
that only touch SQLite never load an embedding model or open a Qdrant
connection.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

from rich.console import Console

from config.loader import ConfigurationLoader
from core.embeddings.base import SimilarityIndexProtocol
from core.embeddings.sentence_transformer import SentenceTransformerEmbedder
from core.hooks.handler import HookHandler
from core.impact.analyzer import ImpactAnalyzer
from core.impact.tool_client import HttpToolClient, ToolClientProtocol
from core.linking.semantic_linker import SemanticLinker
from core.models.config import ProjectConfig
from core.models.storage import OperationResult
from core.relationships.writer import StructuralGraphWriter
from core.storage.database import Database
from core.storage.graph_store import SQLiteGraphStore
from core.storage.hook_store import HookStore
from core.storage.vector_index import QdrantSimilarityIndex

logger = logging.getLogger(__name__)


class RepoGraphContext:
    """Lazily constructed services for a single project"""

    def __init__(
        self,
        config: ProjectConfig,
        client: Optional[ToolClientProtocol] = None,
        similarity: Optional[SimilarityIndexProtocol] = None,
        console: Optional[Console] = None,
        database: Optional[Database] = None
    ):
        self.config = config
        self.console = console or Console(stderr=True)
        self._client = client
        self._similarity = similarity
        self._database = database

        self._graph_store: Optional[SQLiteGraphStore] = None
        self._hook_store: Optional[HookStore] = None

    @classmethod
    def from_path(
        cls,
        project_path: Union[str, Path],
        loader: Optional[ConfigurationLoader] = None,
        **kwargs
    ) -> 'RepoGraphContext':
        loader = loader or ConfigurationLoader()
        return cls(loader.load_project_config(project_path), **kwargs)

    @property
    def project_id(self) -> str:
        return self.config.project_id

    @property
    def database(self) -> Database:
        if self._database is None:
            self._database = Database(self.config.get_database_path())
        return self._database

    @property
    def graph_store(self) -> SQLiteGraphStore:
        if self._graph_store is None:
            self._graph_store = SQLiteGraphStore(self.database)
        return self._graph_store

    @property
    def hook_store(self) -> HookStore:
        if self._hook_store is None:
            self._hook_store = HookStore(self.database)
        return self._hook_store

    @property
    def client(self) -> ToolClientProtocol:
        if self._client is None:
            hooks = self.config.hooks
            self._client = HttpToolClient(hooks.server_url, timeout=hooks.timeout_seconds)
        return self._client

    @property
    def similarity(self) -> SimilarityIndexProtocol:
        if self._similarity is None:
            qdrant = self.config.qdrant
            self._similarity = QdrantSimilarityIndex(
                config=qdrant,
                embedder=SentenceTransformerEmbedder(self.config.embeddings),
                collection_name=qdrant.collection_name or qdrant.get_collection_name(self.config.name),
            )
        return self._similarity

    def analyzer(self) -> ImpactAnalyzer:
        return ImpactAnalyzer(self.client)

    def hook_handler(self) -> HookHandler:
        return HookHandler(
            self.hook_store,
            config=self.config.hooks,
            client=self.client,
            analyzer=self.analyzer(),
            console=self.console,
        )

    def linker(self) -> SemanticLinker:
        return SemanticLinker(
            self.graph_store, self.similarity, relationship_type=self.config.linking.relationship_type
        )

    async def sync_similarity_index(
        self,
        entity_types: Optional[Sequence[str]] = None
    ) -> OperationResult[int]:
        """Embed graph entities of the given types (all when None) into the similarity index"""
        entities = await self.graph_store.get_entities_by_type(
            list(entity_types) if entity_types else None
        )
        logger.info(f"Syncing {len(entities)} entities into the similarity index")
        return await self.similarity.index_entities(entities)

    def structural_writer(self) -> StructuralGraphWriter:
        return StructuralGraphWriter(self.graph_store)

    def close(self) -> None:
        if isinstance(self._client, HttpToolClient):
            self._client.close()
        if isinstance(self._similarity, QdrantSimilarityIndex):
            self._similarity.close()
        if self._database is not None:
            self._database.close()
            self._database = None
        logger.debug(f"Closed context for {self.config.name}")
