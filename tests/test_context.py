"""
Unit tests for project wiring.
"""

import pytest
from unittest.mock import AsyncMock, Mock

from core.embeddings.sentence_transformer import SentenceTransformerEmbedder
from core.hooks.handler import HookHandler
from core.impact.tool_client import HttpToolClient
from core.linking.semantic_linker import SemanticLinker
from core.models.config import HookConfig, ProjectConfig, QdrantConfig
from core.models.entities import Entity, EntityType
from core.models.storage import OperationResult
from core.storage.database import Database
from core.storage.vector_index import QdrantSimilarityIndex
from repo_graph.context import RepoGraphContext


class TestRepoGraphContext:
    """Test lazy construction of project services"""

    @pytest.fixture(autouse=True)
    def project(self, tmp_path):
        self.config = ProjectConfig(
            name="demo",
            path=tmp_path,
            hooks=HookConfig(server_url="http://tools:9000", timeout_ms=2500),
            qdrant=QdrantConfig(collection_name="demo-entities")
        )
        self.database = Database()
        self.context = RepoGraphContext(self.config, database=self.database)
        yield
        self.context.close()

    def test_stores_are_cached(self):
        assert self.context.graph_store is self.context.graph_store
        assert self.context.hook_store is self.context.hook_store
        assert self.context.database is self.database

    def test_default_database_path(self, tmp_path):
        context = RepoGraphContext(self.config)

        database = context.database
        context.close()

        assert (tmp_path / ".repo-graph" / "graph.db").exists()
        assert database is not None

    def test_client_from_hook_config(self):
        client = self.context.client

        assert isinstance(client, HttpToolClient)
        assert client.endpoint == "http://tools:9000/tools/call"
        assert client.timeout == 2.5

    def test_injected_client_is_used(self):
        client = Mock()
        context = RepoGraphContext(self.config, client=client, database=Database())

        handler = context.hook_handler()
        context.close()

        assert isinstance(handler, HookHandler)
        assert handler.client is client
        assert handler.analyzer.client is client
        assert handler.config is self.config.hooks

    def test_similarity_index(self):
        similarity = self.context.similarity

        assert isinstance(similarity, QdrantSimilarityIndex)
        assert similarity.collection_name == "demo-entities"
        assert isinstance(similarity.embedder, SentenceTransformerEmbedder)
        assert not similarity.embedder.is_loaded

    def test_linker_uses_configured_relationship_type(self):
        self.config.linking.relationship_type = "SIMILAR_TO"
        context = RepoGraphContext(self.config, similarity=Mock(), database=Database())

        linker = context.linker()
        context.close()

        assert isinstance(linker, SemanticLinker)
        assert linker.relationship_type == "SIMILAR_TO"

    def test_close_releases_database(self):
        client = self.context.client
        client.session = Mock()

        self.context.close()

        client.session.close.assert_called_once()
        assert self.context._database is None

    @pytest.mark.asyncio
    async def test_sync_similarity_index_filters_by_type(self):
        similarity = Mock()
        similarity.index_entities = AsyncMock(return_value=OperationResult.success_result(1, "index_entities"))
        context = RepoGraphContext(self.config, similarity=similarity, database=Database())
        await context.graph_store.upsert_entity(
            Entity(id="f1", type=EntityType.FUNCTION, name="login", qualified_name="auth.ts::login")
        )
        await context.graph_store.upsert_entity(
            Entity(id="m1", type=EntityType.MODULE, name="auth", qualified_name="auth")
        )

        result = await context.sync_similarity_index(["function"])
        context.close()

        assert result.success
        indexed = similarity.index_entities.call_args[0][0]
        assert [e.qualified_name for e in indexed] == ["auth.ts::login"]
