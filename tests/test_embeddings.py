"""
Unit tests for the sentence-transformers embedder.

The model class is patched so no weights are downloaded.
"""

import numpy as np
import pytest
from unittest.mock import Mock, patch

from core.embeddings.sentence_transformer import SentenceTransformerEmbedder, normalize_rows
from core.models.config import EmbeddingConfig


class TestNormalizeRows:
    """Test row normalization"""

    def test_unit_length(self):
        vectors = np.array([[3.0, 4.0], [0.0, 2.0]], dtype=np.float32)

        normalized = normalize_rows(vectors)

        np.testing.assert_allclose(normalized, [[0.6, 0.8], [0.0, 1.0]], rtol=1e-6)

    def test_zero_row_untouched(self):
        normalized = normalize_rows(np.zeros((1, 3), dtype=np.float32))

        np.testing.assert_array_equal(normalized, np.zeros((1, 3)))


class TestSentenceTransformerEmbedder:
    """Test loading and embedding with a patched model"""

    def setup_method(self):
        self.config = EmbeddingConfig(model_name="test-model", dimensions=2, device="cpu", batch_size=8)
        self.model = Mock()
        self.model.encode.return_value = np.array([[3.0, 4.0], [1.0, 0.0]], dtype=np.float32)

    @pytest.mark.asyncio
    async def test_lazy_load_and_embed(self):
        embedder = SentenceTransformerEmbedder(self.config)
        assert not embedder.is_loaded

        with patch("sentence_transformers.SentenceTransformer", return_value=self.model) as model_cls:
            response = await embedder.embed_texts([" first ", "second"])

        model_cls.assert_called_once_with("test-model", device="cpu", cache_folder=None)
        assert embedder.is_loaded
        assert embedder.device == "cpu"
        np.testing.assert_allclose(response.embeddings, [[0.6, 0.8], [1.0, 0.0]], rtol=1e-6)

        args, kwargs = self.model.encode.call_args
        assert args[0] == ["first", "second"]
        assert kwargs["batch_size"] == 8

    @pytest.mark.asyncio
    async def test_without_normalization(self):
        embedder = SentenceTransformerEmbedder(self.config.model_copy(update={"normalize_embeddings": False}))

        with patch("sentence_transformers.SentenceTransformer", return_value=self.model):
            response = await embedder.embed_texts(["a", "b"])

        assert response.embeddings[0] == [3.0, 4.0]

    @pytest.mark.asyncio
    async def test_load_failure(self):
        embedder = SentenceTransformerEmbedder(self.config)

        with patch("sentence_transformers.SentenceTransformer", side_effect=OSError("model not found")):
            assert await embedder.load_model() is False
            with pytest.raises(RuntimeError, match="could not be loaded"):
                await embedder.embed_texts(["a"])

        assert not embedder.is_loaded

    @pytest.mark.asyncio
    async def test_empty_text_is_zero_vector(self):
        embedder = SentenceTransformerEmbedder(self.config)

        assert await embedder.embed_single("   ") == [0.0, 0.0]
        assert not embedder.is_loaded

    @pytest.mark.asyncio
    async def test_unload(self):
        embedder = SentenceTransformerEmbedder(self.config)
        with patch("sentence_transformers.SentenceTransformer", return_value=self.model):
            await embedder.load_model()

        await embedder.unload_model()

        assert not embedder.is_loaded
        assert embedder.device is None
        self.model.cpu.assert_called_once()

    def test_model_info(self):
        info = SentenceTransformerEmbedder(self.config).get_model_info()

        assert info["model_name"] == "test-model"
        assert info["dimensions"] == 2
        assert info["is_loaded"] is False
        assert info["batch_size"] == 8
