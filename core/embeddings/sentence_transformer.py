"""
Sentence-transformers embedder with device auto-detection.
"""

import asyncio
import logging
import platform
import threading
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

import numpy as np

from .base import BaseEmbedder
from ..models.config import EmbeddingConfig

logger = logging.getLogger(__name__)


class SentenceTransformerEmbedder(BaseEmbedder):
    """
    Local embedder backed by a sentence-transformers model.

    The model is loaded lazily on first use, on CUDA, Apple MPS or CPU.
    """

    def __init__(self, config: Optional[EmbeddingConfig] = None):
        self.embedding_config = config or EmbeddingConfig()
        super().__init__(self.embedding_config.model_dump(mode="json"))

        self._device: Optional[str] = None
        self._model_lock = threading.RLock()

        logger.info(f"Initialized SentenceTransformerEmbedder: {self.embedding_config.model_name}")

    @property
    def model_name(self) -> str:
        return self.embedding_config.model_name

    @property
    def dimensions(self) -> int:
        return self.embedding_config.dimensions

    @property
    def device(self) -> Optional[str]:
        return self._device

    async def load_model(self) -> bool:
        """
        Load the model in a worker thread.

        Returns:
            True if model loaded successfully, False otherwise
        """
        if self.is_loaded:
            return True

        try:
            await asyncio.to_thread(self._load_sync)
            return True
        except Exception as e:
            logger.error(f"Failed to load embedding model {self.model_name}: {e}")
            self._model = None
            self._is_loaded = False
            return False

    def _load_sync(self) -> None:
        with self._model_lock:
            if self.is_loaded:
                return

            start_time = time.time()
            self._device = self._detect_optimal_device()
            logger.info(f"Loading {self.model_name} on device: {self._device}")

            # Import here to avoid startup delays
            from sentence_transformers import SentenceTransformer

            cache_dir = self.embedding_config.cache_dir
            self._model = SentenceTransformer(
                self.model_name,
                device=self._device,
                cache_folder=str(cache_dir) if cache_dir else None
            )
            self._model.eval()

            self._is_loaded = True
            self._load_time = datetime.now()
            logger.info(f"Embedding model loaded in {time.time() - start_time:.2f}s on {self._device}")

    async def unload_model(self) -> None:
        """Unload model to free memory"""
        with self._model_lock:
            if self._model is None:
                return
            try:
                import torch

                self._model.cpu()
                if torch.cuda.is_available():
                    torch.cuda.empty_cache()
            except (ImportError, RuntimeError) as e:
                logger.warning(f"Error during model unload: {e}")
            finally:
                self._model = None
                self._is_loaded = False
                self._device = None
                logger.info("Embedding model unloaded")

    async def _generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        if not self.is_loaded:
            raise RuntimeError("Model not loaded")

        cleaned = [text.strip() for text in texts]
        vectors = await asyncio.to_thread(
            self._model.encode,
            cleaned,
            batch_size=self.embedding_config.batch_size,
            show_progress_bar=False,
            convert_to_numpy=True
        )
        vectors = np.asarray(vectors, dtype=np.float32)
        if self.embedding_config.normalize_embeddings:
            vectors = normalize_rows(vectors)
        return vectors.tolist()

    def _detect_optimal_device(self) -> str:
        """Detect optimal device for the current platform"""
        if self.embedding_config.device:
            return self.embedding_config.device

        import torch

        if torch.cuda.is_available():
            try:
                logger.info(f"CUDA available: {torch.cuda.get_device_name()}")
                return "cuda"
            except (RuntimeError, AssertionError):
                logger.warning("CUDA available but not initialized, falling back to CPU")
                return "cpu"

        if (platform.system() == "Darwin" and
                platform.machine() in ("arm64", "aarch64") and
                hasattr(torch.backends, 'mps') and
                torch.backends.mps.is_available()):
            logger.info("Apple Silicon MPS available")
            return "mps"

        logger.info("Using CPU device")
        return "cpu"

    def get_model_info(self) -> Dict[str, Any]:
        info = super().get_model_info()
        info.update({
            "device": self._device,
            "normalize_embeddings": self.embedding_config.normalize_embeddings,
            "batch_size": self.embedding_config.batch_size
        })
        return info


def normalize_rows(vectors: np.ndarray) -> np.ndarray:
    """L2-normalize each row, leaving zero rows untouched"""
    norms = np.linalg.norm(vectors, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return vectors / norms
