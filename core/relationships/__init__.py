"""
Structural relationship extraction for repo-graph.

Per-language extractors turn parse results into typed relationships; the
registry dispatches by language name or file extension.
"""

from .base import StructuralExtractor, TypeTable
from .languages import JAVASCRIPT_TYPES, PYTHON_TYPES, TYPESCRIPT_TYPES
from .registry import ExtractorRegistry, extractor_registry, get_extractor, get_extractor_for_file
from .writer import StructuralGraphWriter

__all__ = [
    "StructuralExtractor",
    "TypeTable",
    "TYPESCRIPT_TYPES",
    "JAVASCRIPT_TYPES",
    "PYTHON_TYPES",
    "ExtractorRegistry",
    "extractor_registry",
    "get_extractor",
    "get_extractor_for_file",
    "StructuralGraphWriter"
]
