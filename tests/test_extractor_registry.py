"""
Unit tests for the extractor registry.

Tests language, alias and extension lookups, registration rules and the
module-level convenience functions.
"""

import pytest

from core.relationships.base import StructuralExtractor, TypeTable
from core.relationships.languages import JAVASCRIPT_TYPES, PYTHON_TYPES, TYPESCRIPT_TYPES
from core.relationships.registry import (
    ExtractorRegistry,
    extractor_registry,
    get_extractor,
    get_extractor_for_file,
)


class TestExtractorRegistryLookup:
    """Test extractor lookup"""

    def setup_method(self):
        self.registry = ExtractorRegistry()

    @pytest.mark.parametrize("key,table", [
        ("typescript", TYPESCRIPT_TYPES),
        ("TypeScript", TYPESCRIPT_TYPES),
        (".ts", TYPESCRIPT_TYPES),
        (".TSX", TYPESCRIPT_TYPES),
        ("tsx", TYPESCRIPT_TYPES),
        ("javascript", JAVASCRIPT_TYPES),
        (".mjs", JAVASCRIPT_TYPES),
        ("python", PYTHON_TYPES),
        ("py", PYTHON_TYPES),
        (".pyi", PYTHON_TYPES),
    ])
    def test_lookup(self, key, table):
        extractor = self.registry.get_extractor(key)
        assert extractor is not None
        assert extractor.type_table is table

    @pytest.mark.parametrize("key", ["", ".rs", "cobol", "  "])
    def test_unknown_key_returns_none(self, key):
        assert self.registry.get_extractor(key) is None

    def test_file_lookup_uses_final_extension(self):
        """Test multi-dot file names dispatch on the last extension"""
        extractor = self.registry.get_extractor_for_file("src/components/Button.test.TSX")
        assert extractor.language == "typescript"

        assert self.registry.get_extractor_for_file("types.d.ts").language == "typescript"
        assert self.registry.get_extractor_for_file("archive.tar.gz") is None
        assert self.registry.get_extractor_for_file("Makefile") is None
        assert self.registry.get_extractor_for_file("") is None

    def test_supports(self):
        assert self.registry.supports(".py")
        assert self.registry.supports("JS")
        assert not self.registry.supports(".go")


class TestExtractorRegistration:
    """Test registering and unregistering languages"""

    def setup_method(self):
        self.registry = ExtractorRegistry(register_defaults=False)
        self.extractor = StructuralExtractor(TypeTable(language="kotlin"))

    def test_empty_registry(self):
        assert self.registry.supported_languages() == []
        assert self.registry.get_extractor(".ts") is None

    def test_register_and_lookup(self):
        self.registry.register("Kotlin", self.extractor, extensions=["kt", ".KTS"], aliases=["kt-lang"])

        assert self.registry.get_extractor("kotlin") is self.extractor
        assert self.registry.get_extractor(".kts") is self.extractor
        assert self.registry.get_extractor("kt") is self.extractor
        assert self.registry.get_extractor("KT-LANG") is self.extractor
        assert self.registry.supported_extensions() == [".kt", ".kts"]

    def test_duplicate_registration_requires_override(self):
        self.registry.register("kotlin", self.extractor)

        with pytest.raises(ValueError, match="already registered"):
            self.registry.register("kotlin", self.extractor)

        replacement = StructuralExtractor(TypeTable(language="kotlin"))
        self.registry.register("kotlin", replacement, override=True)
        assert self.registry.get_extractor("kotlin") is replacement

    def test_unregister_removes_aliases_and_extensions(self):
        self.registry.register("kotlin", self.extractor, extensions=[".kt"], aliases=["kt-lang"])

        assert self.registry.unregister("kotlin") is True
        assert self.registry.get_extractor(".kt") is None
        assert self.registry.get_extractor("kt-lang") is None
        assert self.registry.unregister("kotlin") is False

    def test_registry_stats(self):
        self.registry.register("kotlin", self.extractor, extensions=[".kt"])

        stats = self.registry.get_registry_stats()

        assert stats["total_extractors"] == 1
        assert stats["languages"] == ["kotlin"]
        assert stats["extensions"] == [".kt"]


class TestGlobalRegistry:
    """Test module-level helpers"""

    def test_defaults_registered(self):
        assert extractor_registry.supported_languages() == ["javascript", "python", "typescript"]

    def test_helpers_delegate(self):
        assert get_extractor("ts") is extractor_registry.get_extractor("typescript")
        assert get_extractor_for_file("app/main.py").language == "python"
